# ukayvault/app.py
# run with: streamlit run ukayvault/app.py
import logging
from contextlib import closing
from datetime import date

import pandas as pd
import streamlit as st

from ukayvault import accounting as acc
from ukayvault import database as db
from ukayvault import models as md
from ukayvault import reports as rp
from ukayvault import utils as ut
from ukayvault.exceptions import UkayVaultError

# --- CONFIGURATION ---
st.set_page_config(page_title="UkayVault", layout="wide")
logging.basicConfig(level=md.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# --- CUSTOM CSS ---
st.markdown("""
<style>
    div.stMetric { background-color: #0E1117; padding: 15px; border-radius: 10px; border: 1px solid #262730; }
    div.stButton > button { width: 100%; border-radius: 5px; font-weight: bold; }
</style>
""", unsafe_allow_html=True)


# --- DATA ACCESS ---
def open_db():
    conn = db.get_db_connection()
    db.init_db(conn)
    return conn


@st.cache_data
def load_all():
    """Bundles, items and daily sales; cached until a write clears it."""
    with closing(open_db()) as conn:
        return db.load_bundles(conn), db.load_items(conn), db.load_daily_sales(conn)


def write(action, *args, success="Saved"):
    """Runs one database write, then drops the cached collections and reruns."""
    try:
        with closing(open_db()) as conn:
            action(conn, *args)
    except UkayVaultError as e:
        st.error(str(e))
        return
    load_all.clear()
    st.toast(success)
    st.rerun()


def money_format(columns):
    return {c: lambda v: ut.format_currency(v) if pd.notna(v) else "" for c in columns}


bundles, items, daily_sales = load_all()
bundles_by_id = {b.id: b for b in bundles}

# --- SIDEBAR ---
st.sidebar.title("🧥 UkayVault")
main_menu = st.sidebar.radio("Navigate:", ["Dashboard", "Bundles", "Items", "Daily Sales", "Admin Tools"])

# ==============================================================================
# 1. DASHBOARD
# ==============================================================================
if main_menu == "Dashboard":
    st.title("Dashboard")
    summary = acc.calculate_dashboard(date.today(), bundles, items)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Today's Sales", ut.format_currency(summary.today_sales))
    c2.metric("Today's Profit", ut.format_currency(summary.today_profit))
    c3.metric("Active Bundles", summary.active_bundles)
    c4.metric("Breakeven", summary.breakeven_bundles)
    st.divider()

    if not bundles: st.info("No bundles yet. Add one under Bundles."); st.stop()

    cols = st.columns(3)
    for idx, bundle in enumerate(bundles):
        stats = summary.bundle_stats[bundle.id]
        with cols[idx % 3].container(border=True):
            badge = " ✅" if stats.is_breakeven else ""
            st.markdown(f"**{bundle.name}**{badge}")
            st.caption(f"{bundle.category} • {bundle.total_pieces} pieces")
            st.write(f"Cost: **{ut.format_currency(bundle.total_cost)}**")
            st.write(f"Sales: **{ut.format_currency(stats.total_sales)}**")
            if stats.is_breakeven:
                st.write(f"Profit: **{ut.format_currency(stats.profit)}**")
            else:
                st.write(f"Remaining: **{ut.format_currency(stats.remaining_to_breakeven)}**")
            st.write(f"Unsold: **{stats.unsold_count}**")
            st.progress(stats.progress_percent / 100, text=f"{ut.format_percent(stats.progress_percent)} recovered")

# ==============================================================================
# 2. BUNDLES
# ==============================================================================
elif main_menu == "Bundles":
    st.title("📦 Bundles")
    tab_list, tab_add, tab_manage = st.tabs(["All Bundles", "Add Bundle", "Edit / Delete"])

    with tab_list:
        df = rp.bundles_frame(bundles, items)
        if df.empty: st.info("No bundles yet.")
        else:
            st.dataframe(
                df.drop(columns=["ID"]).style.format({
                    **money_format(["Total Cost", "Total Sales", "Remaining", "Profit"]),
                    "Progress %": "{:.1f}%"
                }),
                use_container_width=True, hide_index=True
            )

    with tab_add:
        with st.form("add_bundle", clear_on_submit=True):
            name = st.text_input("Bundle Name")
            c1, c2, c3 = st.columns(3)
            category = c1.selectbox("Category", md.CATEGORIES)
            total_cost = c2.number_input("Total Cost (₱)", min_value=0.0, step=100.0)
            total_pieces = c3.number_input("Total Pieces", min_value=1, step=1)
            if total_pieces: st.caption(f"≈ {ut.format_currency(total_cost / total_pieces)} per piece")
            if st.form_submit_button("💾 Save Bundle"):
                write(db.create_bundle, md.Bundle(
                    id=ut.generate_id(), name=ut.clean_text(name), category=category,
                    total_cost=float(total_cost), total_pieces=int(total_pieces),
                ), success="Bundle added")

    with tab_manage:
        if not bundles: st.info("No bundles yet."); st.stop()
        target = st.selectbox("Select Bundle", bundles, format_func=lambda b: f"{b.name} ({b.category})")
        with st.form("edit_bundle"):
            name = st.text_input("Bundle Name", value=target.name)
            c1, c2, c3 = st.columns(3)
            category = c1.selectbox("Category", md.CATEGORIES, index=md.CATEGORIES.index(target.category))
            total_cost = c2.number_input("Total Cost (₱)", min_value=0.0, value=float(target.total_cost))
            total_pieces = c3.number_input("Total Pieces", min_value=1, value=int(target.total_pieces))
            if st.form_submit_button("Update"):
                target.name, target.category = ut.clean_text(name), category
                target.total_cost, target.total_pieces = float(total_cost), int(total_pieces)
                write(db.update_bundle, target, success="Bundle updated")

        owned = len(acc.bundle_items(target.id, items))
        st.warning(f"Deleting removes this bundle and its {owned} items.")
        if st.button("DELETE BUNDLE", type="primary"):
            write(db.delete_bundle, target.id, success="Bundle deleted")

# ==============================================================================
# 3. ITEMS
# ==============================================================================
elif main_menu == "Items":
    st.title("👕 Items")
    if not bundles: st.warning("Add a bundle first."); st.stop()

    names = {b.id: b.name for b in bundles}
    selected = st.selectbox("Bundle filter", ["All"] + list(names), format_func=lambda k: names.get(k, "All bundles"))
    shown = items if selected == "All" else acc.bundle_items(selected, items)

    tab_list, tab_add, tab_manage = st.tabs(["Items", "Add Item", "Edit / Sell / Delete"])

    with tab_list:
        df = rp.items_frame(shown, bundles)
        fmt = money_format(["Selling Price", "Est. Cost", "Sold Price"])
        st.subheader(f"Available ({len(acc.available_items(shown))})")
        st.dataframe(df[df["Status"] == md.STATUS_AVAILABLE].drop(columns=["ID", "Sold Date", "Sold Price"])
                     .style.format(fmt), use_container_width=True, hide_index=True)
        st.subheader(f"Sold ({len(acc.sold_items(shown))})")
        sold_df = df[df["Status"] == md.STATUS_SOLD].sort_values(by="Sold Date", ascending=False)
        st.dataframe(sold_df.drop(columns=["ID"]).style.format(fmt), use_container_width=True, hide_index=True)

    with tab_add:
        bundle = st.selectbox("Bundle", bundles, format_func=lambda b: b.name, key="add_item_bundle")
        with st.form("add_item", clear_on_submit=True):
            c1, c2, c3 = st.columns(3)
            name = c1.text_input("Item Name")
            size = c2.text_input("Size")
            selling_price = c3.number_input("Selling Price (₱)", min_value=0.0, step=10.0)
            c4, c5, c6 = st.columns(3)
            condition = c4.selectbox("Condition", md.CONDITIONS, index=md.CONDITIONS.index(md.DEFAULT_CONDITION))
            source = c5.selectbox("Source", md.SOURCES)
            est_cost = c6.number_input("Estimated Cost (blank = auto)", min_value=0.0, value=None)
            st.caption(f"💡 Auto-calculated from bundle: {ut.format_currency(acc.cost_per_item(bundle))} per piece")
            issue_notes = st.text_area("Issue Notes (for With Issue / Reject)")
            if st.form_submit_button("💾 Save Item"):
                write(db.create_item, md.Item(
                    id=ut.generate_id(), bundle_id=bundle.id, name=ut.clean_text(name),
                    size=ut.clean_text(size), selling_price=float(selling_price),
                    estimated_cost=est_cost, condition=condition, source=source,
                    issue_notes=ut.clean_text(issue_notes) or None,
                ), success="Item added")

    with tab_manage:
        if not shown: st.info("No items."); st.stop()
        target = st.selectbox("Select Item", shown,
                              format_func=lambda i: f"{i.name} [{i.size or '-'}] ({i.status}) - {names[i.bundle_id]}")
        with st.form("edit_item"):
            c1, c2, c3 = st.columns(3)
            name = c1.text_input("Item Name", value=target.name)
            size = c2.text_input("Size", value=target.size)
            selling_price = c3.number_input("Selling Price (₱)", min_value=0.0, value=float(target.selling_price))
            c4, c5, c6 = st.columns(3)
            condition = c4.selectbox("Condition", md.CONDITIONS, index=md.CONDITIONS.index(target.condition))
            source = c5.selectbox("Source", md.SOURCES, index=md.SOURCES.index(target.source))
            status = c6.selectbox("Status", md.STATUSES, index=md.STATUSES.index(target.status))
            c7, c8 = st.columns(2)
            sold_price = c7.number_input("Sold Price (₱)", min_value=0.0,
                                         value=float(target.selling_price if target.sold_price is None else target.sold_price))
            sold_date = c8.date_input("Sold Date", value=target.sold_date or date.today())
            issue_notes = st.text_area("Issue Notes", value=target.issue_notes or "")
            if st.form_submit_button("Update"):
                is_sold = status == md.STATUS_SOLD
                target.name, target.size = ut.clean_text(name), ut.clean_text(size)
                target.selling_price, target.condition, target.source = float(selling_price), condition, source
                target.issue_notes = ut.clean_text(issue_notes) or None
                target.status = status
                target.sold_price = float(sold_price) if is_sold else None
                target.sold_date = sold_date if is_sold else None
                write(db.update_item, target, success="Item updated")

        if st.button("DELETE ITEM", type="primary"):
            write(db.delete_item, target.id, success="Item deleted")

# ==============================================================================
# 4. DAILY SALES
# ==============================================================================
elif main_menu == "Daily Sales":
    st.title("💰 Daily Sales")
    selected_date = st.date_input("Date", value=date.today())
    stats = acc.calculate_daily_stats(selected_date, items, bundles)

    c1, c2 = st.columns(2)
    c1.metric(f"Revenue for {selected_date}", ut.format_currency(stats.revenue),
              f"{len(stats.sales)} {'item' if len(stats.sales) == 1 else 'items'} sold", delta_color="off")
    c2.metric(f"Profit for {selected_date}", ut.format_currency(stats.profit),
              "After breakeven costs recovered", delta_color="off")

    perf = rp.daily_bundle_frame(stats, bundles)
    if not perf.empty:
        st.subheader("📊 Bundle Performance")
        st.dataframe(perf.style.format(money_format(["Revenue"])), use_container_width=True, hide_index=True)

    if stats.sales:
        st.subheader("Items Sold")
        st.dataframe(rp.items_frame(stats.sales, bundles)[["Item", "Bundle", "Size", "Sold Price"]]
                     .style.format(money_format(["Sold Price"])), use_container_width=True, hide_index=True)

    st.divider()
    tab_new, tab_history = st.tabs(["Record Sale", "History"])

    with tab_new:
        available = acc.available_items(items)
        if not available: st.info("No available items.")
        else:
            picked = st.multiselect(
                "Items sold", available,
                format_func=lambda i: f"{i.name} [{i.size or '-'}] {ut.format_currency(i.selling_price)} - "
                                      f"{bundles_by_id[i.bundle_id].name}"
            )
            if picked:
                cart = pd.DataFrame([{"ID": i.id, "Item": i.name, "Sold Price": i.selling_price} for i in picked])
                edited = st.data_editor(cart, disabled=["ID", "Item"], hide_index=True, key="sale_edit")
                prices = dict(zip(edited["ID"], pd.to_numeric(edited["Sold Price"]).astype(float)))
                st.metric("Sale Total", ut.format_currency(acc.sale_total(picked, list(prices), prices)))
                if st.button(f"✅ RECORD SALE FOR {selected_date}", type="primary"):
                    write(db.record_daily_sale, selected_date, list(prices), prices, success="Sale recorded")

    with tab_history:
        hist = rp.daily_sales_frame(daily_sales)
        if hist.empty: st.info("No daily sales recorded.")
        else:
            st.dataframe(hist.drop(columns=["ID"]).style.format(money_format(["Total Revenue"])),
                         use_container_width=True, hide_index=True)
            sale = st.selectbox("Select sale", daily_sales,
                                format_func=lambda s: f"{s.date} | {len(s.items)} items | "
                                                      f"{ut.format_currency(s.total_revenue)}")
            st.caption("Deleting returns its items to Available.")
            if st.button("DELETE SALE", type="primary"):
                write(db.delete_daily_sale, sale.id, success="Sale deleted")

        by_date = rp.sold_items_by_date(items)
        if not by_date.empty:
            st.subheader("Sales by Date")
            st.dataframe(by_date.style.format(money_format(["Revenue"])), use_container_width=True, hide_index=True)

# ==============================================================================
# 5. ADMIN TOOLS
# ==============================================================================
elif main_menu == "Admin Tools":
    st.title("🛠️ Admin Tools")
    st.write(f"Database: `{md.DB_FILE}`")
    if st.button("Export CSV Backup"):
        with closing(open_db()) as conn:
            paths = db.export_csv_backup(conn)
        st.success("Backup written:\n" + "\n".join(paths))
    if st.button("Reload Data"):
        load_all.clear()
        st.rerun()
