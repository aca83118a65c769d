# ukayvault/main.py
import logging
from datetime import date

from ukayvault import accounting as acc
from ukayvault import database as db
from ukayvault import models as md
from ukayvault import utils as ut
from ukayvault.exceptions import UkayVaultError

logger = logging.getLogger(__name__)


def _pick_bundle(conn, prompt="Select Bundle:"):
    bundles = db.load_bundles(conn)
    if not bundles:
        print("No bundles yet. Add one first.")
        return None
    return ut.get_selection(prompt, bundles, [f"{b.name} ({b.category}, {b.total_pieces} pcs)" for b in bundles])


def _pick_available_item(conn, prompt="Select Item:"):
    bundles = {b.id: b for b in db.load_bundles(conn)}
    items = [i for i in db.load_items(conn) if i.status == md.STATUS_AVAILABLE]
    if not items:
        print("No available items.")
        return None
    labels = [
        f"{i.name} [{i.size or '-'}] {ut.format_currency(i.selling_price)} - {bundles[i.bundle_id].name}"
        for i in items
    ]
    return ut.get_selection(prompt, items, labels)


# --- CORE FEATURES ---

def add_bundle(conn):
    ut.print_header("ADD BUNDLE")
    name = ut.clean_text(input("Bundle Name: "))
    if not name: return None

    category = ut.get_selection("Select Category:", md.CATEGORIES)
    if not category: return None

    total_cost = ut.get_valid_float("Total Cost (₱): ")
    if total_cost is None: return None

    total_pieces = ut.get_valid_int("Total Pieces: ")
    if total_pieces is None: return None

    summary = f"{name} | {category}\n{total_pieces} pcs for {ut.format_currency(total_cost)}"
    summary += f" (~{ut.format_currency(total_cost / total_pieces)}/pc)"
    if ut.confirm_action(summary) != "SAVE": return None

    bundle = db.create_bundle(conn, md.Bundle(
        id=ut.generate_id(), name=name, category=category,
        total_cost=total_cost, total_pieces=total_pieces,
    ))
    print(f"Bundle '{bundle.name}' saved.")
    return bundle


def add_item(conn):
    ut.print_header("ADD ITEM")
    bundle = _pick_bundle(conn)
    if not bundle: return None

    name = ut.clean_text(input("Item Name: "))
    if not name: return None
    size = ut.clean_text(input("Size: "))

    selling_price = ut.get_valid_float("Selling Price (₱): ")
    if selling_price is None: return None

    auto_cost = acc.cost_per_item(bundle)
    est = ut.get_valid_float(f"Estimated Cost (Enter for auto {ut.format_currency(auto_cost)}): ", default="auto")
    if est is None: return None
    estimated_cost = None if est == "auto" else est

    condition = ut.get_selection("Condition:", md.CONDITIONS) or md.DEFAULT_CONDITION
    issue_notes = None
    if condition in md.ISSUE_CONDITIONS:
        issue_notes = ut.clean_text(input("Issue Notes: ")) or None
    source = ut.get_selection("Source:", md.SOURCES) or md.DEFAULT_SOURCE

    item = db.create_item(conn, md.Item(
        id=ut.generate_id(), bundle_id=bundle.id, name=name, size=size,
        selling_price=selling_price, estimated_cost=estimated_cost,
        condition=condition, issue_notes=issue_notes, source=source,
    ))
    print(f"Item '{item.name}' added to {bundle.name}.")
    return item


def mark_item_sold(conn, today=None):
    ut.print_header("MARK ITEM SOLD")
    item = _pick_available_item(conn)
    if not item: return None

    price = ut.get_valid_float(f"Sold Price (Enter for {ut.format_currency(item.selling_price)}): ", default=item.selling_price)
    if price is None: return None

    sold_date = ut.get_valid_date(f"Sold Date (Enter for {today or date.today()}): ", today or date.today())
    if sold_date is None: return None

    item.status = md.STATUS_SOLD
    item.sold_date = sold_date
    item.sold_price = price
    item = db.update_item(conn, item)
    print(f"{item.name} sold for {ut.format_currency(price)}.")
    return item


def record_daily_sale(conn, today=None):
    ut.print_header("RECORD DAILY SALE")
    sale_date = ut.get_valid_date(f"Sale Date (Enter for {today or date.today()}): ", today or date.today())
    if sale_date is None: return None

    cart = {}
    while True:
        item = _pick_available_item(conn, f"Add item #{len(cart) + 1} (0 to finish):")
        if not item: break
        if item.id in cart:
            print("Already in this sale.")
            continue
        price = ut.get_valid_float(f"Sold Price (Enter for {ut.format_currency(item.selling_price)}): ", default=item.selling_price)
        if price is None: continue
        cart[item.id] = (item, price)

    if not cart:
        print("Empty sale. Cancelled.")
        return None

    lines = [f"{item.name:<25} {ut.format_currency(price)}" for item, price in cart.values()]
    lines.append(f"{'TOTAL':<25} {ut.format_currency(sum(p for _, p in cart.values()))}")
    if ut.confirm_action(f"Sale on {sale_date}\n" + "\n".join(lines)) != "SAVE": return None

    sale = db.record_daily_sale(conn, sale_date, list(cart), {i: p for i, (_, p) in cart.items()})
    print(f"Daily sale saved: {len(sale.items)} items, {ut.format_currency(sale.total_revenue)}.")
    return sale


def delete_daily_sale(conn):
    ut.print_header("DELETE DAILY SALE")
    sales = db.load_daily_sales(conn)
    if not sales:
        print("No daily sales recorded.")
        return False
    labels = [f"{s.date} | {len(s.items)} items | {ut.format_currency(s.total_revenue)}" for s in sales]
    sale = ut.get_selection("Select Sale to Delete:", sales, labels)
    if not sale: return False
    if input("Items will return to Available. Delete? (y/n): ").strip().lower() != 'y': return False
    db.delete_daily_sale(conn, sale.id)
    print("Daily sale deleted.")
    return True


# --- REPORTS ---

def view_bundles(conn):
    ut.print_header("BUNDLES")
    bundles = db.load_bundles(conn)
    items = db.load_items(conn)
    if not bundles:
        print("No bundles yet.")
        return

    print(f"{'BUNDLE':<22} {'COST':>10} {'SALES':>10} {'REMAIN/PROFIT':>14} {'UNSOLD':>7} {'RECOVERED':>10}")
    print("-" * 78)
    for bundle in bundles:
        stats = acc.calculate_bundle_stats(bundle, items)
        gap = stats.profit if stats.is_breakeven else stats.remaining_to_breakeven
        tag = "+" if stats.is_breakeven else ""
        print(f"{bundle.name[:22]:<22} {ut.format_currency(bundle.total_cost):>10} "
              f"{ut.format_currency(stats.total_sales):>10} {tag + ut.format_currency(gap):>14} "
              f"{stats.unsold_count:>7} {ut.format_percent(stats.progress_percent):>10}")


def view_daily_report(conn, today=None):
    target = ut.get_valid_date(f"Date (Enter for {today or date.today()}): ", today or date.today())
    if target is None: return None

    bundles = db.load_bundles(conn)
    stats = acc.calculate_daily_stats(target, db.load_items(conn), bundles)
    names = {b.id: b.name for b in bundles}

    ut.print_header(f"DAILY SALES: {target}")
    ut.print_aligned("Items Sold:", len(stats.sales))
    ut.print_aligned("Revenue:", ut.format_currency(stats.revenue))
    ut.print_aligned("Profit:", ut.format_currency(stats.profit))
    for bundle_id, sales in stats.bundle_sales.items():
        print(f"  {names[bundle_id]:<25} {sales.count:>3} pcs  {ut.format_currency(sales.revenue)}")
    return stats


def view_dashboard(conn, today=None):
    summary = acc.calculate_dashboard(today or date.today(), db.load_bundles(conn), db.load_items(conn))
    ut.print_header(f"DASHBOARD ({summary.date})")
    ut.print_aligned("Today's Sales:", ut.format_currency(summary.today_sales))
    ut.print_aligned("Today's Profit:", ut.format_currency(summary.today_profit))
    ut.print_aligned("Active Bundles:", summary.active_bundles)
    ut.print_aligned("Breakeven:", summary.breakeven_bundles)
    return summary


MENU = [
    ("1", "Add Bundle", add_bundle),
    ("2", "View Bundles", view_bundles),
    ("3", "Add Item", add_item),
    ("4", "Mark Item Sold", mark_item_sold),
    ("5", "Record Daily Sale", record_daily_sale),
    ("6", "Delete Daily Sale", delete_daily_sale),
    ("7", "Daily Sales Report", view_daily_report),
    ("8", "Dashboard", view_dashboard),
]


def run(conn):
    actions = {key: action for key, _, action in MENU}
    while True:
        print("\n=== UKAYVAULT ===")
        for key, label, _ in MENU:
            print(f"{key}. {label}")
        print("9. Export Backup")
        print("0. Exit")

        choice = input("Select: ").strip().lower()
        if choice == '0' or choice == '':
            print("Exiting...")
            break
        try:
            if choice == '9':
                paths = db.export_csv_backup(conn)
                print(f"Backup saved: {', '.join(paths)}")
            elif choice in actions:
                actions[choice](conn)
            else:
                print("Invalid selection.")
        except UkayVaultError as e:
            logger.warning("Action %s failed: %s", choice, e)
            print(f"[!] {e}")


def main():
    logging.basicConfig(level=md.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    conn = db.get_db_connection()
    try:
        db.init_db(conn)
        run(conn)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
