# ukayvault/reports.py
"""pandas tables built from the accounting engine, for the app and terminal views."""
import pandas as pd

from ukayvault import accounting as acc
from ukayvault import models as md
from ukayvault.exceptions import MalformedBundleError

BUNDLE_REPORT_COLUMNS = [
    "ID", "Bundle", "Category", "Pieces", "Total Cost", "Total Sales",
    "Remaining", "Profit", "Unsold", "Progress %", "Breakeven"
]
ITEM_REPORT_COLUMNS = [
    "ID", "Bundle", "Item", "Size", "Condition", "Source", "Status",
    "Selling Price", "Est. Cost", "Sold Date", "Sold Price", "Issue Notes"
]
DAILY_BUNDLE_COLUMNS = ["Bundle", "Revenue", "Items Sold"]
DAILY_SALES_COLUMNS = ["ID", "Date", "Items", "Total Revenue"]


def bundles_frame(bundles, items):
    rows = []
    for bundle in bundles:
        stats = acc.calculate_bundle_stats(bundle, items)
        rows.append({
            "ID": bundle.id, "Bundle": bundle.name, "Category": bundle.category,
            "Pieces": bundle.total_pieces, "Total Cost": bundle.total_cost,
            "Total Sales": stats.total_sales,
            "Remaining": max(stats.remaining_to_breakeven, 0),
            "Profit": stats.profit, "Unsold": stats.unsold_count,
            "Progress %": stats.progress_percent, "Breakeven": stats.is_breakeven,
        })
    return pd.DataFrame(rows, columns=BUNDLE_REPORT_COLUMNS)


def items_frame(items, bundles):
    bundles_by_id = {b.id: b for b in bundles}
    rows = []
    for item in items:
        bundle = bundles_by_id.get(item.bundle_id)
        est_cost = item.estimated_cost
        if bundle is not None:
            try:
                est_cost = acc.estimated_item_cost(item, bundle)
            except MalformedBundleError:
                est_cost = None
        rows.append({
            "ID": item.id,
            "Bundle": bundle.name if bundle else "Unknown Bundle",
            "Item": item.name, "Size": item.size, "Condition": item.condition,
            "Source": item.source, "Status": item.status,
            "Selling Price": item.selling_price, "Est. Cost": est_cost,
            "Sold Date": item.sold_date, "Sold Price": item.sold_price,
            "Issue Notes": item.issue_notes if item.has_issue else None,
        })
    return pd.DataFrame(rows, columns=ITEM_REPORT_COLUMNS)


def daily_bundle_frame(daily_stats, bundles):
    """Per-bundle revenue for one day, biggest earner first."""
    names = {b.id: b.name for b in bundles}
    rows = [
        {"Bundle": names[bundle_id], "Revenue": sales.revenue, "Items Sold": sales.count}
        for bundle_id, sales in daily_stats.bundle_sales.items()
        if bundle_id in names
    ]
    df = pd.DataFrame(rows, columns=DAILY_BUNDLE_COLUMNS)
    if df.empty: return df
    return df.sort_values(by="Revenue", ascending=False).reset_index(drop=True)


def daily_sales_frame(daily_sales):
    rows = [
        {"ID": s.id, "Date": s.date, "Items": len(s.items), "Total Revenue": s.total_revenue}
        for s in daily_sales
    ]
    return pd.DataFrame(rows, columns=DAILY_SALES_COLUMNS)


def sold_items_by_date(items):
    """Revenue and units per sold date, newest first."""
    sold = [i for i in items if i.status == md.STATUS_SOLD and i.sold_date is not None]
    if not sold:
        return pd.DataFrame(columns=["Date", "Revenue", "Units"])
    df = pd.DataFrame({"Date": [i.sold_date for i in sold], "Price": [i.sold_price or 0 for i in sold]})
    summary = df.groupby("Date").agg(Revenue=("Price", "sum"), Units=("Price", "size")).reset_index()
    return summary.sort_values(by="Date", ascending=False).reset_index(drop=True)
