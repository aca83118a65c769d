# ukayvault/accounting.py
"""
Breakeven and profit accounting over bundles and their items.

Every function here is pure: it only reads the bundles and items it is given
and never touches the database or the clock. Date-scoped functions take the
target date from the caller.
"""
import logging

from ukayvault import models as md
from ukayvault.exceptions import MalformedBundleError

logger = logging.getLogger(__name__)


# --- FILTERS ---

def bundle_items(bundle_id, items):
    return [item for item in items if item.bundle_id == bundle_id]


def sold_items(items):
    return [item for item in items if item.status == md.STATUS_SOLD]


def available_items(items):
    return [item for item in items if item.status == md.STATUS_AVAILABLE]


def sold_value(items):
    """Sum of sold prices, a missing sold price counts as zero."""
    return sum(item.sold_price or 0 for item in items)


# --- COST BASIS ---

def cost_per_item(bundle):
    """
    Bundle cost spread evenly over its pieces.

    Raises MalformedBundleError for a bundle with no pieces; daily attribution
    calls this for every bundle with a sale on the day, before or after breakeven.
    """
    if bundle.total_pieces is None or bundle.total_pieces <= 0:
        raise MalformedBundleError(
            f"Bundle {bundle.id} has {bundle.total_pieces} pieces; cost per item is undefined."
        )
    return bundle.total_cost / bundle.total_pieces


def estimated_item_cost(item, bundle):
    if item.estimated_cost is not None:
        return item.estimated_cost
    return cost_per_item(bundle)


# --- BREAKEVEN STATS ---

def calculate_bundle_stats(bundle, items):
    """
    Snapshot of how far a bundle is toward recovering its cost.

    `items` may hold items of other bundles; they are filtered out.
    Profit only exists once the bundle is at breakeven; before that the gap
    shows up in remaining_to_breakeven.
    """
    if bundle.total_cost < 0:
        raise MalformedBundleError(f"Bundle {bundle.id} has a negative total cost.")

    own_items = bundle_items(bundle.id, items)
    total_sales = sold_value(sold_items(own_items))

    remaining_to_breakeven = bundle.total_cost - total_sales
    is_breakeven = remaining_to_breakeven <= 0
    profit = total_sales - bundle.total_cost if is_breakeven else 0
    unsold_count = len(available_items(own_items))

    if bundle.total_cost == 0:
        progress_percent = 100.0
    else:
        progress_percent = min(total_sales / bundle.total_cost * 100, 100)

    return md.BundleStats(
        total_sales=total_sales,
        remaining_to_breakeven=remaining_to_breakeven,
        is_breakeven=is_breakeven,
        profit=profit,
        unsold_count=unsold_count,
        progress_percent=progress_percent,
    )


def calculate_all_bundle_stats(bundles, items):
    return {bundle.id: calculate_bundle_stats(bundle, items) for bundle in bundles}


# --- DAILY ATTRIBUTION ---

def _item_profit_on(target_date, item, bundle, items):
    """Profit one of today's sold items adds, given its bundle's sales history."""
    unit_cost = cost_per_item(bundle)
    history = [
        i for i in sold_items(bundle_items(bundle.id, items))
        if i.sold_date is not None and i.sold_date <= target_date
    ]
    if sold_value(history) <= bundle.total_cost:
        return 0

    revenue_before = sold_value(i for i in history if i.sold_date < target_date)
    price = item.sold_price or 0

    if revenue_before >= bundle.total_cost:
        return price - unit_cost

    # Breakeven falls on target_date. Each of today's items is measured against
    # the same remaining cost; it is not reduced as earlier items cover it.
    remaining_cost = bundle.total_cost - revenue_before
    if price > remaining_cost:
        return price - remaining_cost
    return 0


def calculate_daily_stats(target_date, items, bundles):
    """
    Revenue and post-breakeven profit for the items sold on target_date.

    Items are walked in the order given. A sold item whose bundle is not in
    `bundles` still counts toward revenue but adds no profit and is left out
    of bundle_sales.
    """
    bundles_by_id = {bundle.id: bundle for bundle in bundles}
    todays_sales = [item for item in sold_items(items) if item.sold_date == target_date]

    revenue = sold_value(todays_sales)
    profit = 0
    bundle_sales = {}

    for item in todays_sales:
        bundle = bundles_by_id.get(item.bundle_id)
        if bundle is None:
            logger.debug("Sold item %s references unknown bundle %s", item.id, item.bundle_id)
            continue

        entry = bundle_sales.setdefault(bundle.id, md.BundleSales())
        entry.revenue += item.sold_price or 0
        entry.count += 1

        profit += _item_profit_on(target_date, item, bundle, items)

    return md.DailyStats(
        date=target_date,
        sales=todays_sales,
        revenue=revenue,
        profit=profit,
        bundle_sales=bundle_sales,
    )


# --- DASHBOARD ---

def calculate_dashboard(target_date, bundles, items):
    stats = calculate_all_bundle_stats(bundles, items)
    today = calculate_daily_stats(target_date, items, bundles)
    return md.DashboardSummary(
        date=target_date,
        today_sales=today.revenue,
        today_profit=today.profit,
        active_bundles=len(bundles),
        breakeven_bundles=sum(1 for s in stats.values() if s.is_breakeven),
        bundle_stats=stats,
    )


def sale_total(items, item_ids, sold_prices=None):
    """Revenue a daily sale of item_ids would record, using the same price fallback as the database."""
    sold_prices = sold_prices or {}
    wanted = set(item_ids)
    total = 0
    for item in items:
        if item.id not in wanted:
            continue
        if item.id in sold_prices:
            total += sold_prices[item.id]
        elif item.sold_price is not None:
            total += item.sold_price
        else:
            total += item.selling_price
    return total
