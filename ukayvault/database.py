# ukayvault/database.py
import csv
import logging
import os
import sqlite3
from dataclasses import replace
from datetime import date, datetime

from ukayvault import models as md
from ukayvault import utils as ut
from ukayvault.exceptions import RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)

SCHEMA = [
    '''CREATE TABLE IF NOT EXISTS bundles (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        category TEXT NOT NULL,
        total_cost REAL NOT NULL,
        total_pieces INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )''',
    '''CREATE TABLE IF NOT EXISTS items (
        id TEXT PRIMARY KEY,
        bundle_id TEXT NOT NULL REFERENCES bundles(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        selling_price REAL NOT NULL,
        estimated_cost REAL,
        size TEXT,
        condition TEXT NOT NULL,
        issue_notes TEXT,
        source TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'Available',
        sold_date TEXT,
        sold_price REAL,
        created_at TEXT NOT NULL
    )''',
    '''CREATE TABLE IF NOT EXISTS daily_sales (
        id TEXT PRIMARY KEY,
        date TEXT NOT NULL,
        total_revenue REAL NOT NULL,
        created_at TEXT NOT NULL
    )''',
    '''CREATE TABLE IF NOT EXISTS daily_sales_items (
        daily_sale_id TEXT NOT NULL REFERENCES daily_sales(id) ON DELETE CASCADE,
        item_id TEXT NOT NULL REFERENCES items(id) ON DELETE CASCADE,
        PRIMARY KEY (daily_sale_id, item_id)
    )''',
    'CREATE INDEX IF NOT EXISTS idx_items_bundle ON items(bundle_id)',
]


# --- CONNECTION ---

def get_db_connection(db_file=None):
    """Opens the SQLite database with dict-like rows and cascading foreign keys."""
    conn = sqlite3.connect(db_file or md.DB_FILE)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn):
    with conn:
        for statement in SCHEMA:
            conn.execute(statement)


# --- ROW CONVERSION ---

def _to_date(value):
    return date.fromisoformat(value) if value else None


def _to_datetime(value):
    return datetime.fromisoformat(value) if value else None


def _iso(value):
    return value.isoformat() if value is not None else None


def _now():
    return datetime.now()


def _row_to_bundle(row):
    return md.Bundle(
        id=row['id'], name=row['name'], category=row['category'],
        total_cost=row['total_cost'], total_pieces=row['total_pieces'],
        created_at=_to_datetime(row['created_at']),
    )


def _row_to_item(row):
    return md.Item(
        id=row['id'], bundle_id=row['bundle_id'], name=row['name'],
        selling_price=row['selling_price'], estimated_cost=row['estimated_cost'],
        size=row['size'] or "", condition=row['condition'], issue_notes=row['issue_notes'],
        source=row['source'], status=row['status'],
        sold_date=_to_date(row['sold_date']), sold_price=row['sold_price'],
        created_at=_to_datetime(row['created_at']),
    )


# --- BUNDLES ---

def load_bundles(conn):
    rows = conn.execute("SELECT * FROM bundles ORDER BY created_at DESC, rowid DESC").fetchall()
    return [_row_to_bundle(r) for r in rows]


def get_bundle(conn, bundle_id):
    row = conn.execute("SELECT * FROM bundles WHERE id = ?", (bundle_id,)).fetchone()
    if row is None:
        raise RecordNotFoundError("Bundle", bundle_id)
    return _row_to_bundle(row)


def create_bundle(conn, bundle):
    bundle = replace(bundle, id=bundle.id or ut.generate_id(), created_at=bundle.created_at or _now())
    md.validate_bundle(bundle)
    with conn:
        conn.execute(
            '''INSERT INTO bundles (id, name, category, total_cost, total_pieces, created_at)
               VALUES (?, ?, ?, ?, ?, ?)''',
            (bundle.id, bundle.name.strip(), bundle.category, bundle.total_cost,
             bundle.total_pieces, _iso(bundle.created_at))
        )
    logger.info("Created bundle %s (%s, %d pcs)", bundle.id, bundle.name, bundle.total_pieces)
    return get_bundle(conn, bundle.id)


def update_bundle(conn, bundle):
    md.validate_bundle(bundle)
    with conn:
        cur = conn.execute(
            '''UPDATE bundles SET name = ?, category = ?, total_cost = ?, total_pieces = ?
               WHERE id = ?''',
            (bundle.name.strip(), bundle.category, bundle.total_cost, bundle.total_pieces, bundle.id)
        )
    if cur.rowcount == 0:
        raise RecordNotFoundError("Bundle", bundle.id)
    logger.info("Updated bundle %s", bundle.id)
    return get_bundle(conn, bundle.id)


def delete_bundle(conn, bundle_id):
    """Deletes a bundle; its items go with it and daily sales drop their revenue."""
    with conn:
        _detach_from_sales(conn, "i.bundle_id = ?", bundle_id)
        cur = conn.execute("DELETE FROM bundles WHERE id = ?", (bundle_id,))
        _drop_empty_sales(conn)
    if cur.rowcount == 0:
        raise RecordNotFoundError("Bundle", bundle_id)
    logger.info("Deleted bundle %s", bundle_id)


# --- ITEMS ---

def load_items(conn, bundle_id=None):
    if bundle_id is None:
        rows = conn.execute("SELECT * FROM items ORDER BY created_at DESC, rowid DESC").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM items WHERE bundle_id = ? ORDER BY created_at DESC, rowid DESC",
            (bundle_id,)
        ).fetchall()
    return [_row_to_item(r) for r in rows]


def get_item(conn, item_id):
    row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
    if row is None:
        raise RecordNotFoundError("Item", item_id)
    return _row_to_item(row)


def _item_values(item):
    return (
        item.name.strip(), item.selling_price, item.estimated_cost, item.size,
        item.condition, item.issue_notes, item.source, item.status,
        _iso(item.sold_date), item.sold_price,
    )


def create_item(conn, item):
    item = replace(item, id=item.id or ut.generate_id(), created_at=item.created_at or _now())
    md.validate_item(item)
    get_bundle(conn, item.bundle_id)
    with conn:
        conn.execute(
            '''INSERT INTO items (
                   name, selling_price, estimated_cost, size, condition, issue_notes,
                   source, status, sold_date, sold_price, id, bundle_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)''',
            _item_values(item) + (item.id, item.bundle_id, _iso(item.created_at))
        )
    logger.info("Created item %s in bundle %s", item.id, item.bundle_id)
    return get_item(conn, item.id)


def update_item(conn, item):
    """Saves edits to an item. The owning bundle never changes."""
    md.validate_item(item)
    current = get_item(conn, item.id)
    sale_date = _linked_sale_date(conn, item.id)
    sold_fields = (item.status, item.sold_date, item.sold_price)
    if sale_date is not None and sold_fields != (current.status, current.sold_date, current.sold_price):
        raise ValidationError(
            f"Item {current.name} is part of the daily sale on {sale_date}; delete that sale instead."
        )
    with conn:
        cur = conn.execute(
            '''UPDATE items SET
                   name = ?, selling_price = ?, estimated_cost = ?, size = ?, condition = ?,
                   issue_notes = ?, source = ?, status = ?, sold_date = ?, sold_price = ?
               WHERE id = ?''',
            _item_values(item) + (item.id,)
        )
    if cur.rowcount == 0:
        raise RecordNotFoundError("Item", item.id)
    logger.info("Updated item %s (%s)", item.id, item.status)
    return get_item(conn, item.id)


def delete_item(conn, item_id):
    """Deletes an item; a daily sale that listed it loses its price from the revenue."""
    with conn:
        _detach_from_sales(conn, "i.id = ?", item_id)
        cur = conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
        _drop_empty_sales(conn)
    if cur.rowcount == 0:
        raise RecordNotFoundError("Item", item_id)
    logger.info("Deleted item %s", item_id)


# --- DAILY SALES ---

def _linked_sale_date(conn, item_id):
    row = conn.execute(
        '''SELECT ds.date FROM daily_sales ds
           JOIN daily_sales_items l ON l.daily_sale_id = ds.id
           WHERE l.item_id = ?''',
        (item_id,)
    ).fetchone()
    return _to_date(row['date']) if row else None


def _detach_from_sales(conn, item_filter, value):
    """Takes the sold price of items matching item_filter off every daily sale listing them."""
    conn.execute(
        f'''UPDATE daily_sales SET total_revenue = total_revenue - (
                SELECT COALESCE(SUM(i.sold_price), 0) FROM daily_sales_items l
                JOIN items i ON i.id = l.item_id
                WHERE l.daily_sale_id = daily_sales.id AND {item_filter})''',
        (value,)
    )


def _drop_empty_sales(conn):
    conn.execute("DELETE FROM daily_sales WHERE id NOT IN (SELECT daily_sale_id FROM daily_sales_items)")


def _sale_item_ids(conn, sale_id):
    rows = conn.execute(
        "SELECT item_id FROM daily_sales_items WHERE daily_sale_id = ? ORDER BY item_id",
        (sale_id,)
    ).fetchall()
    return [r['item_id'] for r in rows]


def _row_to_daily_sale(conn, row):
    return md.DailySale(
        id=row['id'], date=_to_date(row['date']),
        items=_sale_item_ids(conn, row['id']),
        total_revenue=row['total_revenue'],
        created_at=_to_datetime(row['created_at']),
    )


def load_daily_sales(conn):
    rows = conn.execute("SELECT * FROM daily_sales ORDER BY date DESC, created_at DESC").fetchall()
    return [_row_to_daily_sale(conn, r) for r in rows]


def get_daily_sale(conn, sale_id):
    row = conn.execute("SELECT * FROM daily_sales WHERE id = ?", (sale_id,)).fetchone()
    if row is None:
        raise RecordNotFoundError("Daily sale", sale_id)
    return _row_to_daily_sale(conn, row)


def record_daily_sale(conn, sale_date, item_ids, sold_prices=None, sale_id=None):
    """
    Marks every listed item Sold on sale_date and stores the daily sale.

    Each item's sold price comes from sold_prices when given, else the price
    already on the item, else its selling price. All of it is one
    transaction: an unknown or already sold item leaves the database as it was.
    """
    item_ids = list(dict.fromkeys(item_ids))
    if not item_ids:
        raise ValidationError("A daily sale needs at least one item.")
    sold_prices = sold_prices or {}
    sale_id = sale_id or ut.generate_id()

    try:
        with conn:
            total_revenue = 0
            for item_id in item_ids:
                item = get_item(conn, item_id)
                if item.is_sold:
                    raise ValidationError(f"Item {item.name} ({item_id}) is already sold.")

                if item_id in sold_prices:
                    price = sold_prices[item_id]
                elif item.sold_price is not None:
                    price = item.sold_price
                else:
                    price = item.selling_price
                if price is None or price < 0:
                    raise ValidationError(f"Invalid sold price for item {item_id}.")
                total_revenue += price

                conn.execute(
                    "UPDATE items SET status = ?, sold_date = ?, sold_price = ? WHERE id = ?",
                    (md.STATUS_SOLD, _iso(sale_date), price, item_id)
                )

            conn.execute(
                "INSERT INTO daily_sales (id, date, total_revenue, created_at) VALUES (?, ?, ?, ?)",
                (sale_id, _iso(sale_date), total_revenue, _iso(_now()))
            )
            conn.executemany(
                "INSERT INTO daily_sales_items (daily_sale_id, item_id) VALUES (?, ?)",
                [(sale_id, item_id) for item_id in item_ids]
            )
    except Exception as e:
        logger.error("Daily sale for %s rolled back: %s", sale_date, e)
        raise

    logger.info("Recorded daily sale %s: %d items, revenue %.2f", sale_id, len(item_ids), total_revenue)
    return get_daily_sale(conn, sale_id)


def delete_daily_sale(conn, sale_id):
    """Removes a daily sale and puts its items back on the rack, in one transaction."""
    try:
        with conn:
            get_daily_sale(conn, sale_id)
            conn.execute(
                '''UPDATE items SET status = ?, sold_date = NULL, sold_price = NULL
                   WHERE id IN (SELECT item_id FROM daily_sales_items WHERE daily_sale_id = ?)
                     AND sold_date = (SELECT date FROM daily_sales WHERE id = ?)''',
                (md.STATUS_AVAILABLE, sale_id, sale_id)
            )
            conn.execute("DELETE FROM daily_sales WHERE id = ?", (sale_id,))
    except Exception as e:
        logger.error("Deleting daily sale %s rolled back: %s", sale_id, e)
        raise
    logger.info("Deleted daily sale %s", sale_id)


# --- BACKUP ---

def save_csv(filename, columns, data):
    """Writes a list of dictionaries to a CSV file."""
    with open(filename, mode='w', newline='', encoding='utf-8') as file:
        writer = csv.DictWriter(file, fieldnames=columns)
        writer.writeheader()
        writer.writerows(data)


def _csv_value(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, list):
        return ";".join(value)
    return "" if value is None else value


def _as_rows(records, columns):
    return [{c: _csv_value(getattr(r, c)) for c in columns} for r in records]


def export_csv_backup(conn, backup_dir=None):
    """Dumps bundles, items and daily sales into timestamped CSV files."""
    backup_dir = backup_dir or md.BACKUP_DIR
    os.makedirs(backup_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    tables = [
        ("bundles", md.BUNDLE_COLUMNS, load_bundles(conn)),
        ("items", md.ITEM_COLUMNS, load_items(conn)),
        ("daily_sales", md.DAILY_SALE_COLUMNS, load_daily_sales(conn)),
    ]
    paths = []
    for name, columns, records in tables:
        path = os.path.join(backup_dir, f"{name}_{timestamp}.csv")
        save_csv(path, columns, _as_rows(records, columns))
        paths.append(path)

    logger.info("Backup written to %s", backup_dir)
    return paths
