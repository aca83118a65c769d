"""Tests for the sqlite persistence layer and the atomic daily sale pair."""

import csv
import sqlite3

import pytest

from conftest import DAY1, DAY2, make_bundle, make_item
from ukayvault import database as db
from ukayvault import models as md
from ukayvault.exceptions import RecordNotFoundError, ValidationError

# =========================================================================
# Bundles
# =========================================================================


class TestBundles:
    def test_create_assigns_id_and_timestamp(self, conn: sqlite3.Connection) -> None:
        bundle = db.create_bundle(conn, make_bundle(id=""))
        assert bundle.id
        assert bundle.created_at is not None
        assert bundle.total_pieces == 20

    def test_create_keeps_given_id(self, conn: sqlite3.Connection) -> None:
        assert db.create_bundle(conn, make_bundle(id="lot-7")).id == "lot-7"

    @pytest.mark.parametrize("changes", [
        {"total_pieces": 0},
        {"total_cost": -5.0},
        {"category": "Shoes"},
        {"name": "  "},
    ])
    def test_create_rejects_bad_bundle(self, conn: sqlite3.Connection, changes) -> None:
        with pytest.raises(ValidationError):
            db.create_bundle(conn, make_bundle(**changes))
        assert db.load_bundles(conn) == []

    def test_load_newest_first(self, conn: sqlite3.Connection) -> None:
        db.create_bundle(conn, make_bundle(id="old", name="Old"))
        db.create_bundle(conn, make_bundle(id="new", name="New"))
        assert [b.id for b in db.load_bundles(conn)] == ["new", "old"]

    def test_update(self, conn: sqlite3.Connection, bundle: md.Bundle) -> None:
        bundle.name = "Renamed"
        bundle.total_cost = 1500.0
        updated = db.update_bundle(conn, bundle)
        assert updated.name == "Renamed"
        assert updated.total_cost == 1500.0

    def test_update_missing(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RecordNotFoundError):
            db.update_bundle(conn, make_bundle(id="nope"))

    def test_delete_cascades_to_items(self, conn: sqlite3.Connection, stocked) -> None:
        bundle, items = stocked
        db.delete_bundle(conn, bundle.id)
        assert db.load_bundles(conn) == []
        assert db.load_items(conn) == []

    def test_delete_takes_its_items_off_daily_sales(self, conn: sqlite3.Connection, stocked) -> None:
        bundle, items = stocked
        other = db.create_bundle(conn, make_bundle(id="", name="Tees", category="T-Shirts"))
        tee = db.create_item(conn, make_item(id="", bundle_id=other.id))
        mixed = db.record_daily_sale(conn, DAY1, [items[0].id, tee.id])
        db.record_daily_sale(conn, DAY2, [items[1].id])

        db.delete_bundle(conn, bundle.id)

        sales = db.load_daily_sales(conn)
        assert [s.id for s in sales] == [mixed.id]
        assert sales[0].items == [tee.id]
        assert sales[0].total_revenue == 500.0

    def test_delete_missing(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RecordNotFoundError):
            db.delete_bundle(conn, "nope")

    def test_get_missing(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RecordNotFoundError, match="Bundle not found"):
            db.get_bundle(conn, "nope")


# =========================================================================
# Items
# =========================================================================


class TestItems:
    def test_create_round_trips_fields(self, conn: sqlite3.Connection, bundle: md.Bundle) -> None:
        item = db.create_item(conn, make_item(
            id="", bundle_id=bundle.id, selling_price=350.0, name="Denim Jacket",
            size="L", condition="With Issue", issue_notes="small tear", source="Gift",
        ))
        loaded = db.get_item(conn, item.id)
        assert loaded.name == "Denim Jacket"
        assert loaded.size == "L"
        assert loaded.condition == "With Issue"
        assert loaded.issue_notes == "small tear"
        assert loaded.source == "Gift"
        assert loaded.status == md.STATUS_AVAILABLE
        assert loaded.estimated_cost is None

    def test_create_sold_item_keeps_dates(self, conn: sqlite3.Connection, bundle: md.Bundle) -> None:
        item = db.create_item(conn, make_item(id="", bundle_id=bundle.id, sold_date=DAY1, sold_price=420.0))
        assert item.status == md.STATUS_SOLD
        assert item.sold_date == DAY1
        assert item.sold_price == 420.0

    def test_create_requires_existing_bundle(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RecordNotFoundError):
            db.create_item(conn, make_item(id="", bundle_id="missing"))

    def test_sold_without_date_is_rejected(self, conn: sqlite3.Connection, bundle: md.Bundle) -> None:
        item = make_item(id="", bundle_id=bundle.id)
        item.status = md.STATUS_SOLD
        with pytest.raises(ValidationError):
            db.create_item(conn, item)

    def test_available_with_sold_price_is_rejected(self, conn: sqlite3.Connection, bundle: md.Bundle) -> None:
        with pytest.raises(ValidationError):
            db.create_item(conn, make_item(id="", bundle_id=bundle.id, sold_price=100.0))

    def test_filter_by_bundle(self, conn: sqlite3.Connection, stocked) -> None:
        bundle, items = stocked
        other = db.create_bundle(conn, make_bundle(id="", name="Tees", category="T-Shirts"))
        db.create_item(conn, make_item(id="", bundle_id=other.id))
        assert len(db.load_items(conn)) == 4
        assert len(db.load_items(conn, bundle.id)) == 3

    def test_update_marks_sold(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        item = items[0]
        item.status = md.STATUS_SOLD
        item.sold_date = DAY2
        item.sold_price = 280.0
        updated = db.update_item(conn, item)
        assert updated.is_sold
        assert updated.sold_date == DAY2

    def test_update_missing(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RecordNotFoundError):
            db.update_item(conn, make_item("ghost"))

    def test_delete(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        db.delete_item(conn, items[0].id)
        with pytest.raises(RecordNotFoundError):
            db.get_item(conn, items[0].id)
        with pytest.raises(RecordNotFoundError):
            db.delete_item(conn, items[0].id)

    def test_unsell_item_in_daily_sale_is_rejected(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        db.record_daily_sale(conn, DAY1, [items[0].id])
        item = db.get_item(conn, items[0].id)
        item.status = md.STATUS_AVAILABLE
        item.sold_date = None
        item.sold_price = None

        with pytest.raises(ValidationError, match="delete that sale"):
            db.update_item(conn, item)

        stored = db.get_item(conn, items[0].id)
        assert stored.is_sold
        assert stored.sold_date == DAY1

    def test_sold_price_edit_in_daily_sale_is_rejected(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        sale = db.record_daily_sale(conn, DAY1, [items[0].id])
        item = db.get_item(conn, items[0].id)
        item.sold_price = 999.0

        with pytest.raises(ValidationError):
            db.update_item(conn, item)
        assert db.get_daily_sale(conn, sale.id).total_revenue == 300.0

    def test_other_edits_in_daily_sale_are_saved(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        db.record_daily_sale(conn, DAY1, [items[0].id])
        item = db.get_item(conn, items[0].id)
        item.name = "Hoodie 1 (faded)"

        assert db.update_item(conn, item).name == "Hoodie 1 (faded)"

    def test_delete_takes_price_off_daily_sale(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        sale = db.record_daily_sale(conn, DAY1, [items[0].id, items[1].id])

        db.delete_item(conn, items[0].id)

        after = db.get_daily_sale(conn, sale.id)
        assert after.items == [items[1].id]
        assert after.total_revenue == 400.0

    def test_delete_last_item_removes_daily_sale(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        db.record_daily_sale(conn, DAY1, [items[0].id])
        db.record_daily_sale(conn, DAY2, [items[1].id])

        db.delete_item(conn, items[0].id)

        assert [s.date for s in db.load_daily_sales(conn)] == [DAY2]


# =========================================================================
# Daily sales
# =========================================================================


class TestDailySales:
    def test_record_marks_items_sold(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        ids = [i.id for i in items]

        sale = db.record_daily_sale(conn, DAY1, ids)

        assert sale.date == DAY1
        assert sorted(sale.items) == sorted(ids)
        assert sale.total_revenue == 1200.0
        for item_id in ids:
            item = db.get_item(conn, item_id)
            assert item.status == md.STATUS_SOLD
            assert item.sold_date == DAY1
        assert db.get_item(conn, ids[0]).sold_price == 300.0

    def test_record_uses_given_prices(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        sale = db.record_daily_sale(conn, DAY1, [items[0].id, items[1].id], {items[0].id: 250.0})
        assert sale.total_revenue == 650.0
        assert db.get_item(conn, items[0].id).sold_price == 250.0

    def test_record_collapses_duplicate_ids(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        sale = db.record_daily_sale(conn, DAY1, [items[0].id, items[0].id])
        assert sale.items == [items[0].id]
        assert sale.total_revenue == 300.0

    def test_record_then_delete_restores_items(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        ids = [i.id for i in items]
        sale = db.record_daily_sale(conn, DAY1, ids)

        db.delete_daily_sale(conn, sale.id)

        assert db.load_daily_sales(conn) == []
        for item_id in ids:
            item = db.get_item(conn, item_id)
            assert item.status == md.STATUS_AVAILABLE
            assert item.sold_date is None
            assert item.sold_price is None
        links = conn.execute("SELECT COUNT(*) FROM daily_sales_items").fetchone()[0]
        assert links == 0

    def test_unknown_item_rolls_back(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        with pytest.raises(RecordNotFoundError):
            db.record_daily_sale(conn, DAY1, [items[0].id, items[1].id, "missing"])

        assert db.load_daily_sales(conn) == []
        assert all(not i.is_sold for i in db.load_items(conn))

    def test_already_sold_item_rolls_back(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        db.record_daily_sale(conn, DAY1, [items[2].id])
        with pytest.raises(ValidationError):
            db.record_daily_sale(conn, DAY2, [items[0].id, items[2].id])

        assert len(db.load_daily_sales(conn)) == 1
        assert not db.get_item(conn, items[0].id).is_sold
        assert db.get_item(conn, items[2].id).sold_date == DAY1

    def test_empty_sale_is_rejected(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(ValidationError):
            db.record_daily_sale(conn, DAY1, [])

    def test_delete_missing(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RecordNotFoundError):
            db.delete_daily_sale(conn, "nope")

    def test_delete_leaves_other_sales_alone(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        first = db.record_daily_sale(conn, DAY1, [items[0].id])
        db.record_daily_sale(conn, DAY2, [items[1].id])

        db.delete_daily_sale(conn, first.id)

        assert not db.get_item(conn, items[0].id).is_sold
        assert db.get_item(conn, items[1].id).is_sold
        assert [s.date for s in db.load_daily_sales(conn)] == [DAY2]

    def test_unsell_resell_then_delete_keeps_sales_consistent(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        item_id = items[0].id
        first = db.record_daily_sale(conn, DAY1, [item_id])

        unsold = db.get_item(conn, item_id)
        unsold.status = md.STATUS_AVAILABLE
        unsold.sold_date = None
        unsold.sold_price = None
        with pytest.raises(ValidationError):
            db.update_item(conn, unsold)

        db.delete_daily_sale(conn, first.id)
        second = db.record_daily_sale(conn, DAY2, [item_id], {item_id: 280.0})

        resold = db.get_item(conn, item_id)
        assert resold.sold_date == DAY2
        assert resold.sold_price == 280.0
        assert db.get_daily_sale(conn, second.id).items == [item_id]

        db.delete_daily_sale(conn, second.id)
        assert not db.get_item(conn, item_id).is_sold
        assert db.load_daily_sales(conn) == []

    def test_delete_keeps_items_sold_on_another_date(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        sale = db.record_daily_sale(conn, DAY1, [items[0].id, items[1].id])
        with conn:
            conn.execute("UPDATE items SET sold_date = ? WHERE id = ?", ("2025-03-02", items[1].id))

        db.delete_daily_sale(conn, sale.id)

        assert not db.get_item(conn, items[0].id).is_sold
        moved = db.get_item(conn, items[1].id)
        assert moved.is_sold
        assert moved.sold_date == DAY2

    def test_load_newest_date_first(self, conn: sqlite3.Connection, stocked) -> None:
        _, items = stocked
        db.record_daily_sale(conn, DAY1, [items[0].id])
        db.record_daily_sale(conn, DAY2, [items[1].id])
        assert [s.date for s in db.load_daily_sales(conn)] == [DAY2, DAY1]


# =========================================================================
# Backup
# =========================================================================


class TestBackup:
    def test_export_writes_one_file_per_table(self, conn: sqlite3.Connection, stocked, tmp_path) -> None:
        _, items = stocked
        db.record_daily_sale(conn, DAY1, [items[0].id, items[1].id])

        paths = db.export_csv_backup(conn, str(tmp_path / "backups"))

        assert len(paths) == 3
        with open(paths[1], newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 3
        assert set(rows[0]) == set(md.ITEM_COLUMNS)
        with open(paths[2], newline='', encoding='utf-8') as f:
            sale_rows = list(csv.DictReader(f))
        assert sale_rows[0]["date"] == "2025-03-01"
        assert len(sale_rows[0]["items"].split(";")) == 2
