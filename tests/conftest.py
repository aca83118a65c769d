"""Shared fixtures: in-memory databases and record builders."""

import sqlite3
from datetime import date

import pytest

from ukayvault import database as db
from ukayvault import models as md

DAY1 = date(2025, 3, 1)
DAY2 = date(2025, 3, 2)
DAY3 = date(2025, 3, 3)


def make_bundle(id="b1", total_cost=6000.0, total_pieces=20, name="Winter Jackets", category="Jackets"):
    return md.Bundle(id=id, name=name, category=category, total_cost=total_cost, total_pieces=total_pieces)


def make_item(id, bundle_id="b1", selling_price=500.0, sold_date=None, sold_price=None, **kwargs):
    status = md.STATUS_SOLD if sold_date is not None else md.STATUS_AVAILABLE
    return md.Item(
        id=id, bundle_id=bundle_id, name=kwargs.pop("name", f"Item {id}"),
        selling_price=selling_price, status=status,
        sold_date=sold_date, sold_price=sold_price, **kwargs
    )


@pytest.fixture
def conn():
    connection = db.get_db_connection(":memory:")
    db.init_db(connection)
    yield connection
    connection.close()


@pytest.fixture
def bundle(conn: sqlite3.Connection) -> md.Bundle:
    return db.create_bundle(conn, make_bundle(id="", total_cost=1000.0, total_pieces=10, name="Hoodie Lot"))


@pytest.fixture
def stocked(conn: sqlite3.Connection, bundle: md.Bundle):
    """The bundle fixture plus three available items priced 300, 400 and 500."""
    items = [
        db.create_item(conn, make_item(id="", bundle_id=bundle.id, selling_price=price, name=f"Hoodie {n}"))
        for n, price in enumerate([300.0, 400.0, 500.0], start=1)
    ]
    return bundle, items
