# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own in-memory SQLite DB with the schema applied
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Repos are built on that connection; `catalog` loads a small known
#   set of costs/products so prices are easy to check by hand
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3

import pytest

from sorbo_stock.database.schema import apply_schema
from sorbo_stock.database.repositories.costs_repo import CostsRepo
from sorbo_stock.database.repositories.drafts_repo import DraftsRepo
from sorbo_stock.database.repositories.products_repo import ProductsRepo
from sorbo_stock.database.repositories.sales_repo import SalesRepo


@pytest.fixture()
def conn():
    """Fresh in-memory DB per test, schema applied."""
    con = sqlite3.connect(":memory:")
    con.row_factory = sqlite3.Row
    con.execute("PRAGMA foreign_keys=ON;")
    apply_schema(con)
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def costs_repo(conn):
    return CostsRepo(conn)


@pytest.fixture()
def products_repo(conn):
    return ProductsRepo(conn)


@pytest.fixture()
def sales_repo(conn):
    return SalesRepo(conn)


@pytest.fixture()
def drafts_repo(conn):
    return DraftsRepo(conn)


@pytest.fixture()
def catalog(costs_repo, products_repo):
    """
    Costs: general 10, blend 20, gin 50, amortizable 5.
      blend products carry 35 of costs, gin 65, caja 15.

    Products (precio_costo, % retail, % wholesale, stock):
      blend  100, 50, 20, stock 5   -> retail 202.50, wholesale 162.00
      gin    200, 10,  0, stock 10  -> retail 291.50, no wholesale
      caja    85, 100, 50, stock 0  -> retail 200.00, wholesale 150.00
    """
    costs_repo.create("Empaquetado", "general", 10)
    costs_repo.create("Hierbas", "blend", 20)
    costs_repo.create("Botellas", "gin", 50)
    costs_repo.create("Equipos", "amortizable", 5)
    blend = products_repo.create("Blend Relajante", "blend", 100, 50, 20, stock=5)
    gin = products_repo.create("Gin Citrus", "gin", 200, 10, 0, stock=10)
    caja = products_repo.create("Caja Regalo", "caja", 85, 100, 50, stock=0)
    return {"blend": blend, "gin": gin, "caja": caja}


