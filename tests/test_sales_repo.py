# tests/test_sales_repo.py
import sqlite3
from decimal import Decimal

import pytest

from sorbo_stock.database.repositories.errors import (
    DomainError,
    InsufficientStockError,
    NotFoundError,
)
from sorbo_stock.database.repositories.sales_repo import new_sale_id
from sorbo_stock.modules.sales.draft import SaleLine
from sorbo_stock.modules.sales.validation import build_sale_items


def _items(lines, es_mayorista=False, original=None):
    return build_sale_items(
        [SaleLine(p.product_id, q, p) for p, q in lines], es_mayorista, original
    )


# ---------------- create ----------------

def test_create_sale_moves_stock_and_totals(catalog, sales_repo, products_repo):
    blend, gin = catalog["blend"], catalog["gin"]
    sale = sales_repo.create_sale(
        _items([(blend, 2), (gin, 1)]), False, vendedor_id="u1", fecha="2026-03-05T10:00:00+00:00"
    )
    assert sale.sale_id == "SO20260305-0001"
    assert sale.total == Decimal("696.50")  # 2*202.50 + 291.50
    assert sale.vendedor_id == "u1"
    assert [it.product_nombre for it in sale.items] == ["Blend Relajante", "Gin Citrus"]

    b = products_repo.get(blend.product_id)
    g = products_repo.get(gin.product_id)
    assert (b.stock, b.sold_count) == (3, 2)
    assert (g.stock, g.sold_count) == (9, 1)


def test_sale_ids_increment_per_day(catalog, sales_repo, conn):
    blend = catalog["blend"]
    s1 = sales_repo.create_sale(_items([(blend, 1)]), False, fecha="2026-03-05T10:00:00")
    s2 = sales_repo.create_sale(_items([(blend, 1)]), False, fecha="2026-03-05T11:00:00")
    s3 = sales_repo.create_sale(_items([(blend, 1)]), False, fecha="2026-03-06T09:00:00")
    assert [s1.sale_id, s2.sale_id, s3.sale_id] == [
        "SO20260305-0001", "SO20260305-0002", "SO20260306-0001",
    ]
    assert new_sale_id(conn, "2026-03-05") == "SO20260305-0003"


def test_sale_ids_keep_counting_past_four_digits(conn):
    for seq in ("9999", "10000"):
        conn.execute(
            "INSERT INTO sales(sale_id, fecha, total, es_mayorista) VALUES (?, ?, '0', 0)",
            (f"SO20260305-{seq}", "2026-03-05T10:00:00"),
        )
    conn.commit()
    assert new_sale_id(conn, "2026-03-05") == "SO20260305-10001"
    assert new_sale_id(conn, "2026-03-06") == "SO20260306-0001"


def test_create_sale_stale_stock_rolls_back_everything(catalog, sales_repo, products_repo, conn):
    blend, gin = catalog["blend"], catalog["gin"]
    items = _items([(gin, 2), (blend, 4)])
    # another sale empties the blend stock after validation
    conn.execute("UPDATE products SET stock=1 WHERE product_id=?", (blend.product_id,))
    conn.commit()
    with pytest.raises(InsufficientStockError):
        sales_repo.create_sale(items, False)
    assert products_repo.get(gin.product_id).stock == 10
    assert products_repo.get(gin.product_id).sold_count == 0
    assert sales_repo.list_sales() == []


def test_create_sale_rejects_empty(sales_repo):
    with pytest.raises(DomainError):
        sales_repo.create_sale([], False)


def test_wholesale_snapshot(catalog, sales_repo):
    blend, gin = catalog["blend"], catalog["gin"]
    sale = sales_repo.create_sale(_items([(blend, 1), (gin, 1)], es_mayorista=True), True)
    b, g = sale.items
    assert b.precio_unitario == Decimal("162.00")
    assert b.snapshot.porcentaje_ganancia_mayorista == Decimal("20")
    assert g.precio_unitario == Decimal("291.50")
    assert g.snapshot.porcentaje_ganancia_mayorista is None
    assert sale.es_mayorista is True


def test_snapshot_columns_are_immutable(catalog, sales_repo, conn):
    sale = sales_repo.create_sale(_items([(catalog["blend"], 1)]), False)
    with pytest.raises(sqlite3.DatabaseError):
        conn.execute(
            "UPDATE sale_items SET snapshot_precio_venta='1' WHERE sale_id=?", (sale.sale_id,)
        )
    conn.rollback()


def test_snapshot_survives_repricing(catalog, sales_repo, products_repo):
    sale = sales_repo.create_sale(_items([(catalog["blend"], 1)]), False)
    products_repo.update(catalog["blend"].product_id, porcentaje_ganancia=100)
    item = sales_repo.get(sale.sale_id).items[0]
    assert item.precio_unitario == Decimal("202.50")
    assert item.snapshot.precio_venta == Decimal("202.50")


# ---------------- update ----------------

def test_update_sale_reconciles_difference(catalog, sales_repo, products_repo):
    blend, gin = catalog["blend"], catalog["gin"]
    sale = sales_repo.create_sale(_items([(blend, 3)]), False)
    assert products_repo.get(blend.product_id).stock == 2

    original = sales_repo.get(sale.sale_id)
    fresh = products_repo.get(blend.product_id)
    updated = sales_repo.update_sale(
        sale.sale_id, items=_items([(fresh, 4), (gin, 2)], original=original)
    )
    b = products_repo.get(blend.product_id)
    g = products_repo.get(gin.product_id)
    assert (b.stock, b.sold_count) == (1, 4)
    assert (g.stock, g.sold_count) == (8, 2)
    assert updated.total == Decimal("1393.00")  # 4*202.50 + 2*291.50
    assert updated.sale_id == sale.sale_id


def test_update_sale_reduction_restores_stock(catalog, sales_repo, products_repo):
    blend = catalog["blend"]
    sale = sales_repo.create_sale(_items([(blend, 5)]), False)
    original = sales_repo.get(sale.sale_id)
    sales_repo.update_sale(sale.sale_id, items=_items([(blend, 1)], original=original))
    b = products_repo.get(blend.product_id)
    assert (b.stock, b.sold_count) == (4, 1)


def test_update_sale_dropping_product_restores_it(catalog, sales_repo, products_repo):
    blend, gin = catalog["blend"], catalog["gin"]
    sale = sales_repo.create_sale(_items([(blend, 1), (gin, 3)]), False)
    original = sales_repo.get(sale.sale_id)
    sales_repo.update_sale(sale.sale_id, items=_items([(blend, 1)], original=original))
    g = products_repo.get(gin.product_id)
    assert (g.stock, g.sold_count) == (10, 0)
    assert len(sales_repo.get(sale.sale_id).items) == 1


def test_update_sale_over_headroom_rolls_back(catalog, sales_repo, products_repo):
    blend = catalog["blend"]
    sale = sales_repo.create_sale(_items([(blend, 3)]), False)
    original = sales_repo.get(sale.sale_id)
    with pytest.raises(InsufficientStockError):
        sales_repo.update_sale(sale.sale_id, items=_items([(blend, 6)], original=original))
    assert products_repo.get(blend.product_id).stock == 2
    assert sales_repo.get(sale.sale_id).items[0].cantidad == 3


def test_update_sale_header_only(catalog, sales_repo, products_repo):
    sale = sales_repo.create_sale(_items([(catalog["blend"], 1)]), False)
    updated = sales_repo.update_sale(sale.sale_id, vendedor_id="u2", fecha="2026-01-02T00:00:00")
    assert (updated.vendedor_id, updated.fecha) == ("u2", "2026-01-02T00:00:00")
    assert updated.total == sale.total
    assert products_repo.get(catalog["blend"].product_id).stock == 4


def test_update_missing_sale(sales_repo):
    with pytest.raises(NotFoundError):
        sales_repo.update_sale("SO20990101-0001", vendedor_id="x")


# ---------------- delete ----------------

def test_delete_sale_restores_stock(catalog, sales_repo, products_repo):
    blend = catalog["blend"]
    sale = sales_repo.create_sale(_items([(blend, 2), (blend, 1)]), False)
    sales_repo.delete_sale(sale.sale_id)
    b = products_repo.get(blend.product_id)
    assert (b.stock, b.sold_count) == (5, 0)
    with pytest.raises(NotFoundError):
        sales_repo.get(sale.sale_id)


def test_delete_sale_skips_deleted_products(catalog, sales_repo, products_repo):
    blend, gin = catalog["blend"], catalog["gin"]
    sale = sales_repo.create_sale(_items([(blend, 1), (gin, 1)]), False)
    products_repo.delete(gin.product_id)
    sales_repo.delete_sale(sale.sale_id)
    assert products_repo.get(blend.product_id).stock == 5


# ---------------- listing ----------------

def test_list_sales_filters_and_orders(catalog, sales_repo):
    gin = catalog["gin"]
    for fecha in ("2026-03-01T09:00:00", "2026-03-02T23:59:00", "2026-03-04T08:00:00"):
        sales_repo.create_sale(_items([(gin, 1)]), False, fecha=fecha)

    desc = sales_repo.list_sales()
    assert [s.fecha[:10] for s in desc] == ["2026-03-04", "2026-03-02", "2026-03-01"]

    window = sales_repo.list_sales("2026-03-01", "2026-03-02", order="asc")
    assert [s.fecha[:10] for s in window] == ["2026-03-01", "2026-03-02"]


def test_list_sales_rejects_bad_order(sales_repo):
    with pytest.raises(DomainError):
        sales_repo.list_sales(order="sideways")
