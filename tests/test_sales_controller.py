# tests/test_sales_controller.py
import logging
from decimal import Decimal

import pytest

from sorbo_stock.database.repositories.errors import CommitError, InsufficientStockError
from sorbo_stock.modules.sales.controller import SalesController
from sorbo_stock.modules.sales.draft import COMMITTED, EDITING, VALIDATED


class _BrokenSalesRepo:
    """Stands in for SalesRepo when the storage write blows up."""

    def create_sale(self, *a, **kw):
        raise RuntimeError("disk I/O error")

    def update_sale(self, *a, **kw):
        raise RuntimeError("disk I/O error")


class _BrokenDraftsRepo:
    def new_draft_id(self):
        return "draft-0-000000000"

    def save(self, draft):
        raise RuntimeError("draft store unavailable")


@pytest.fixture()
def ctl(conn, catalog):
    return SalesController(conn)


def test_submit_creates_sale(ctl, catalog, products_repo):
    d = ctl.new_draft()
    d.set_product(0, catalog["blend"])
    d.set_quantity(0, 2)
    res = ctl.submit(d, vendedor_id="u1")
    assert res.ok
    assert res.sale.total == Decimal("405.00")
    assert d.state == COMMITTED
    assert products_repo.get(catalog["blend"].product_id).stock == 3


def test_submit_with_line_errors_persists_nothing(ctl, catalog, sales_repo):
    d = ctl.new_draft()
    d.set_product(0, catalog["blend"])
    d.set_quantity(0, 3)
    d.add_line()
    d.set_product(1, catalog["blend"])
    d.set_quantity(1, 3)
    res = ctl.submit(d)
    assert not res.ok
    assert res.errors == {
        0: "Total quantity exceeds available stock (5)",
        1: "Total quantity exceeds available stock (5)",
    }
    assert sales_repo.list_sales() == []
    assert d.state == EDITING


def test_validate_rereads_products(ctl, catalog, products_repo):
    d = ctl.new_draft()
    d.set_product(0, catalog["gin"])
    d.set_quantity(0, 8)
    products_repo.update(catalog["gin"].product_id, stock=7)
    assert ctl.validate(d) == {0: "Total quantity exceeds available stock (7)"}
    products_repo.update(catalog["gin"].product_id, stock=8)
    assert ctl.validate(d) == {}
    assert d.state == VALIDATED


def test_validate_flags_deleted_product(ctl, catalog, products_repo):
    d = ctl.new_draft()
    d.set_product(0, catalog["gin"])
    products_repo.delete(catalog["gin"].product_id)
    assert ctl.validate(d) == {0: "Select a product"}


def test_commit_failure_preserves_valid_lines(ctl, catalog, drafts_repo):
    ctl.sales = _BrokenSalesRepo()
    d = ctl.new_draft(es_mayorista=True)
    d.set_product(0, catalog["blend"])
    d.set_quantity(0, 2)
    d.add_line()
    d.set_product(1, catalog["gin"])

    with pytest.raises(CommitError) as ei:
        ctl.submit(d)

    err = ei.value
    assert isinstance(err.__cause__, RuntimeError)
    assert err.draft_id is not None
    assert err.draft_id in str(err)

    saved = drafts_repo.get(err.draft_id)
    assert [(it.product_id, it.quantity, it.precio_unitario) for it in saved.items] == [
        (catalog["blend"].product_id, 2, Decimal("162.00")),
        (catalog["gin"].product_id, 1, Decimal("291.50")),
    ]
    assert saved.total == Decimal("615.50")
    assert saved.es_mayorista is True
    assert d.state != COMMITTED


def test_commit_failure_on_stale_stock_is_salvaged(ctl, catalog, conn):
    d = ctl.new_draft()
    d.set_product(0, catalog["blend"])
    d.set_quantity(0, 4)

    real_create = ctl.sales.create_sale

    def racing_create(items, *a, **kw):
        # another checkout takes the stock between validation and commit
        conn.execute("UPDATE products SET stock=1 WHERE product_id=?", (catalog["blend"].product_id,))
        conn.commit()
        return real_create(items, *a, **kw)

    ctl.sales.create_sale = racing_create
    with pytest.raises(CommitError) as ei:
        ctl.submit(d)
    assert isinstance(ei.value.__cause__, InsufficientStockError)
    assert ei.value.draft_id is not None


def test_draft_save_failure_is_logged_not_raised(ctl, catalog, caplog):
    ctl.sales = _BrokenSalesRepo()
    ctl.drafts = _BrokenDraftsRepo()
    d = ctl.new_draft()
    d.set_product(0, catalog["gin"])
    with caplog.at_level(logging.ERROR):
        with pytest.raises(CommitError) as ei:
            ctl.submit(d)
    assert ei.value.draft_id is None
    assert isinstance(ei.value.__cause__, RuntimeError)
    assert "Could not preserve" in caplog.text


def test_edit_flow(ctl, catalog, products_repo):
    blend = catalog["blend"]
    d = ctl.new_draft()
    d.set_product(0, blend)
    d.set_quantity(0, 3)
    sale = ctl.submit(d).sale

    edit = ctl.edit_sale(sale.sale_id)
    assert edit.mode == "edit"
    edit.set_quantity(0, 6)
    res = ctl.submit(edit)
    assert res.errors == {0: "Total quantity exceeds available stock (5)"}

    edit.set_quantity(0, 4)
    res = ctl.submit(edit)
    assert res.ok
    assert products_repo.get(blend.product_id).stock == 1
    assert res.sale.sale_id == sale.sale_id


def test_editing_after_commit_reconciles_against_stored_sale(ctl, catalog, products_repo, sales_repo):
    blend = catalog["blend"]
    d = ctl.new_draft()
    d.set_product(0, blend)
    d.set_quantity(0, 3)
    sale = ctl.submit(d).sale
    assert d.mode == "edit"

    d.set_quantity(0, 5)
    assert ctl.submit(d).ok
    assert products_repo.get(blend.product_id).stock == 0

    # 4 of the 5 units already taken: no extra stock needed
    d.set_quantity(0, 4)
    assert ctl.validate(d) == {}
    res = ctl.submit(d)
    assert res.ok and res.sale.sale_id == sale.sale_id
    assert products_repo.get(blend.product_id).stock == 1
    assert len(sales_repo.list_sales()) == 1


def test_resubmitting_unchanged_draft_does_not_sell_twice(ctl, catalog, products_repo, sales_repo):
    gin = catalog["gin"]
    d = ctl.new_draft()
    d.set_product(0, gin)
    d.set_quantity(0, 2)
    first = ctl.submit(d)
    second = ctl.submit(d)
    assert second.ok and second.sale.sale_id == first.sale.sale_id
    assert d.state == COMMITTED
    assert len(sales_repo.list_sales()) == 1
    assert products_repo.get(gin.product_id).stock == 8


def test_resume_and_discard_draft(ctl, catalog, drafts_repo):
    ctl.sales = _BrokenSalesRepo()
    d = ctl.new_draft()
    d.set_product(0, catalog["blend"])
    with pytest.raises(CommitError) as ei:
        ctl.submit(d)

    resumed = ctl.resume_draft(ei.value.draft_id)
    assert resumed.lines[0].product.product_id == catalog["blend"].product_id
    assert resumed.lines[0].quantity == 1

    ctl.discard_draft(ei.value.draft_id)
    assert drafts_repo.list_drafts() == []


def test_delete_sale_restores_stock(ctl, catalog, products_repo):
    d = ctl.new_draft()
    d.set_product(0, catalog["gin"])
    d.set_quantity(0, 4)
    sale = ctl.submit(d).sale
    ctl.delete_sale(sale.sale_id)
    assert products_repo.get(catalog["gin"].product_id).stock == 10
