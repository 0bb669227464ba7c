"""
sales/validation.py

Line validation, pricing and snapshotting for a sale being created or edited.

Works on any line object exposing `product_id`, `quantity` and `product`
(the resolved Product, or None while nothing is selected). Errors are
returned as {line_index: message}; nothing here raises for user mistakes
and nothing here touches the database.

Edit mode reconciles against the sale being edited: the units it already
took out of stock count as headroom, and products it already carried keep
the price and snapshot they were sold at.
"""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Optional, Sequence

from ...database.repositories.sales_repo import Sale, SaleItem, SaleSnapshot
from ...utils.helpers import ZERO, money, to_decimal
from ...utils.validators import as_int
from ..pricing.calculations import has_wholesale_price, unit_price

__all__ = [
    "MSG_SELECT_PRODUCT",
    "MSG_QUANTITY_POSITIVE",
    "MSG_EXCEEDS_STOCK",
    "line_quantity",
    "is_valid_line",
    "original_quantities",
    "max_stock_for_item",
    "compute_item_errors",
    "line_unit_price",
    "compute_total",
    "build_sale_items",
    "has_wholesale_warning",
]

MSG_SELECT_PRODUCT = "Select a product"
MSG_QUANTITY_POSITIVE = "Quantity must be greater than 0"
MSG_EXCEEDS_STOCK = "Total quantity exceeds available stock ({available})"


def line_quantity(line) -> int:
    """Whole-number quantity of a line; anything unparseable counts as 0."""
    try:
        return as_int(getattr(line, "quantity", None))
    except ValueError:
        return 0


def is_valid_line(line) -> bool:
    return line.product is not None and line_quantity(line) > 0


def original_quantities(sale: Optional[Sale]) -> dict[int, int]:
    """{product_id: units} taken by the sale being edited; {} when there is none."""
    if sale is None:
        return {}
    return sale.quantities_by_product()


def _original_items_by_product(sale: Optional[Sale]) -> dict[int, SaleItem]:
    out: dict[int, SaleItem] = {}
    if sale is None:
        return out
    for it in sale.items:
        out.setdefault(int(it.product_id), it)
    return out


def max_stock_for_item(line, mode: str = "create", original_sale: Optional[Sale] = None) -> int:
    """
    Most units a line's product can take: current stock, plus what the
    original sale already holds when editing.
    """
    if line.product is None:
        return 0
    stock = int(line.product.stock)
    if mode == "edit":
        return stock + original_quantities(original_sale).get(int(line.product.product_id), 0)
    return stock


def compute_item_errors(
    lines: Sequence,
    mode: str = "create",
    original_sale: Optional[Sale] = None,
) -> dict[int, str]:
    """
    {line_index: message} for every line that blocks the sale.

    Missing product and non-positive quantity are checked first; while any
    of those exist no stock check is reported. Stock is then checked per
    product over the summed quantity of all its lines:

      create: summed quantity > stock flags every line of the product.
      edit:   difference = new - original; only a positive difference larger
              than current stock is an error (the message names current
              stock plus the original quantity).
    """
    errors: dict[int, str] = {}
    for idx, line in enumerate(lines):
        if line.product is None:
            errors[idx] = MSG_SELECT_PRODUCT
        elif line_quantity(line) <= 0:
            errors[idx] = MSG_QUANTITY_POSITIVE
    if errors:
        return errors

    requested: dict[int, int] = defaultdict(int)
    indexes: dict[int, list[int]] = defaultdict(list)
    products: dict = {}
    for idx, line in enumerate(lines):
        pid = int(line.product.product_id)
        requested[pid] += line_quantity(line)
        indexes[pid].append(idx)
        products[pid] = line.product

    original = original_quantities(original_sale) if mode == "edit" else {}

    for pid, qty in requested.items():
        stock = int(products[pid].stock)
        if mode == "edit":
            orig_qty = original.get(pid, 0)
            difference = qty - orig_qty
            if difference <= 0 or difference <= stock:
                continue
            available = stock + orig_qty
        else:
            if qty <= stock:
                continue
            available = stock
        for idx in indexes[pid]:
            errors[idx] = MSG_EXCEEDS_STOCK.format(available=available)
    return errors


# -----------------------------
# Pricing & snapshots
# -----------------------------

def _carried_over(line, es_mayorista: bool, original_sale: Optional[Sale]) -> Optional[SaleItem]:
    """Original line for this product when its price must be kept, else None."""
    if original_sale is None or bool(original_sale.es_mayorista) != bool(es_mayorista):
        return None
    return _original_items_by_product(original_sale).get(int(line.product.product_id))


def line_unit_price(line, es_mayorista: bool, original_sale: Optional[Sale] = None) -> Decimal:
    kept = _carried_over(line, es_mayorista, original_sale)
    if kept is not None:
        return to_decimal(kept.precio_unitario)
    return unit_price(line.product, es_mayorista)


def compute_total(lines: Sequence, es_mayorista: bool, original_sale: Optional[Sale] = None) -> Decimal:
    """Σ unit price × quantity over lines with a product, rounded to cents."""
    total = ZERO
    for line in lines:
        if line.product is None:
            continue
        total += line_unit_price(line, es_mayorista, original_sale) * line_quantity(line)
    return money(total)


def _snapshot(product, es_mayorista: bool, charged: Decimal) -> SaleSnapshot:
    wholesale = es_mayorista and has_wholesale_price(product)
    return SaleSnapshot(
        precio_costo=to_decimal(product.precio_costo),
        costos=to_decimal(product.costos),
        porcentaje_ganancia=to_decimal(product.porcentaje_ganancia),
        precio_venta=charged,
        porcentaje_ganancia_mayorista=(
            to_decimal(product.porcentaje_ganancia_mayorista) if wholesale else None
        ),
    )


def build_sale_items(lines: Sequence, es_mayorista: bool, original_sale: Optional[Sale] = None) -> list[SaleItem]:
    """
    SaleItems for the valid lines, in order. New products are snapshotted
    from their current pricing; products carried over from the sale being
    edited keep their original snapshot and unit price.
    """
    items: list[SaleItem] = []
    for line in lines:
        if not is_valid_line(line):
            continue
        kept = _carried_over(line, es_mayorista, original_sale)
        if kept is not None:
            price = to_decimal(kept.precio_unitario)
            snapshot = kept.snapshot
        else:
            price = unit_price(line.product, es_mayorista)
            snapshot = _snapshot(line.product, es_mayorista, price)
        items.append(
            SaleItem(
                product_id=int(line.product.product_id),
                product_nombre=line.product.nombre,
                cantidad=line_quantity(line),
                precio_unitario=price,
                snapshot=snapshot,
            )
        )
    return items


def has_wholesale_warning(lines: Sequence, es_mayorista: bool) -> bool:
    """True when a wholesale sale includes a product with no wholesale margin (charged at retail)."""
    if not es_mayorista:
        return False
    return any(line.product is not None and not has_wholesale_price(line.product) for line in lines)
