"""
Dashboard figures computed from already-loaded products and sales.
No DB access here.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from ...constants import PRODUCT_TYPES, TOP_SELLING_LIMIT
from ...utils.helpers import ZERO, money, to_decimal


def top_selling(products: Iterable, limit: int = TOP_SELLING_LIMIT) -> list:
    """Best sellers by sold_count, highest first."""
    return sorted(products, key=lambda p: p.sold_count, reverse=True)[:limit]


def least_selling(products: Iterable, limit: int = TOP_SELLING_LIMIT) -> list:
    return sorted(products, key=lambda p: p.sold_count)[:limit]


def sales_summary(sales: Iterable) -> tuple[int, Decimal]:
    """(number of sales, Σ total)."""
    count = 0
    total = ZERO
    for s in sales:
        count += 1
        total += to_decimal(s.total)
    return count, money(total)


def present_types(products: Iterable) -> list[str]:
    """Product types present in `products`, in catalog order."""
    found = {p.tipo for p in products}
    return [t for t in PRODUCT_TYPES if t in found]
