"""
pricing/calculations.py

Pure helpers that derive a product's prices from its cost basis, the
operating-cost catalog and its margins. Used by:
- ProductsRepo.create()/update() before every write.
- ProductsRepo.recalculate_all() after any cost item changes.
- Sale validation (unit prices charged on a sale).

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs to the caller.
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Optional

from ...constants import SHARED_COST_TYPES
from ...utils.helpers import ZERO, money, to_decimal

__all__ = [
    "applicable_cost_items",
    "applicable_costs",
    "sale_price",
    "recalculate_product_financials",
    "has_wholesale_price",
    "unit_price",
    "profit",
    "profit_margin",
]


# -----------------------------
# Cost aggregation
# -----------------------------

def applicable_cost_items(costs: Optional[Iterable], product_type: str) -> list:
    """Cost items that apply to `product_type`: shared ones plus those of that type."""
    return [c for c in (costs or ()) if c.tipo in SHARED_COST_TYPES or c.tipo == product_type]


def applicable_costs(costs: Optional[Iterable], product_type: str) -> Decimal:
    """
    Sum of `valor` over cost items whose tipo is 'general', 'amortizable'
    or equal to `product_type`. An empty or missing catalog yields 0.
    """
    return sum((to_decimal(c.valor) for c in applicable_cost_items(costs, product_type)), ZERO)


# -----------------------------
# Sale price
# -----------------------------

def sale_price(costo_base, aggregated_costs, margin_percent) -> Decimal:
    """
    base  = costo_base + aggregated_costs
    price = base + base * (margin_percent / 100)

    Rounded half-up to cents. The same formula serves retail and wholesale;
    only the margin differs. A None margin counts as 0.
    """
    base = to_decimal(costo_base) + to_decimal(aggregated_costs)
    price = base + base * (to_decimal(margin_percent) / Decimal(100))
    return money(price)


def recalculate_product_financials(product, cost_catalog: Optional[Iterable]):
    """
    Return a copy of `product` with costos, precio_venta and
    precio_venta_mayorista freshly derived from `cost_catalog`.

    Every other field (product_id, stock, sold_count, ...) is carried over
    untouched. Idempotent for a given catalog.
    """
    costos = applicable_costs(cost_catalog, product.tipo)
    precio_venta = sale_price(product.precio_costo, costos, product.porcentaje_ganancia)
    precio_venta_mayorista = sale_price(
        product.precio_costo, costos, product.porcentaje_ganancia_mayorista or 0
    )
    return replace(
        product,
        costos=costos,
        precio_venta=precio_venta,
        precio_venta_mayorista=precio_venta_mayorista,
    )


# -----------------------------
# Charging helpers
# -----------------------------

def has_wholesale_price(product) -> bool:
    """A wholesale margin of 0 (or unset) means "no wholesale price configured"."""
    return to_decimal(product.porcentaje_ganancia_mayorista) != ZERO


def unit_price(product, es_mayorista: bool) -> Decimal:
    """
    Price charged per unit: the wholesale price on wholesale sales when the
    product has one configured, the retail price otherwise.
    """
    if es_mayorista and has_wholesale_price(product):
        return to_decimal(product.precio_venta_mayorista)
    return to_decimal(product.precio_venta)


# -----------------------------
# Reporting helpers
# -----------------------------

def profit(sale_price_value, cost_price) -> Decimal:
    """Difference between sale price and cost price."""
    return to_decimal(sale_price_value) - to_decimal(cost_price)


def profit_margin(sale_price_value, cost_price) -> Decimal:
    """
    Margin over cost as a percentage (25.5 means 25.5%).
    Returns 0 when the cost is 0.
    """
    cost = to_decimal(cost_price)
    if cost == ZERO:
        return ZERO
    return (to_decimal(sale_price_value) - cost) / cost * Decimal(100)
