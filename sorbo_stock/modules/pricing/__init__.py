from .calculations import (
    applicable_cost_items,
    applicable_costs,
    sale_price,
    recalculate_product_financials,
    has_wholesale_price,
    unit_price,
    profit,
    profit_margin,
)

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
