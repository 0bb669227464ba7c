from .draft import (
    SaleLine,
    DraftSale,
    EMPTY,
    EDITING,
    VALIDATED,
    COMMITTED,
)
from .validation import (
    compute_item_errors,
    original_quantities,
    max_stock_for_item,
    compute_total,
    build_sale_items,
    has_wholesale_warning,
)
from .controller import SalesController, SubmitResult

__all__ = [
    "SaleLine",
    "DraftSale",
    "EMPTY",
    "EDITING",
    "VALIDATED",
    "COMMITTED",
    "compute_item_errors",
    "original_quantities",
    "max_stock_for_item",
    "compute_total",
    "build_sale_items",
    "has_wholesale_warning",
    "SalesController",
    "SubmitResult",
]
