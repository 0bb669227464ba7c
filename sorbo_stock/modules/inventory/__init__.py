from .stock_status import (
    StockSummary,
    VALID_STATES,
    LABELS,
    stock_status,
    stock_summary,
    label,
    available_for_sale,
)

__all__ = [
    "StockSummary",
    "VALID_STATES",
    "LABELS",
    "stock_status",
    "stock_summary",
    "label",
    "available_for_sale",
]
