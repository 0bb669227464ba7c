# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from sorbo_stock.database.repositories import (
        # Errors
        DomainError, NotFoundError, InsufficientStockError, CommitError,
        # Operating costs
        CostsRepo, CostItem,
        # Products
        ProductsRepo, Product,
        # Sales
        SalesRepo, Sale, SaleItem, SaleSnapshot,
        # Recovery drafts
        DraftsRepo, SavedDraft, SavedDraftItem,
    )
"""

# ---------------- Errors ----------------
from .errors import (
    DomainError,
    NotFoundError,
    InsufficientStockError,
    CommitError,
)

# ---------------- Operating costs ----------------
from .costs_repo import (
    CostsRepo,
    CostItem,
    fetch_cost_items,
)

# ---------------- Products ----------------
from .products_repo import (
    ProductsRepo,
    Product,
)

# ---------------- Sales ----------------
from .sales_repo import (
    SalesRepo,
    Sale,
    SaleItem,
    SaleSnapshot,
    new_sale_id,
    sale_total,
)

# ---------------- Recovery drafts ----------------
from .drafts_repo import (
    DraftsRepo,
    SavedDraft,
    SavedDraftItem,
)

__all__ = [
    # Errors
    "DomainError",
    "NotFoundError",
    "InsufficientStockError",
    "CommitError",
    # Operating costs
    "CostsRepo",
    "CostItem",
    "fetch_cost_items",
    # Products
    "ProductsRepo",
    "Product",
    # Sales
    "SalesRepo",
    "Sale",
    "SaleItem",
    "SaleSnapshot",
    "new_sale_id",
    "sale_total",
    # Recovery drafts
    "DraftsRepo",
    "SavedDraft",
    "SavedDraftItem",
]
