"""
Errors shared by the repositories and the sales controller.

Line-level validation problems (missing product, bad quantity, not enough
stock) are NOT exceptions: they travel as {line_index: message} dicts so a
caller can show them next to each line. Everything here is for failures
that stop an operation.
"""
from __future__ import annotations


class DomainError(Exception):
    """Domain-level error the caller can surface directly (toast/snackbar)."""
    pass


class NotFoundError(DomainError):
    """A cost item, product, sale or draft id that does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id!r} not found.")


class InsufficientStockError(DomainError):
    """A guarded decrement found less stock than the commit needs."""

    def __init__(self, product_id: int, requested: int, available: int | None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough stock for product {product_id}: "
            f"requested {requested}, available {available if available is not None else 0}."
        )


class CommitError(DomainError):
    """
    Persisting a sale failed. The original exception is chained as __cause__.
    `draft_id` names the recovery draft written for the operator, if any.
    """

    def __init__(self, message: str, draft_id: str | None = None):
        self.draft_id = draft_id
        if draft_id:
            message = f"{message} The entry was preserved as draft {draft_id}."
        super().__init__(message)
