from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ...database.repositories.drafts_repo import SavedDraft
from ...database.repositories.products_repo import Product
from ...database.repositories.sales_repo import Sale
from .validation import compute_item_errors, compute_total, is_valid_line

# ---------- States ----------
EMPTY = "empty"
EDITING = "editing"
VALIDATED = "validated"
COMMITTED = "committed"

VALID_STATES: tuple[str, ...] = (EMPTY, EDITING, VALIDATED, COMMITTED)


@dataclass
class SaleLine:
    product_id: int | None = None
    quantity: int = 1
    product: Product | None = None


@dataclass
class DraftSale:
    """
    A sale being entered (or an existing sale being edited).

    Any edit puts the draft back in EDITING, or EMPTY once no line has a
    product. validate() moves it to VALIDATED when there are no errors and
    mark_committed() to COMMITTED.
    """
    lines: list[SaleLine] = field(default_factory=lambda: [SaleLine()])
    es_mayorista: bool = False
    original_sale: Sale | None = None
    state: str = EMPTY
    errors: dict = field(default_factory=dict)
    sale: Sale | None = None

    def __post_init__(self):
        if not self.lines:
            self.lines = [SaleLine()]
        self._touch()

    # ---- construction ----

    @classmethod
    def from_sale(cls, sale: Sale, products: Mapping[int, Product]) -> "DraftSale":
        """Edit draft preloaded with the sale's lines (products looked up by id)."""
        lines = [
            SaleLine(product_id=it.product_id, quantity=it.cantidad, product=products.get(it.product_id))
            for it in sale.items
        ]
        return cls(lines=lines, es_mayorista=sale.es_mayorista, original_sale=sale)

    @classmethod
    def from_saved_draft(cls, saved: SavedDraft, products: Mapping[int, Product]) -> "DraftSale":
        lines = [
            SaleLine(product_id=it.product_id, quantity=it.quantity, product=products.get(it.product_id))
            for it in saved.items
        ]
        return cls(lines=lines, es_mayorista=saved.es_mayorista)

    # ---- derived ----

    @property
    def mode(self) -> str:
        return "edit" if self.original_sale is not None else "create"

    def valid_lines(self) -> list[SaleLine]:
        return [ln for ln in self.lines if is_valid_line(ln)]

    def total(self):
        return compute_total(self.lines, self.es_mayorista, self.original_sale)

    # ---- edits ----

    def _touch(self) -> None:
        self.errors = {}
        self.state = EDITING if any(ln.product is not None for ln in self.lines) else EMPTY

    def add_line(self) -> SaleLine:
        line = SaleLine()
        self.lines.append(line)
        self._touch()
        return line

    def set_product(self, index: int, product: Product | None) -> None:
        """Pick the product of a line; its quantity goes back to 1."""
        line = self.lines[index]
        line.product = product
        line.product_id = product.product_id if product is not None else None
        line.quantity = 1
        self._touch()

    def set_quantity(self, index: int, quantity) -> None:
        self.lines[index].quantity = quantity
        self._touch()

    def set_wholesale(self, es_mayorista: bool) -> None:
        self.es_mayorista = bool(es_mayorista)
        self._touch()

    def remove_line(self, index: int) -> None:
        """Drop a line; removing the only line leaves a blank one."""
        if len(self.lines) > 1:
            del self.lines[index]
        else:
            self.lines = [SaleLine()]
        self._touch()

    # ---- lifecycle ----

    def refresh_products(self, products: Mapping[int, Product]) -> None:
        """Swap each line's product for a freshly read one, keeping quantities."""
        for line in self.lines:
            if line.product_id is not None:
                line.product = products.get(line.product_id)

    def validate(self, products_by_id: Optional[Mapping[int, Product]] = None) -> dict:
        if products_by_id is not None:
            self.refresh_products(products_by_id)
        self.errors = compute_item_errors(self.lines, self.mode, self.original_sale)
        if self.errors:
            self.state = EDITING if any(ln.product is not None for ln in self.lines) else EMPTY
        else:
            self.state = VALIDATED
        return self.errors

    def mark_committed(self, sale: Sale) -> None:
        # Further edits reconcile against what was just stored.
        self.sale = sale
        self.original_sale = sale
        self.state = COMMITTED
