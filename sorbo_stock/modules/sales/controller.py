from __future__ import annotations

from dataclasses import dataclass, field
import logging
import sqlite3
from typing import Optional

from ...database.repositories.drafts_repo import DraftsRepo, SavedDraft, SavedDraftItem
from ...database.repositories.errors import CommitError
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.sales_repo import Sale, SalesRepo
from ...utils.helpers import now_iso
from .draft import COMMITTED, DraftSale
from .validation import build_sale_items, compute_total, line_quantity, line_unit_price

_log = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    sale: Sale | None = None
    errors: dict = field(default_factory=dict)
    draft_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.sale is not None and not self.errors


class SalesController:
    """
    Validate → commit cycle for sales.

    Validation always runs against products read right before the commit.
    A commit that fails after validation passed is salvaged into a recovery
    draft and re-raised as CommitError.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.products = ProductsRepo(conn)
        self.sales = SalesRepo(conn)
        self.drafts = DraftsRepo(conn)

    # ---------------- Loading drafts ----------------

    def _products_for(self, product_ids) -> dict:
        return self.products.get_many(pid for pid in product_ids if pid is not None)

    def new_draft(self, es_mayorista: bool = False) -> DraftSale:
        return DraftSale(es_mayorista=es_mayorista)

    def edit_sale(self, sale_id: str) -> DraftSale:
        sale = self.sales.get(sale_id)
        products = self._products_for(it.product_id for it in sale.items)
        return DraftSale.from_sale(sale, products)

    def resume_draft(self, draft_id: str) -> DraftSale:
        """Rebuild a sale form from a recovery draft, with current product data."""
        saved = self.drafts.get(draft_id)
        products = self._products_for(it.product_id for it in saved.items)
        return DraftSale.from_saved_draft(saved, products)

    def discard_draft(self, draft_id: str) -> None:
        self.drafts.delete(draft_id)

    # ---------------- Validate / submit ----------------

    def validate(self, draft: DraftSale) -> dict:
        fresh = self._products_for(ln.product_id for ln in draft.lines)
        return draft.validate(fresh)

    def submit(self, draft: DraftSale, vendedor_id: Optional[str] = None) -> SubmitResult:
        if draft.state == COMMITTED:
            # Unchanged since the last commit.
            _log.debug("Sale %s already committed; nothing to submit", draft.sale.sale_id)
            return SubmitResult(sale=draft.sale)

        errors = self.validate(draft)
        if errors:
            _log.debug("Sale not submitted: %d line error(s)", len(errors))
            return SubmitResult(errors=errors)

        items = build_sale_items(draft.lines, draft.es_mayorista, draft.original_sale)
        try:
            if draft.mode == "edit":
                sale = self.sales.update_sale(
                    draft.original_sale.sale_id,
                    items=items,
                    es_mayorista=draft.es_mayorista,
                    vendedor_id=vendedor_id,
                )
            else:
                sale = self.sales.create_sale(items, draft.es_mayorista, vendedor_id=vendedor_id)
        except Exception as exc:
            draft_id = self._salvage(draft)
            raise CommitError(f"Could not save the sale: {exc}", draft_id=draft_id) from exc

        draft.mark_committed(sale)
        return SubmitResult(sale=sale)

    def _salvage(self, draft: DraftSale) -> str | None:
        """Store the valid lines as a recovery draft. Never raises."""
        lines = draft.valid_lines()
        if not lines:
            return None
        saved = SavedDraft(
            draft_id=self.drafts.new_draft_id(),
            fecha=now_iso(),
            items=[
                SavedDraftItem(
                    product_id=ln.product.product_id,
                    product_nombre=ln.product.nombre,
                    quantity=line_quantity(ln),
                    precio_unitario=line_unit_price(ln, draft.es_mayorista, draft.original_sale),
                )
                for ln in lines
            ],
            es_mayorista=draft.es_mayorista,
            total=compute_total(lines, draft.es_mayorista, draft.original_sale),
        )
        try:
            self.drafts.save(saved)
        except Exception:
            _log.exception("Could not preserve the failed sale as a draft")
            return None
        _log.info("Failed sale preserved as draft %s", saved.draft_id)
        return saved.draft_id

    # ---------------- Other operations ----------------

    def delete_sale(self, sale_id: str) -> None:
        self.sales.delete_sale(sale_id)
