"""
Recovery store for sales whose commit failed.

A draft keeps only what is needed to rebuild the sale form: the valid
lines with the unit price they were going to be charged, the wholesale
flag and the total. Drafts never touch stock.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import logging
import sqlite3

from ...utils.helpers import money, new_draft_id, now_iso, to_decimal
from .errors import DomainError, NotFoundError
from .tx_helpers import immediate_tx

_log = logging.getLogger(__name__)


@dataclass
class SavedDraftItem:
    product_id: int
    product_nombre: str
    quantity: int
    precio_unitario: Decimal

    def as_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productNombre": self.product_nombre,
            "quantity": self.quantity,
            "precioUnitario": self.precio_unitario,
        }


@dataclass
class SavedDraft:
    draft_id: str
    fecha: str
    items: list[SavedDraftItem] = field(default_factory=list)
    es_mayorista: bool = False
    total: Decimal = Decimal("0.00")

    def as_dict(self) -> dict:
        """Serialized form: {id, fecha, saleData: {items, esMayorista, total}}."""
        return {
            "id": self.draft_id,
            "fecha": self.fecha,
            "saleData": {
                "items": [it.as_dict() for it in self.items],
                "esMayorista": self.es_mayorista,
                "total": self.total,
            },
        }


class DraftsRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    @staticmethod
    def new_draft_id() -> str:
        return new_draft_id()

    def _items_for(self, draft_id: str) -> list[SavedDraftItem]:
        rows = self.conn.execute(
            "SELECT product_id, product_nombre, quantity, precio_unitario "
            "FROM sale_draft_items WHERE draft_id=? ORDER BY line_no",
            (draft_id,),
        ).fetchall()
        return [
            SavedDraftItem(
                product_id=int(r["product_id"]),
                product_nombre=r["product_nombre"],
                quantity=int(r["quantity"]),
                precio_unitario=to_decimal(r["precio_unitario"]),
            )
            for r in rows
        ]

    def _row_to_draft(self, r: sqlite3.Row) -> SavedDraft:
        return SavedDraft(
            draft_id=r["draft_id"],
            fecha=r["fecha"],
            items=self._items_for(r["draft_id"]),
            es_mayorista=bool(r["es_mayorista"]),
            total=to_decimal(r["total"]),
        )

    # ---- queries ----------------------------------------------------------

    def list_drafts(self) -> list[SavedDraft]:
        """Newest first."""
        rows = self.conn.execute(
            "SELECT * FROM sale_drafts ORDER BY fecha DESC, draft_id DESC"
        ).fetchall()
        return [self._row_to_draft(r) for r in rows]

    def get(self, draft_id: str) -> SavedDraft:
        r = self.conn.execute(
            "SELECT * FROM sale_drafts WHERE draft_id=?", (draft_id,)
        ).fetchone()
        if r is None:
            raise NotFoundError("Draft", draft_id)
        return self._row_to_draft(r)

    # ---- writes -----------------------------------------------------------

    def save(self, draft: SavedDraft) -> SavedDraft:
        """Insert or replace a draft by id. Returns the stored draft."""
        if not draft.items:
            raise DomainError("A draft needs at least one item.")
        draft_id = draft.draft_id or self.new_draft_id()
        fecha = draft.fecha or now_iso()
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM sale_draft_items WHERE draft_id=?", (draft_id,))
            self.conn.execute(
                """
                INSERT INTO sale_drafts(draft_id, fecha, es_mayorista, total)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(draft_id) DO UPDATE SET
                    fecha=excluded.fecha,
                    es_mayorista=excluded.es_mayorista,
                    total=excluded.total
                """,
                (draft_id, fecha, int(bool(draft.es_mayorista)), str(money(draft.total))),
            )
            for line_no, it in enumerate(draft.items, start=1):
                self.conn.execute(
                    "INSERT INTO sale_draft_items(draft_id, line_no, product_id, product_nombre, "
                    "quantity, precio_unitario) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        draft_id,
                        line_no,
                        int(it.product_id),
                        it.product_nombre,
                        int(it.quantity),
                        str(money(it.precio_unitario)),
                    ),
                )
        _log.info("Draft %s saved with %d line(s)", draft_id, len(draft.items))
        return self.get(draft_id)

    def delete(self, draft_id: str) -> None:
        self.get(draft_id)
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM sale_draft_items WHERE draft_id=?", (draft_id,))
            self.conn.execute("DELETE FROM sale_drafts WHERE draft_id=?", (draft_id,))

    def clear(self) -> None:
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM sale_draft_items")
            self.conn.execute("DELETE FROM sale_drafts")
