# sorbo_stock/database/repositories/costs_repo.py
"""
Repository for the operating-cost catalog.

Cost items are global: each one applies to every product of its `tipo`
('general' and 'amortizable' apply to all products). That is why every
create/update/delete here re-derives the prices of the whole product
catalog inside the same transaction; readers never see a product priced
against a cost catalog that no longer exists.

Schema reference (see `database/schema.py`):

CREATE TABLE cost_items (
    cost_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    nombre      TEXT NOT NULL,
    tipo        TEXT NOT NULL,   -- general | blend | caja | gin | amortizable
    valor       TEXT NOT NULL,   -- Decimal as text, > 0
    descripcion TEXT
);
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from decimal import Decimal

from ...constants import COST_TYPES
from ...utils.helpers import to_decimal
from ...utils.validators import non_empty
from .errors import DomainError, NotFoundError
from .tx_helpers import immediate_tx

_log = logging.getLogger(__name__)

_COLUMNS = "cost_id, nombre, tipo, valor, descripcion"


@dataclass
class CostItem:
    cost_id: int | None
    nombre: str
    tipo: str
    valor: Decimal
    descripcion: str | None = None


def row_to_cost_item(r: sqlite3.Row) -> CostItem:
    return CostItem(
        cost_id=int(r["cost_id"]),
        nombre=r["nombre"],
        tipo=r["tipo"],
        valor=to_decimal(r["valor"]),
        descripcion=r["descripcion"],
    )


def fetch_cost_items(conn: sqlite3.Connection) -> list[CostItem]:
    rows = conn.execute(f"SELECT {_COLUMNS} FROM cost_items ORDER BY cost_id").fetchall()
    return [row_to_cost_item(r) for r in rows]


class CostsRepo:
    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _clean_nombre(nombre: str | None) -> str:
        if not non_empty(nombre):
            raise DomainError("Name cannot be empty.")
        return nombre.strip()

    @staticmethod
    def _clean_tipo(tipo: str | None) -> str:
        t = (tipo or "").strip().lower()
        if t not in COST_TYPES:
            raise DomainError(f"tipo must be one of: {', '.join(COST_TYPES)}")
        return t

    @staticmethod
    def _clean_valor(valor) -> Decimal:
        try:
            v = to_decimal(valor)
        except ValueError as e:
            raise DomainError(str(e)) from e
        if v <= 0:
            raise DomainError("Cost value must be greater than 0.")
        return v

    def _recalculate_products(self) -> None:
        # local import: products_repo reads cost items through this module
        from .products_repo import ProductsRepo

        costs = fetch_cost_items(self.conn)
        updated = ProductsRepo(self.conn).recalculate_all(costs)
        _log.info("Cost catalog changed (%d items); repriced %d products", len(costs), len(updated))

    # ---- Queries ----------------------------------------------------------

    def list_costs(self) -> list[CostItem]:
        return fetch_cost_items(self.conn)

    def get(self, cost_id: int) -> CostItem | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM cost_items WHERE cost_id=?", (cost_id,)
        ).fetchone()
        return row_to_cost_item(r) if r else None

    def require(self, cost_id: int) -> CostItem:
        item = self.get(cost_id)
        if item is None:
            raise NotFoundError("Cost item", cost_id)
        return item

    # ---- Mutations --------------------------------------------------------

    def create(self, nombre: str, tipo: str, valor, descripcion: str | None = None) -> CostItem:
        """Insert a cost item and reprice every product. Returns the stored item."""
        nombre_n = self._clean_nombre(nombre)
        tipo_n = self._clean_tipo(tipo)
        valor_n = self._clean_valor(valor)
        desc_n = descripcion.strip() if descripcion else None

        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO cost_items(nombre, tipo, valor, descripcion) VALUES (?,?,?,?)",
                (nombre_n, tipo_n, str(valor_n), desc_n),
            )
            cost_id = int(cur.lastrowid)
            self._recalculate_products()
        return self.require(cost_id)

    def update(self, cost_id: int, **changes) -> CostItem:
        """
        Partial update (nombre, tipo, valor, descripcion) followed by a
        full-catalog reprice. Unknown fields raise DomainError.
        """
        allowed = {"nombre", "tipo", "valor", "descripcion"}
        unknown = set(changes) - allowed
        if unknown:
            raise DomainError(f"Cannot update cost field(s): {', '.join(sorted(unknown))}")

        current = self.require(cost_id)
        nombre_n = self._clean_nombre(changes.get("nombre", current.nombre))
        tipo_n = self._clean_tipo(changes.get("tipo", current.tipo))
        valor_n = self._clean_valor(changes.get("valor", current.valor))
        desc = changes.get("descripcion", current.descripcion)
        desc_n = desc.strip() if desc else None

        with immediate_tx(self.conn):
            self.conn.execute(
                "UPDATE cost_items "
                "SET nombre=?, tipo=?, valor=?, descripcion=?, updated_at=CURRENT_TIMESTAMP "
                "WHERE cost_id=?",
                (nombre_n, tipo_n, str(valor_n), desc_n, cost_id),
            )
            self._recalculate_products()
        return self.require(cost_id)

    def delete(self, cost_id: int) -> None:
        self.require(cost_id)
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM cost_items WHERE cost_id=?", (cost_id,))
            self._recalculate_products()
