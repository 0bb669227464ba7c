# sorbo_stock/database/repositories/products_repo.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import logging
import sqlite3
from typing import Iterable, Optional

from ...constants import PRODUCT_TYPES
from ...modules.pricing.calculations import recalculate_product_financials
from ...utils.helpers import ZERO, to_decimal
from ...utils.validators import as_int, non_empty
from .costs_repo import CostItem, fetch_cost_items
from .errors import DomainError, InsufficientStockError, NotFoundError
from .tx_helpers import immediate_tx

_log = logging.getLogger(__name__)


@dataclass
class Product:
    product_id: int | None
    nombre: str
    tipo: str
    precio_costo: Decimal
    porcentaje_ganancia: Decimal
    porcentaje_ganancia_mayorista: Decimal = ZERO
    stock: int = 0
    sold_count: int = 0
    # derived by the pricing engine, never set by callers
    costos: Decimal = field(default=ZERO)
    precio_venta: Decimal = field(default=ZERO)
    precio_venta_mayorista: Decimal = field(default=ZERO)


_COLUMNS = (
    "product_id, nombre, tipo, precio_costo, porcentaje_ganancia, "
    "porcentaje_ganancia_mayorista, stock, sold_count, "
    "costos, precio_venta, precio_venta_mayorista"
)

# fields an operator may edit; derived prices and sold_count are not among them
EDITABLE_FIELDS = (
    "nombre",
    "tipo",
    "precio_costo",
    "porcentaje_ganancia",
    "porcentaje_ganancia_mayorista",
    "stock",
)


def _row_to_product(r: sqlite3.Row) -> Product:
    return Product(
        product_id=int(r["product_id"]),
        nombre=r["nombre"],
        tipo=r["tipo"],
        precio_costo=to_decimal(r["precio_costo"]),
        porcentaje_ganancia=to_decimal(r["porcentaje_ganancia"]),
        porcentaje_ganancia_mayorista=to_decimal(r["porcentaje_ganancia_mayorista"]),
        stock=int(r["stock"]),
        sold_count=int(r["sold_count"]),
        costos=to_decimal(r["costos"]),
        precio_venta=to_decimal(r["precio_venta"]),
        precio_venta_mayorista=to_decimal(r["precio_venta_mayorista"]),
    )


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Use Row for named access
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- Validation ----------------------------

    @staticmethod
    def _validated(p: Product) -> Product:
        if not non_empty(p.nombre):
            raise DomainError("Name cannot be empty.")
        if p.tipo not in PRODUCT_TYPES:
            raise DomainError(f"tipo must be one of: {', '.join(PRODUCT_TYPES)}")
        try:
            precio_costo = to_decimal(p.precio_costo)
            margen = to_decimal(p.porcentaje_ganancia)
            margen_mayorista = to_decimal(p.porcentaje_ganancia_mayorista)
            stock = as_int(p.stock)
        except ValueError as e:
            raise DomainError(str(e)) from e
        if precio_costo <= 0:
            raise DomainError("Cost price must be greater than 0.")
        if margen < 0 or margen_mayorista < 0:
            raise DomainError("Profit margins cannot be negative.")
        if stock < 0:
            raise DomainError("Stock cannot be negative.")
        p.nombre = p.nombre.strip()
        p.precio_costo = precio_costo
        p.porcentaje_ganancia = margen
        p.porcentaje_ganancia_mayorista = margen_mayorista
        p.stock = stock
        return p

    def _write_prices(self, p: Product) -> None:
        self.conn.execute(
            "UPDATE products "
            "SET costos=?, precio_venta=?, precio_venta_mayorista=?, updated_at=CURRENT_TIMESTAMP "
            "WHERE product_id=?",
            (str(p.costos), str(p.precio_venta), str(p.precio_venta_mayorista), p.product_id),
        )

    # ---------------------------- Queries ----------------------------

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products ORDER BY product_id"
        ).fetchall()
        return [_row_to_product(r) for r in rows]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return _row_to_product(r) if r else None

    def require(self, product_id: int) -> Product:
        p = self.get(product_id)
        if p is None:
            raise NotFoundError("Product", product_id)
        return p

    def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Fresh read of several products at once: {product_id: Product}."""
        ids = sorted({int(i) for i in product_ids})
        if not ids:
            return {}
        marks = ",".join("?" for _ in ids)
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id IN ({marks})", ids
        ).fetchall()
        return {int(r["product_id"]): _row_to_product(r) for r in rows}

    def search(self, query: str = "", tipo: Optional[str] = None) -> list[Product]:
        """
        Name search (case-insensitive substring) with an optional type filter.
        Both filters are optional; no filters lists everything.
        """
        where: list[str] = []
        params: list = []
        q = (query or "").strip()
        if q:
            where.append("LOWER(nombre) LIKE ?")
            params.append(f"%{q.lower()}%")
        if tipo:
            where.append("tipo = ?")
            params.append(tipo)
        sql = f"SELECT {_COLUMNS} FROM products"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY nombre, product_id"
        return [_row_to_product(r) for r in self.conn.execute(sql, params).fetchall()]

    def present_types(self) -> list[str]:
        """Product types that currently have products, in PRODUCT_TYPES order."""
        found = {r["tipo"] for r in self.conn.execute("SELECT DISTINCT tipo FROM products")}
        return [t for t in PRODUCT_TYPES if t in found]

    # ---------------------------- Mutations ----------------------------

    def create(
        self,
        nombre: str,
        tipo: str,
        precio_costo,
        porcentaje_ganancia,
        porcentaje_ganancia_mayorista=0,
        stock: int = 0,
    ) -> Product:
        """
        Insert a product with freshly derived prices. sold_count starts at 0.
        """
        draft = self._validated(
            Product(
                product_id=None,
                nombre=nombre,
                tipo=tipo,
                precio_costo=precio_costo,
                porcentaje_ganancia=porcentaje_ganancia,
                porcentaje_ganancia_mayorista=porcentaje_ganancia_mayorista or 0,
                stock=stock,
            )
        )
        with immediate_tx(self.conn):
            priced = recalculate_product_financials(draft, fetch_cost_items(self.conn))
            cur = self.conn.execute(
                "INSERT INTO products(nombre, tipo, precio_costo, porcentaje_ganancia, "
                "porcentaje_ganancia_mayorista, stock, sold_count, "
                "costos, precio_venta, precio_venta_mayorista) "
                "VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?)",
                (
                    priced.nombre,
                    priced.tipo,
                    str(priced.precio_costo),
                    str(priced.porcentaje_ganancia),
                    str(priced.porcentaje_ganancia_mayorista),
                    priced.stock,
                    str(priced.costos),
                    str(priced.precio_venta),
                    str(priced.precio_venta_mayorista),
                ),
            )
            product_id = int(cur.lastrowid)
        _log.info("Created product %s (%s)", product_id, priced.nombre)
        return self.require(product_id)

    def update(self, product_id: int, **changes) -> Product:
        """
        Partial update of the editable fields; prices are re-derived from the
        merged record. Derived fields and sold_count are rejected.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise DomainError(f"Cannot update product field(s): {', '.join(sorted(unknown))}")

        current = self.require(product_id)
        for k, v in changes.items():
            setattr(current, k, v)
        merged = self._validated(current)

        with immediate_tx(self.conn):
            priced = recalculate_product_financials(merged, fetch_cost_items(self.conn))
            self.conn.execute(
                "UPDATE products "
                "SET nombre=?, tipo=?, precio_costo=?, porcentaje_ganancia=?, "
                "    porcentaje_ganancia_mayorista=?, stock=?, updated_at=CURRENT_TIMESTAMP "
                "WHERE product_id=?",
                (
                    priced.nombre,
                    priced.tipo,
                    str(priced.precio_costo),
                    str(priced.porcentaje_ganancia),
                    str(priced.porcentaje_ganancia_mayorista),
                    priced.stock,
                    product_id,
                ),
            )
            self._write_prices(priced)
        return self.require(product_id)

    def delete(self, product_id: int) -> None:
        """
        Remove a product. Past sales keep their denormalized name and snapshot,
        so deletion is allowed even when the product was sold.
        """
        self.require(product_id)
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM products WHERE product_id=?", (product_id,))
        _log.info("Deleted product %s", product_id)

    def recalculate_all(self, costs: Optional[list[CostItem]] = None) -> list[Product]:
        """
        Re-derive costos/precio_venta/precio_venta_mayorista for every product
        against `costs` (default: the stored catalog). product_id, stock and
        sold_count are preserved.
        """
        if costs is None:
            costs = fetch_cost_items(self.conn)
        updated: list[Product] = []
        with immediate_tx(self.conn):
            for p in self.list_products():
                priced = recalculate_product_financials(p, costs)
                self._write_prices(priced)
                updated.append(priced)
        return updated

    # ---------------------------- Stock movements ----------------------------

    def apply_sale_quantity(self, product_id: int, quantity: int) -> None:
        """
        Move stock for a committed sale line.

        quantity > 0: units leave stock and count as sold. The decrement is
                      guarded, so a stale read raises InsufficientStockError
                      instead of driving stock below zero.
        quantity < 0: units come back (sale edited down or deleted);
                      sold_count never drops below zero.
        """
        if quantity == 0:
            return
        with immediate_tx(self.conn):
            if quantity > 0:
                cur = self.conn.execute(
                    "UPDATE products "
                    "SET stock = stock - ?, sold_count = sold_count + ?, updated_at=CURRENT_TIMESTAMP "
                    "WHERE product_id=? AND stock >= ?",
                    (quantity, quantity, product_id, quantity),
                )
                if cur.rowcount == 0:
                    row = self.conn.execute(
                        "SELECT stock FROM products WHERE product_id=?", (product_id,)
                    ).fetchone()
                    if row is None:
                        raise NotFoundError("Product", product_id)
                    raise InsufficientStockError(product_id, quantity, int(row["stock"]))
            else:
                back = -quantity
                cur = self.conn.execute(
                    "UPDATE products "
                    "SET stock = stock + ?, sold_count = MAX(sold_count - ?, 0), "
                    "    updated_at=CURRENT_TIMESTAMP "
                    "WHERE product_id=?",
                    (back, back, product_id),
                )
                if cur.rowcount == 0:
                    raise NotFoundError("Product", product_id)
