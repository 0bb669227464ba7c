from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
import logging
import sqlite3
from typing import Iterable, Optional

from ...utils.helpers import money, now_iso, to_decimal
from .errors import DomainError, NotFoundError
from .products_repo import ProductsRepo
from .tx_helpers import immediate_tx

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleSnapshot:
    """Pricing state of a product at the moment it was sold."""
    precio_costo: Decimal
    costos: Decimal
    porcentaje_ganancia: Decimal
    precio_venta: Decimal
    # only recorded on wholesale sales of products with a wholesale margin
    porcentaje_ganancia_mayorista: Decimal | None = None


@dataclass(frozen=True)
class SaleItem:
    product_id: int
    product_nombre: str
    cantidad: int
    precio_unitario: Decimal
    snapshot: SaleSnapshot

    @property
    def subtotal(self) -> Decimal:
        return to_decimal(self.precio_unitario) * self.cantidad


@dataclass
class Sale:
    sale_id: str
    fecha: str
    items: list[SaleItem] = field(default_factory=list)
    total: Decimal = Decimal("0.00")
    es_mayorista: bool = False
    vendedor_id: str | None = None

    def quantities_by_product(self) -> dict[int, int]:
        return quantities_by_product(self.items)


def quantities_by_product(items: Iterable[SaleItem]) -> dict[int, int]:
    out: dict[int, int] = defaultdict(int)
    for it in items:
        out[int(it.product_id)] += int(it.cantidad)
    return dict(out)


def sale_total(items: Iterable[SaleItem]) -> Decimal:
    """Σ precio_unitario × cantidad, rounded half-up to cents."""
    return money(sum((it.subtotal for it in items), Decimal("0")))


def new_sale_id(conn: sqlite3.Connection, date_str: str) -> str:
    """SO + yyyymmdd + -NNNN, numbered per day."""
    d = date_str[:10].replace("-", "")
    prefix = f"SO{d}-"
    # Numeric max so -10000 sorts after -9999.
    row = conn.execute(
        "SELECT MAX(CAST(substr(sale_id, ?) AS INTEGER)) AS m FROM sales WHERE sale_id LIKE ?",
        (len(prefix) + 1, prefix + "%"),
    ).fetchone()
    last = int(row["m"]) if row and row["m"] is not None else 0
    return f"{prefix}{last+1:04d}"


def _opt_decimal(v) -> Decimal | None:
    return None if v is None else to_decimal(v)


def _row_to_item(r: sqlite3.Row) -> SaleItem:
    return SaleItem(
        product_id=int(r["product_id"]),
        product_nombre=r["product_nombre"],
        cantidad=int(r["cantidad"]),
        precio_unitario=to_decimal(r["precio_unitario"]),
        snapshot=SaleSnapshot(
            precio_costo=to_decimal(r["snapshot_precio_costo"]),
            costos=to_decimal(r["snapshot_costos"]),
            porcentaje_ganancia=to_decimal(r["snapshot_porcentaje_ganancia"]),
            precio_venta=to_decimal(r["snapshot_precio_venta"]),
            porcentaje_ganancia_mayorista=_opt_decimal(r["snapshot_porcentaje_ganancia_mayorista"]),
        ),
    )


class SalesRepo:
    """
    Sales and their stock effects.

    Every write runs in one IMMEDIATE transaction together with the stock
    movements it causes, so a failure anywhere leaves products and sales
    exactly as they were.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.products = ProductsRepo(conn)

    # ---------------------------- helpers ----------------------------

    @staticmethod
    def _check_items(items: list[SaleItem]) -> None:
        if not items:
            raise DomainError("A sale needs at least one item.")
        for it in items:
            if int(it.cantidad) <= 0:
                raise DomainError("Quantity must be greater than 0")

    def _insert_items(self, sale_id: str, items: list[SaleItem]) -> None:
        for line_no, it in enumerate(items, start=1):
            s = it.snapshot
            self.conn.execute(
                """
                INSERT INTO sale_items(
                    sale_id, line_no, product_id, product_nombre, cantidad, precio_unitario,
                    snapshot_precio_costo, snapshot_costos, snapshot_porcentaje_ganancia,
                    snapshot_precio_venta, snapshot_porcentaje_ganancia_mayorista
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    sale_id,
                    line_no,
                    int(it.product_id),
                    it.product_nombre,
                    int(it.cantidad),
                    str(money(it.precio_unitario)),
                    str(s.precio_costo),
                    str(s.costos),
                    str(s.porcentaje_ganancia),
                    str(s.precio_venta),
                    None if s.porcentaje_ganancia_mayorista is None else str(s.porcentaje_ganancia_mayorista),
                ),
            )

    def _items_for(self, sale_id: str) -> list[SaleItem]:
        rows = self.conn.execute(
            "SELECT * FROM sale_items WHERE sale_id=? ORDER BY line_no, item_id",
            (sale_id,),
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def _row_to_sale(self, r: sqlite3.Row) -> Sale:
        return Sale(
            sale_id=r["sale_id"],
            fecha=r["fecha"],
            items=self._items_for(r["sale_id"]),
            total=to_decimal(r["total"]),
            es_mayorista=bool(r["es_mayorista"]),
            vendedor_id=r["vendedor_id"],
        )

    def _restore(self, product_id: int, quantity: int, sale_id: str) -> None:
        """Put units back; a product deleted since the sale is skipped."""
        if self.products.get(product_id) is None:
            _log.warning(
                "Sale %s: product %s no longer exists; %d unit(s) not restocked",
                sale_id, product_id, quantity,
            )
            return
        self.products.apply_sale_quantity(product_id, -quantity)

    # ---------------------------- queries ----------------------------

    def get(self, sale_id: str) -> Sale:
        r = self.conn.execute("SELECT * FROM sales WHERE sale_id=?", (sale_id,)).fetchone()
        if r is None:
            raise NotFoundError("Sale", sale_id)
        return self._row_to_sale(r)

    def list_sales(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        order: str = "desc",
    ) -> list[Sale]:
        """
        Sales filtered by date (YYYY-MM-DD, both ends inclusive; date_to
        covers the whole day) and sorted by fecha.
        """
        direction = (order or "").lower()
        if direction not in ("asc", "desc"):
            raise DomainError("order must be 'asc' or 'desc'")
        where: list[str] = []
        params: list = []
        if date_from:
            where.append("substr(fecha, 1, 10) >= ?")
            params.append(date_from[:10])
        if date_to:
            where.append("substr(fecha, 1, 10) <= ?")
            params.append(date_to[:10])
        sql = "SELECT * FROM sales"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY fecha {direction.upper()}, sale_id {direction.upper()}"
        return [self._row_to_sale(r) for r in self.conn.execute(sql, params).fetchall()]

    # ---------------------------- writes ----------------------------

    def create_sale(
        self,
        items: list[SaleItem],
        es_mayorista: bool,
        vendedor_id: str | None = None,
        fecha: str | None = None,
    ) -> Sale:
        """
        Persist a new sale and take its units out of stock.

        Raises InsufficientStockError (and writes nothing) when a product has
        less stock than the sale asks for at commit time.
        """
        items = list(items)
        self._check_items(items)
        fecha = fecha or now_iso()
        total = sale_total(items)

        with immediate_tx(self.conn):
            sale_id = new_sale_id(self.conn, fecha)
            self.conn.execute(
                "INSERT INTO sales(sale_id, fecha, total, es_mayorista, vendedor_id) VALUES (?, ?, ?, ?, ?)",
                (sale_id, fecha, str(total), int(bool(es_mayorista)), vendedor_id),
            )
            self._insert_items(sale_id, items)
            for product_id, qty in quantities_by_product(items).items():
                self.products.apply_sale_quantity(product_id, qty)

        _log.info("Sale %s committed: %d line(s), total %s", sale_id, len(items), total)
        return self.get(sale_id)

    def update_sale(
        self,
        sale_id: str,
        items: Optional[list[SaleItem]] = None,
        es_mayorista: Optional[bool] = None,
        vendedor_id: Optional[str] = None,
        fecha: Optional[str] = None,
    ) -> Sale:
        """
        Edit a committed sale. When `items` is given, stock moves by the net
        difference per product (new minus original quantity): positive takes
        more units, negative gives units back. The lines are replaced and the
        total recomputed.
        """
        current = self.get(sale_id)
        new_items = current.items if items is None else list(items)
        if items is not None:
            self._check_items(new_items)
        total = sale_total(new_items)

        with immediate_tx(self.conn):
            if items is not None:
                before = current.quantities_by_product()
                after = quantities_by_product(new_items)
                for product_id in sorted(set(before) | set(after)):
                    difference = after.get(product_id, 0) - before.get(product_id, 0)
                    if difference > 0:
                        self.products.apply_sale_quantity(product_id, difference)
                    elif difference < 0:
                        self._restore(product_id, -difference, sale_id)
                self.conn.execute("DELETE FROM sale_items WHERE sale_id=?", (sale_id,))
                self._insert_items(sale_id, new_items)

            self.conn.execute(
                "UPDATE sales SET fecha=?, total=?, es_mayorista=?, vendedor_id=?, "
                "updated_at=CURRENT_TIMESTAMP WHERE sale_id=?",
                (
                    fecha or current.fecha,
                    str(total),
                    int(current.es_mayorista if es_mayorista is None else bool(es_mayorista)),
                    current.vendedor_id if vendedor_id is None else vendedor_id,
                    sale_id,
                ),
            )

        _log.info("Sale %s updated: %d line(s), total %s", sale_id, len(new_items), total)
        return self.get(sale_id)

    def delete_sale(self, sale_id: str) -> None:
        """Remove a sale and give every unit it took back to stock."""
        current = self.get(sale_id)
        with immediate_tx(self.conn):
            for product_id, qty in current.quantities_by_product().items():
                self._restore(product_id, qty, sale_id)
            self.conn.execute("DELETE FROM sale_items WHERE sale_id=?", (sale_id,))
            self.conn.execute("DELETE FROM sales WHERE sale_id=?", (sale_id,))
        _log.info("Sale %s deleted; stock restored", sale_id)
