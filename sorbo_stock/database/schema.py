from pathlib import Path
import logging
import sqlite3
import sys

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CATALOG ======================== */

/* -------- operating costs --------
   Money columns are TEXT so Decimal values round-trip exactly. */
CREATE TABLE IF NOT EXISTS cost_items (
    cost_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    nombre      TEXT NOT NULL,
    tipo        TEXT NOT NULL
                CHECK (tipo IN ('general','blend','caja','gin','amortizable')),
    valor       TEXT NOT NULL CHECK (CAST(valor AS REAL) > 0),
    descripcion TEXT,
    created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_cost_items_tipo ON cost_items(tipo);

/* -------- products --------
   costos / precio_venta / precio_venta_mayorista are derived: only the
   repositories write them, always through the pricing engine. */
CREATE TABLE IF NOT EXISTS products (
    product_id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    nombre                        TEXT NOT NULL,
    tipo                          TEXT NOT NULL CHECK (tipo IN ('blend','caja','gin')),
    precio_costo                  TEXT NOT NULL CHECK (CAST(precio_costo AS REAL) > 0),
    porcentaje_ganancia           TEXT NOT NULL DEFAULT '0'
                                  CHECK (CAST(porcentaje_ganancia AS REAL) >= 0),
    porcentaje_ganancia_mayorista TEXT NOT NULL DEFAULT '0'
                                  CHECK (CAST(porcentaje_ganancia_mayorista AS REAL) >= 0),
    costos                        TEXT NOT NULL DEFAULT '0',
    precio_venta                  TEXT NOT NULL DEFAULT '0',
    precio_venta_mayorista        TEXT NOT NULL DEFAULT '0',
    stock                         INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
    sold_count                    INTEGER NOT NULL DEFAULT 0 CHECK (sold_count >= 0),
    created_at                    TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at                    TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_products_nombre ON products(nombre);
CREATE INDEX IF NOT EXISTS idx_products_tipo   ON products(tipo);

/* ======================== SALES ======================== */

CREATE TABLE IF NOT EXISTS sales (
    sale_id      TEXT PRIMARY KEY,
    fecha        TEXT NOT NULL,
    total        TEXT NOT NULL,
    es_mayorista INTEGER NOT NULL DEFAULT 0 CHECK (es_mayorista IN (0,1)),
    vendedor_id  TEXT,
    created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_sales_fecha ON sales(fecha);

/* product_id has no FK: a product may be deleted while its sales stay
   auditable through product_nombre and the snapshot columns. */
CREATE TABLE IF NOT EXISTS sale_items (
    item_id                                INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id                                TEXT NOT NULL,
    line_no                                INTEGER NOT NULL,
    product_id                             INTEGER NOT NULL,
    product_nombre                         TEXT NOT NULL,
    cantidad                               INTEGER NOT NULL CHECK (cantidad > 0),
    precio_unitario                        TEXT NOT NULL,
    snapshot_precio_costo                  TEXT NOT NULL,
    snapshot_costos                        TEXT NOT NULL,
    snapshot_porcentaje_ganancia           TEXT NOT NULL,
    snapshot_precio_venta                  TEXT NOT NULL,
    snapshot_porcentaje_ganancia_mayorista TEXT,
    FOREIGN KEY (sale_id) REFERENCES sales(sale_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_sale_items_sale    ON sale_items(sale_id);
CREATE INDEX IF NOT EXISTS idx_sale_items_product ON sale_items(product_id);

/* snapshots are written once per line */
DROP TRIGGER IF EXISTS trg_sale_items_snapshot_immutable;
CREATE TRIGGER trg_sale_items_snapshot_immutable
BEFORE UPDATE OF snapshot_precio_costo, snapshot_costos, snapshot_porcentaje_ganancia,
                 snapshot_precio_venta, snapshot_porcentaje_ganancia_mayorista
ON sale_items
BEGIN
  SELECT RAISE(ABORT, 'Sale item snapshots are immutable');
END;

/* ======================== RECOVERY DRAFTS ======================== */

CREATE TABLE IF NOT EXISTS sale_drafts (
    draft_id     TEXT PRIMARY KEY,
    fecha        TEXT NOT NULL,
    es_mayorista INTEGER NOT NULL DEFAULT 0 CHECK (es_mayorista IN (0,1)),
    total        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sale_draft_items (
    draft_item_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    draft_id        TEXT NOT NULL,
    line_no         INTEGER NOT NULL,
    product_id      INTEGER NOT NULL,
    product_nombre  TEXT NOT NULL,
    quantity        INTEGER NOT NULL,
    precio_unitario TEXT NOT NULL,
    FOREIGN KEY (draft_id) REFERENCES sale_drafts(draft_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_sale_draft_items_draft ON sale_draft_items(draft_id);
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection, e.g. ':memory:' in tests."""
    conn.executescript(SQL)


def init_schema(db_path: Path | str = "sorbo.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        conn.commit()
    conn.close()
    _log.info("Schema applied to %s", db_path)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "sorbo.db"
    init_schema(target)
