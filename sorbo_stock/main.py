import argparse
import sys

from .constants import APP_NAME, PRODUCT_TYPE_LABEL
from .database import get_connection
from .database.repositories.products_repo import ProductsRepo
from .database.repositories.sales_repo import SalesRepo
from .modules.dashboard.summary import least_selling, sales_summary, top_selling
from .modules.inventory.stock_status import label, stock_status, stock_summary
from .utils.helpers import fmt_money
from .utils.loggers import get_logger

log = get_logger()


def _cmd_init(conn, args) -> int:
    # get_connection() already applied schema + demo catalog
    n = conn.execute("SELECT COUNT(*) AS n FROM products").fetchone()["n"]
    log.info("Database ready (%d products)", n)
    return 0


def _cmd_stock(conn, args) -> int:
    products = ProductsRepo(conn).search(args.query or "", args.tipo)
    for p in products:
        print(
            f"{p.product_id:>4}  {p.nombre:<28} {PRODUCT_TYPE_LABEL.get(p.tipo, p.tipo):<6} "
            f"{p.stock:>5}  {label(stock_status(p.stock)):<13} "
            f"{fmt_money(p.precio_venta):>12} {fmt_money(p.precio_venta_mayorista):>12}"
        )
    s = stock_summary(products)
    print(
        f"\n{s.total} products: {s.good} good ({s.good_percentage}%), "
        f"{s.low} low ({s.low_percentage}%), {s.out} out ({s.out_percentage}%)"
    )
    return 0


def _cmd_recalc(conn, args) -> int:
    updated = ProductsRepo(conn).recalculate_all()
    log.info("Repriced %d products", len(updated))
    return 0


def _cmd_dashboard(conn, args) -> int:
    products = ProductsRepo(conn).list_products()
    count, total = sales_summary(SalesRepo(conn).list_sales(args.date_from, args.date_to))
    print(f"Sales: {count}  Total: {fmt_money(total)}")
    print("\nTop selling:")
    for p in top_selling(products):
        print(f"  {p.nombre:<28} {p.sold_count:>6}")
    print("\nLeast selling:")
    for p in least_selling(products):
        print(f"  {p.nombre:<28} {p.sold_count:>6}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="sorbo-stock", description=f"{APP_NAME} operator tools")
    ap.add_argument("--db", default=None, help="SQLite file (default: SORBO_DB_PATH or data/sorbo.db)")
    ap.add_argument("--no-seed", action="store_true", help="Do not load the demo catalog into an empty DB")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the schema and seed the demo catalog").set_defaults(func=_cmd_init)

    p_stock = sub.add_parser("stock", help="List products with their stock status")
    p_stock.add_argument("-q", "--query", help="Name contains")
    p_stock.add_argument("-t", "--tipo", choices=sorted(PRODUCT_TYPE_LABEL), help="Product type")
    p_stock.set_defaults(func=_cmd_stock)

    sub.add_parser("recalc", help="Re-derive every product price from the cost catalog").set_defaults(
        func=_cmd_recalc
    )

    p_dash = sub.add_parser("dashboard", help="Sales total and best/worst sellers")
    p_dash.add_argument("--from", dest="date_from", help="YYYY-MM-DD")
    p_dash.add_argument("--to", dest="date_to", help="YYYY-MM-DD (inclusive)")
    p_dash.set_defaults(func=_cmd_dashboard)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    conn = get_connection(args.db, seed=not args.no_seed)
    try:
        return args.func(conn, args)
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
