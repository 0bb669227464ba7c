import logging

from ..repositories.costs_repo import CostsRepo
from ..repositories.products_repo import ProductsRepo

_log = logging.getLogger(__name__)

# (nombre, tipo, valor, descripcion)
DEFAULT_COSTS = [
    ("Empaquetado general", "general", 120, "Bolsas, etiquetas y empaques estándar"),
    ("Materia prima blends", "blend", 220, "Mezclas especiales de hierbas"),
    ("Materia prima cajas", "caja", 180, "Cartón y diseño para presentaciones premium"),
    ("Materia prima gin botánico", "gin", 350, "Botellas, corchos y botánicos para gin"),
    ("Amortización equipamiento", "amortizable", 90, "Distribución mensual del equipamiento clave"),
]

# (nombre, tipo, precio_costo, % ganancia, % ganancia mayorista, stock, vendidos)
DEFAULT_PRODUCTS = [
    ("Blend Relajante", "blend", 450, 60, 40, 32, 156),
    ("Blend Adelgazante", "blend", 480, 65, 45, 18, 203),
    ("Blend Energizante", "blend", 420, 58, 38, 45, 189),
    ("Blend Desinflamante", "blend", 500, 62, 42, 12, 134),
    ("Blend Digestivo", "blend", 460, 55, 35, 25, 178),
    ("Blend para Acidez", "blend", 440, 52, 32, 8, 112),
    ("Blend Détox", "blend", 490, 63, 43, 15, 145),
    ("Caja Premium", "caja", 310, 70, 50, 20, 97),
    ("Caja Regalo", "caja", 280, 68, 48, 10, 76),
    ("Gin Botánico Clásico", "gin", 950, 45, 30, 6, 58),
    ("Gin Botánico Citrus", "gin", 980, 48, 33, 8, 42),
    ("Gin Edición Especial", "gin", 1100, 55, 40, 4, 25),
]


def seed(conn):
    # demo catalog only goes into an empty database
    row = conn.execute("SELECT COUNT(*) AS n FROM cost_items").fetchone()
    if row and row["n"] == 0:
        costs = CostsRepo(conn)
        for nombre, tipo, valor, descripcion in DEFAULT_COSTS:
            costs.create(nombre, tipo, valor, descripcion)
        _log.info("Seeded %d cost items", len(DEFAULT_COSTS))

    row = conn.execute("SELECT COUNT(*) AS n FROM products").fetchone()
    if row and row["n"] == 0:
        products = ProductsRepo(conn)
        for nombre, tipo, costo, margen, margen_may, stock, vendidos in DEFAULT_PRODUCTS:
            p = products.create(nombre, tipo, costo, margen, margen_may, stock)
            conn.execute(
                "UPDATE products SET sold_count=? WHERE product_id=?",
                (vendidos, p.product_id),
            )
        conn.commit()
        _log.info("Seeded %d products", len(DEFAULT_PRODUCTS))
