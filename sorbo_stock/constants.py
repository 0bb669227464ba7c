APP_NAME = "Sorbo Stock"

# storage
DATA_DIR = "data"
DB_FILE_NAME = "sorbo.db"
TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# money is kept as Decimal and rounded to cents
MONEY_PLACES = 2

# stock >= GOOD is "good", LOW..GOOD-1 is "low", below LOW is "out"
STOCK_THRESHOLDS = {
    "GOOD": 10,
    "LOW": 1,
    "OUT": 0,
}

PRODUCT_TYPES: tuple[str, ...] = ("blend", "caja", "gin")

PRODUCT_TYPE_LABEL = {
    "blend": "Blend",
    "caja": "Caja",
    "gin": "Gin",
}

# cost items apply to every product when their tipo is shared
SHARED_COST_TYPES: tuple[str, ...] = ("general", "amortizable")
COST_TYPES: tuple[str, ...] = ("general",) + PRODUCT_TYPES + ("amortizable",)

TOP_SELLING_LIMIT = 5
