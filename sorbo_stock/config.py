import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# SORBO_DB_PATH points the app at another database file (tests, demos)
DB_PATH = Path(os.environ.get("SORBO_DB_PATH") or DATA_PATH / DB_FILE_NAME)
