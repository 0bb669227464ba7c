# utils/validators.py
from .helpers import to_decimal


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing ----

def try_parse_decimal(x):
    """
    Best-effort parse to Decimal.

    Returns:
        (ok: bool, value: Decimal|None)
    """
    try:
        return True, to_decimal(x)
    except ValueError:
        return False, None


def as_int(x) -> int:
    """Strict integer coercion for quantities and stock counts."""
    if isinstance(x, bool):
        raise ValueError(f"Could not parse '{x}' as a whole number.")
    ok, val = try_parse_decimal(x)
    if not ok or val is None or val != val.to_integral_value():
        raise ValueError(f"Could not parse '{x}' as a whole number.")
    return int(val)
