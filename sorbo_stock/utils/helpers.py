# utils/helpers.py
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
import time
import uuid
from typing import Optional, Union

from ..constants import MONEY_PLACES

NumberLike = Union[Decimal, float, int, str]

MONEY_Q = Decimal(1).scaleb(-MONEY_PLACES)  # Decimal("0.01")
ZERO = Decimal("0")

_log = logging.getLogger(__name__)


def now_iso() -> str:
    """Current UTC timestamp as ISO string (YYYY-MM-DDTHH:MM:SS.ffffff+00:00)."""
    return datetime.now(timezone.utc).isoformat()


def epoch_ms() -> int:
    return int(time.time() * 1000)


def new_draft_id() -> str:
    """Client-side style id for recovery drafts: draft-<epoch ms>-<9 hex chars>."""
    return f"draft-{epoch_ms()}-{uuid.uuid4().hex[:9]}"


def to_decimal(v: Optional[NumberLike]) -> Decimal:
    """
    Parse a number-like value into Decimal.

    - None -> Decimal("0")
    - float goes through str() so 0.1 stays 0.1 and not its binary expansion
    - anything unparseable raises ValueError with a clear message
    """
    if v is None:
        return ZERO
    if isinstance(v, Decimal):
        d = v
    else:
        try:
            d = Decimal(str(v).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
    if not d.is_finite():
        raise ValueError(f"Could not parse {v!r} as a number.")
    return d


def money(v: Optional[NumberLike]) -> Decimal:
    """Quantize to cents with half-up rounding."""
    return to_decimal(v).quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def round_half_up(x: float) -> int:
    """Integer rounding with .5 going up, like Math.round for non-negative numbers."""
    return int(Decimal(str(x)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def fmt_money(
    v: NumberLike,
    places: int = MONEY_PLACES,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    On parse failure returns str(v), or `sentinel` when given; raises ValueError
    when `strict=True`.
    """
    try:
        x = to_decimal(v)
    except ValueError as e:
        _log.debug("fmt_money: failed to parse %r: %s", v, e)
        if strict:
            raise
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
