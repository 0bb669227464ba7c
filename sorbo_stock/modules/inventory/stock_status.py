from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Iterable, Mapping, Optional

from ...constants import STOCK_THRESHOLDS
from ...utils.helpers import round_half_up

# ---------- Canonical set & order ----------
VALID_STATES: tuple[str, ...] = ("good", "low", "out")

# ---------- Human labels ----------
LABELS = {
    "good": "Bien",
    "low":  "Quedan pocos",
    "out":  "Sin stock",
}


@dataclass(frozen=True)
class StockSummary:
    total: int
    good: int
    low: int
    out: int
    good_percentage: int
    low_percentage: int
    out_percentage: int

    def as_dict(self) -> dict:
        return asdict(self)


# ---------- API ----------

def stock_status(stock: int, thresholds: Optional[Mapping[str, int]] = None) -> str:
    """
    Tri-state classification of a stock count:
      - 'good' if stock >= GOOD
      - 'low'  if LOW <= stock < GOOD
      - 'out'  otherwise
    """
    t = thresholds or STOCK_THRESHOLDS
    if stock >= t["GOOD"]:
        return "good"
    if stock >= t["LOW"]:
        return "low"
    return "out"


def label(status: str) -> str:
    """Human label ('Bien'). Unknown statuses come back title-cased."""
    return LABELS.get(status, (status or "").strip().title())


def _pct(count: int, total: int) -> int:
    return round_half_up(count / total * 100) if total > 0 else 0


def stock_summary(products: Iterable, thresholds: Optional[Mapping[str, int]] = None) -> StockSummary:
    """
    Count products per status. Percentages are rounded to the nearest
    integer (.5 up) and are all 0 for an empty collection.
    """
    counts = {s: 0 for s in VALID_STATES}
    for p in products:
        counts[stock_status(p.stock, thresholds)] += 1
    total = sum(counts.values())
    return StockSummary(
        total=total,
        good=counts["good"],
        low=counts["low"],
        out=counts["out"],
        good_percentage=_pct(counts["good"], total),
        low_percentage=_pct(counts["low"], total),
        out_percentage=_pct(counts["out"], total),
    )


def available_for_sale(products: Iterable) -> list:
    """Products that can be offered on a new sale (stock > 0)."""
    return [p for p in products if p.stock > 0]
