"""Display formatting for measured areas"""

import math
from numbers import Real
from typing import Optional, Tuple

from .calculations import SQ_FT_PER_ACRE, round_half_up

ACREAGE_THRESHOLD_SQ_FT = 2000

# (low, high, label) - inclusive bands checked in order
ACREAGE_BANDS: Tuple[Tuple[float, float, str], ...] = (
    (0.23, 0.27, "¼ acre"),
    (0.48, 0.52, "½ acre"),
    (0.73, 0.77, "¾ acre"),
    (0.98, 1.02, "1 acre"),
    (1.23, 1.27, "1¼ acres"),
    (1.48, 1.52, "1½ acres"),
    (1.73, 1.77, "1¾ acres"),
    (1.98, 2.02, "2 acres"),
    (2.48, 2.52, "2½ acres"),
    (2.98, 3.02, "3 acres"),
    (3.48, 3.52, "3½ acres"),
    (3.98, 4.02, "4 acres"),
    (4.48, 4.52, "4½ acres"),
    (4.98, 5.02, "5 acres"),
)


def _format_number(value: float) -> str:
    """Thousands separators, at most three decimals, no trailing zeros."""
    rounded = round(value, 3)
    if rounded == int(rounded):
        return f"{int(rounded):,}"
    return f"{rounded:,.3f}".rstrip("0").rstrip(".")


def _acreage_label(acres: float) -> str:
    for low, high, label in ACREAGE_BANDS:
        if low <= acres <= high:
            return label

    if 5.0 <= acres <= 5.5:
        return f"{acres:.1f} acres"
    if acres > 5.5:
        nearest_half = round_half_up(acres * 2) / 2
        if nearest_half == math.floor(nearest_half):
            return f"{int(nearest_half)} acres"
        return f"{nearest_half:.1f} acres"
    return f"{acres:.2f} acres"


def format_area(square_feet: Optional[float]) -> str:
    """
    Format an area for display, e.g. "10,890 sq ft (¼ acre)".

    Never raises: missing, non-numeric and non-finite input render as "0 sq ft",
    negative values clamp to zero.
    """
    if square_feet is None or isinstance(square_feet, bool) or not isinstance(square_feet, Real):
        return "0 sq ft"
    value = float(square_feet)
    if not math.isfinite(value):
        return "0 sq ft"

    value = max(0.0, value)
    sq_ft = f"{_format_number(value)} sq ft"
    if value < ACREAGE_THRESHOLD_SQ_FT:
        return sq_ft

    return f"{sq_ft} ({_acreage_label(value / SQ_FT_PER_ACRE)})"
