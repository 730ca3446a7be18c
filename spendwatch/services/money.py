"""Money / rounding helpers.

Amounts travel through the service as integer minor units (cents). Conversion
to major units and display strings happens only at the edges (API responses,
notification bodies).
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP

MINOR_PER_MAJOR = 100
_CENT = Decimal("0.01")


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_major(minor: int) -> float:
    return float((Decimal(minor) / MINOR_PER_MAJOR).quantize(_CENT))


def to_minor(major: float) -> int:
    return int(
        (Decimal(str(major)) * MINOR_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )


def format_currency(minor: int, symbol: str = "$") -> str:
    """Render minor units for humans, e.g. 2500 -> '$25.00', -12000 -> '-$120.00'."""
    sign = "-" if minor < 0 else ""
    major = Decimal(abs(minor)) / MINOR_PER_MAJOR
    return f"{sign}{symbol}{major:,.2f}"
