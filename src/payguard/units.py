"""Fixed-point conversion between display units and base units.

Base units assume a 6-decimal settlement asset (USDC-like). Conversions from
display units always round down so caps and budgets only get stricter.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import PaymentRequirement

DECIMALS: int = 6
SCALE: int = 10**DECIMALS

_AMOUNT_RE = re.compile(r"[0-9]+")


def _as_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("boolean is not a display amount")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # repr gives the shortest round-tripping form, so 0.1 is exactly 0.1
        return Decimal(repr(value))
    return Decimal(value)


def to_base_units(value: Decimal | int | float | str) -> int:
    """Convert a display-unit value to base units, truncating toward zero."""
    scaled = _as_decimal(value) * SCALE
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def to_display_units(base_units: int) -> Decimal:
    return Decimal(base_units).scaleb(-DECIMALS)


def parse_amount(value: object) -> int | None:
    """Parse a base-unit numeral string; ``None`` means unparseable."""
    if not isinstance(value, str) or not _AMOUNT_RE.fullmatch(value):
        return None
    try:
        return int(value)
    except ValueError:
        # longer than the interpreter's int string conversion limit
        return None


def parse_amount_base_units(requirement: "PaymentRequirement") -> int | None:
    """Parse a requirement's amount. Absent or malformed amounts are unparseable."""
    return parse_amount(getattr(requirement, "amount", None))
