# Overview: Fixed-point currency helpers shared by models and services.

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def quantize_money(value: Decimal) -> Decimal:
    """Round half up to 2 decimal places (currency precision)."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def money_str(value: Optional[Decimal]) -> Optional[str]:
    """Serialize a money value as a 2-dp string so JSON never sees a float."""
    if value is None:
        return None
    return str(quantize_money(value))
