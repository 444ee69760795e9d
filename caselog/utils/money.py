# caselog/utils/money.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")


def D(x) -> Decimal:
    """Coerce int / float / str / Decimal / None to Decimal; junk -> 0."""
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x or 0))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")
