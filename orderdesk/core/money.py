from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from orderdesk.core.errors import InvalidInputError

TWOPLACES = Decimal("0.01")
GRAMS = Decimal("0.001")
ZERO = Decimal("0")


def d(value: Any, field: str = "value") -> Decimal:
    """Coerce incoming values to Decimal, rejecting anything that is not a finite number."""
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"{field} must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidInputError(f"{field} must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidInputError(f"{field} must be a finite number, got {value!r}")
    return result


def non_negative(value: Any, field: str = "value") -> Decimal:
    result = d(value, field)
    if result < ZERO:
        raise InvalidInputError(f"{field} must not be negative, got {result}")
    return result


def money(value: Any) -> Decimal:
    """Quantize to cents, half up."""
    return d(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def money_down(value: Any) -> Decimal:
    """Quantize to cents, truncating toward zero."""
    return d(value).quantize(TWOPLACES, rounding=ROUND_DOWN)


def weight_kg(value: Any, field: str = "weight") -> Decimal:
    """Non-negative weight at gram precision, matching the stored column scale."""
    return non_negative(value, field).quantize(GRAMS, rounding=ROUND_HALF_UP)
