from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol, Sequence

from orderdesk.core.canonical import sha256_hex
from orderdesk.core.config import get_settings
from orderdesk.core.money import ZERO, d, money
from orderdesk.domain.orders.aggregates import OrderItem


class QuotedCalculation(Protocol):
    """Anything carrying the fingerprint and order value a quote was priced on."""

    items_hash: str | None
    order_value: Decimal


def items_fingerprint(items: Iterable[OrderItem]) -> str:
    # Order-preserving: reordering lines counts as a change.
    return sha256_hex(
        [
            {"name": item.name, "qty": int(item.quantity), "price": money(item.original_price)}
            for item in items
        ]
    )


def items_order_value(items: Iterable[OrderItem]) -> Decimal:
    return money(sum((item.line_total for item in items), ZERO))


def is_stale(
    calculation: QuotedCalculation,
    current_items: Sequence[OrderItem],
    current_order_value: Decimal | None = None,
    epsilon: Decimal | None = None,
) -> bool:
    if calculation.items_hash is None:
        return True
    if items_fingerprint(current_items) != calculation.items_hash:
        return True
    if current_order_value is None:
        current_order_value = items_order_value(current_items)
    if epsilon is None:
        epsilon = get_settings().staleness_epsilon
    return abs(d(calculation.order_value) - d(current_order_value, "current_order_value")) > epsilon
