from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple, Protocol, Sequence

from orderdesk.core.errors import NoAllocationBasisError
from orderdesk.core.money import ZERO, money, money_down, non_negative


class PayableOrder(Protocol):
    order_id: str
    total_amount: Decimal
    created_at: datetime | None


class DownPaymentAllocation(NamedTuple):
    order_id: str
    down_payment: Decimal
    remaining_balance: Decimal


@dataclass
class AllocationResult:
    requested: Decimal
    applied: Decimal
    total_order_amount: Decimal
    allocations: list[DownPaymentAllocation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def capped(self) -> bool:
        return self.applied < self.requested


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def allocation_order_key(order: PayableOrder) -> tuple:
    created_at = order.created_at
    return (
        created_at is None,
        _as_utc(created_at) if created_at is not None else _EPOCH,
        str(order.order_id),
    )


def distribute_down_payment(orders: Sequence[PayableOrder], total_down_payment) -> AllocationResult:
    """
    Spread an aggregate down payment over a customer's orders in proportion
    to each order's total.

    Orders are processed oldest first (``created_at``, then ``order_id``); the
    last one absorbs the rounding remainder. Payments above the customer's
    aggregate total are capped, flagged on the result and never rejected.
    The allocations always sum to the applied amount exactly.
    """
    requested = money(non_negative(total_down_payment, "total_down_payment"))
    if not orders:
        return AllocationResult(requested=requested, applied=ZERO, total_order_amount=ZERO)

    ordered = sorted(orders, key=allocation_order_key)
    amounts = [money(non_negative(order.total_amount, f"total_amount of order {order.order_id}")) for order in ordered]
    total_order_amount = sum(amounts, ZERO)
    if total_order_amount <= ZERO:
        raise NoAllocationBasisError("total order amount is zero; nothing to distribute a down payment across")

    applied = min(requested, total_order_amount)
    warnings: list[str] = []
    if applied < requested:
        warnings.append(
            f"down payment {requested} exceeds total order amount {total_order_amount}; capped to {applied}"
        )

    shares: list[Decimal] = []
    distributed = ZERO
    last = len(ordered) - 1
    for index, amount in enumerate(amounts):
        if index == last:
            share = min(applied - distributed, amount)
        else:
            # multiply before dividing so a full payment maps onto exact amounts
            share = min(money_down(applied * amount / total_order_amount), amount)
            distributed += share
        shares.append(share)

    # Cent truncation can leave the last order unable to take the whole remainder.
    residue = applied - sum(shares, ZERO)
    for index, amount in enumerate(amounts):
        if residue <= ZERO:
            break
        headroom = amount - shares[index]
        if headroom > ZERO:
            extra = min(headroom, residue)
            shares[index] += extra
            residue -= extra

    allocations = [
        DownPaymentAllocation(
            order_id=order.order_id,
            down_payment=share,
            remaining_balance=max(ZERO, amount - share),
        )
        for order, amount, share in zip(ordered, amounts, shares)
    ]
    return AllocationResult(
        requested=requested,
        applied=applied,
        total_order_amount=total_order_amount,
        allocations=allocations,
        warnings=warnings,
    )
