from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from orderdesk.core.errors import InvalidInputError, NoAllocationBasisError
from orderdesk.domain.orders.aggregates import OrderAggregate
from orderdesk.reconciliation import distribute_down_payment, run_allocation_checks


def _orders(amounts, base_time=None, hours=None) -> list[OrderAggregate]:
    orders = []
    for index, amount in enumerate(amounts):
        created_at = base_time + hours(index) if base_time is not None else None
        orders.append(
            OrderAggregate(
                order_id=f"O{index + 1}",
                customer_id="C1",
                total_amount=Decimal(str(amount)),
                created_at=created_at,
            )
        )
    return orders


def _amounts(orders) -> dict[str, Decimal]:
    return {o.order_id: o.total_amount for o in orders}


def test_three_order_example(base_time, hours):
    orders = _orders([100, 200, 300], base_time, hours)
    result = distribute_down_payment(orders, 150)

    assert [a.order_id for a in result.allocations] == ["O1", "O2", "O3"]
    assert [a.down_payment for a in result.allocations] == [Decimal("25.00"), Decimal("50.00"), Decimal("75.00")]
    assert [a.remaining_balance for a in result.allocations] == [Decimal("75.00"), Decimal("150.00"), Decimal("225.00")]
    assert sum(a.down_payment for a in result.allocations) == Decimal("150.00")
    assert not result.capped
    assert result.warnings == []


def test_allocations_are_tuples(base_time, hours):
    result = distribute_down_payment(_orders([100], base_time, hours), 40)
    order_id, down_payment, remaining = result.allocations[0]
    assert (order_id, down_payment, remaining) == ("O1", Decimal("40.00"), Decimal("60.00"))


def test_last_order_absorbs_rounding_remainder(base_time, hours):
    orders = _orders([100, 100, 100], base_time, hours)
    result = distribute_down_payment(orders, 100)

    assert [a.down_payment for a in result.allocations] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
    assert sum(a.down_payment for a in result.allocations) == Decimal("100.00")


def test_overpayment_is_capped_and_flagged(base_time, hours):
    orders = _orders([100, 200, 300], base_time, hours)
    result = distribute_down_payment(orders, 1000)

    assert result.capped
    assert result.applied == Decimal("600.00")
    assert result.requested == Decimal("1000.00")
    assert len(result.warnings) == 1
    assert [a.down_payment for a in result.allocations] == [Decimal("100.00"), Decimal("200.00"), Decimal("300.00")]
    assert all(a.remaining_balance == 0 for a in result.allocations)


def test_allocation_order_follows_creation_time(base_time, hours):
    orders = _orders([100, 100, 100], base_time, hours)
    shuffled = [orders[2], orders[0], orders[1]]

    result = distribute_down_payment(shuffled, 100)

    assert [a.order_id for a in result.allocations] == ["O1", "O2", "O3"]
    assert result.allocations[-1].down_payment == Decimal("33.34")


def test_orders_without_timestamp_sort_by_id():
    orders = _orders([50, 50])
    result = distribute_down_payment(list(reversed(orders)), "0.01")

    assert [a.order_id for a in result.allocations] == ["O1", "O2"]
    assert [a.down_payment for a in result.allocations] == [Decimal("0.00"), Decimal("0.01")]


def test_naive_timestamps_are_read_as_utc():
    # 10:00 at +03:00 is 07:00 UTC, an hour before the naive 08:00 row
    orders = [
        OrderAggregate(order_id="A", customer_id="C1", total_amount=Decimal("100"), created_at=datetime(2026, 1, 10, 8, 0)),
        OrderAggregate(
            order_id="B",
            customer_id="C1",
            total_amount=Decimal("100"),
            created_at=datetime(2026, 1, 10, 10, 0, tzinfo=timezone(timedelta(hours=3))),
        ),
    ]
    result = distribute_down_payment(orders, "0.01")

    assert [a.order_id for a in result.allocations] == ["B", "A"]
    assert result.allocations[1].down_payment == Decimal("0.01")


def test_zero_payment_leaves_full_balances(base_time, hours):
    result = distribute_down_payment(_orders([10, 20], base_time, hours), 0)
    assert [a.down_payment for a in result.allocations] == [Decimal("0.00"), Decimal("0.00")]
    assert [a.remaining_balance for a in result.allocations] == [Decimal("10.00"), Decimal("20.00")]


def test_empty_orders_is_a_noop():
    result = distribute_down_payment([], 0)
    assert result.allocations == []
    assert result.applied == 0


@pytest.mark.parametrize("payment", [-1, "abc", None, float("inf")])
def test_invalid_payment_rejected(base_time, hours, payment):
    with pytest.raises(InvalidInputError):
        distribute_down_payment(_orders([100], base_time, hours), payment)


def test_zero_total_has_no_allocation_basis(base_time, hours):
    with pytest.raises(NoAllocationBasisError):
        distribute_down_payment(_orders([0, 0], base_time, hours), 10)


def test_invariants_hold_for_random_order_sets(base_time, hours):
    rng = random.Random(20260110)
    for _ in range(200):
        amounts = [Decimal(rng.randint(1, 500_000)) / 100 for _ in range(rng.randint(1, 12))]
        orders = _orders(amounts, base_time, hours)
        total = sum(amounts)
        payment = (Decimal(rng.randint(0, int(total * 120))) / 100)

        result = distribute_down_payment(orders, payment)

        assert result.applied == min(payment, total)
        checks = run_allocation_checks(result, _amounts(orders))
        assert all(check.passed for check in checks), [c.detail for c in checks if not c.passed]
