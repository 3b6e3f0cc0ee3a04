from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from orderdesk.core.money import ZERO
from orderdesk.reconciliation.allocation import AllocationResult


@dataclass
class ReconciliationResult:
    rule: str
    passed: bool
    detail: str


def check_allocations_sum_to_applied(result: AllocationResult) -> ReconciliationResult:
    allocated = sum((a.down_payment for a in result.allocations), ZERO)
    return ReconciliationResult(
        rule="allocations_sum_to_applied",
        passed=allocated == result.applied,
        detail=f"allocated={allocated}, applied={result.applied}",
    )


def check_allocation_bounds(result: AllocationResult, order_amounts: Mapping[str, Decimal]) -> ReconciliationResult:
    for allocation in result.allocations:
        amount = order_amounts.get(allocation.order_id)
        if amount is None:
            return ReconciliationResult(
                rule="allocation_bounds",
                passed=False,
                detail=f"allocation for unknown order_id={allocation.order_id}",
            )
        if not ZERO <= allocation.down_payment <= amount:
            return ReconciliationResult(
                rule="allocation_bounds",
                passed=False,
                detail=f"down_payment={allocation.down_payment} outside [0, {amount}] for order_id={allocation.order_id}",
            )
    return ReconciliationResult(rule="allocation_bounds", passed=True, detail="ok")


def check_remaining_non_negative(result: AllocationResult) -> ReconciliationResult:
    for allocation in result.allocations:
        if allocation.remaining_balance < ZERO:
            return ReconciliationResult(
                rule="remaining_non_negative",
                passed=False,
                detail=f"negative remaining balance for order_id={allocation.order_id}",
            )
    return ReconciliationResult(rule="remaining_non_negative", passed=True, detail="ok")


def run_allocation_checks(result: AllocationResult, order_amounts: Mapping[str, Decimal]) -> list[ReconciliationResult]:
    return [
        check_allocations_sum_to_applied(result),
        check_allocation_bounds(result, order_amounts),
        check_remaining_non_negative(result),
    ]
