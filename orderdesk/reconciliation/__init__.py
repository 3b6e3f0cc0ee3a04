from orderdesk.reconciliation.allocation import (
    AllocationResult,
    DownPaymentAllocation,
    distribute_down_payment,
)
from orderdesk.reconciliation.rules import ReconciliationResult, run_allocation_checks

__all__ = [
    "AllocationResult",
    "DownPaymentAllocation",
    "ReconciliationResult",
    "distribute_down_payment",
    "run_allocation_checks",
]
