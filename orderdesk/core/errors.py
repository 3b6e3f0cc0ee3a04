from __future__ import annotations


class PricingError(Exception):
    """Base for every typed failure raised by the computation core."""

    kind = "pricing_error"


class NotFoundError(PricingError, LookupError):
    kind = "not_found"


class RateNotFoundError(NotFoundError):
    kind = "configuration_not_found"

    def __init__(self, country: str):
        super().__init__(f"no shipping rate configured for country={country!r}")
        self.country = country


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str):
        super().__init__(f"order not found: {order_id}")
        self.order_id = order_id


class InvalidInputError(PricingError, ValueError):
    kind = "invalid_input"


class NoAllocationBasisError(PricingError, ValueError):
    kind = "no_allocation_basis"


class CurrencyConversionError(PricingError, ValueError):
    kind = "currency_conversion"


class ReconciliationError(PricingError):
    kind = "reconciliation_failed"


class StaleCalculationError(PricingError):
    kind = "stale_calculation"
