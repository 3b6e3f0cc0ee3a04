from orderdesk.domain.pricing.engine import PricingEngine, ShippingCalculation
from orderdesk.domain.pricing.fx import CurrencyConverter, MidRateTable
from orderdesk.domain.pricing.rates import (
    CategorySurcharge,
    CommissionRule,
    InMemoryRateBook,
    RateBook,
    ShippingRate,
    select_commission_rule,
)
from orderdesk.domain.pricing.staleness import is_stale, items_fingerprint, items_order_value

__all__ = [
    "CategorySurcharge",
    "CommissionRule",
    "CurrencyConverter",
    "InMemoryRateBook",
    "MidRateTable",
    "PricingEngine",
    "RateBook",
    "ShippingCalculation",
    "ShippingRate",
    "is_stale",
    "items_fingerprint",
    "items_order_value",
    "select_commission_rule",
]
