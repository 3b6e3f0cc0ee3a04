from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from orderdesk.core.errors import CurrencyConversionError, RateNotFoundError
from orderdesk.core.money import ZERO, money, non_negative
from orderdesk.domain.pricing.fx import CurrencyConverter
from orderdesk.domain.pricing.rates import RateBook, select_commission_rule


@dataclass(frozen=True)
class ShippingCalculation:
    base_shipping: Decimal
    commission: Decimal
    total: Decimal
    currency: str
    order_value: Decimal
    items_hash: str | None
    country: str
    category: str
    weight: Decimal
    rule_id: str | None = None
    source_currency: str | None = None
    exchange_rate: Decimal = Decimal("1")

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "base_shipping": format(self.base_shipping, "f"),
            "commission": format(self.commission, "f"),
            "total": format(self.total, "f"),
            "currency": self.currency,
        }


class PricingEngine:
    """
    Shipping cost and commission for one shipment.

    Rates and commission brackets come from the injected rate book. When the
    caller asks for a currency other than the rate's own, the injected
    converter is used explicitly; without one the call fails instead of
    mixing currencies.
    """

    def __init__(self, rate_book: RateBook, converter: CurrencyConverter | None = None):
        self.rate_book = rate_book
        self.converter = converter

    def _exchange_rate(self, base: str, quote: str) -> Decimal:
        if base.upper() == quote.upper():
            return Decimal("1")
        if self.converter is None:
            raise CurrencyConversionError(
                f"rate is denominated in {base} but {quote} was requested and no converter is configured"
            )
        return self.converter.get_rate(base, quote)

    def calculate_shipping(
        self,
        country: str,
        category: str,
        weight: Any,
        order_value: Any,
        items_hash: str | None = None,
        currency: str | None = None,
    ) -> ShippingCalculation:
        weight_kg = non_negative(weight, "weight")
        value = non_negative(order_value, "order_value")

        rate = self.rate_book.get_rate(country)
        if rate is None:
            raise RateNotFoundError(country)

        out_currency = (currency or rate.currency).upper()
        # order_value arrives in out_currency; brackets are in the rate currency
        to_rate_ccy = self._exchange_rate(out_currency, rate.currency)
        from_rate_ccy = self._exchange_rate(rate.currency, out_currency)
        value_in_rate_ccy = value * to_rate_ccy

        multiplier = self.rate_book.get_category_multiplier(country, category)
        base_shipping = (rate.base_rate + rate.per_kg_rate * weight_kg) * multiplier

        rule = select_commission_rule(self.rate_book.get_commission_rules(country), value_in_rate_ccy)
        if rule is not None:
            commission = value_in_rate_ccy * rule.percentage + rule.fixed_fee
        else:
            commission = value_in_rate_ccy * rate.commission_rate

        base_shipping = money(max(base_shipping * from_rate_ccy, ZERO))
        commission = money(max(commission * from_rate_ccy, ZERO))

        return ShippingCalculation(
            base_shipping=base_shipping,
            commission=commission,
            total=base_shipping + commission,
            currency=out_currency,
            order_value=value,
            items_hash=items_hash,
            country=country,
            category=category,
            weight=weight_kg,
            rule_id=rule.rule_id if rule is not None else None,
            source_currency=rate.currency,
            exchange_rate=from_rate_ccy,
        )
