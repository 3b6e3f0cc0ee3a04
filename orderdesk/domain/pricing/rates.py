from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Protocol, Sequence

from orderdesk.core.money import ZERO


@dataclass(frozen=True)
class ShippingRate:
    country: str
    base_rate: Decimal
    per_kg_rate: Decimal
    commission_rate: Decimal = Decimal("0.15")
    currency: str = "USD"


@dataclass(frozen=True)
class CommissionRule:
    country: str
    min_value: Decimal
    max_value: Decimal | None
    percentage: Decimal
    fixed_fee: Decimal = ZERO
    rule_id: str | None = None

    def contains(self, order_value: Decimal) -> bool:
        if order_value < self.min_value:
            return False
        return self.max_value is None or order_value <= self.max_value


@dataclass(frozen=True)
class CategorySurcharge:
    category: str
    multiplier: Decimal = Decimal("1")
    country: str | None = None


class RateBook(Protocol):
    """Read access to the administrative rate tables."""

    def get_rate(self, country: str) -> ShippingRate | None: ...

    def get_commission_rules(self, country: str) -> Sequence[CommissionRule]: ...

    def get_category_multiplier(self, country: str, category: str) -> Decimal: ...


def select_commission_rule(rules: Iterable[CommissionRule], order_value: Decimal) -> CommissionRule | None:
    # sorted() is stable, so rules sharing a min_value keep their input order
    for rule in sorted(rules, key=lambda r: r.min_value):
        if rule.contains(order_value):
            return rule
    return None


def resolve_category_multiplier(
    surcharges: Iterable[CategorySurcharge],
    country: str,
    category: str,
) -> Decimal:
    fallback: Decimal | None = None
    for surcharge in surcharges:
        if surcharge.category != category:
            continue
        if surcharge.country == country:
            return surcharge.multiplier
        if surcharge.country is None and fallback is None:
            fallback = surcharge.multiplier
    return fallback if fallback is not None else Decimal("1")


@dataclass
class InMemoryRateBook:
    rates: dict[str, ShippingRate] = field(default_factory=dict)
    rules: list[CommissionRule] = field(default_factory=list)
    surcharges: list[CategorySurcharge] = field(default_factory=list)

    @classmethod
    def from_rows(
        cls,
        rates: Iterable[ShippingRate],
        rules: Iterable[CommissionRule] = (),
        surcharges: Iterable[CategorySurcharge] = (),
    ) -> "InMemoryRateBook":
        return cls(
            rates={rate.country: rate for rate in rates},
            rules=list(rules),
            surcharges=list(surcharges),
        )

    def get_rate(self, country: str) -> ShippingRate | None:
        return self.rates.get(country)

    def get_commission_rules(self, country: str) -> list[CommissionRule]:
        return [rule for rule in self.rules if rule.country == country]

    def get_category_multiplier(self, country: str, category: str) -> Decimal:
        return resolve_category_multiplier(self.surcharges, country, category)
