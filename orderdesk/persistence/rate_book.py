from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from orderdesk.core.config import get_settings
from orderdesk.core.errors import InvalidInputError, NotFoundError, RateNotFoundError
from orderdesk.core.money import d, non_negative
from orderdesk.domain.pricing.rates import (
    CategorySurcharge,
    CommissionRule,
    ShippingRate,
    resolve_category_multiplier,
)
from orderdesk.persistence.models import CategorySurchargeModel, CommissionRuleModel, ShippingRateModel


def rate_from_row(row: ShippingRateModel) -> ShippingRate:
    return ShippingRate(
        country=row.country,
        base_rate=d(row.base_rate),
        per_kg_rate=d(row.per_kg_rate),
        commission_rate=d(row.commission_rate),
        currency=row.currency,
    )


def rule_from_row(row: CommissionRuleModel) -> CommissionRule:
    return CommissionRule(
        country=row.country,
        min_value=d(row.min_value),
        max_value=d(row.max_value) if row.max_value is not None else None,
        percentage=d(row.percentage),
        fixed_fee=d(row.fixed_fee),
        rule_id=row.rule_id,
    )


def _fraction(value: Any, field: str) -> Decimal:
    result = non_negative(value, field)
    if result > 1:
        raise InvalidInputError(f"{field} must be a fraction between 0 and 1, got {result}")
    return result


def _bracket(min_value: Any, max_value: Any) -> tuple[Decimal, Decimal | None]:
    low = non_negative(min_value, "min_value")
    if max_value in (None, ""):
        return low, None
    high = non_negative(max_value, "max_value")
    if high < low:
        raise InvalidInputError(f"max_value {high} is below min_value {low}")
    return low, high


class SqlRateBook:
    """Rate tables backed by the shared database; implements the RateBook protocol."""

    def __init__(self, session: Session):
        self.session = session

    # reads

    def _rate_row(self, country: str) -> ShippingRateModel | None:
        return self.session.scalar(select(ShippingRateModel).where(ShippingRateModel.country == country))

    def get_rate(self, country: str) -> ShippingRate | None:
        row = self._rate_row(country)
        return rate_from_row(row) if row is not None else None

    def list_rates(self) -> list[ShippingRate]:
        rows = self.session.scalars(select(ShippingRateModel).order_by(ShippingRateModel.country.asc())).all()
        return [rate_from_row(row) for row in rows]

    def get_commission_rules(self, country: str) -> list[CommissionRule]:
        stmt = (
            select(CommissionRuleModel)
            .where(CommissionRuleModel.country == country)
            .order_by(CommissionRuleModel.min_value.asc(), CommissionRuleModel.seq_id.asc())
        )
        return [rule_from_row(row) for row in self.session.scalars(stmt).all()]

    def list_commission_rules(self) -> list[CommissionRule]:
        stmt = select(CommissionRuleModel).order_by(
            CommissionRuleModel.country.asc(),
            CommissionRuleModel.min_value.asc(),
            CommissionRuleModel.seq_id.asc(),
        )
        return [rule_from_row(row) for row in self.session.scalars(stmt).all()]

    def get_category_multiplier(self, country: str, category: str) -> Decimal:
        stmt = select(CategorySurchargeModel).where(
            CategorySurchargeModel.category == category,
            or_(CategorySurchargeModel.country == country, CategorySurchargeModel.country.is_(None)),
        )
        surcharges = [
            CategorySurcharge(category=row.category, multiplier=d(row.multiplier), country=row.country)
            for row in self.session.scalars(stmt).all()
        ]
        return resolve_category_multiplier(surcharges, country, category)

    # administration

    def create_rate(
        self,
        country: str,
        base_rate: Any,
        per_kg_rate: Any,
        commission_rate: Any = None,
        currency: str | None = None,
    ) -> ShippingRate:
        if self._rate_row(country) is not None:
            raise InvalidInputError(f"shipping rate already exists for country={country!r}")
        settings = get_settings()
        row = ShippingRateModel(
            country=country,
            base_rate=non_negative(base_rate, "base_rate"),
            per_kg_rate=non_negative(per_kg_rate, "per_kg_rate"),
            commission_rate=_fraction(
                settings.default_commission_rate if commission_rate is None else commission_rate,
                "commission_rate",
            ),
            currency=(currency or settings.base_currency).upper(),
        )
        self.session.add(row)
        self.session.flush()
        return rate_from_row(row)

    def update_rate(self, country: str, **changes: Any) -> ShippingRate:
        row = self._rate_row(country)
        if row is None:
            raise RateNotFoundError(country)
        if changes.get("base_rate") is not None:
            row.base_rate = non_negative(changes["base_rate"], "base_rate")
        if changes.get("per_kg_rate") is not None:
            row.per_kg_rate = non_negative(changes["per_kg_rate"], "per_kg_rate")
        if changes.get("commission_rate") is not None:
            row.commission_rate = _fraction(changes["commission_rate"], "commission_rate")
        if changes.get("currency") is not None:
            row.currency = str(changes["currency"]).upper()
        self.session.flush()
        return rate_from_row(row)

    def delete_rate(self, country: str) -> None:
        row = self._rate_row(country)
        if row is None:
            raise RateNotFoundError(country)
        self.session.delete(row)
        self.session.flush()

    def create_commission_rule(
        self,
        country: str,
        min_value: Any,
        max_value: Any,
        percentage: Any,
        fixed_fee: Any = 0,
    ) -> CommissionRule:
        low, high = _bracket(min_value, max_value)
        row = CommissionRuleModel(
            country=country,
            min_value=low,
            max_value=high,
            percentage=_fraction(percentage, "percentage"),
            fixed_fee=non_negative(fixed_fee, "fixed_fee"),
        )
        self.session.add(row)
        self.session.flush()
        return rule_from_row(row)

    def _rule_row(self, rule_id: str) -> CommissionRuleModel:
        row = self.session.scalar(select(CommissionRuleModel).where(CommissionRuleModel.rule_id == rule_id))
        if row is None:
            raise NotFoundError(f"commission rule not found: {rule_id}")
        return row

    def update_commission_rule(self, rule_id: str, **changes: Any) -> CommissionRule:
        row = self._rule_row(rule_id)
        if "country" in changes and changes["country"] is not None:
            row.country = changes["country"]
        min_value = changes.get("min_value", row.min_value)
        max_value = changes["max_value"] if "max_value" in changes else row.max_value
        row.min_value, row.max_value = _bracket(row.min_value if min_value is None else min_value, max_value)
        if changes.get("percentage") is not None:
            row.percentage = _fraction(changes["percentage"], "percentage")
        if changes.get("fixed_fee") is not None:
            row.fixed_fee = non_negative(changes["fixed_fee"], "fixed_fee")
        self.session.flush()
        return rule_from_row(row)

    def delete_commission_rule(self, rule_id: str) -> None:
        self.session.delete(self._rule_row(rule_id))
        self.session.flush()

    def set_category_multiplier(self, category: str, multiplier: Any, country: str | None = None) -> CategorySurcharge:
        value = non_negative(multiplier, "multiplier")
        stmt = select(CategorySurchargeModel).where(CategorySurchargeModel.category == category)
        if country is None:
            stmt = stmt.where(CategorySurchargeModel.country.is_(None))
        else:
            stmt = stmt.where(CategorySurchargeModel.country == country)
        row = self.session.scalar(stmt)
        if row is None:
            row = CategorySurchargeModel(category=category, country=country, multiplier=value)
            self.session.add(row)
        else:
            row.multiplier = value
        self.session.flush()
        return CategorySurcharge(category=category, multiplier=value, country=country)
