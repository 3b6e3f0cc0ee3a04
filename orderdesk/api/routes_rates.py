from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import Field, field_validator

from orderdesk.api.utils import CamelModel, get_rate_book, money_json
from orderdesk.domain.pricing.rates import CategorySurcharge, CommissionRule, ShippingRate
from orderdesk.persistence.rate_book import SqlRateBook

router = APIRouter(tags=["rates"])


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ShippingRateCreate(CamelModel):
    country: str = Field(min_length=1)
    base_rate: Decimal
    per_kg_rate: Decimal
    commission_rate: Decimal | None = None
    currency: str | None = None


class ShippingRateUpdate(CamelModel):
    base_rate: Decimal | None = None
    per_kg_rate: Decimal | None = None
    commission_rate: Decimal | None = None
    currency: str | None = None


class CommissionRuleCreate(CamelModel):
    country: str = Field(min_length=1)
    min_value: Decimal
    max_value: Decimal | None = None
    percentage: Decimal
    fixed_fee: Decimal = Decimal("0")

    @field_validator("max_value", mode="before")
    @classmethod
    def _blank_max(cls, value):
        return _blank_to_none(value)


class CommissionRuleUpdate(CamelModel):
    country: str | None = None
    min_value: Decimal | None = None
    max_value: Decimal | None = None
    percentage: Decimal | None = None
    fixed_fee: Decimal | None = None

    @field_validator("max_value", mode="before")
    @classmethod
    def _blank_max(cls, value):
        return _blank_to_none(value)


class CategorySurchargeSet(CamelModel):
    category: str = Field(min_length=1)
    multiplier: Decimal
    country: str | None = None


def _rate_json(rate: ShippingRate) -> dict:
    return {
        "country": rate.country,
        "base_rate": money_json(rate.base_rate),
        "per_kg_rate": money_json(rate.per_kg_rate),
        "commission_rate": money_json(rate.commission_rate),
        "currency": rate.currency,
    }


def _rule_json(rule: CommissionRule) -> dict:
    return {
        "rule_id": rule.rule_id,
        "country": rule.country,
        "min_value": money_json(rule.min_value),
        "max_value": money_json(rule.max_value),
        "percentage": money_json(rule.percentage),
        "fixed_fee": money_json(rule.fixed_fee),
    }


def _surcharge_json(surcharge: CategorySurcharge) -> dict:
    return {
        "category": surcharge.category,
        "country": surcharge.country,
        "multiplier": money_json(surcharge.multiplier),
    }


@router.get("/shipping-rates")
def list_shipping_rates(rate_book: SqlRateBook = Depends(get_rate_book)):
    return [_rate_json(rate) for rate in rate_book.list_rates()]


@router.post("/shipping-rates", status_code=201)
def create_shipping_rate(request: ShippingRateCreate, rate_book: SqlRateBook = Depends(get_rate_book)):
    rate = rate_book.create_rate(
        request.country,
        request.base_rate,
        request.per_kg_rate,
        commission_rate=request.commission_rate,
        currency=request.currency,
    )
    return _rate_json(rate)


@router.put("/shipping-rates/{country}")
def update_shipping_rate(country: str, request: ShippingRateUpdate, rate_book: SqlRateBook = Depends(get_rate_book)):
    rate = rate_book.update_rate(country, **request.model_dump(exclude_unset=True))
    return _rate_json(rate)


@router.delete("/shipping-rates/{country}")
def delete_shipping_rate(country: str, rate_book: SqlRateBook = Depends(get_rate_book)):
    rate_book.delete_rate(country)
    return {"message": "Shipping rate deleted successfully"}


@router.get("/shipping-countries")
def list_shipping_countries(rate_book: SqlRateBook = Depends(get_rate_book)):
    return sorted({rate.country for rate in rate_book.list_rates()})


@router.get("/commission-rules")
def list_commission_rules(rate_book: SqlRateBook = Depends(get_rate_book)):
    return [_rule_json(rule) for rule in rate_book.list_commission_rules()]


@router.post("/commission-rules", status_code=201)
def create_commission_rule(request: CommissionRuleCreate, rate_book: SqlRateBook = Depends(get_rate_book)):
    rule = rate_book.create_commission_rule(
        request.country,
        request.min_value,
        request.max_value,
        request.percentage,
        fixed_fee=request.fixed_fee,
    )
    return _rule_json(rule)


@router.put("/commission-rules/{rule_id}")
def update_commission_rule(rule_id: str, request: CommissionRuleUpdate, rate_book: SqlRateBook = Depends(get_rate_book)):
    rule = rate_book.update_commission_rule(rule_id, **request.model_dump(exclude_unset=True))
    return _rule_json(rule)


@router.delete("/commission-rules/{rule_id}")
def delete_commission_rule(rule_id: str, rate_book: SqlRateBook = Depends(get_rate_book)):
    rate_book.delete_commission_rule(rule_id)
    return {"message": "Commission rule deleted successfully"}


@router.put("/category-surcharges")
def set_category_surcharge(request: CategorySurchargeSet, rate_book: SqlRateBook = Depends(get_rate_book)):
    surcharge = rate_book.set_category_multiplier(request.category, request.multiplier, country=request.country)
    return _surcharge_json(surcharge)
