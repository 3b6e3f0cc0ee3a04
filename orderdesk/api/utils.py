from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from orderdesk.domain.pricing.engine import PricingEngine
from orderdesk.domain.pricing.fx import MidRateTable
from orderdesk.persistence.pg import get_session
from orderdesk.persistence.rate_book import SqlRateBook


class CamelModel(BaseModel):
    """Request bodies accept camelCase keys as sent by the front office, or snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def money_json(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return format(value, "f")


def decimal_dict(obj: Any, *fields: str) -> dict[str, Any]:
    return {name: money_json(getattr(obj, name)) for name in fields}


def get_rate_book(session: Session = Depends(get_session)) -> SqlRateBook:
    return SqlRateBook(session)


def get_pricing_engine(rate_book: SqlRateBook = Depends(get_rate_book)) -> PricingEngine:
    return PricingEngine(rate_book, converter=MidRateTable.from_settings())
