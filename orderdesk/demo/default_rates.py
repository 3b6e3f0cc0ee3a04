from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from orderdesk.persistence.rate_book import SqlRateBook

DEFAULT_SHIPPING_RATES: tuple[dict[str, Any], ...] = (
    {"country": "China", "base_rate": Decimal("25.00"), "per_kg_rate": Decimal("8.00"), "commission_rate": Decimal("0.1800")},
    {"country": "Turkey", "base_rate": Decimal("30.00"), "per_kg_rate": Decimal("12.00"), "commission_rate": Decimal("0.2000")},
    {"country": "UK", "base_rate": Decimal("35.00"), "per_kg_rate": Decimal("15.00"), "commission_rate": Decimal("0.1500")},
    {"country": "UAE", "base_rate": Decimal("40.00"), "per_kg_rate": Decimal("18.00"), "commission_rate": Decimal("0.1200")},
)


def seed_default_rates(session: Session) -> dict[str, Any]:
    """Insert the starter rate table, but only into an empty one."""
    rate_book = SqlRateBook(session)
    if rate_book.list_rates():
        return {"seeded_now": False, "countries": [rate.country for rate in rate_book.list_rates()]}

    created = [rate_book.create_rate(currency="USD", **row) for row in DEFAULT_SHIPPING_RATES]
    return {"seeded_now": True, "countries": [rate.country for rate in created]}
