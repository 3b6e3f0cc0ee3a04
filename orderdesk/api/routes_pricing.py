from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import Field

from orderdesk.api.utils import CamelModel, get_pricing_engine
from orderdesk.domain.pricing.engine import PricingEngine

router = APIRouter(tags=["pricing"])


class CalculateShippingRequest(CamelModel):
    country: str = Field(min_length=1)
    category: str = Field(min_length=1)
    weight: Decimal
    order_value: Decimal
    currency: str | None = None
    items_hash: str | None = None


@router.post("/calculate-shipping")
def calculate_shipping(
    request: CalculateShippingRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    calculation = engine.calculate_shipping(
        request.country,
        request.category,
        request.weight,
        request.order_value,
        items_hash=request.items_hash,
        currency=request.currency,
    )
    return {
        **calculation.to_public_dict(),
        "order_value": format(calculation.order_value, "f"),
        "items_hash": calculation.items_hash,
    }
