from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.orm import Session

from orderdesk.api.utils import CamelModel, decimal_dict, get_pricing_engine, money_json
from orderdesk.core.money import ZERO
from orderdesk.domain.orders.aggregates import OrderItem
from orderdesk.domain.orders.projections import (
    customer_outstanding,
    distribute_customer_down_payment,
    get_order_row,
    load_customer_orders,
    place_order,
    recalculate_order_shipping,
    replace_order_items,
    set_order_down_payment,
)
from orderdesk.domain.pricing.engine import PricingEngine
from orderdesk.domain.pricing.staleness import items_fingerprint
from orderdesk.persistence.models import OrderModel
from orderdesk.persistence.pg import get_session

router = APIRouter(tags=["orders"])

ORDER_MONEY_FIELDS = (
    "total_amount",
    "down_payment",
    "remaining_balance",
    "shipping_cost",
    "commission",
    "items_profit",
    "shipping_profit",
    "total_profit",
)


class OrderItemIn(CamelModel):
    product_name: str = Field(min_length=1)
    quantity: int = Field(ge=0)
    original_price: Decimal = Field(ge=0)
    discounted_price: Decimal | None = Field(default=None, ge=0)
    product_code: str | None = None

    def to_item(self) -> OrderItem:
        return OrderItem(
            name=self.product_name,
            quantity=self.quantity,
            original_price=self.original_price,
            discounted_price=self.discounted_price,
            product_code=self.product_code,
        )


class QuoteEcho(CamelModel):
    """The `items_hash` and `order_value` returned by `POST /calculate-shipping`."""

    items_hash: str | None = None
    order_value: Decimal


class PlaceOrderRequest(CamelModel):
    customer_id: str = Field(min_length=1)
    items: list[OrderItemIn] = Field(min_length=1)
    shipping_country: str = Field(min_length=1)
    shipping_category: str = "normal"
    shipping_weight: Decimal = Decimal("1")
    currency: str | None = None
    quote: QuoteEcho | None = None


class ReplaceItemsRequest(CamelModel):
    items: list[OrderItemIn]


class RecalculateShippingRequest(CamelModel):
    country: str | None = None
    category: str | None = None
    weight: Decimal | None = None


class OrderDownPaymentRequest(CamelModel):
    down_payment: Decimal


class CustomerDownPaymentRequest(CamelModel):
    total_down_payment: Decimal


def _order_json(row: OrderModel) -> dict:
    return {
        "order_id": row.order_id,
        "customer_id": row.customer_id,
        "shipping_country": row.shipping_country,
        "shipping_category": row.shipping_category,
        "shipping_weight": money_json(row.shipping_weight),
        "currency": row.currency,
        **decimal_dict(row, *ORDER_MONEY_FIELDS),
        "items": [
            {
                "product_name": item.product_name,
                "product_code": item.product_code,
                "quantity": item.quantity,
                "original_price": money_json(item.original_price),
                "discounted_price": money_json(item.discounted_price),
            }
            for item in row.items
        ],
    }


@router.post("/orders", status_code=201)
def create_order(
    request: PlaceOrderRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
    session: Session = Depends(get_session),
):
    items = [item.to_item() for item in request.items]
    row, calculation = place_order(
        session,
        engine,
        customer_id=request.customer_id,
        items=items,
        shipping_country=request.shipping_country,
        shipping_category=request.shipping_category,
        shipping_weight=request.shipping_weight,
        currency=request.currency,
        quote=request.quote,
    )
    return {
        "order": _order_json(row),
        "shipping": calculation.to_public_dict(),
        "items_hash": items_fingerprint(items),
    }


@router.get("/orders/{order_id}")
def get_order(order_id: str, session: Session = Depends(get_session)):
    return _order_json(get_order_row(session, order_id))


@router.put("/orders/{order_id}/items")
def update_order_items(order_id: str, request: ReplaceItemsRequest, session: Session = Depends(get_session)):
    items = [item.to_item() for item in request.items]
    replace_order_items(session, order_id, items)
    return {
        "order": _order_json(get_order_row(session, order_id)),
        "items_hash": items_fingerprint(items),
    }


@router.post("/orders/{order_id}/recalculate-shipping")
def recalculate_shipping(
    order_id: str,
    request: RecalculateShippingRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
    session: Session = Depends(get_session),
):
    _, calculation = recalculate_order_shipping(
        session,
        engine,
        order_id,
        country=request.country,
        category=request.category,
        weight=request.weight,
    )
    return {
        "order": _order_json(get_order_row(session, order_id)),
        "shipping": calculation.to_public_dict(),
    }


@router.put("/orders/{order_id}/down-payment")
def update_order_down_payment(order_id: str, request: OrderDownPaymentRequest, session: Session = Depends(get_session)):
    return _order_json(set_order_down_payment(session, order_id, request.down_payment))


@router.get("/customers/{customer_id}/orders")
def list_customer_orders(customer_id: str, session: Session = Depends(get_session)):
    rows = load_customer_orders(session, customer_id)
    return {
        "customer_id": customer_id,
        "count": len(rows),
        "outstanding": money_json(customer_outstanding(session, customer_id)),
        "orders": [_order_json(row) for row in rows],
    }


@router.put("/customers/{customer_id}/down-payment")
def update_customer_down_payment(
    customer_id: str,
    request: CustomerDownPaymentRequest,
    session: Session = Depends(get_session),
):
    if not load_customer_orders(session, customer_id) and request.total_down_payment != ZERO:
        raise HTTPException(status_code=400, detail="customer has no orders to apply a down payment to")

    result = distribute_customer_down_payment(session, customer_id, request.total_down_payment)
    return {
        "customer_id": customer_id,
        "requested": money_json(result.requested),
        "applied": money_json(result.applied),
        "capped": result.capped,
        "warnings": result.warnings,
        "allocations": [
            {
                "order_id": allocation.order_id,
                "down_payment": money_json(allocation.down_payment),
                "remaining_balance": money_json(allocation.remaining_balance),
            }
            for allocation in result.allocations
        ],
        "outstanding": money_json(customer_outstanding(session, customer_id)),
    }
