from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from orderdesk.core.errors import OrderNotFoundError, ReconciliationError, StaleCalculationError
from orderdesk.core.money import ZERO, d, money, non_negative, weight_kg
from orderdesk.domain.orders.aggregates import (
    OrderAggregate,
    OrderItem,
    OrderTotals,
    recompute_order_totals,
    settle_balance,
)
from orderdesk.domain.pricing.engine import PricingEngine, ShippingCalculation
from orderdesk.domain.pricing.staleness import QuotedCalculation, is_stale, items_order_value
from orderdesk.persistence.models import OrderItemModel, OrderModel
from orderdesk.reconciliation.allocation import AllocationResult, distribute_down_payment
from orderdesk.reconciliation.rules import run_allocation_checks

logger = logging.getLogger(__name__)


def item_from_row(row: OrderItemModel) -> OrderItem:
    return OrderItem(
        name=row.product_name,
        quantity=row.quantity,
        original_price=d(row.original_price),
        discounted_price=d(row.discounted_price) if row.discounted_price is not None else None,
        product_code=row.product_code,
    )


def order_from_row(row: OrderModel) -> OrderAggregate:
    return OrderAggregate(
        order_id=row.order_id,
        customer_id=row.customer_id,
        total_amount=d(row.total_amount),
        down_payment=d(row.down_payment),
        remaining_balance=d(row.remaining_balance),
        shipping_cost=d(row.shipping_cost),
        commission=d(row.commission),
        items_profit=d(row.items_profit),
        shipping_profit=d(row.shipping_profit),
        total_profit=d(row.total_profit),
        created_at=row.created_at,
        items=[item_from_row(item) for item in row.items],
    )


def get_order_row(session: Session, order_id: str) -> OrderModel:
    # Session autoflush is disabled globally; flush so rows added earlier in
    # the same unit of work are visible to the lookup.
    session.flush()
    row = session.get(OrderModel, order_id)
    if row is None:
        raise OrderNotFoundError(order_id)
    return row


def load_customer_orders(session: Session, customer_id: str) -> list[OrderModel]:
    session.flush()
    stmt = (
        select(OrderModel)
        .where(OrderModel.customer_id == customer_id)
        .order_by(OrderModel.created_at.asc(), OrderModel.order_id.asc())
    )
    return list(session.scalars(stmt).all())


def _write_totals(row: OrderModel, totals: OrderTotals) -> None:
    row.total_amount = totals.total_amount
    row.items_profit = totals.items_profit
    row.shipping_profit = totals.shipping_profit
    row.total_profit = totals.total_profit
    row.down_payment, row.remaining_balance = settle_balance(totals.total_amount, row.down_payment)


def _write_items(session: Session, row: OrderModel, items: Iterable[OrderItem]) -> None:
    row.items.clear()
    session.flush()
    for item in items:
        row.items.append(
            OrderItemModel(
                product_name=item.name,
                product_code=item.product_code,
                quantity=item.quantity,
                original_price=money(item.original_price),
                discounted_price=money(item.discounted_price) if item.discounted_price is not None else None,
            )
        )


def _write_shipping(row: OrderModel, calculation: ShippingCalculation) -> None:
    row.shipping_cost = calculation.base_shipping
    row.commission = calculation.commission
    row.shipping_country = calculation.country
    row.shipping_category = calculation.category
    row.shipping_weight = calculation.weight
    row.currency = calculation.currency


def place_order(
    session: Session,
    engine: PricingEngine,
    customer_id: str,
    items: list[OrderItem],
    shipping_country: str,
    shipping_category: str,
    shipping_weight: Any,
    order_id: str | None = None,
    created_at: datetime | None = None,
    currency: str | None = None,
    quote: QuotedCalculation | None = None,
) -> tuple[OrderModel, ShippingCalculation]:
    """
    Price and store a new order.

    `quote` is the calculation the caller showed the customer. If the items
    changed since it was produced, the order is refused rather than
    finalized on figures that no longer apply.
    """
    if quote is not None and is_stale(quote, items):
        raise StaleCalculationError("items changed since the shipping quote was calculated; recalculate first")

    calculation = engine.calculate_shipping(
        shipping_country,
        shipping_category,
        weight_kg(shipping_weight),
        items_order_value(items),
        currency=currency,
    )
    totals = recompute_order_totals(items, calculation.base_shipping, calculation.commission)

    row = OrderModel(customer_id=customer_id, down_payment=ZERO)
    if order_id is not None:
        row.order_id = order_id
    if created_at is not None:
        row.created_at = created_at
    session.add(row)
    _write_items(session, row, items)
    _write_shipping(row, calculation)
    _write_totals(row, totals)
    session.flush()
    logger.info("order placed: order_id=%s customer_id=%s total=%s", row.order_id, customer_id, row.total_amount)
    return row, calculation


def replace_order_items(session: Session, order_id: str, items: list[OrderItem]) -> OrderTotals:
    row = get_order_row(session, order_id)
    _write_items(session, row, items)
    totals = recompute_order_totals(items, row.shipping_cost, row.commission)
    _write_totals(row, totals)
    session.flush()
    return totals


def recalculate_order_shipping(
    session: Session,
    engine: PricingEngine,
    order_id: str,
    country: str | None = None,
    category: str | None = None,
    weight: Any = None,
) -> tuple[OrderTotals, ShippingCalculation]:
    row = get_order_row(session, order_id)
    items = [item_from_row(item) for item in row.items]
    # item prices are in the order's currency, so quote in it again
    calculation = engine.calculate_shipping(
        country or row.shipping_country or "",
        category or row.shipping_category or "normal",
        weight_kg(row.shipping_weight if weight is None else weight),
        items_order_value(items),
        currency=row.currency,
    )
    _write_shipping(row, calculation)
    totals = recompute_order_totals(items, calculation.base_shipping, calculation.commission)
    _write_totals(row, totals)
    session.flush()
    return totals, calculation


def set_order_down_payment(session: Session, order_id: str, down_payment: Any) -> OrderModel:
    row = get_order_row(session, order_id)
    row.down_payment, row.remaining_balance = settle_balance(
        row.total_amount, non_negative(down_payment, "down_payment")
    )
    session.flush()
    return row


def apply_down_payment_allocations(session: Session, result: AllocationResult) -> None:
    for allocation in result.allocations:
        row = get_order_row(session, allocation.order_id)
        row.down_payment = allocation.down_payment
        row.remaining_balance = allocation.remaining_balance
    session.flush()


def distribute_customer_down_payment(session: Session, customer_id: str, total_down_payment: Any) -> AllocationResult:
    orders = [order_from_row(row) for row in load_customer_orders(session, customer_id)]
    result = distribute_down_payment(orders, total_down_payment)
    for warning in result.warnings:
        logger.warning("customer_id=%s: %s", customer_id, warning)
    amounts = {order.order_id: order.total_amount for order in orders}
    failed = [check for check in run_allocation_checks(result, amounts) if not check.passed]
    if failed:
        for check in failed:
            logger.error("allocation check failed: customer_id=%s rule=%s %s", customer_id, check.rule, check.detail)
        raise ReconciliationError(f"down payment allocation failed {len(failed)} check(s) for customer_id={customer_id}")
    apply_down_payment_allocations(session, result)
    logger.info(
        "down payment distributed: customer_id=%s orders=%s applied=%s",
        customer_id,
        len(result.allocations),
        result.applied,
    )
    return result


def customer_outstanding(session: Session, customer_id: str) -> Decimal:
    return sum((d(row.remaining_balance) for row in load_customer_orders(session, customer_id)), ZERO)
