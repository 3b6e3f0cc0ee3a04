from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from orderdesk.core.money import ZERO, d, money, non_negative


@dataclass
class OrderItem:
    name: str
    quantity: int
    original_price: Decimal
    discounted_price: Decimal | None = None
    product_code: str | None = None

    @property
    def line_total(self) -> Decimal:
        return d(self.original_price, "original_price") * self.quantity

    @property
    def markup_profit(self) -> Decimal:
        cost = self.discounted_price if self.discounted_price is not None else ZERO
        return (d(self.original_price, "original_price") - d(cost, "discounted_price")) * self.quantity


@dataclass(frozen=True)
class OrderTotals:
    items_subtotal: Decimal
    total_amount: Decimal
    items_profit: Decimal
    shipping_profit: Decimal
    total_profit: Decimal


@dataclass
class OrderAggregate:
    order_id: str
    customer_id: str
    total_amount: Decimal = ZERO
    down_payment: Decimal = ZERO
    remaining_balance: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    commission: Decimal = ZERO
    items_profit: Decimal = ZERO
    shipping_profit: Decimal = ZERO
    total_profit: Decimal = ZERO
    created_at: datetime | None = None
    items: list[OrderItem] = field(default_factory=list)

    def apply_totals(self, totals: OrderTotals) -> None:
        self.total_amount = totals.total_amount
        self.items_profit = totals.items_profit
        self.shipping_profit = totals.shipping_profit
        self.total_profit = totals.total_profit
        self.down_payment, self.remaining_balance = settle_balance(self.total_amount, self.down_payment)


def settle_balance(total_amount, down_payment) -> tuple[Decimal, Decimal]:
    """Down payment clamped to the total, and the balance left after it."""
    total = money(total_amount)
    paid = min(max(money(down_payment), ZERO), total)
    return paid, total - paid


def recompute_order_totals(items: Iterable[OrderItem], shipping_cost, commission) -> OrderTotals:
    items = list(items)
    for item in items:
        non_negative(item.quantity, f"quantity of {item.name!r}")
    shipping = non_negative(shipping_cost, "shipping_cost")
    fee = non_negative(commission, "commission")

    items_subtotal = money(sum((item.line_total for item in items), ZERO))
    items_profit = money(sum((item.markup_profit for item in items), ZERO))
    shipping_profit = money(fee)

    return OrderTotals(
        items_subtotal=items_subtotal,
        total_amount=items_subtotal + money(shipping) + shipping_profit,
        items_profit=items_profit,
        shipping_profit=shipping_profit,
        total_profit=items_profit + shipping_profit,
    )
