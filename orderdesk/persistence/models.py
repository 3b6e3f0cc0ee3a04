from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _money():
    return Numeric(10, 2, asdecimal=True)


class Base(DeclarativeBase):
    pass


class ShippingRateModel(Base):
    __tablename__ = "shipping_rates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    country: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    base_rate: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    per_kg_rate: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4, asdecimal=True), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class CommissionRuleModel(Base):
    __tablename__ = "commission_rules"

    seq_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=_uuid)
    country: Mapped[str] = mapped_column(String(128), nullable=False)
    min_value: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    # NULL = no upper bound
    max_value: Mapped[Optional[Decimal]] = mapped_column(_money(), nullable=True)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 4, asdecimal=True), nullable=False)
    fixed_fee: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class CategorySurchargeModel(Base):
    __tablename__ = "category_surcharges"
    __table_args__ = (
        UniqueConstraint("category", "country", name="uq_category_surcharge_country"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    # NULL = applies to every country
    country: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(8, 4, asdecimal=True), nullable=False, default=Decimal("1"))


class OrderModel(Base):
    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    down_payment: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    remaining_balance: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    shipping_cost: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    shipping_weight: Mapped[Decimal] = mapped_column(Numeric(10, 3, asdecimal=True), nullable=False, default=Decimal("1"))
    shipping_country: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    shipping_category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # currency of every money column on the row, as quoted
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    commission: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    shipping_profit: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    items_profit: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    total_profit: Mapped[Decimal] = mapped_column(_money(), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items: Mapped[list["OrderItemModel"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.seq_id",
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    seq_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("orders.order_id", ondelete="CASCADE"),
        nullable=False,
    )
    product_name: Mapped[str] = mapped_column(String(256), nullable=False)
    product_code: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    original_price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    discounted_price: Mapped[Optional[Decimal]] = mapped_column(_money(), nullable=True)

    order: Mapped[OrderModel] = relationship(back_populates="items")


Index("ix_commission_rules_country_min", CommissionRuleModel.country, CommissionRuleModel.min_value)
Index("ix_orders_customer_created", OrderModel.customer_id, OrderModel.created_at)
