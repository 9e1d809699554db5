"""
models/order.py — Order, OrderItem and OrderStatusEvent table definitions.

No business logic. No imports from services or routes.

Key design points:
  - Order lines are a snapshot of the cart at checkout time; they do not
    reference the cart and survive catalog changes.
  - `total_amount` is in rupees (Numeric(12, 2)); the gateway is sent paise.
  - PaymentStatus and OrderStatus are Python enums stored by value as
    VARCHAR (native_enum=False), so the same schema works on PostgreSQL
    and SQLite.
  - Every order status change appends an OrderStatusEvent (the timeline).
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cleancuts.app.extensions import db


# ── Enum Definitions ───────────────────────────────────────────────────────

class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID    = "PAID"
    FAILED  = "FAILED"


class OrderStatus(str, enum.Enum):
    PLACED           = "PLACED"
    CONFIRMED        = "CONFIRMED"
    PACKED           = "PACKED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED        = "DELIVERED"
    CANCELLED        = "CANCELLED"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values, not member names."""
    return [member.value for member in enum_cls]


# ── Models ─────────────────────────────────────────────────────────────────

class Order(db.Model):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE RESTRICT: a user with orders cannot be deleted.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Delivery slot chosen at checkout, e.g. "Evening 6-8 PM".
    schedule: Mapped[str | None] = mapped_column(String(100), nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    razorpay_order_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )

    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            name="payment_status_enum",
            values_callable=_enum_values,
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    order_status: Mapped[OrderStatus] = mapped_column(
        Enum(
            OrderStatus,
            name="order_status_enum",
            values_callable=_enum_values,
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=OrderStatus.PLACED,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="orders",
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    status_timeline: Mapped[list["OrderStatusEvent"]] = relationship(
        "OrderStatusEvent",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusEvent.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Order id={self.id} user_id={self.user_id} "
            f"payment={self.payment_status} status={self.order_status}>"
        )


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Catalog id at checkout time. Not a foreign key: the line is a snapshot.
    item_id:       Mapped[str] = mapped_column(String(64), nullable=False)
    name:          Mapped[str] = mapped_column(String(200), nullable=False)
    img:           Mapped[str | None] = mapped_column(String(500), nullable=True)
    price:         Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    selected_size: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity:      Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped[Order] = relationship("Order", back_populates="items")


class OrderStatusEvent(db.Model):
    __tablename__ = "order_status_events"

    id: Mapped[int] = mapped_column(primary_key=True)

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(String(20), nullable=False)

    time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    order: Mapped[Order] = relationship("Order", back_populates="status_timeline")
