"""
models/cart.py — Cart and CartItem table definitions.

One cart per user (UNIQUE user_id). Cart lines are keyed by
(cart_id, item_id, selected_size): adding the same item in the same size
increments the existing line instead of creating a new one.

Prices are stored as sent by the client; no pricing logic lives here.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cleancuts.app.extensions import db


class Cart(db.Model):
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="cart",
    )

    items: Mapped[list["CartItem"]] = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Cart id={self.id} user_id={self.user_id}>"


class CartItem(db.Model):
    __tablename__ = "cart_items"

    __table_args__ = (
        UniqueConstraint(
            "cart_id", "item_id", "selected_size",
            name="uq_cart_items_line",
        ),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_cart_items_price_nonnegative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    cart_id: Mapped[int] = mapped_column(
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Portion size in grams.
    selected_size: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity:      Mapped[int] = mapped_column(Integer, nullable=False)
    price:         Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    name:          Mapped[str] = mapped_column(String(200), nullable=False)
    img:           Mapped[str | None] = mapped_column(String(500), nullable=True)

    cart: Mapped[Cart] = relationship("Cart", back_populates="items")

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<CartItem cart_id={self.cart_id} item_id={self.item_id} "
            f"size={self.selected_size} qty={self.quantity}>"
        )
