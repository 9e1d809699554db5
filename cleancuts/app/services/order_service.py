"""
services/order_service.py — Order lifecycle and payment verification.

Lifecycle:
  create   → gateway order created first, then local order PENDING / PLACED.
             If the gateway call fails no local order is written.
  verify   → signature matches   → PAID / CONFIRMED
             signature mismatches → FAILED (order status unchanged)
  admin    → order_status may be set to any OrderStatus value; every change
             is appended to the status timeline.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
    The payment gateway is passed in by the route.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusEvent,
    PaymentStatus,
)

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _order_total(cart_items: list[dict]) -> Decimal:
    return sum(
        (Decimal(line["price"]) * int(line["quantity"]) for line in cart_items),
        Decimal("0"),
    )


def _to_minor_units(amount: Decimal) -> int:
    """Rupees → paise, rounded half-up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _append_status(order: Order, status: OrderStatus) -> None:
    order.status_timeline.append(
        OrderStatusEvent(status=status.value, time=_utcnow())
    )


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _build_order_dict(order: Order, include_user: bool = False) -> dict:
    result = {
        "id": order.id,
        "user_id": order.user_id,
        "items": [
            {
                "item_id": line.item_id,
                "name": line.name,
                "img": line.img,
                "price": line.price,
                "selected_size": line.selected_size,
                "quantity": line.quantity,
            }
            for line in order.items
        ],
        "schedule": order.schedule,
        "total_amount": order.total_amount,
        "razorpay_order_id": order.razorpay_order_id,
        "payment_status": PaymentStatus(order.payment_status).value,
        "order_status": OrderStatus(order.order_status).value,
        "status_timeline": [
            {"status": event.status, "time": _isoformat(event.time)}
            for event in order.status_timeline
        ],
        "created_at": _isoformat(order.created_at),
        "updated_at": _isoformat(order.updated_at),
    }
    if include_user:
        user = order.user
        result["user"] = {
            "id": user.id,
            "name": user.name,
            "phone": user.phone,
            "email": user.email,
        } if user is not None else None
    return result


def _get_order_or_404(order_id: int, session: Session) -> Order:
    order = session.get(Order, order_id)
    if order is None:
        raise AppError(
            ErrorCode.ORDER_NOT_FOUND,
            "Order not found.",
            404,
        )
    return order


# ── Public service functions ───────────────────────────────────────────────

def create_order(
        user_id: int,
        cart_items: list[dict],
        schedule: str | None,
        gateway,
        currency: str,
        session: Session,
) -> dict:
    """
    Creates the gateway order and the matching local order.

    Raises:
      AppError(CART_EMPTY, 400)            — no cart items.
      AppError(INVALID_ORDER_AMOUNT, 400)  — total is not positive.
      AppError(PAYMENT_GATEWAY_ERROR, 500) — raised by the gateway.

    Returns: {"key", "amount", "currency", "razorpay_order_id", "local_order_id"}
    """
    if not cart_items:
        raise AppError(
            ErrorCode.CART_EMPTY,
            "Cart is empty.",
            400,
            field="cart_items",
        )

    total = _order_total(cart_items)
    if total <= 0:
        raise AppError(
            ErrorCode.INVALID_ORDER_AMOUNT,
            "Invalid order amount.",
            400,
        )

    amount = _to_minor_units(total)
    gateway_order = gateway.create_order(
        amount=amount,
        currency=currency,
        receipt=f"rcpt_{int(time.time() * 1000)}",
    )

    order = Order(
        user_id=user_id,
        schedule=schedule,
        total_amount=total,
        razorpay_order_id=gateway_order["id"],
        payment_status=PaymentStatus.PENDING,
        order_status=OrderStatus.PLACED,
    )
    for line in cart_items:
        order.items.append(OrderItem(
            item_id=str(line["item_id"]),
            name=line["name"],
            img=line.get("img"),
            price=Decimal(line["price"]),
            selected_size=line["selected_size"],
            quantity=line["quantity"],
        ))
    _append_status(order, OrderStatus.PLACED)

    session.add(order)
    session.flush()
    logger.info(
        "Order id=%s created for user id=%s (gateway order %s, %d minor units)",
        order.id, user_id, order.razorpay_order_id, amount,
    )

    return {
        "key": gateway.key_id,
        "amount": amount,
        "currency": currency,
        "razorpay_order_id": order.razorpay_order_id,
        "local_order_id": order.id,
    }


def verify_payment(
        user_id: int,
        data: dict,
        gateway,
        session: Session,
) -> tuple[dict, bool]:
    """
    Checks the checkout signature for one of the caller's orders.

    The signature must verify AND the gateway order id must be the one the
    local order was created with. On mismatch the order is marked FAILED;
    the route commits that before reporting the error.

    Raises:
      AppError(ORDER_NOT_FOUND, 404) — unknown order or not the caller's.

    Returns: (order dict, verified)
    """
    order = session.get(Order, data["local_order_id"])
    if order is None or order.user_id != user_id:
        raise AppError(
            ErrorCode.ORDER_NOT_FOUND,
            "Order not found.",
            404,
        )

    verified = (
        data["razorpay_order_id"] == order.razorpay_order_id
        and gateway.verify_signature(
            data["razorpay_order_id"],
            data["razorpay_payment_id"],
            data["razorpay_signature"],
        )
    )

    if verified:
        order.payment_status = PaymentStatus.PAID
        order.order_status = OrderStatus.CONFIRMED
        _append_status(order, OrderStatus.CONFIRMED)
        logger.info("Payment verified for order id=%s", order.id)
    else:
        order.payment_status = PaymentStatus.FAILED
        logger.warning("Invalid payment signature for order id=%s", order.id)

    session.flush()
    return _build_order_dict(order), verified


def list_orders_for_user(user_id: int, session: Session) -> list[dict]:
    """The caller's orders, newest first."""
    orders = session.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(selectinload(Order.items), selectinload(Order.status_timeline))
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).scalars().all()
    return [_build_order_dict(o) for o in orders]


def list_all_orders(session: Session) -> list[dict]:
    """Every order with its owner's contact details, newest first. Admin only."""
    orders = session.execute(
        select(Order)
        .options(
            selectinload(Order.items),
            selectinload(Order.status_timeline),
            selectinload(Order.user),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).scalars().all()
    return [_build_order_dict(o, include_user=True) for o in orders]


def update_order_status(order_id: int, status: str, session: Session) -> dict:
    """
    Sets an order's fulfilment status. Admin only.

    Raises:
      AppError(INVALID_ORDER_STATUS, 400) — not an OrderStatus value.
      AppError(ORDER_NOT_FOUND, 404)
    """
    try:
        new_status = OrderStatus(status)
    except ValueError:
        raise AppError(
            ErrorCode.INVALID_ORDER_STATUS,
            "Invalid status.",
            400,
            field="status",
        )

    order = _get_order_or_404(order_id, session)
    order.order_status = new_status
    _append_status(order, new_status)
    session.flush()
    logger.info("Order id=%s status set to %s", order.id, new_status.value)

    return _build_order_dict(order)
