"""
services/cart_service.py — Per-user shopping cart.

Each user has at most one cart, created lazily on first mutation. A cart
line is identified by (item_id, selected_size); adding an existing line
increments its quantity.

Prices are passed through from the request (or the catalog when omitted).
No pricing logic happens here.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.models.cart import Cart, CartItem
from cleancuts.app.services import catalog_service


# ── Private helpers ────────────────────────────────────────────────────────

def _find_cart(user_id: int, session: Session) -> Cart | None:
    return session.execute(
        select(Cart).where(Cart.user_id == user_id)
    ).scalar_one_or_none()


def _get_or_create_cart(user_id: int, session: Session) -> Cart:
    cart = _find_cart(user_id, session)
    if cart is None:
        cart = Cart(user_id=user_id)
        session.add(cart)
        session.flush()
    return cart


def _find_line(cart: Cart, item_id: int, selected_size: int) -> CartItem | None:
    for line in cart.items:
        if line.item_id == item_id and line.selected_size == selected_size:
            return line
    return None


def _touch(cart: Cart, session: Session) -> None:
    cart.updated_at = datetime.now(timezone.utc)
    session.flush()


def _serialize_lines(cart: Cart | None) -> list[dict]:
    if cart is None:
        return []
    return [
        {
            "item_id": line.item_id,
            "selected_size": line.selected_size,
            "quantity": line.quantity,
            "price": line.price,
            "name": line.name,
            "img": line.img,
        }
        for line in cart.items
    ]


# ── Public service functions ───────────────────────────────────────────────

def get_cart(user_id: int, session: Session) -> list[dict]:
    """Returns the caller's cart lines; an empty list if they have no cart."""
    return _serialize_lines(_find_cart(user_id, session))


def add_item(user_id: int, data: dict, session: Session) -> list[dict]:
    """
    Adds `quantity` of (item_id, selected_size) to the cart.

    data keys: item_id, selected_size, quantity, and optionally price, name, img.
    Missing name/img/price default to the catalog item's values.

    Raises:
      AppError(INVALID_ITEM_ID, 400) / AppError(ITEM_NOT_FOUND, 404)
      AppError(INVALID_FIELD, 400) — no price given and the item has none.
    """
    item = catalog_service.get_item_or_404(data["item_id"], session)
    cart = _get_or_create_cart(user_id, session)

    line = _find_line(cart, item.id, data["selected_size"])
    if line is not None:
        line.quantity += data["quantity"]
    else:
        price = data.get("price")
        if price is None:
            price = item.price
        if price is None:
            raise AppError(
                ErrorCode.INVALID_FIELD,
                "A price is required for this item.",
                400,
                field="price",
            )
        cart.items.append(CartItem(
            item_id=item.id,
            selected_size=data["selected_size"],
            quantity=data["quantity"],
            price=price,
            name=data.get("name") or item.name,
            img=data.get("img") or item.img_url,
        ))

    _touch(cart, session)
    return _serialize_lines(cart)


def remove_item(
        user_id: int,
        item_id: int,
        selected_size: int,
        session: Session,
) -> list[dict]:
    """Removes the matching line. Removing an absent line is a no-op."""
    cart = _get_or_create_cart(user_id, session)
    line = _find_line(cart, item_id, selected_size)
    if line is not None:
        cart.items.remove(line)
    _touch(cart, session)
    return _serialize_lines(cart)


def update_quantity(
        user_id: int,
        item_id: int,
        selected_size: int,
        quantity: int,
        session: Session,
) -> list[dict]:
    """
    Sets the quantity of an existing line.

    Raises:
      AppError(CART_ITEM_NOT_FOUND, 404) — no such line in the cart.
      AppError(INVALID_QUANTITY, 400)    — quantity below 1.
    """
    cart = _get_or_create_cart(user_id, session)
    line = _find_line(cart, item_id, selected_size)
    if line is None:
        raise AppError(
            ErrorCode.CART_ITEM_NOT_FOUND,
            "Item not found in cart.",
            404,
        )
    if quantity < 1:
        raise AppError(
            ErrorCode.INVALID_QUANTITY,
            "Quantity must be at least 1.",
            400,
            field="quantity",
        )

    line.quantity = quantity
    _touch(cart, session)
    return _serialize_lines(cart)


def clear_cart(user_id: int, session: Session) -> list[dict]:
    cart = _get_or_create_cart(user_id, session)
    cart.items.clear()
    _touch(cart, session)
    return []
