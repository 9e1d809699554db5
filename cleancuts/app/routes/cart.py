"""
routes/cart.py — Cart route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Every endpoint returns the caller's full cart afterwards as data.items.

Endpoints (url_prefix=/api, all require an access token):
  GET    /cart          → 200
  POST   /cart/add      → 200
  POST   /cart/remove   → 200
  POST   /cart/update   → 200
  POST   /cart/clear    → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from cleancuts.app.extensions import db, limiter
from cleancuts.app.middleware.auth_middleware import require_auth
from cleancuts.app.middleware.rate_limit import limit_for
from cleancuts.app.schemas.cart_schema import (
    AddToCartSchema,
    CartLineKeySchema,
    UpdateCartQuantitySchema,
)
from cleancuts.app.services import cart_service

cart_bp = Blueprint("cart", __name__)


def _cart_response(lines: list[dict]):
    return jsonify({"data": {"items": lines}, "warnings": []}), 200


@cart_bp.route("/cart", methods=["GET"])
@limiter.limit(limit_for("auth"))
@require_auth
def get_cart():
    """GET /cart — The caller's cart lines."""
    result = cart_service.get_cart(user_id=g.user_id, session=db.session)
    return _cart_response(result)


@cart_bp.route("/cart/add", methods=["POST"])
@limiter.limit(limit_for("auth"))
@require_auth
def add_to_cart():
    """POST /cart/add — Add a line, or increment it if already present."""
    data = AddToCartSchema().load(request.get_json(force=True, silent=True) or {})
    result = cart_service.add_item(user_id=g.user_id, data=data, session=db.session)
    db.session.commit()
    return _cart_response(result)


@cart_bp.route("/cart/remove", methods=["POST"])
@limiter.limit(limit_for("auth"))
@require_auth
def remove_from_cart():
    """POST /cart/remove — Drop the matching line. No-op if absent."""
    data = CartLineKeySchema().load(request.get_json(force=True, silent=True) or {})
    result = cart_service.remove_item(
        user_id=g.user_id,
        item_id=data["item_id"],
        selected_size=data["selected_size"],
        session=db.session,
    )
    db.session.commit()
    return _cart_response(result)


@cart_bp.route("/cart/update", methods=["POST"])
@limiter.limit(limit_for("auth"))
@require_auth
def update_cart():
    """POST /cart/update — Set the quantity of an existing line."""
    data = UpdateCartQuantitySchema().load(request.get_json(force=True, silent=True) or {})
    result = cart_service.update_quantity(
        user_id=g.user_id,
        item_id=data["item_id"],
        selected_size=data["selected_size"],
        quantity=data["quantity"],
        session=db.session,
    )
    db.session.commit()
    return _cart_response(result)


@cart_bp.route("/cart/clear", methods=["POST"])
@limiter.limit(limit_for("auth"))
@require_auth
def clear_cart():
    """POST /cart/clear — Remove every line."""
    result = cart_service.clear_cart(user_id=g.user_id, session=db.session)
    db.session.commit()
    return _cart_response(result)
