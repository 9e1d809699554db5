"""
routes/orders.py — Checkout and order history route handlers.

The payment gateway client is read from app.extensions["payment_gateway"]
and handed to the service, so tests can install a fake.

Payment verification failure is persisted (payment_status FAILED) before
the 400 is raised: the commit happens here, then AppError propagates.

Endpoints (url_prefix=/api, all require an access token):
  POST   /orders/create   → 201
  POST   /orders/verify   → 200 | 400 INVALID_PAYMENT_SIGNATURE
  GET    /orders/me       → 200
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.extensions import db
from cleancuts.app.middleware.auth_middleware import require_auth
from cleancuts.app.schemas.order_schema import CreateOrderSchema, VerifyPaymentSchema
from cleancuts.app.services import order_service

orders_bp = Blueprint("orders", __name__)


@orders_bp.route("/orders/create", methods=["POST"])
@require_auth
def create_order():
    """POST /orders/create — Create the gateway order and a PENDING local order."""
    data = CreateOrderSchema().load(request.get_json(force=True, silent=True) or {})
    result = order_service.create_order(
        user_id=g.user_id,
        cart_items=data["cart_items"],
        schedule=data["schedule"],
        gateway=current_app.extensions["payment_gateway"],
        currency=current_app.config["PAYMENT_CURRENCY"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@orders_bp.route("/orders/verify", methods=["POST"])
@require_auth
def verify_payment():
    """POST /orders/verify — Check the checkout signature and settle the order."""
    data = VerifyPaymentSchema().load(request.get_json(force=True, silent=True) or {})
    order, verified = order_service.verify_payment(
        user_id=g.user_id,
        data=data,
        gateway=current_app.extensions["payment_gateway"],
        session=db.session,
    )
    db.session.commit()

    if not verified:
        raise AppError(
            ErrorCode.INVALID_PAYMENT_SIGNATURE,
            "Payment signature verification failed.",
            400,
        )
    return jsonify({"data": {"message": "Payment verified.", "order": order}, "warnings": []}), 200


@orders_bp.route("/orders/me", methods=["GET"])
@require_auth
def my_orders():
    """GET /orders/me — The caller's orders, newest first."""
    result = order_service.list_orders_for_user(user_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200
