"""
schemas/order_schema.py — Marshmallow schemas for order and payment endpoints.

Validation responsibility:
  - This file: shape of the checkout payload and of the payment callback.
  - services/order_service.py: CART_EMPTY, INVALID_ORDER_AMOUNT, order
    ownership, signature verification, status values.

Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class OrderLineSchema(Schema):
    """One line of the checkout cart, as the storefront sends it."""

    item_id = fields.Raw(required=True)
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    img = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=500))
    price = fields.Decimal(
        required=True,
        places=2,
        validate=validate.Range(min=0, error="price must not be negative."),
    )
    selected_size = fields.Int(required=True, strict=True, validate=validate.Range(min=1))
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=1))


class CreateOrderSchema(Schema):
    """
    POST /orders/create

    An empty cart_items list passes the schema; the service reports it as
    CART_EMPTY so the client gets a specific code.
    """

    cart_items = fields.List(fields.Nested(OrderLineSchema), required=True)
    schedule = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))


class VerifyPaymentSchema(Schema):
    """POST /orders/verify — the checkout callback fields."""

    local_order_id = fields.Int(required=True, validate=validate.Range(min=1))
    razorpay_order_id = fields.Str(required=True, validate=validate.Length(min=1))
    razorpay_payment_id = fields.Str(required=True, validate=validate.Length(min=1))
    razorpay_signature = fields.Str(required=True, validate=validate.Length(min=1))


class UpdateOrderStatusSchema(Schema):
    """PATCH /admin/orders/:id/status — value checked in the service."""

    status = fields.Str(required=True)
