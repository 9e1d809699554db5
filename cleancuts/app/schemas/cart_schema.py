"""
schemas/cart_schema.py — Marshmallow schemas for cart endpoints.

Validation responsibility:
  - This file: types and ranges of item_id, selected_size, quantity, price.
  - services/cart_service.py: item existence (ITEM_NOT_FOUND), line
    existence (CART_ITEM_NOT_FOUND), quantity < 1 on update (INVALID_QUANTITY).

Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class CartLineKeySchema(Schema):
    """Identifies one cart line. POST /cart/remove"""

    item_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="item_id must be a positive integer."),
    )

    # Portion size in grams; must be an integer, not a numeric string.
    selected_size = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="selected_size must be a positive integer."),
    )


class AddToCartSchema(CartLineKeySchema):
    """POST /cart/add"""

    quantity = fields.Int(
        load_default=1,
        strict=True,
        validate=validate.Range(min=1, error="quantity must be at least 1."),
    )
    price = fields.Decimal(
        load_default=None,
        allow_none=True,
        places=2,
        validate=validate.Range(min=0, error="price must not be negative."),
    )
    name = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=200))
    img = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=500))


class UpdateCartQuantitySchema(CartLineKeySchema):
    """
    POST /cart/update

    quantity < 1 is accepted here and rejected by the service after the line
    lookup, so an unknown line reports 404 before a bad quantity reports 400.
    """

    quantity = fields.Int(required=True, strict=True)
