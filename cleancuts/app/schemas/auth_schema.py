"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: presence, field types, lengths, formats.
  - services/auth_service.py: DUPLICATE_PHONE / DUPLICATE_EMAIL checks
    (cross-entity: require a DB lookup — not a schema concern).

Refresh and logout take no body: the refresh token travels only in its
HTTP-only cookie, so there is no schema for it.

IMPORTANT: All schemas inherit from marshmallow.Schema directly so they can
           be loaded in unit tests without a Flask app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

PHONE_PATTERN = r"^\+?[0-9]{7,15}$"
MIN_PASSWORD_LENGTH = 8
# bcrypt only accepts the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    validate.Length(min=1) alone would accept "   ".
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _validate_password_bytes(value: str) -> None:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded."
        )


class RegisterSchema(Schema):
    """
    POST /register

    Field rules:
      name     : required, non-blank, max 100 chars
      email    : valid email format
      phone    : 7–15 digits, optional leading '+'
      password : min 8 chars, max 72 bytes (UTF-8)
      tower    : required, non-blank (delivery address)
      flat     : required, non-blank (delivery address)

    Uniqueness of phone and email is enforced in auth_service.py.
    """

    name = fields.Str(
        required=True,
        validate=[validate.Length(max=100), _validate_non_empty_after_trim],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    phone = fields.Str(
        required=True,
        validate=validate.Regexp(
            PHONE_PATTERN,
            error="Phone must contain 7 to 15 digits, optionally prefixed with '+'.",
        ),
    )

    password = fields.Str(
        required=True,
        load_only=True,
        validate=[
            validate.Length(
                min=MIN_PASSWORD_LENGTH,
                error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
            ),
            _validate_password_bytes,
        ],
    )

    tower = fields.Str(
        required=True,
        validate=[validate.Length(max=50), _validate_non_empty_after_trim],
    )

    flat = fields.Str(
        required=True,
        validate=[validate.Length(max=50), _validate_non_empty_after_trim],
    )


class LoginSchema(Schema):
    """
    POST /login

    Accepts phone + password. Credential correctness is checked in
    auth_service.py (INVALID_CREDENTIALS, 401).
    """

    phone = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))


class UpdateAddressSchema(Schema):
    """
    PATCH /me

    Delivery address is the only part of a user that may change after
    registration. At least one field must be supplied.
    """

    tower = fields.Str(validate=[validate.Length(max=50), _validate_non_empty_after_trim])
    flat = fields.Str(validate=[validate.Length(max=50), _validate_non_empty_after_trim])

    @validates_schema
    def require_one_field(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one of: tower, flat.")
