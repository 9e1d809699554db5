"""
middleware/auth_middleware.py — Access-token admission gate.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies signature, expiry and token type via
     auth_service.verify_access_token — no database lookup
  3. Attaches user_id (int) and phone to flask.g for the duration of the request

The @require_admin decorator additionally requires the token's phone to equal
the configured ADMIN_PHONE.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header, or no token in it
  TOKEN_INVALID  (403) — wrong scheme, bad signature, wrong type, bad payload
  TOKEN_EXPIRED  (403) — valid token but exp claim is in the past
  FORBIDDEN      (403) — authenticated but not the admin (require_admin)
"""

from __future__ import annotations

import functools
import hmac
from typing import Callable

from flask import current_app, g, request

from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.services.auth_service import verify_access_token


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces access-token authentication.

    Usage:
        @bp.route("/me")
        @require_auth
        def me():
            user_id = g.user_id  # always an int when this runs
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_admin(f: Callable) -> Callable:
    """Route decorator: require_auth plus the ADMIN_PHONE check."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        _require_admin_phone()
        return f(*args, **kwargs)

    return decorated


def _authenticate_request() -> None:
    """
    Performs the access-token check and sets flask.g.user_id / flask.g.phone.

    Raises AppError on any authentication failure (never returns a response
    directly — error propagates to the global Flask error handler).
    """
    auth_header = request.headers.get("Authorization", "").strip()
    parts = auth_header.split()

    if not parts or (len(parts) == 1 and parts[0].lower() == "bearer"):
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Access token missing.",
            401,
        )

    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            403,
        )

    identity = verify_access_token(
        parts[1],
        current_app.config["JWT_SECRET_KEY"],
        current_app.config.get("JWT_ALGORITHM", "HS256"),
    )

    g.user_id = identity["user_id"]
    g.phone = identity["phone"]


def _require_admin_phone() -> None:
    admin_phone = current_app.config.get("ADMIN_PHONE") or ""
    phone = str(getattr(g, "phone", "") or "")
    if not admin_phone or not hmac.compare_digest(phone, str(admin_phone)):
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Admin access only.",
            403,
        )
