"""
errors.py — AppError base class and error code registry.

Every error returned by the CleanCuts API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Auth failures are deliberately uninformative: the same code and message
    for "unknown phone" and "wrong password", and for "unknown", "revoked"
    and "rotated" refresh tokens.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Validation Errors (400) ────────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_ITEM_ID            = "INVALID_ITEM_ID"
    SEARCH_QUERY_TOO_LONG      = "SEARCH_QUERY_TOO_LONG"
    INVALID_QUANTITY           = "INVALID_QUANTITY"
    CART_EMPTY                 = "CART_EMPTY"
    INVALID_ORDER_AMOUNT       = "INVALID_ORDER_AMOUNT"
    INVALID_ORDER_STATUS       = "INVALID_ORDER_STATUS"
    INVALID_PAYMENT_SIGNATURE  = "INVALID_PAYMENT_SIGNATURE"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_PHONE            = "DUPLICATE_PHONE"
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    ITEM_NOT_FOUND             = "ITEM_NOT_FOUND"
    CART_ITEM_NOT_FOUND        = "CART_ITEM_NOT_FOUND"
    ORDER_NOT_FOUND            = "ORDER_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = no credential was presented (or the credential is wrong at login)
    # 403 = a credential was presented but it is invalid, expired, revoked,
    #       or does not grant access to the route
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    REFRESH_TOKEN_MISSING      = "REFRESH_TOKEN_MISSING"  # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 403
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 403
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 403
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── Throttling (429) ───────────────────────────────────────────────────
    RATE_LIMITED               = "RATE_LIMITED"

    # ── Dependency / System Errors (500) ───────────────────────────────────
    DEPENDENCY_UNAVAILABLE     = "DEPENDENCY_UNAVAILABLE"
    PAYMENT_GATEWAY_ERROR      = "PAYMENT_GATEWAY_ERROR"
    INTERNAL_ERROR             = "INTERNAL_ERROR"
