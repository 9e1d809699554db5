"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

No business logic here. No DB queries.
AppError propagates to the global error handler in app/__init__.py; routes
never catch it.

The refresh token never appears in a response body. It travels only in the
HTTP-only cookie set and cleared by the helpers below.

Endpoints (url_prefix=/api):
  POST   /register       → 201
  POST   /login          → 200  sets refresh cookie
  POST   /refresh-token  → 200  rotates refresh cookie
  POST   /logout         → 200  clears refresh cookie
  GET    /me             → 200
  PATCH  /me             → 200  update delivery address
"""

from __future__ import annotations

from flask import Blueprint, Response, current_app, g, jsonify, request

from cleancuts.app.extensions import db, limiter
from cleancuts.app.middleware.auth_middleware import require_auth
from cleancuts.app.middleware.rate_limit import limit_for
from cleancuts.app.schemas.auth_schema import LoginSchema, RegisterSchema, UpdateAddressSchema
from cleancuts.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


# ── Cookie helpers ─────────────────────────────────────────────────────────

def _read_refresh_cookie() -> str | None:
    return request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])


def _set_refresh_cookie(response: Response, token: str) -> None:
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        token,
        max_age=int(cfg["JWT_REFRESH_TOKEN_EXPIRES"].total_seconds()),
        path=cfg["REFRESH_COOKIE_PATH"],
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


def _clear_refresh_cookie(response: Response) -> None:
    # Attributes must match the ones used when setting, or browsers keep it.
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=cfg["REFRESH_COOKIE_PATH"],
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


# ── Routes ─────────────────────────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
@limiter.limit(limit_for("auth"))
def register():
    """POST /register — Create account. Does not log in."""
    data = RegisterSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.register_user(
        name=data["name"],
        email=data["email"],
        phone=data["phone"],
        password=data["password"],
        tower=data["tower"],
        flat=data["flat"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(limit_for("auth"))
def login():
    """POST /login — Authenticate; access token in the body, refresh token in a cookie."""
    data = LoginSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.login_user(
        phone=data["phone"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()

    response = jsonify({
        "data": {
            "message": "Login successful.",
            "access_token": result["access_token"],
            "user": result["user"],
        },
        "warnings": [],
    })
    _set_refresh_cookie(response, result["refresh_token"])
    return response, 200


@auth_bp.route("/refresh-token", methods=["POST"])
@limiter.limit(limit_for("refresh"))
def refresh_token():
    """POST /refresh-token — Rotate the refresh cookie; return a new access token."""
    result = auth_service.rotate_refresh_token(
        raw_refresh_token=_read_refresh_cookie(),
        session=db.session,
    )
    db.session.commit()

    response = jsonify({
        "data": {"access_token": result["access_token"]},
        "warnings": [],
    })
    _set_refresh_cookie(response, result["refresh_token"])
    return response, 200


@auth_bp.route("/logout", methods=["POST"])
@limiter.limit(limit_for("auth"))
def logout():
    """POST /logout — Revoke the refresh cookie's token (if any) and clear it. Always 200."""
    auth_service.logout_user(
        raw_refresh_token=_read_refresh_cookie(),
        session=db.session,
    )
    db.session.commit()

    response = jsonify({"data": {"message": "Logged out successfully."}, "warnings": []})
    _clear_refresh_cookie(response)
    return response, 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /me — Return current user profile. (Auth required.)"""
    result = auth_service.get_current_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/me", methods=["PATCH"])
@require_auth
def update_me():
    """PATCH /me — Update tower / flat. (Auth required.)"""
    data = UpdateAddressSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.update_address(
        user_id=g.user_id,
        changes=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
