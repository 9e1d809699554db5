"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, which allows:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to load the metadata without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Initialise extensions (SQLAlchemy, Flask-Limiter) via init_app()
  3. Build the per-app components kept on app.extensions:
       catalog_cache    TTLCache for catalog reads
       payment_gateway  Razorpay client
       token_sweeper    background refresh-token sweep (started by wsgi.py)
  4. Register all route blueprints under /api
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register CORS and security headers, the sweep-tokens CLI command and
     the GET / liveness route
  7. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)

Note on model imports:
  All model modules are imported inside create_app() so that SQLAlchemy's
  metadata is populated before Alembic or db.create_all() inspects it.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

import click
from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_limiter.errors import RateLimitExceeded
from marshmallow import ValidationError
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from cleancuts.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.
# Prices and order totals are serialised as strings to preserve precision.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("249.00") → "249.00" (not 249.0)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    # Service loggers live under cleancuts.app.* and propagate to app.logger.
    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    if app.config.get("TRUST_PROXY"):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from cleancuts.app.extensions import db, limiter
    db.init_app(app)
    limiter.init_app(app)

    _register_components(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from cleancuts.app.models import (  # noqa: F401
            cart,
            item,
            order,
            refresh_token,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)
    _register_security_headers(app)
    _register_cli(app)

    @app.route("/", methods=["GET"])
    def liveness():
        return jsonify({"data": {"status": "ok"}, "warnings": []}), 200

    return app


def _register_components(app: Flask) -> None:
    """Builds the replaceable per-app components stored on app.extensions."""
    from cleancuts.app.cache import TTLCache
    from cleancuts.app.services.payment_gateway import RazorpayGateway
    from cleancuts.app.services.token_sweeper import TokenSweeper

    app.extensions["catalog_cache"] = TTLCache(
        ttl=app.config["CATALOG_CACHE_TTL_SECONDS"],
        max_entries=app.config["CATALOG_CACHE_MAX_ENTRIES"],
    )
    app.extensions["payment_gateway"] = RazorpayGateway(
        key_id=app.config["RAZORPAY_KEY_ID"],
        key_secret=app.config["RAZORPAY_KEY_SECRET"],
        api_base=app.config["RAZORPAY_API_BASE"],
        timeout=app.config["PAYMENT_GATEWAY_TIMEOUT"],
    )
    app.extensions["token_sweeper"] = TokenSweeper(app)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api prefix.

    Blueprint names match the route files in app/routes/. Each route file
    spells out its resource path (e.g. "/items/<item_id>").
    """
    from cleancuts.app.routes.admin import admin_bp
    from cleancuts.app.routes.auth import auth_bp
    from cleancuts.app.routes.cart import cart_bp
    from cleancuts.app.routes.items import items_bp
    from cleancuts.app.routes.orders import orders_bp

    app.register_blueprint(auth_bp,   url_prefix="/api")
    app.register_blueprint(items_bp,  url_prefix="/api")
    app.register_blueprint(cart_bp,   url_prefix="/api")
    app.register_blueprint(orders_bp, url_prefix="/api")
    app.register_blueprint(admin_bp,  url_prefix="/api")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError          → structured JSON error envelope with the correct status
      ValidationError   → marshmallow schema errors as MISSING_FIELD /
                          INVALID_FIELD responses (400)
      RateLimitExceeded → RATE_LIMITED (429)
      OperationalError  → DEPENDENCY_UNAVAILABLE (500); the database is down
      HTTPException     → the werkzeug status, JSON body
      Exception         → generic INTERNAL_ERROR (500); traceback logged

    Stack traces never leave the server.
    """
    from cleancuts.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.
        """
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST error is reported. Nested errors (e.g. a bad line
        inside cart_items) are reported under their top-level field name.
        """
        messages = error.messages

        field = None
        raw_message = "Invalid input."

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None
                raw_message = _first_message(field_errors)
                break
        elif isinstance(messages, list):
            raw_message = _first_message(messages)

        if raw_message in vars(ErrorCode).values():
            code = raw_message
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        response_body = {
            "error": {
                "code": code,
                "message": raw_message if raw_message not in vars(ErrorCode).values()
                else _code_to_message(code),
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limited(error: RateLimitExceeded):
        app.logger.warning("Rate limit exceeded for %s %s", request.method, request.path)
        return jsonify({
            "error": {
                "code": ErrorCode.RATE_LIMITED,
                "message": "Too many requests. Please try again later.",
            }
        }), 429

    @app.errorhandler(OperationalError)
    def handle_database_unavailable(error: OperationalError):
        app.logger.error("Database unavailable: %s", error)
        return jsonify({
            "error": {
                "code": ErrorCode.DEPENDENCY_UNAVAILABLE,
                "message": "Service temporarily unavailable. Please try again later.",
            }
        }), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({
            "error": {
                "code": (error.name or "HTTP_ERROR").upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        The full traceback goes to the application logger only.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for the storefront.

    Credentials are allowed (the refresh token is a cookie), so the origin is
    always reflected, never "*". Outside DEBUG/TESTING only origins listed in
    CORS_ORIGINS are reflected.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if not origin:
            return response

        allow_any = bool(app.config.get("DEBUG") or app.config.get("TESTING"))
        if allow_any or origin in app.config.get("CORS_ORIGINS", []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _register_security_headers(app: Flask) -> None:

    @app.after_request
    def add_security_headers(response):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response


def _register_cli(app: Flask) -> None:

    @app.cli.command("sweep-tokens")
    def sweep_tokens_command():
        """Delete revoked and expired refresh tokens once."""
        deleted = app.extensions["token_sweeper"].run_once()
        if deleted is None:
            raise click.ClickException("Refresh-token sweep failed; see the log.")
        click.echo(f"Deleted {deleted} refresh tokens.")


def _first_message(field_errors) -> str:
    """Digs the first message string out of a marshmallow messages value."""
    while isinstance(field_errors, dict) and field_errors:
        field_errors = next(iter(field_errors.values()))
    if isinstance(field_errors, list):
        return str(field_errors[0]) if field_errors else "Invalid value."
    return str(field_errors)


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself.
    """
    _messages = {
        "INVALID_QUANTITY": "Quantity must be at least 1.",
        "INVALID_ITEM_ID": "Invalid item id.",
        "INVALID_ORDER_STATUS": "Invalid status.",
    }
    return _messages.get(code, "Invalid input.")
