"""
extensions.py — Flask extension singletons.

Creates SQLAlchemy and the rate limiter as module-level objects so they can
be imported anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` or `limiter` from here wherever needed.

    from cleancuts.app.extensions import db, limiter

Do not pass the app object directly to SQLAlchemy() or Limiter() at import
time — that would prevent running tests with a separate test app instance.

Schema inheritance rule:
    Validation schemas in app/schemas/ inherit from marshmallow.Schema
    directly so that unit tests can load them without an app context.
"""

from flask_limiter import Limiter
from flask_sqlalchemy import SQLAlchemy

from cleancuts.app.middleware.rate_limit import client_identifier

db = SQLAlchemy()

# Storage backend, enabled flag and header behaviour come from the app config
# (RATELIMIT_STORAGE_URI, RATELIMIT_ENABLED, RATELIMIT_HEADERS_ENABLED).
limiter = Limiter(key_func=client_identifier)
