"""
middleware/rate_limit.py — Request gate for the public API.

Limits are enforced by Flask-Limiter (see extensions.py) and bounded per
client per route group. The client is identified by remote address; when the
app runs behind a proxy, ProxyFix has already rewritten remote_addr from
X-Forwarded-For, so get_remote_address sees the real client.

Route groups and their config keys:
  auth     → AUTH_RATE_LIMIT      register, login, logout, cart routes
  refresh  → REFRESH_RATE_LIMIT   refresh-token rotation
  items    → ITEMS_RATE_LIMIT     catalog browsing and search

Limits are read from current_app.config at request time so each app instance
(and each test app) can use its own values.
"""

from __future__ import annotations

from typing import Callable

from flask import current_app
from flask_limiter.util import get_remote_address


RATE_LIMIT_CONFIG_KEYS = {
    "auth":    "AUTH_RATE_LIMIT",
    "refresh": "REFRESH_RATE_LIMIT",
    "items":   "ITEMS_RATE_LIMIT",
}


def client_identifier() -> str:
    """Rate-limit key for the current request: the client's address."""
    return get_remote_address() or "unknown"


def limit_for(group: str) -> Callable[[], str]:
    """
    Returns a callable resolving the limit string for a route group.

    Usage:
        @limiter.limit(limit_for("auth"))
        def login(): ...
    """
    config_key = RATE_LIMIT_CONFIG_KEYS[group]

    def _resolve() -> str:
        return current_app.config[config_key]

    return _resolve
