"""
Tests for the request gate: per-group limit lookup, client identification,
and the 429 RATE_LIMITED response once a client exceeds its limit.
"""

from __future__ import annotations

import pytest

from cleancuts.app import create_app
from cleancuts.app.extensions import db, limiter
from cleancuts.app.middleware.rate_limit import (
    RATE_LIMIT_CONFIG_KEYS,
    client_identifier,
    limit_for,
)
from cleancuts.config import TestingConfig


@pytest.fixture
def app():
    return create_app("testing")


@pytest.mark.parametrize("group", sorted(RATE_LIMIT_CONFIG_KEYS))
def test_limit_for_reads_app_config(app, group):
    app.config[RATE_LIMIT_CONFIG_KEYS[group]] = "7 per minute"
    with app.app_context():
        assert limit_for(group)() == "7 per minute"


def test_unknown_group_raises():
    with pytest.raises(KeyError):
        limit_for("uploads")


def test_client_identifier_uses_remote_address(app):
    with app.test_request_context("/", environ_base={"REMOTE_ADDR": "203.0.113.9"}):
        assert client_identifier() == "203.0.113.9"


def test_client_identifier_honours_forwarded_for_behind_proxy(app):
    client = app.test_client()
    seen = {}

    @app.route("/whoami")
    def whoami():
        seen["client"] = client_identifier()
        return "ok"

    client.get(
        "/whoami",
        headers={"X-Forwarded-For": "198.51.100.4"},
        environ_base={"REMOTE_ADDR": "10.0.0.1"},
    )
    assert seen["client"] == "198.51.100.4"


@pytest.fixture
def limited_app(monkeypatch):
    """A testing app with the limiter switched on and a tight auth limit."""
    monkeypatch.setattr(TestingConfig, "RATELIMIT_ENABLED", True)
    monkeypatch.setattr(TestingConfig, "AUTH_RATE_LIMIT", "2 per minute")
    flask_app = create_app("testing")
    with flask_app.app_context():
        db.create_all()
    limiter.reset()

    yield flask_app

    # The limiter object is shared by every app in the process.
    limiter.reset()
    limiter.enabled = False
    with flask_app.app_context():
        db.drop_all()


def test_requests_over_the_limit_get_429_json(limited_app):
    client = limited_app.test_client()
    body = {"phone": "9876543210", "password": "Password1"}

    codes = [client.post("/api/login", json=body).status_code for _ in range(3)]

    assert codes == [401, 401, 429]
    resp = client.post("/api/login", json=body)
    assert resp.status_code == 429
    assert resp.get_json()["error"]["code"] == "RATE_LIMITED"


def test_limits_are_counted_per_client_address(limited_app):
    client = limited_app.test_client()
    body = {"phone": "9876543210", "password": "Password1"}
    for _ in range(2):
        client.post("/api/login", json=body, environ_base={"REMOTE_ADDR": "203.0.113.1"})

    blocked = client.post("/api/login", json=body, environ_base={"REMOTE_ADDR": "203.0.113.1"})
    other = client.post("/api/login", json=body, environ_base={"REMOTE_ADDR": "203.0.113.2"})

    assert blocked.status_code == 429
    assert other.status_code == 401
