"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against in-memory SQLite (TestingConfig), or against the
    database named by TEST_DATABASE_URL when that is set.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted child-first so tests are isolated,
    and the catalog cache is emptied.
  - The Razorpay client on app.extensions["payment_gateway"] is replaced by
    FakeGateway for every test; no network calls are made.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)     → response data dict ({"user": {...}})
  - login(client, ...)        → response data dict ({"access_token", "user"})
  - auth_headers(token)       → {"Authorization": "Bearer <token>"}
  - refresh_cookie(client)    → current refresh cookie value or None
  - make_item(app, ...)       → id of a new catalog item
  - admin_token(client)       → access token for the ADMIN_PHONE user

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from cleancuts.app import create_app
from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.extensions import db as _db
from cleancuts.app.services.payment_gateway import compute_signature

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "rzp_test_secret"
DEFAULT_PASSWORD = "Password1"


# ═══════════════════════════════════════════════════════════════════════════
# Payment gateway double
# ═══════════════════════════════════════════════════════════════════════════

class FakeGateway:
    """
    Stands in for RazorpayGateway. Hands out sequential order ids and checks
    signatures with the real HMAC so tests sign payloads exactly as the
    checkout would.
    """

    key_id = TEST_KEY_ID

    def __init__(self, key_secret: str = TEST_KEY_SECRET) -> None:
        self._key_secret = key_secret
        self.created: list[dict] = []
        self.fail = False

    def create_order(self, amount: int, currency: str, receipt: str) -> dict:
        if self.fail:
            raise AppError(
                ErrorCode.PAYMENT_GATEWAY_ERROR,
                "Failed to create payment order.",
                500,
            )
        order = {
            "id": f"order_test_{len(self.created) + 1}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
        }
        self.created.append(order)
        return order

    def verify_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        return compute_signature(gateway_order_id, payment_id, self._key_secret) == signature


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test
    session and creates every table.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test, children before parents, and empties
    the catalog cache.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        for table in reversed(_db.metadata.sorted_tables):
            _db.session.execute(table.delete())
        _db.session.commit()

    app.extensions["catalog_cache"].clear()


@pytest.fixture(autouse=True)
def gateway(app):
    """Installs a fresh FakeGateway for the duration of one test."""
    original = app.extensions["payment_gateway"]
    fake = FakeGateway()
    app.extensions["payment_gateway"] = fake
    yield fake
    app.extensions["payment_gateway"] = original


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (and cookie jar)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    name: str = "Alice",
    phone: str = "9876543210",
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    tower: str = "A",
    flat: str = "101",
) -> dict:
    """
    Registers a new user and returns the response data dict.
    Returns: {"user": {...}}
    """
    if email is None:
        email = f"{phone}@test.com"
    resp = client.post("/api/register", json={
        "name": name,
        "email": email,
        "phone": phone,
        "password": password,
        "tower": tower,
        "flat": flat,
    })
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, phone: str = "9876543210", password: str = DEFAULT_PASSWORD) -> dict:
    """
    Logs in and returns the response data dict. The refresh token lands in
    the client's cookie jar.
    Returns: {"message": "...", "access_token": "...", "user": {...}}
    """
    resp = client.post("/api/login", json={"phone": phone, "password": password})
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def register_and_login(client, phone: str = "9876543210", **kwargs) -> dict:
    register(client, phone=phone, **kwargs)
    return login(client, phone=phone, password=kwargs.get("password", DEFAULT_PASSWORD))


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def refresh_cookie(client) -> str | None:
    cookie = client.get_cookie("refresh_token")
    return cookie.value if cookie is not None else None


def make_item(
    app,
    name: str = "Chicken Curry Cut",
    category: str = "Uncooked",
    price: Decimal | None = Decimal("249.50"),
    **fields,
) -> int:
    """Inserts a catalog item directly and returns its id."""
    from cleancuts.app.models.item import Item

    with app.app_context():
        item = Item(name=name, category=category, price=price, **fields)
        _db.session.add(item)
        _db.session.commit()
        return item.id


def admin_token(client, app) -> str:
    """Registers and logs in the configured admin; returns the access token."""
    phone = app.config["ADMIN_PHONE"]
    data = register_and_login(client, phone=phone, name="Admin")
    return data["access_token"]


def sign_payment(gateway_order_id: str, payment_id: str) -> str:
    return compute_signature(gateway_order_id, payment_id, TEST_KEY_SECRET)
