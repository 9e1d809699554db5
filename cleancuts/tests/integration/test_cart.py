"""
tests/integration/test_cart.py — Cart endpoints.

All cart routes require an access token. Lines are keyed by
(item_id, selected_size); adding an existing line increments it.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from .conftest import auth_headers, make_item, register_and_login


@pytest.fixture
def headers(client):
    data = register_and_login(client)
    return auth_headers(data["access_token"])


def _add(client, headers, item_id, selected_size=500, **extra):
    return client.post(
        "/api/cart/add",
        json={"item_id": item_id, "selected_size": selected_size, **extra},
        headers=headers,
    )


class TestGetCart:

    def test_empty_cart(self, client, headers):
        resp = client.get("/api/cart", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"] == []

    def test_requires_token(self, client):
        resp = client.get("/api/cart")
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "TOKEN_MISSING"

    def test_carts_are_per_user(self, client, app, headers):
        item_id = make_item(app)
        _add(client, headers, item_id)

        other = register_and_login(app.test_client(), phone="9123456780")
        resp = client.get("/api/cart", headers=auth_headers(other["access_token"]))
        assert resp.get_json()["data"]["items"] == []


class TestAddToCart:

    def test_add_defaults_from_catalog(self, client, app, headers):
        item_id = make_item(app, name="Chicken Breast", img_url="/img/cb.png")
        resp = _add(client, headers, item_id)
        assert resp.status_code == 200
        [line] = resp.get_json()["data"]["items"]
        assert line["item_id"] == item_id
        assert line["selected_size"] == 500
        assert line["quantity"] == 1
        assert line["name"] == "Chicken Breast"
        assert line["img"] == "/img/cb.png"
        assert Decimal(line["price"]) == Decimal("249.50")

    def test_client_price_is_passed_through(self, client, app, headers):
        item_id = make_item(app)
        resp = _add(client, headers, item_id, price="120.00", name="Half portion")
        [line] = resp.get_json()["data"]["items"]
        assert Decimal(line["price"]) == Decimal("120.00")
        assert line["name"] == "Half portion"

    def test_adding_existing_line_increments_quantity(self, client, app, headers):
        item_id = make_item(app)
        _add(client, headers, item_id, quantity=2)
        resp = _add(client, headers, item_id, quantity=3)
        [line] = resp.get_json()["data"]["items"]
        assert line["quantity"] == 5

    def test_different_size_is_a_separate_line(self, client, app, headers):
        item_id = make_item(app)
        _add(client, headers, item_id, selected_size=250)
        resp = _add(client, headers, item_id, selected_size=500)
        assert len(resp.get_json()["data"]["items"]) == 2

    def test_unknown_item_returns_404(self, client, headers):
        resp = _add(client, headers, 999999)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "ITEM_NOT_FOUND"

    def test_size_must_be_integer(self, client, app, headers):
        item_id = make_item(app)
        resp = _add(client, headers, item_id, selected_size="500")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "selected_size"

    def test_item_without_price_needs_one(self, client, app, headers):
        item_id = make_item(app, price=None)
        resp = _add(client, headers, item_id)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "price"


class TestUpdateCart:

    def test_update_quantity(self, client, app, headers):
        item_id = make_item(app)
        _add(client, headers, item_id)
        resp = client.post(
            "/api/cart/update",
            json={"item_id": item_id, "selected_size": 500, "quantity": 4},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"][0]["quantity"] == 4

    def test_unknown_line_returns_404(self, client, app, headers):
        item_id = make_item(app)
        resp = client.post(
            "/api/cart/update",
            json={"item_id": item_id, "selected_size": 500, "quantity": 2},
            headers=headers,
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "CART_ITEM_NOT_FOUND"

    def test_quantity_below_one_returns_400(self, client, app, headers):
        item_id = make_item(app)
        _add(client, headers, item_id)
        resp = client.post(
            "/api/cart/update",
            json={"item_id": item_id, "selected_size": 500, "quantity": 0},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_QUANTITY"


class TestRemoveAndClear:

    def test_remove_line(self, client, app, headers):
        item_id = make_item(app)
        _add(client, headers, item_id, selected_size=250)
        _add(client, headers, item_id, selected_size=500)
        resp = client.post(
            "/api/cart/remove",
            json={"item_id": item_id, "selected_size": 250},
            headers=headers,
        )
        assert resp.status_code == 200
        assert [line["selected_size"] for line in resp.get_json()["data"]["items"]] == [500]

    def test_remove_absent_line_is_noop(self, client, headers):
        resp = client.post(
            "/api/cart/remove",
            json={"item_id": 1, "selected_size": 250},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"] == []

    def test_clear(self, client, app, headers):
        item_id = make_item(app)
        _add(client, headers, item_id)
        resp = client.post("/api/cart/clear", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"] == []
        assert client.get("/api/cart", headers=headers).get_json()["data"]["items"] == []
