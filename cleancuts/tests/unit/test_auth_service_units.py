"""
Unit tests for auth_service branches that need no database or app.

verify_access_token is pure: it is exercised here with tokens minted
directly by PyJWT.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import jwt
import pytest

from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.services import auth_service

SECRET = "unit-access-secret"


def _token(secret: str = SECRET, **overrides) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "7",
        "phone": "9876543210",
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "jti": "abc123",
    }
    payload.update(overrides)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, secret, algorithm="HS256")


def _user(**overrides):
    fields = dict(
        id=7,
        name="Alice",
        email="alice@example.com",
        phone="9876543210",
        tower="A",
        flat="101",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


# ── verify_access_token ────────────────────────────────────────────────────

def test_verify_access_token_returns_identity():
    assert auth_service.verify_access_token(_token(), SECRET) == {
        "user_id": 7,
        "phone": "9876543210",
    }


def test_expired_token_raises_token_expired():
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    with pytest.raises(AppError) as exc_info:
        auth_service.verify_access_token(_token(exp=past, iat=past - timedelta(minutes=5)), SECRET)
    assert exc_info.value.code == ErrorCode.TOKEN_EXPIRED
    assert exc_info.value.http_status == 403


@pytest.mark.parametrize(
    "token",
    [
        _token(secret="some-other-secret"),
        _token(type="refresh"),
        _token(sub="not-a-number"),
        _token(exp=None),
        "not.a.jwt",
        "",
    ],
    ids=["wrong-secret", "refresh-type", "bad-subject", "no-exp", "garbage", "empty"],
)
def test_invalid_tokens_raise_token_invalid(token):
    with pytest.raises(AppError) as exc_info:
        auth_service.verify_access_token(token, SECRET)
    assert exc_info.value.code == ErrorCode.TOKEN_INVALID
    assert exc_info.value.http_status == 403


# ── get_current_user ───────────────────────────────────────────────────────

def test_get_current_user_returns_serialized_user():
    session = MagicMock()
    session.get.return_value = _user()

    result = auth_service.get_current_user(user_id=7, session=session)

    assert result == {
        "id": 7,
        "name": "Alice",
        "email": "alice@example.com",
        "phone": "9876543210",
        "tower": "A",
        "flat": "101",
        "created_at": "2026-01-01T00:00:00+00:00",
    }


def test_get_current_user_raises_user_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        auth_service.get_current_user(user_id=99999, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.USER_NOT_FOUND
    assert err.http_status == 404


def test_update_address_missing_user_raises_404():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        auth_service.update_address(7, {"flat": "202"}, session)
    assert exc_info.value.code == ErrorCode.USER_NOT_FOUND


# ── rotate_refresh_token / logout_user ─────────────────────────────────────

@pytest.mark.parametrize("raw", [None, ""])
def test_rotate_without_token_raises_refresh_token_missing(raw):
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        auth_service.rotate_refresh_token(raw, session)

    assert exc_info.value.code == ErrorCode.REFRESH_TOKEN_MISSING
    assert exc_info.value.http_status == 401
    session.execute.assert_not_called()


def test_logout_without_token_is_a_noop():
    session = MagicMock()
    assert auth_service.logout_user(None, session) is None
    session.execute.assert_not_called()


def test_logout_revokes_presented_token():
    session = MagicMock()
    session.execute.return_value.rowcount = 1

    auth_service.logout_user("some-token", session)

    session.execute.assert_called_once()
