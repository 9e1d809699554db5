"""
services/auth_service.py — Session Manager.

Responsibilities:
  - User registration (validation of uniqueness, password hashing)
  - Login: access + refresh token issuance
  - Refresh: rotation of the refresh token, revoking the whole active set
  - Access-token verification (signature + expiry only, no database)
  - Logout: revocation of the presented refresh token

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or cookies — routes move tokens in and
    out of HTTP; this module only sees raw strings
  - current_app.config is read for secrets, TTLs and bcrypt cost only.
    verify_access_token takes its secret as an argument and touches neither
    the app nor the database.

Token design:
  - Access token: JWT (HS256) signed with JWT_SECRET_KEY, short TTL.
  - Refresh token: JWT (HS256) signed with JWT_REFRESH_SECRET_KEY, long TTL.
    It is a verifiable credential in its own right and is also recorded in
    the Token Ledger, where it can be revoked.
  - Both embed {sub: user id, phone, type, jti}. The jti makes every token
    unique even when two are minted in the same second.

Refresh lineage:
  A login starts a lineage; each successful refresh revokes *every* active
  refresh token of the user (one UPDATE) and mints a successor. Replaying a
  rotated token therefore fails, and if a stolen copy and the legitimate
  copy are both in use, whichever refreshes first invalidates the other.

  Known race: two concurrent refreshes presenting different active tokens of
  the same user can both pass find_active before either revocation lands,
  leaving two active successors. Closing it needs a compare-and-swap on the
  presented record; the current behaviour is kept on purpose.

Password storage:
  - bcrypt (cost factor from BCRYPT_LOG_ROUNDS); raw password never stored
    or logged.
"""

from __future__ import annotations

import functools
import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.models.user import User
from cleancuts.app.services import credential_store, token_ledger

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt rejects longer input outright.
BCRYPT_MAX_PASSWORD_BYTES = 72


# ── Private helpers ────────────────────────────────────────────────────────

def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


@functools.lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> bytes:
    """A throwaway bcrypt hash so unknown phones cost as much as wrong passwords."""
    return bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=rounds))


def _check_password(password: str, user: User | None) -> bool:
    """
    Constant-time password check. When the user does not exist the password
    is still checked against a dummy hash so response timing does not reveal
    whether the phone is registered.

    A password longer than bcrypt accepts can never match a stored hash; it
    is treated as a mismatch, after the same dummy check.
    """
    encoded = password.encode("utf-8")
    if user is None or len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
        bcrypt.checkpw(encoded[:BCRYPT_MAX_PASSWORD_BYTES], _dummy_hash(rounds))
        return False
    return bcrypt.checkpw(
        encoded,
        user.password_hash.encode("utf-8"),
    )


def _sign_token(
        user_id: int,
        phone: str,
        token_type: str,
        ttl: timedelta,
        secret: str,
) -> tuple[str, datetime]:
    """Returns (encoded JWT, expiry datetime)."""
    now = datetime.now(timezone.utc)
    expires_at = now + ttl
    payload = {
        "sub": str(user_id),
        "phone": phone,
        "type": token_type,
        "iat": now,
        "exp": expires_at,
        "jti": secrets.token_hex(8),
    }
    token = jwt.encode(
        payload,
        secret,
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )
    return token, expires_at


def _create_access_token(user_id: int, phone: str) -> str:
    token, _ = _sign_token(
        user_id,
        phone,
        ACCESS_TOKEN_TYPE,
        current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        current_app.config["JWT_SECRET_KEY"],
    )
    return token


def _create_refresh_token(user_id: int, phone: str, session: Session) -> str:
    """
    Mints a refresh JWT, records it as ACTIVE in the Token Ledger, and
    returns the raw token to be delivered to the client once.
    """
    token, expires_at = _sign_token(
        user_id,
        phone,
        REFRESH_TOKEN_TYPE,
        current_app.config["JWT_REFRESH_TOKEN_EXPIRES"],
        current_app.config["JWT_REFRESH_SECRET_KEY"],
    )
    token_ledger.create(user_id, token, expires_at, session)
    return token


def _build_token_pair(user_id: int, phone: str, session: Session) -> dict:
    return {
        "access_token": _create_access_token(user_id, phone),
        "refresh_token": _create_refresh_token(user_id, phone, session),
    }


def _build_user_dict(user: User) -> dict:
    """Public view of a user. Never includes the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "tower": user.tower,
        "flat": user.flat,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _raise_if_taken(phone: str, email: str, session: Session) -> None:
    """Phone is checked first, so a request duplicating both reports the phone."""
    if credential_store.find_by_phone(phone, session) is not None:
        raise AppError(
            ErrorCode.DUPLICATE_PHONE,
            "A user with this phone number already exists.",
            409,
            field="phone",
        )

    if credential_store.find_by_email(email, session) is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "A user with this email address already exists.",
            409,
            field="email",
        )


def _invalid_refresh_token() -> AppError:
    # One message for unknown, revoked, rotated, expired and tampered tokens.
    return AppError(
        ErrorCode.REFRESH_TOKEN_INVALID,
        "The refresh token is invalid, expired, or has been revoked.",
        403,
    )


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        name: str,
        email: str,
        phone: str,
        password: str,
        tower: str,
        flat: str,
        session: Session,
) -> dict:
    """
    Creates a new user account. Does not log the user in.

    Raises:
      AppError(DUPLICATE_PHONE, 409) — phone already registered
      AppError(DUPLICATE_EMAIL, 409) — email already registered

    The lookups are repeated if the insert hits a unique constraint: a
    concurrent registration can land between the check and the insert.

    Returns: {"user": {...}}
    """
    _raise_if_taken(phone, email, session)
    password_hash = _hash_password(password)

    try:
        with session.begin_nested():
            user = credential_store.create(
                name=name,
                email=email,
                phone=phone,
                password_hash=password_hash,
                tower=tower,
                flat=flat,
                session=session,
            )
    except IntegrityError:
        logger.info("Registration lost a uniqueness race; re-checking")
        _raise_if_taken(phone, email, session)
        raise
    logger.info("Registered user id=%s", user.id)

    return {"user": _build_user_dict(user)}


def login_user(
        phone: str,
        password: str,
        session: Session,
) -> dict:
    """
    Validates credentials and starts a new refresh lineage.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — phone not found or password wrong.
      Same error for both to avoid account enumeration.

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    user = credential_store.find_by_phone(phone, session)

    if not _check_password(password, user):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Invalid phone or password.",
            401,
        )

    tokens = _build_token_pair(user.id, user.phone, session)
    logger.info("User id=%s logged in", user.id)

    return {
        "user": _build_user_dict(user),
        **tokens,
    }


def rotate_refresh_token(
        raw_refresh_token: str | None,
        session: Session,
) -> dict:
    """
    Exchanges an active refresh token for a new access + refresh pair.

    Steps:
      1. The token must be present.
      2. The Token Ledger must hold it as active (not revoked, not expired).
      3. Its signature, expiry and type must verify independently of the
         ledger record, and its subject must match the record's owner.
      4. All active tokens of the user are revoked in one statement.
      5. A new pair is minted and the new refresh token recorded.

    Raises:
      AppError(REFRESH_TOKEN_MISSING, 401) — no token presented.
      AppError(REFRESH_TOKEN_INVALID, 403) — any other failure.

    Returns: {"access_token": "...", "refresh_token": "..."}
    """
    if not raw_refresh_token:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_MISSING,
            "Refresh token missing.",
            401,
        )

    record = token_ledger.find_active(raw_refresh_token, session)
    if record is None:
        logger.warning("Refresh attempted with unknown or revoked token")
        raise _invalid_refresh_token()

    try:
        claims = jwt.decode(
            raw_refresh_token,
            current_app.config["JWT_REFRESH_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": ["exp", "sub"]},
        )
    except jwt.InvalidTokenError:
        # Covers expired signatures as well (ExpiredSignatureError subclasses it).
        raise _invalid_refresh_token()

    if claims.get("type") != REFRESH_TOKEN_TYPE or claims.get("sub") != str(record.user_id):
        raise _invalid_refresh_token()

    revoked = token_ledger.revoke_all_for_user(record.user_id, session)
    logger.info(
        "Rotated refresh token for user id=%s (revoked %d active)",
        record.user_id,
        revoked,
    )

    return _build_token_pair(record.user_id, claims.get("phone", ""), session)


def verify_access_token(
        raw_token: str,
        secret: str,
        algorithm: str = "HS256",
) -> dict:
    """
    Verifies an access token by signature and expiry alone.

    No database access: this works (and fails) identically whether or not
    the Token Ledger is reachable.

    Raises:
      AppError(TOKEN_EXPIRED, 403) — valid signature, exp in the past.
      AppError(TOKEN_INVALID, 403) — bad signature, malformed, wrong type,
                                     or unusable subject.

    Returns: {"user_id": int, "phone": str}
    """
    try:
        claims = jwt.decode(
            raw_token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Use POST /api/refresh-token to obtain a new one.",
            403,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Invalid or expired access token.",
            403,
        )

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Invalid or expired access token.",
            403,
        )

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Invalid or expired access token.",
            403,
        )

    return {"user_id": user_id, "phone": claims.get("phone")}


def logout_user(
        raw_refresh_token: str | None,
        session: Session,
) -> None:
    """
    Revokes the presented refresh token if there is one.

    Idempotent: a missing, unknown or already-revoked token is not an error.
    """
    if not raw_refresh_token:
        return
    if token_ledger.revoke(raw_refresh_token, session):
        logger.info("Refresh token revoked on logout")


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      AppError(USER_NOT_FOUND, 404) — user_id from the token no longer exists.
    """
    user = credential_store.find_by_id(user_id, session)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "User not found.",
            404,
        )
    return _build_user_dict(user)


def update_address(user_id: int, changes: dict, session: Session) -> dict:
    """
    Updates the caller's delivery address (tower / flat).

    Raises:
      AppError(USER_NOT_FOUND, 404)
    """
    user = credential_store.update_by_id(user_id, changes, session)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "User not found.",
            404,
        )
    return _build_user_dict(user)
