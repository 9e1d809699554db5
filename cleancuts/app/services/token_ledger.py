"""
services/token_ledger.py — Persistence of issued refresh tokens.

Every mutating operation here is a single SQL statement executed by the
database (UPDATE ... WHERE / DELETE ... WHERE), never a client-side
read-modify-write. That is the only coordination the Session Manager relies
on: there are no in-process locks.

Tokens are looked up by the SHA-256 digest of the signed refresh JWT; the raw
token is never persisted, so a leaked table does not yield usable tokens.

Records whose expires_at has passed are treated as absent by find_active,
whether or not the sweep has deleted them yet.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from cleancuts.app.models.refresh_token import RefreshToken


def _hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw token string."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_active(raw_token: str, session: Session) -> RefreshToken | None:
    """Returns the record for raw_token if it is neither revoked nor expired."""
    return session.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == _hash_token(raw_token),
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > _utcnow(),
        )
    ).scalar_one_or_none()


def create(
        user_id: int,
        raw_token: str,
        expires_at: datetime,
        session: Session,
) -> RefreshToken:
    record = RefreshToken(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=expires_at,
        revoked=False,
    )
    session.add(record)
    # flush so the row exists before we return; commit is the route's job
    session.flush()
    return record


def revoke_all_for_user(user_id: int, session: Session) -> int:
    """
    Marks every non-revoked token of user_id as revoked in one statement.
    Returns the number of records revoked.
    """
    result = session.execute(
        update(RefreshToken)
        .where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked.is_(False),
        )
        .values(revoked=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def revoke(raw_token: str, session: Session) -> int:
    """
    Marks the record for raw_token as revoked. Idempotent: revoking an
    unknown or already-revoked token is not an error. Returns rows changed.
    """
    result = session.execute(
        update(RefreshToken)
        .where(
            RefreshToken.token_hash == _hash_token(raw_token),
            RefreshToken.revoked.is_(False),
        )
        .values(revoked=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def delete_revoked_or_expired(session: Session, now: datetime | None = None) -> int:
    """Deletes records that are revoked or past expiry. Returns the count."""
    cutoff = now or _utcnow()
    result = session.execute(
        delete(RefreshToken)
        .where(
            or_(
                RefreshToken.revoked.is_(True),
                RefreshToken.expires_at <= cutoff,
            )
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def count_active_for_user(user_id: int, session: Session) -> int:
    return session.execute(
        select(func.count())
        .select_from(RefreshToken)
        .where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > _utcnow(),
        )
    ).scalar_one()
