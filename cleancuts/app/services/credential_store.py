"""
services/credential_store.py — Persistence of user identity records.

The Credential Store owns the users table. It exposes the lookups the
Session Manager needs (by phone, by email, by id), creation, and the one
permitted post-registration mutation: delivery address fields.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
  - Passwords arrive here already hashed.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from cleancuts.app.models.user import User

# Columns update_by_id is allowed to change. Identity fields are immutable.
MUTABLE_FIELDS = frozenset({"tower", "flat"})


def find_by_phone(phone: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(User.phone == phone)
    ).scalar_one_or_none()


def find_by_email(email: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()


def find_by_id(user_id: int, session: Session) -> User | None:
    return session.get(User, user_id)


def create(
        name: str,
        email: str,
        phone: str,
        password_hash: str,
        tower: str,
        flat: str,
        session: Session,
) -> User:
    """Inserts a new user and flushes so that user.id is populated."""
    user = User(
        name=name,
        email=email,
        phone=phone,
        password_hash=password_hash,
        tower=tower,
        flat=flat,
    )
    session.add(user)
    session.flush()
    return user


def update_by_id(user_id: int, changes: dict, session: Session) -> User | None:
    """
    Applies address changes to a user. Returns None if the user does not exist.

    Raises ValueError if `changes` names a field outside MUTABLE_FIELDS.
    """
    illegal = set(changes) - MUTABLE_FIELDS
    if illegal:
        raise ValueError(f"Fields cannot be updated: {sorted(illegal)}")

    user = session.get(User, user_id)
    if user is None:
        return None

    for key, value in changes.items():
        setattr(user, key, value)
    session.flush()
    return user
