"""Persistence access for user records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError

from models import db
from models.user import User
from utils.clock import utcnow


class DuplicateKeyError(Exception):
    """Raised when a write would violate a uniqueness constraint."""


def _commit() -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateKeyError(str(exc.orig)) from exc


def find_by_id(user_id: Any) -> User | None:
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def find_by_email(email: str) -> User | None:
    return User.query.filter(User.email == email).first()


def find_conflicting(email: str, phone_number: str, country_code: str) -> User | None:
    """Return a user already holding ``email`` or the phone/country pair."""

    return User.query.filter(
        or_(
            User.email == email,
            and_(
                User.phone_number == phone_number,
                User.country_code == country_code,
            ),
        )
    ).first()


def create(password: str, **fields: Any) -> User:
    """Insert a user. Raises DuplicateKeyError on a uniqueness race."""

    user = User(**fields)
    user.set_password(password)
    db.session.add(user)
    _commit()
    return user


def update_fields(user: User, changes: dict[str, Any]) -> User:
    """Apply column changes atomically. Raises DuplicateKeyError on conflicts."""

    for column, value in changes.items():
        setattr(user, column, value)
    _commit()
    return user


def save(user: User) -> User:
    db.session.add(user)
    _commit()
    return user


def consume_reset_token(token_hash: str, password_hash: str, now: datetime | None = None) -> int | None:
    """Swap in ``password_hash`` for the holder of an unexpired reset token.

    The token columns are cleared in the same conditional UPDATE, so two
    concurrent confirmations of one token cannot both succeed. Returns the
    user id, or None when no live token matched.
    """

    now = now or utcnow()
    live_token = and_(
        User.password_reset_token_hash == token_hash,
        User.password_reset_expires > now,
    )
    user_id = db.session.execute(select(User.id).where(live_token)).scalar_one_or_none()
    if user_id is None:
        return None

    result = db.session.execute(
        update(User)
        .where(User.id == user_id, live_token)
        .values(
            password_hash=password_hash,
            password_reset_token_hash=None,
            password_reset_expires=None,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    if result.rowcount != 1:
        return None
    return user_id
