"""SQLAlchemy-backed session store."""

from __future__ import annotations

import hashlib
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from models.user_session import UserSession

from .abstract_session_store import AbstractSessionStore, SessionRecord


class SqlAlchemySessionStore(AbstractSessionStore):
    """Persist sessions in the ``user_sessions`` table.

    Only a digest of the session id is written, so a database dump cannot be
    replayed as cookies.
    """

    def __init__(self, database: SQLAlchemy):
        self.db = database

    @staticmethod
    def key_for(sid: str) -> str:
        return hashlib.sha256(sid.encode("utf-8")).hexdigest()

    def load(self, sid: str, now: datetime) -> SessionRecord | None:
        row = self.db.session.get(UserSession, self.key_for(sid))
        if row is None:
            return None
        if row.expires_at <= now:
            self.delete(sid)
            return None
        return SessionRecord(
            created_at=row.created_at,
            expires_at=row.expires_at,
            data=dict(row.data or {}),
        )

    def save(self, sid: str, record: SessionRecord, *, replaces: str | None = None) -> None:
        try:
            if replaces:
                self.db.session.execute(
                    delete(UserSession).where(UserSession.id == self.key_for(replaces))
                )
            self.db.session.merge(
                UserSession(
                    id=self.key_for(sid),
                    user_id=record.user_id,
                    data=dict(record.data),
                    created_at=record.created_at,
                    expires_at=record.expires_at,
                )
            )
            self.db.session.commit()
        except SQLAlchemyError:
            self.db.session.rollback()
            raise

    def delete(self, sid: str) -> None:
        try:
            self.db.session.execute(
                delete(UserSession).where(UserSession.id == self.key_for(sid))
            )
            self.db.session.commit()
        except SQLAlchemyError:
            self.db.session.rollback()
            raise

    def delete_for_user(self, user_id: int) -> int:
        try:
            result = self.db.session.execute(
                delete(UserSession).where(UserSession.user_id == user_id)
            )
            self.db.session.commit()
        except SQLAlchemyError:
            self.db.session.rollback()
            raise
        return result.rowcount or 0
