"""Flask session interface backed by a server-side session store."""

from __future__ import annotations

import secrets
from typing import Any

from flask import Flask, Request, Response, current_app, session
from flask.sessions import SessionInterface, SessionMixin
from werkzeug.datastructures import CallbackDict

from utils.clock import utcnow

from .abstract_session_store import AbstractSessionStore, SessionRecord


class ServerSideSession(CallbackDict, SessionMixin):
    """Session payload whose id lives in the cookie and whose data lives in the store."""

    def __init__(self, initial=None, sid: str | None = None, created_at=None):
        def on_update(self):
            self.modified = True

        super().__init__(initial, on_update)
        self.sid = sid
        self.created_at = created_at
        self.modified = False
        self.destroyed = False
        # Set after an explicit write so the response still carries the new id.
        self.cookie_pending = False


class ServerSideSessionInterface(SessionInterface):
    """Open sessions from the ``sid`` cookie and write them back to the store.

    Lifetime is absolute: a session expires ``PERMANENT_SESSION_LIFETIME``
    after it was created, regardless of activity.
    """

    def __init__(self, store: AbstractSessionStore):
        self.store = store

    @staticmethod
    def generate_sid() -> str:
        return secrets.token_urlsafe(32)

    def open_session(self, app: Flask, request: Request) -> ServerSideSession:
        sid = request.cookies.get(self.get_cookie_name(app))
        if sid:
            record = self.store.load(sid, utcnow())
            if record is not None:
                return ServerSideSession(record.data, sid=sid, created_at=record.created_at)
        return ServerSideSession()

    def _record(self, app: Flask, session: ServerSideSession) -> SessionRecord:
        return SessionRecord(
            created_at=session.created_at,
            expires_at=session.created_at + app.permanent_session_lifetime,
            data=dict(session),
        )

    def rotate(self, app: Flask, session: ServerSideSession, values: dict[str, Any]) -> None:
        """Replace the session id and payload, persisting before returning.

        The previous id stops resolving in the same write that makes the new one
        live. If the write fails the session is marked destroyed and the error
        propagates.
        """

        previous_sid = session.sid
        session.clear()
        session.update(values)
        session.sid = self.generate_sid()
        session.created_at = utcnow()
        try:
            self.store.save(session.sid, self._record(app, session), replaces=previous_sid)
        except Exception:
            session.destroyed = True
            raise
        session.modified = False
        session.cookie_pending = True

    def destroy(self, app: Flask, session: ServerSideSession) -> None:
        """Delete server-side state now; the cookie is cleared on response."""

        if session.sid:
            self.store.delete(session.sid)
        session.clear()
        session.destroyed = True

    def _delete_cookie(self, app: Flask, response: Response) -> None:
        response.delete_cookie(
            self.get_cookie_name(app),
            domain=self.get_cookie_domain(app),
            path=self.get_cookie_path(app),
            secure=self.get_cookie_secure(app),
            httponly=self.get_cookie_httponly(app),
            samesite=self.get_cookie_samesite(app),
        )

    def save_session(self, app: Flask, session: ServerSideSession, response: Response) -> None:
        if session.destroyed:
            self._delete_cookie(app, response)
            return

        if not session.modified and not session.cookie_pending:
            return

        if not session:
            if session.sid:
                self.store.delete(session.sid)
                self._delete_cookie(app, response)
            return

        if session.sid is None:
            session.sid = self.generate_sid()
            session.created_at = utcnow()

        record = self._record(app, session)
        if session.modified:
            self.store.save(session.sid, record)

        response.set_cookie(
            self.get_cookie_name(app),
            session.sid,
            expires=record.expires_at,
            httponly=self.get_cookie_httponly(app),
            domain=self.get_cookie_domain(app),
            path=self.get_cookie_path(app),
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )
        response.vary.add("Cookie")


def rotate_session(**values: Any) -> None:
    """Issue a fresh session id for the current request carrying ``values``."""

    current_app.session_interface.rotate(current_app, session, values)


def destroy_session() -> None:
    """Invalidate the current request's session server-side and clear its cookie."""

    current_app.session_interface.destroy(current_app, session)
