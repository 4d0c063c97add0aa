"""Storage backends."""

from .abstract_session_store import AbstractSessionStore, SessionRecord
from .sql_session_store import SqlAlchemySessionStore
from .session_interface import ServerSideSession, ServerSideSessionInterface

__all__ = [
    "AbstractSessionStore",
    "SessionRecord",
    "SqlAlchemySessionStore",
    "ServerSideSession",
    "ServerSideSessionInterface",
]
