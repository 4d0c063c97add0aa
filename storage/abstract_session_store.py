"""Session store abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class SessionRecord:
    """Server-side state held for one session id."""

    created_at: datetime
    expires_at: datetime
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> int | None:
        return self.data.get("user_id")


class AbstractSessionStore(ABC):
    """Interface for server-side session backends."""

    @abstractmethod
    def load(self, sid: str, now: datetime) -> SessionRecord | None:
        """Return the live record for ``sid``, or None when absent or expired."""

    @abstractmethod
    def save(self, sid: str, record: SessionRecord, *, replaces: str | None = None) -> None:
        """Persist ``record`` under ``sid``.

        When ``replaces`` is given, that id is removed in the same unit of work,
        so either the new id is live and the old one gone, or nothing changed.
        """

    @abstractmethod
    def delete(self, sid: str) -> None:
        """Remove the record for ``sid`` if it exists."""

    @abstractmethod
    def delete_for_user(self, user_id: int) -> int:
        """Remove every record bound to ``user_id`` and return how many went."""
