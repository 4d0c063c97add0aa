"""Mood journal entry model."""

from datetime import datetime
from typing import Optional

from utils.clock import utcnow

from . import db


ALLOWED_MOODS = (
    "Happy",
    "Calm",
    "Neutral",
    "Sad",
    "Anxious",
    "Angry",
    "Excited",
    "Tired",
)
NOTE_MAX_LENGTH = 500


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Entry(db.Model):
    """A single mood recorded by a user."""

    __tablename__ = "mood_entries"
    __table_args__ = (
        db.Index("ix_mood_entries_user_recorded", "user_id", "recorded_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mood = db.Column(db.Enum(*ALLOWED_MOODS, name="mood_enum"), nullable=False)
    note = db.Column(db.String(NOTE_MAX_LENGTH), nullable=True)
    recorded_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    user = db.relationship(
        "User",
        backref=db.backref("entries", lazy="dynamic", passive_deletes=True),
    )

    @staticmethod
    def match_mood(value: object) -> Optional[str]:
        """Return the canonical mood for ``value`` compared case-insensitively."""

        if value is None:
            return None
        text = str(value).strip().lower()
        if not text:
            return None
        for mood in ALLOWED_MOODS:
            if mood.lower() == text:
                return mood
        return None

    def to_dict(self) -> dict:
        """Serialize the entry."""

        return {
            "id": self.id,
            "mood": self.mood,
            "note": self.note,
            "recordedAt": _isoformat(self.recorded_at),
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Entry id={self.id} user_id={self.user_id} mood={self.mood}>"
