"""User model definition."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import deferred
from werkzeug.security import check_password_hash, generate_password_hash

from utils.clock import utcnow

from . import db


USER_ROLES = ("user", "admin")
DEFAULT_ROLE = "user"
ADMIN_ROLE = "admin"

# Fixed work factor; scrypt parameters come from werkzeug's defaults.
PASSWORD_HASH_METHOD = "scrypt"


def hash_password(password: str) -> str:
    """Return a salted adaptive hash for ``password``."""

    return generate_password_hash(password, method=PASSWORD_HASH_METHOD)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class User(db.Model):
    """Represents a registered account."""

    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint(
            "phone_number", "country_code", name="uq_users_phone_country"
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    # Secret columns are deferred so ordinary reads never load them.
    password_hash = deferred(db.Column(db.String(255), nullable=False))
    name = db.Column(db.String(120), nullable=False)
    display_name = db.Column(db.String(120), nullable=True)
    phone_number = db.Column(db.String(10), nullable=False)
    country_code = db.Column(db.String(5), nullable=False)
    role = db.Column(
        db.String(16),
        nullable=False,
        default=DEFAULT_ROLE,
        server_default=db.text("'user'"),
    )
    password_reset_token_hash = deferred(
        db.Column(db.String(64), nullable=True, index=True)
    )
    password_reset_expires = deferred(db.Column(db.DateTime, nullable=True))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def set_password(self, password: str) -> None:
        """Hash and store the password, discarding any pending reset request."""

        self.password_hash = hash_password(password)
        self.clear_password_reset()

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    def clear_password_reset(self) -> None:
        self.password_reset_token_hash = None
        self.password_reset_expires = None

    def has_pending_reset(self, now: Optional[datetime] = None) -> bool:
        """Return True when an unexpired reset token is outstanding."""

        if not self.password_reset_token_hash or self.password_reset_expires is None:
            return False
        return self.password_reset_expires > (now or utcnow())

    def to_dict(self) -> dict[str, Any]:
        """Serialize the user for clients. Secrets are never included."""

        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phoneNumber": self.phone_number,
            "countryCode": self.country_code,
            "displayName": self.display_name,
            "role": self.role,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
