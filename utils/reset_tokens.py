"""Password reset token issuance and hashing."""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta

from models.user import User
from utils.clock import utcnow

RESET_TOKEN_BYTES = 32
RESET_TOKEN_TTL = timedelta(minutes=15)


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_reset_token(token: str) -> str:
    """Digest a reset token for storage and lookup.

    A fast hash is sufficient: tokens carry 256 bits of entropy.
    """

    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_reset_token(user: User, now: datetime | None = None) -> str:
    """Attach a fresh token hash and expiry to ``user`` and return the raw token.

    Any token issued earlier stops working. The caller persists the user.
    """

    token = generate_reset_token()
    user.password_reset_token_hash = hash_reset_token(token)
    user.password_reset_expires = (now or utcnow()) + RESET_TOKEN_TTL
    return token
