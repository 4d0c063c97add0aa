"""Request-time identity resolution and role checks.

Views protected here receive the resolved identity as an explicit ``auth``
keyword argument instead of reading it from request globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import current_app, session
from werkzeug.exceptions import Forbidden, Unauthorized

from models.user import ADMIN_ROLE
from storage import users as user_store
from storage.session_interface import destroy_session

NOT_AUTHENTICATED = "Not authenticated."
ADMIN_REQUIRED = "Admin access required."


@dataclass(frozen=True)
class AuthContext:
    """Sanitized identity of the caller."""

    user_id: int
    role: str
    user: dict[str, Any]

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def resolve_identity() -> AuthContext:
    """Map the session to an existing user or raise 401.

    A session whose user has disappeared is destroyed before failing.
    """

    user_id = session.get("user_id")
    if user_id is None:
        raise Unauthorized(NOT_AUTHENTICATED)

    user = user_store.find_by_id(user_id)
    if user is None:
        current_app.logger.warning(
            "Session referenced missing user %s; discarding it", user_id
        )
        destroy_session()
        raise Unauthorized(NOT_AUTHENTICATED)

    return AuthContext(user_id=user.id, role=user.role, user=user.to_dict())


def login_required(view):
    """Require a resolved identity and pass it to ``view`` as ``auth``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        return view(*args, auth=resolve_identity(), **kwargs)

    return wrapper


def admin_required(view):
    """Require an admin identity.

    Identity resolution is built in, so the role check can never run on an
    unauthenticated request no matter how the decorator is applied.
    """

    @wraps(view)
    def check_role(*args, auth: AuthContext, **kwargs):
        if not auth.is_admin:
            raise Forbidden(ADMIN_REQUIRED)
        return view(*args, auth=auth, **kwargs)

    return login_required(check_role)
