"""Login throttling keyed by client address and login email.

Each key keeps the timestamps of its recent attempts. Exceeding the allowed
count inside the rolling window locks the key for a fixed period, during
which attempts are rejected without being counted.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Callable

from flask import Flask, current_app, request
from werkzeug.exceptions import TooManyRequests

from utils.credentials import normalize_email

EXTENSION_KEY = "login_rate_limit"
TOO_MANY_ATTEMPTS = "Too many login attempts. Please try again later."

AttemptKey = tuple[str, str]


@dataclass
class AttemptRecord:
    timestamps: list[float] = field(default_factory=list)
    blocked_until: float = 0.0


class LoginAttemptTracker:
    """In-process sliding window with lockout. Safe to share across threads."""

    def __init__(
        self,
        window_seconds: float = 60,
        max_attempts: int = 5,
        block_seconds: float = 300,
        max_keys: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_attempts = max_attempts
        self.block_seconds = block_seconds
        self.max_keys = max_keys
        self.clock = clock
        self._records: dict[AttemptKey, AttemptRecord] = {}
        self._next_prune_at = 0.0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def hit(self, key: AttemptKey) -> float | None:
        """Record an attempt for ``key``.

        Returns None when the attempt may proceed, otherwise the number of
        seconds the caller has to wait.
        """

        with self._lock:
            now = self.clock()
            record = self._records.get(key) or AttemptRecord()

            if record.blocked_until > now:
                return record.blocked_until - now

            recent = [ts for ts in record.timestamps if now - ts < self.window_seconds]
            recent.append(now)

            if len(recent) > self.max_attempts:
                self._records[key] = AttemptRecord(blocked_until=now + self.block_seconds)
                return float(self.block_seconds)

            self._records[key] = AttemptRecord(timestamps=recent)
            # Over the cap, scan at most once per window.
            if len(self._records) > self.max_keys and now >= self._next_prune_at:
                self._prune(now)
                self._next_prune_at = now + self.window_seconds
            return None

    def prune(self) -> int:
        """Drop records that can no longer influence a decision."""

        with self._lock:
            return self._prune(self.clock())

    def _prune(self, now: float) -> int:
        stale = [
            key
            for key, record in self._records.items()
            if record.blocked_until <= now
            and all(now - ts >= self.window_seconds for ts in record.timestamps)
        ]
        for key in stale:
            del self._records[key]
        return len(stale)


def init_app(app: Flask) -> LoginAttemptTracker:
    """Create the tracker for ``app`` from its configuration."""

    tracker = LoginAttemptTracker(
        window_seconds=app.config.get("LOGIN_RATE_LIMIT_WINDOW_SECONDS", 60),
        max_attempts=app.config.get("LOGIN_RATE_LIMIT_MAX_ATTEMPTS", 5),
        block_seconds=app.config.get("LOGIN_RATE_LIMIT_BLOCK_SECONDS", 300),
        max_keys=app.config.get("LOGIN_RATE_LIMIT_MAX_KEYS", 10000),
    )
    app.extensions[EXTENSION_KEY] = tracker
    return tracker


def login_attempt_key() -> AttemptKey:
    payload = request.get_json(silent=True)
    raw_email = payload.get("email") if isinstance(payload, dict) else None
    return (request.remote_addr or "unknown", normalize_email(raw_email) or "unknown")


def enforce_login_rate_limit(view):
    """Reject the wrapped view with 429 while the caller's key is throttled."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        tracker: LoginAttemptTracker = current_app.extensions[EXTENSION_KEY]
        retry_after = tracker.hit(login_attempt_key())
        if retry_after is not None:
            current_app.logger.warning(
                "Login throttled for client %s (retry in %ss)",
                request.remote_addr,
                math.ceil(retry_after),
            )
            raise TooManyRequests(TOO_MANY_ATTEMPTS, retry_after=math.ceil(retry_after))
        return view(*args, **kwargs)

    return wrapper
