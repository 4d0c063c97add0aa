"""Normalization and validation helpers for account credentials."""

from __future__ import annotations

import re
from typing import Any, Mapping

from werkzeug.exceptions import BadRequest

MIN_PASSWORD_LENGTH = 8

PHONE_PATTERN = re.compile(r"[0-9]{10}")
COUNTRY_CODE_PATTERN = re.compile(r"\+?[0-9]{1,4}")

PASSWORD_TOO_SHORT = f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
INVALID_PHONE = "Phone number must be exactly 10 digits."
INVALID_COUNTRY_CODE = "Country code must be 1-4 digits and may start with +."


def normalize_email(raw_email: Any) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""

    if raw_email is None:
        return ""
    return str(raw_email).strip().lower()


def clean_text(raw: Any) -> str:
    """Return ``raw`` as a trimmed string; missing values become ``""``."""

    if raw is None:
        return ""
    return str(raw).strip()


def read_password(payload: Mapping[str, Any], key: str) -> str:
    """Return the password under ``key`` untouched; whitespace is significant."""

    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise BadRequest(f"{key} must be a string.")
    return value


def is_valid_phone(phone_number: str) -> bool:
    return PHONE_PATTERN.fullmatch(phone_number) is not None


def is_valid_country_code(country_code: str) -> bool:
    return COUNTRY_CODE_PATTERN.fullmatch(country_code) is not None


def require_password_length(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(PASSWORD_TOO_SHORT)
