"""User blueprint: self lookup and admin management of accounts."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest, Conflict, NotFound

from models.user import USER_ROLES, User
from storage import users as user_store
from utils.auth_gate import AuthContext, admin_required, login_required
from utils.credentials import (
    INVALID_COUNTRY_CODE,
    INVALID_PHONE,
    clean_text,
    is_valid_country_code,
    is_valid_phone,
    normalize_email,
    read_password,
    require_password_length,
)
from utils.request_validation import parse_json_request

users_bp = Blueprint("users", __name__)


def _get_user_or_404(raw_id: str) -> User:
    try:
        user_id = int(raw_id)
    except (TypeError, ValueError):
        raise BadRequest("Invalid user id.")
    user = user_store.find_by_id(user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def _collect_changes(payload: dict) -> dict:
    """Validate a PATCH body and return the column updates it describes."""

    changes = {}

    email = normalize_email(payload.get("email"))
    if email:
        changes["email"] = email

    if "displayName" in payload:
        changes["display_name"] = clean_text(payload.get("displayName")) or None

    if "name" in payload:
        name = clean_text(payload.get("name"))
        if not name:
            raise BadRequest("Name must not be empty.")
        changes["name"] = name

    if "role" in payload:
        role = payload.get("role")
        if role not in USER_ROLES:
            raise BadRequest("Invalid role.")
        changes["role"] = role

    if "phoneNumber" in payload:
        phone_number = clean_text(payload.get("phoneNumber"))
        if not is_valid_phone(phone_number):
            raise BadRequest(INVALID_PHONE)
        if "countryCode" not in payload:
            raise BadRequest("Country code is required when updating phone number.")
        changes["phone_number"] = phone_number

    if "countryCode" in payload:
        country_code = clean_text(payload.get("countryCode"))
        if not is_valid_country_code(country_code):
            raise BadRequest(INVALID_COUNTRY_CODE)
        changes["country_code"] = country_code

    return changes


@users_bp.route("/me", methods=["GET"])
@login_required
def current_user(auth: AuthContext):
    return jsonify(auth.user)


@users_bp.route("/<user_id>", methods=["GET"])
@admin_required
def get_user(user_id: str, auth: AuthContext):
    """Return any user record. Admins only."""

    return jsonify(_get_user_or_404(user_id).to_dict())


@users_bp.route("/<user_id>", methods=["PATCH"])
@admin_required
def update_user(user_id: str, auth: AuthContext):
    """Update profile, contact, role or password of a user. Admins only."""

    user = _get_user_or_404(user_id)
    payload = parse_json_request(request, allow_empty=True)

    changes = _collect_changes(payload)
    password = read_password(payload, "password")
    if password:
        require_password_length(password)
    if not changes and not password:
        raise BadRequest("No fields provided to update.")

    if password:
        user.set_password(password)
    try:
        user_store.update_fields(user, changes)
    except user_store.DuplicateKeyError:
        raise Conflict("Email or phone already in use.")

    updated = sorted(changes) + (["password"] if password else [])
    current_app.logger.info(
        "Admin %s updated user %s (%s)", auth.user_id, user.id, ", ".join(updated)
    )
    return jsonify({"message": "User updated successfully.", "user": user.to_dict()})
