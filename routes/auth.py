"""Authentication blueprint: registration, session login/logout and password flows."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request, session
from werkzeug.exceptions import BadRequest, Conflict, Unauthorized

from models.user import hash_password
from storage import users as user_store
from storage.session_interface import destroy_session, rotate_session
from utils.auth_gate import AuthContext, login_required
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
from utils.login_rate_limit import enforce_login_rate_limit
from utils.request_validation import parse_json_request
from utils.reset_tokens import hash_reset_token, issue_reset_token

auth_bp = Blueprint("auth", __name__)

INVALID_CREDENTIALS = "Invalid credentials."
USER_EXISTS = "User with that email or phone already exists."
RESET_REQUESTED = "If that account exists, a password reset email has been sent."
INVALID_RESET_TOKEN = "Invalid or expired reset token."


@auth_bp.route("/register", methods=["POST"])
def register():
    """Create an account from email, password, name and phone details."""

    payload = parse_json_request(request, allow_empty=True)
    email = normalize_email(payload.get("email"))
    name = clean_text(payload.get("name"))
    phone_number = clean_text(payload.get("phoneNumber"))
    country_code = clean_text(payload.get("countryCode"))

    if not all((email, payload.get("password"), name, phone_number, country_code)):
        raise BadRequest(
            "Email, password, name, phone number, and country code are required."
        )
    password = read_password(payload, "password")
    require_password_length(password)
    if not is_valid_phone(phone_number):
        raise BadRequest(INVALID_PHONE)
    if not is_valid_country_code(country_code):
        raise BadRequest(INVALID_COUNTRY_CODE)

    if user_store.find_conflicting(email, phone_number, country_code) is not None:
        raise Conflict(USER_EXISTS)

    try:
        user = user_store.create(
            password,
            email=email,
            name=name,
            display_name=clean_text(payload.get("displayName")) or None,
            phone_number=phone_number,
            country_code=country_code,
        )
    except user_store.DuplicateKeyError:
        # Lost a race with a concurrent registration.
        raise Conflict(USER_EXISTS)

    current_app.logger.info("Registered user %s", user.id)
    return (
        jsonify({"message": "User registered successfully.", "user": user.to_dict()}),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
@enforce_login_rate_limit
def login():
    """Verify credentials and start a new session."""

    payload = parse_json_request(
        request,
        required_keys=("email", "password"),
        allow_empty=True,
        missing_message="Email and password are required.",
    )
    email = normalize_email(payload.get("email"))
    password = read_password(payload, "password")
    if not email or not password:
        raise BadRequest("Email and password are required.")

    user = user_store.find_by_email(email)
    if user is None or not user.check_password(password):
        current_app.logger.warning("Failed login from %s", request.remote_addr)
        raise Unauthorized(INVALID_CREDENTIALS)

    # New id on every login; whatever id the client arrived with stops resolving.
    rotate_session(user_id=user.id)

    current_app.logger.info("User %s logged in", user.id)
    return jsonify({"message": "Login successful.", "user": user.to_dict()}), HTTPStatus.OK


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """End the current session. Succeeds even without one."""

    user_id = session.get("user_id")
    if user_id is None:
        return "", HTTPStatus.NO_CONTENT

    destroy_session()
    current_app.logger.info("User %s logged out", user_id)
    return "", HTTPStatus.NO_CONTENT


@auth_bp.route("/me", methods=["GET"])
@login_required
def me(auth: AuthContext):
    return jsonify(auth.user)


@auth_bp.route("/password-reset/request", methods=["POST"])
def request_password_reset():
    """Issue a reset token for the account, if any, behind a uniform response."""

    payload = parse_json_request(request, allow_empty=True)
    email = normalize_email(payload.get("email"))
    if not email:
        raise BadRequest("Email is required.")

    body = {"message": RESET_REQUESTED}
    user = user_store.find_by_email(email)
    if user is not None:
        token = issue_reset_token(user)
        user_store.save(user)
        current_app.logger.info("Password reset requested for user %s", user.id)
        # No mail transport is wired up; outside production the token is
        # returned directly.
        if not current_app.config["IS_PRODUCTION"]:
            body["resetToken"] = token

    return jsonify(body), HTTPStatus.OK


@auth_bp.route("/password-reset/confirm", methods=["POST"])
def confirm_password_reset():
    """Set a new password using a reset token, then end existing sessions."""

    payload = parse_json_request(request, allow_empty=True)
    token = payload.get("token")
    if not token or not payload.get("password"):
        raise BadRequest("Token and new password are required.")
    password = read_password(payload, "password")
    if not isinstance(token, str):
        raise BadRequest(INVALID_RESET_TOKEN)
    require_password_length(password)

    user_id = user_store.consume_reset_token(hash_reset_token(token), hash_password(password))
    if user_id is None:
        raise BadRequest(INVALID_RESET_TOKEN)

    destroy_session()
    revoked = current_app.session_interface.store.delete_for_user(user_id)
    current_app.logger.info(
        "Password reset completed for user %s; %s session(s) revoked", user_id, revoked
    )
    return jsonify({"message": "Password has been reset."}), HTTPStatus.OK


@auth_bp.route("/password/change", methods=["POST"])
@login_required
def change_password(auth: AuthContext):
    """Replace the caller's password after re-checking the current one."""

    payload = parse_json_request(request, allow_empty=True)
    if not payload.get("currentPassword") or not payload.get("newPassword"):
        raise BadRequest("Current and new passwords are required.")
    current_password = read_password(payload, "currentPassword")
    new_password = read_password(payload, "newPassword")
    require_password_length(new_password)

    user = user_store.find_by_id(auth.user_id)
    if user is None:
        destroy_session()
        raise Unauthorized("Not authenticated.")

    if not user.check_password(current_password):
        raise Unauthorized("Current password is incorrect.")

    # set_password also drops any outstanding reset token.
    user.set_password(new_password)
    user_store.save(user)

    current_app.logger.info("User %s changed their password", user.id)
    return jsonify({"message": "Password changed successfully."}), HTTPStatus.OK
