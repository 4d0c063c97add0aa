"""Tests for password reset and password change."""

from __future__ import annotations

from datetime import timedelta

from flask.testing import FlaskClient

from models import db
from models.user import User
from models.user_session import UserSession
from utils.clock import utcnow
from utils.reset_tokens import RESET_TOKEN_TTL, hash_reset_token

REGISTRATION = {
    "email": "reset@example.com",
    "password": "original-pass",
    "name": "Reset",
    "phoneNumber": "5557654321",
    "countryCode": "+1",
}
GENERIC_MESSAGE = "If that account exists, a password reset email has been sent."


def _register_and_login(client: FlaskClient) -> None:
    client.post("/auth/register", json=REGISTRATION)
    response = client.post(
        "/auth/login",
        json={"email": REGISTRATION["email"], "password": REGISTRATION["password"]},
    )
    assert response.status_code == 200


def _request_reset(client: FlaskClient, email: str = REGISTRATION["email"]):
    return client.post("/auth/password-reset/request", json={"email": email})


def _confirm(client: FlaskClient, token: str, password: str = "brand-new-pass"):
    return client.post(
        "/auth/password-reset/confirm", json={"token": token, "password": password}
    )


def _login_status(client: FlaskClient, password: str) -> int:
    return client.post(
        "/auth/login", json={"email": REGISTRATION["email"], "password": password}
    ).status_code


def test_reset_request_is_uniform(client: FlaskClient):
    """Existing and unknown accounts get the same response apart from the token."""

    client.post("/auth/register", json=REGISTRATION)

    known = _request_reset(client)
    unknown = _request_reset(client, "ghost@example.com")

    assert known.status_code == unknown.status_code == 200
    known_body = known.get_json()
    assert len(known_body.pop("resetToken")) == 64
    assert known_body == unknown.get_json() == {"message": GENERIC_MESSAGE}


def test_reset_request_requires_email(client: FlaskClient):
    response = client.post("/auth/password-reset/request", json={})

    assert response.status_code == 400
    assert response.get_json() == {"error": "Email is required."}


def test_reset_token_is_stored_hashed(app, client: FlaskClient):
    client.post("/auth/register", json=REGISTRATION)
    before = utcnow()
    token = _request_reset(client).get_json()["resetToken"]

    with app.app_context():
        user = User.query.filter_by(email=REGISTRATION["email"]).one()
        assert user.password_reset_token_hash == hash_reset_token(token)
        assert user.password_reset_token_hash != token
        assert before + RESET_TOKEN_TTL <= user.password_reset_expires
        assert user.password_reset_expires <= utcnow() + RESET_TOKEN_TTL
        assert user.has_pending_reset()


def test_reset_confirm_sets_password_and_clears_token(app, client: FlaskClient):
    client.post("/auth/register", json=REGISTRATION)
    token = _request_reset(client).get_json()["resetToken"]

    response = _confirm(client, token)

    assert response.status_code == 200
    assert response.get_json() == {"message": "Password has been reset."}
    assert _login_status(client, REGISTRATION["password"]) == 401
    assert _login_status(client, "brand-new-pass") == 200

    with app.app_context():
        user = User.query.filter_by(email=REGISTRATION["email"]).one()
        assert user.password_reset_token_hash is None
        assert user.password_reset_expires is None


def test_reset_token_is_single_use(client: FlaskClient):
    client.post("/auth/register", json=REGISTRATION)
    token = _request_reset(client).get_json()["resetToken"]

    assert _confirm(client, token).status_code == 200
    reused = _confirm(client, token, "another-pass")

    assert reused.status_code == 400
    assert reused.get_json() == {"error": "Invalid or expired reset token."}


def test_expired_and_consumed_tokens_fail_identically(app, client: FlaskClient):
    client.post("/auth/register", json=REGISTRATION)
    consumed = _request_reset(client).get_json()["resetToken"]
    _confirm(client, consumed)
    consumed_response = _confirm(client, consumed)

    expired = _request_reset(client).get_json()["resetToken"]
    with app.app_context():
        user = User.query.filter_by(email=REGISTRATION["email"]).one()
        user.password_reset_expires = utcnow() - timedelta(seconds=1)
        db.session.commit()
    expired_response = _confirm(client, expired)

    assert consumed_response.status_code == expired_response.status_code == 400
    assert consumed_response.get_json() == expired_response.get_json()


def test_newer_reset_request_supersedes_older_token(client: FlaskClient):
    client.post("/auth/register", json=REGISTRATION)
    first = _request_reset(client).get_json()["resetToken"]
    second = _request_reset(client).get_json()["resetToken"]

    assert _confirm(client, first).status_code == 400
    assert _confirm(client, second).status_code == 200


def test_reset_confirm_validation(client: FlaskClient):
    missing = client.post("/auth/password-reset/confirm", json={"token": "abc"})
    short = _confirm(client, "abc", "short")
    wrong = _confirm(client, "not-a-real-token")

    assert missing.status_code == 400
    assert missing.get_json() == {"error": "Token and new password are required."}
    assert short.get_json() == {"error": "Password must be at least 8 characters."}
    assert wrong.get_json() == {"error": "Invalid or expired reset token."}


def test_reset_confirm_revokes_sessions(app, client: FlaskClient):
    _register_and_login(client)
    assert client.get("/auth/me").status_code == 200
    token = _request_reset(client).get_json()["resetToken"]

    other_device = app.test_client()
    other_device.post(
        "/auth/login",
        json={"email": REGISTRATION["email"], "password": REGISTRATION["password"]},
    )

    assert _confirm(client, token).status_code == 200

    assert client.get("/auth/me").status_code == 401
    assert other_device.get("/auth/me").status_code == 401
    with app.app_context():
        assert UserSession.query.count() == 0


def test_change_password(client: FlaskClient):
    _register_and_login(client)

    response = client.post(
        "/auth/password/change",
        json={"currentPassword": REGISTRATION["password"], "newPassword": "changed-pass"},
    )

    assert response.status_code == 200
    assert response.get_json() == {"message": "Password changed successfully."}
    assert client.get("/auth/me").status_code == 200
    assert _login_status(client, "changed-pass") == 200


def test_change_password_rejects_wrong_current(client: FlaskClient):
    _register_and_login(client)

    response = client.post(
        "/auth/password/change",
        json={"currentPassword": "not-it-at-all", "newPassword": "changed-pass"},
    )

    assert response.status_code == 401
    assert response.get_json() == {"error": "Current password is incorrect."}


def test_change_password_validation(client: FlaskClient):
    _register_and_login(client)

    missing = client.post("/auth/password/change", json={"newPassword": "changed-pass"})
    short = client.post(
        "/auth/password/change",
        json={"currentPassword": REGISTRATION["password"], "newPassword": "short"},
    )

    assert missing.status_code == 400
    assert missing.get_json() == {"error": "Current and new passwords are required."}
    assert short.status_code == 400


def test_change_password_requires_session(client: FlaskClient):
    response = client.post(
        "/auth/password/change",
        json={"currentPassword": "whatever1", "newPassword": "changed-pass"},
    )

    assert response.status_code == 401


def test_change_password_cancels_pending_reset(app, client: FlaskClient):
    _register_and_login(client)
    token = _request_reset(client).get_json()["resetToken"]

    client.post(
        "/auth/password/change",
        json={"currentPassword": REGISTRATION["password"], "newPassword": "changed-pass"},
    )

    with app.app_context():
        user = User.query.filter_by(email=REGISTRATION["email"]).one()
        assert not user.has_pending_reset()
    assert _confirm(client, token).status_code == 400
