"""Tests for registration, login, profile and token handling."""
from datetime import timedelta

from conftest import API, bearer, register

from notes_api.auth import create_access_token
from notes_api.models import User


def test_register_returns_token_and_profile(client):
    response = client.post(
        f"{API}/auth/register",
        json={"name": "Jane", "email": "Jane@X.com", "password": "Secret123"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    assert body["errors"] is None
    assert body["timestamp"]
    data = body["data"]
    assert data["token"]
    assert data["tokenType"] == "bearer"
    assert data["user"]["name"] == "Jane"
    assert data["user"]["email"] == "jane@x.com"
    assert "passwordHash" not in data["user"]


def test_register_duplicate_email_conflicts(client):
    register(client)
    response = client.post(
        f"{API}/auth/register",
        json={"name": "Jane Again", "email": "jane@x.com", "password": "Secret123"},
    )
    assert response.status_code == 409
    assert response.json()["success"] is False
    assert response.json()["message"] == "Email already registered"


def test_register_rejects_weak_password(client):
    response = client.post(
        f"{API}/auth/register",
        json={"name": "Jane", "email": "jane@x.com", "password": "alllowercase"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert body["errors"][0]["field"] == "password"
    assert "uppercase" in body["errors"][0]["message"]


def test_register_validation_does_not_echo_input(client):
    response = client.post(
        f"{API}/auth/register",
        json={"name": "J", "email": "not-an-email", "password": "Secret123"},
    )
    assert response.status_code == 400
    assert "not-an-email" not in response.text
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"name", "email"}


def test_login_success(client):
    register(client)
    response = client.post(f"{API}/auth/login", json={"email": "jane@x.com", "password": "Secret123"})
    assert response.status_code == 200
    assert response.json()["data"]["token"]
    assert response.json()["data"]["user"]["email"] == "jane@x.com"


def test_login_failures_are_indistinguishable(client):
    register(client)
    wrong_email = client.post(
        f"{API}/auth/login", json={"email": "nobody@x.com", "password": "Secret123"}
    )
    wrong_password = client.post(
        f"{API}/auth/login", json={"email": "jane@x.com", "password": "Wrong123"}
    )
    assert wrong_email.status_code == wrong_password.status_code == 401
    assert wrong_email.json()["message"] == wrong_password.json()["message"] == "Invalid credentials"
    assert wrong_email.json()["errors"] == wrong_password.json()["errors"]


def test_profile_requires_token(client):
    response = client.get(f"{API}/auth/profile")
    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.headers["www-authenticate"] == "Bearer"


def test_garbage_token_is_unauthorized(client):
    response = client.get(f"{API}/auth/profile", headers=bearer("not.a.jwt"))
    assert response.status_code == 401


def test_expired_token_is_unauthorized(client, settings):
    register(client)
    token = create_access_token(
        {"sub": "1"}, settings.secret_key, expires_delta=timedelta(minutes=-5)
    )
    response = client.get(f"{API}/auth/profile", headers=bearer(token))
    assert response.status_code == 401


def test_token_for_removed_user_is_unauthorized(client, app):
    headers = bearer(register(client))
    with app.state.db.session() as session:
        session.delete(session.get(User, 1))
        session.commit()
    response = client.get(f"{API}/auth/profile", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "User not found for token"


def test_get_and_update_profile(client, auth_headers):
    response = client.get(f"{API}/auth/profile", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Jane"

    response = client.put(
        f"{API}/auth/profile", json={"name": "Jane Doe", "email": "doe@x.com"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Jane Doe"
    assert response.json()["data"]["email"] == "doe@x.com"


def test_update_profile_requires_a_field(client, auth_headers):
    response = client.put(f"{API}/auth/profile", json={}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "No fields provided for update"


def test_update_profile_email_taken(client, auth_headers, other_headers):
    response = client.put(f"{API}/auth/profile", json={"email": "bob@x.com"}, headers=auth_headers)
    assert response.status_code == 409


def test_change_password(client, auth_headers):
    response = client.put(
        f"{API}/auth/change-password",
        json={"currentPassword": "Wrong123", "newPassword": "Newpass123"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid current password"

    response = client.put(
        f"{API}/auth/change-password",
        json={"currentPassword": "Secret123", "newPassword": "Newpass123"},
        headers=auth_headers,
    )
    assert response.status_code == 200

    old = client.post(f"{API}/auth/login", json={"email": "jane@x.com", "password": "Secret123"})
    new = client.post(f"{API}/auth/login", json={"email": "jane@x.com", "password": "Newpass123"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_logout_acknowledges(client, auth_headers):
    response = client.post(f"{API}/auth/logout", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"
