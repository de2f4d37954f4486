"""
Tests for registration, login, the current-user endpoint and password changes.
"""
from datetime import timedelta

from core.security import create_access_token, decode_access_token
from schemas.auth import TokenPayload


def test_register_returns_token_with_identity(client):
    response = client.post("/api/auth/register", json={
        "username": "alice",
        "email": "a@x.com",
        "password": "secret1",
        "name": "Alice",
        "location": "chandigarh",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "success"

    user = body["data"]["user"]
    assert user["username"] == "alice"
    assert user["role"] == "user"
    assert "passwordHash" not in user

    payload = decode_access_token(body["data"]["token"])
    assert payload.id == user["id"]
    assert payload.uuid == user["uuid"]
    assert payload.email == "a@x.com"
    assert payload.role == "user"


def test_register_creates_default_preferences(client, register_user):
    _, headers = register_user("alice")
    response = client.get("/api/users/preferences", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["selectedCategories"] == ["announcement", "event", "news"]
    assert data["notificationPreferences"] == {"all": True}


def test_register_duplicate_username(client, register_user):
    register_user("alice")
    response = client.post("/api/auth/register", json={
        "username": "alice",
        "email": "other@example.com",
        "password": "secret1",
        "name": "Other",
        "location": "amritsar",
    })
    assert response.status_code == 409
    body = response.json()
    assert body == {
        "status": "error",
        "message": "Username already exists",
        "errors": {"username": ["This username is already taken"]},
    }


def test_register_duplicate_email(client, register_user):
    register_user("alice", email="shared@example.com")
    response = client.post("/api/auth/register", json={
        "username": "alice2",
        "email": "shared@example.com",
        "password": "secret1",
        "name": "Alice Two",
        "location": "amritsar",
    })
    assert response.status_code == 409
    assert response.json()["message"] == "Email already exists"
    assert "email" in response.json()["errors"]


def test_register_validation_errors_are_keyed_by_field(client):
    response = client.post("/api/auth/register", json={
        "username": "al",
        "email": "not-an-email",
        "password": "123",
        "name": "A",
        "location": "paris",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["message"] == "Validation error"
    assert {"username", "email", "password", "name", "location"} <= set(body["errors"])


def test_login_success(client, register_user):
    register_user("alice", email="alice@example.com", password="secret1")
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret1"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["email"] == "alice@example.com"
    assert decode_access_token(data["token"]).email == "alice@example.com"


def test_login_wrong_password(client, register_user):
    register_user("alice", password="secret1")
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json() == {"status": "error", "message": "Invalid email or password"}


def test_login_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "secret1"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Authentication required. Please log in."


def test_me_rejects_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token. Please log in again."


def test_me_rejects_expired_token(client, register_user):
    user, _ = register_user("alice")
    token = create_access_token(
        TokenPayload(id=user["id"], uuid=user["uuid"], email=user["email"], role="user"),
        expires_delta=timedelta(seconds=-1),
    )
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_me_rejects_token_for_deleted_user(client):
    token = create_access_token(TokenPayload(id=999, uuid="missing", email="ghost@example.com", role="user"))
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["message"] == "User not found. Please log in again."


def test_me_returns_full_profile(client, register_user):
    user, headers = register_user("alice", phone="9876543210")
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 200
    profile = response.json()["data"]["user"]
    assert profile["id"] == user["id"]
    assert profile["phone"] == "9876543210"
    assert profile["visibility"] == "public"
    assert profile["isVerified"] is False


def test_change_password(client, register_user):
    _, headers = register_user("alice", password="secret1")
    response = client.post("/api/auth/change-password", headers=headers, json={
        "currentPassword": "secret1",
        "newPassword": "secret2",
        "confirmPassword": "secret2",
    })
    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Password changed successfully"}

    old = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret1"})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret2"})
    assert new.status_code == 200


def test_change_password_wrong_current(client, register_user):
    _, headers = register_user("alice", password="secret1")
    response = client.post("/api/auth/change-password", headers=headers, json={
        "currentPassword": "nope123",
        "newPassword": "secret2",
        "confirmPassword": "secret2",
    })
    assert response.status_code == 400
    assert response.json()["errors"] == {"currentPassword": ["Current password is incorrect"]}


def test_change_password_mismatch(client, register_user):
    _, headers = register_user("alice", password="secret1")
    response = client.post("/api/auth/change-password", headers=headers, json={
        "currentPassword": "secret1",
        "newPassword": "secret2",
        "confirmPassword": "secret3",
    })
    assert response.status_code == 400
    assert response.json()["errors"]["confirmPassword"] == ["Passwords don't match"]
