"""
Tests for the social login handshake, identity linking and the state stores.
"""
import json
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

from core.security import decode_access_token
from db_config import SessionLocal
from models.models import User
from services.oauth_service import (
    DatabaseOAuthStateStore, InMemoryOAuthStateStore, OAuthIdentity, generate_username
)
from services.user_service import UserService


def _query(url: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


def _start(client, provider: str) -> str:
    response = client.get(f"/api/auth/{provider}", follow_redirects=False)
    assert response.status_code == 307
    return _query(response.headers["location"])["state"]


def _google_callback(client, **params):
    return client.get("/api/auth/google/callback", params=params, follow_redirects=False)


def _token_from_redirect(response) -> str:
    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("http://localhost:5173/auth/callback?token=")
    return _query(location)["token"]


def test_google_login_links_existing_account(client, db, oauth, register_user):
    providers, _ = oauth
    carol, _ = register_user("carol", email="carol@example.com")
    providers["google"].identity = OAuthIdentity(
        provider="google", subject="g-123", email="carol@example.com", name="Carol"
    )

    state = _start(client, "google")
    response = _google_callback(client, code="auth-code", state=state)
    token = _token_from_redirect(response)

    assert decode_access_token(token).id == carol["id"]
    assert providers["google"].exchanged == [("auth-code", None)]

    user = db.get(User, carol["id"])
    assert user.google_id == "g-123"
    assert user.is_verified is True
    assert db.query(User).count() == 1

    # Password login keeps working after linking
    login = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "secret1"})
    assert login.status_code == 200


def test_google_login_creates_account(client, db, oauth):
    providers, _ = oauth
    providers["google"].identity = OAuthIdentity(
        provider="google", subject="g-456", email="dave.smith@example.com", name="Dave Smith"
    )

    token = _token_from_redirect(_google_callback(client, code="c", state=_start(client, "google")))
    payload = decode_access_token(token)

    user = db.get(User, payload.id)
    assert user.email == "dave.smith@example.com"
    assert user.name == "Dave Smith"
    assert user.username.startswith("davesmith")
    assert user.password_hash is None
    assert user.is_verified is True
    assert user.location.value == "chandigarh"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200

    login = client.post("/api/auth/login", json={"email": "dave.smith@example.com", "password": "whatever"})
    assert login.status_code == 401
    assert login.json()["message"] == "Please use your social login method"

    # A later login without an email still resolves through the provider id
    providers["google"].identity = OAuthIdentity(provider="google", subject="g-456")
    again = _token_from_redirect(_google_callback(client, code="c", state=_start(client, "google")))
    assert decode_access_token(again).id == payload.id


def test_google_login_without_email(client, oauth):
    providers, _ = oauth
    providers["google"].identity = OAuthIdentity(provider="google", subject="g-789")

    response = _google_callback(client, code="c", state=_start(client, "google"))
    assert response.status_code == 401
    assert response.json()["message"] == "No email found in Google profile"


def test_invalid_or_replayed_state(client, oauth):
    providers, _ = oauth
    providers["google"].identity = OAuthIdentity(provider="google", subject="g-1", email="erin@example.com")

    forged = _google_callback(client, code="c", state="forged")
    assert forged.status_code == 401
    assert forged.json()["message"] == "Invalid or expired login session. Please try again."

    state = _start(client, "google")
    assert _google_callback(client, code="c", state=state).status_code == 302
    assert _google_callback(client, code="c", state=state).status_code == 401


def test_state_is_bound_to_provider(client, oauth):
    state = _start(client, "google")
    response = client.post("/api/auth/apple/callback", data={"code": "c", "state": state}, follow_redirects=False)
    assert response.status_code == 401


def test_provider_failure(client, oauth):
    providers, _ = oauth
    providers["google"].fail = True

    response = _google_callback(client, code="c", state=_start(client, "google"))
    assert response.status_code == 401
    assert response.json()["message"] == "Google authentication failed"

    denied = _google_callback(client, error="access_denied", state=_start(client, "google"))
    assert denied.status_code == 401


def test_apple_form_post_callback(client, db, oauth):
    providers, _ = oauth
    providers["apple"].identity = OAuthIdentity(
        provider="apple", subject="a-1", email="frank@example.com", name="Frank Ocean"
    )
    user_form = json.dumps({"name": {"firstName": "Frank", "lastName": "Ocean"}})

    state = _start(client, "apple")
    response = client.post(
        "/api/auth/apple/callback",
        data={"code": "apple-code", "state": state, "user": user_form},
        follow_redirects=False,
    )
    payload = decode_access_token(_token_from_redirect(response))

    assert providers["apple"].exchanged == [("apple-code", user_form)]
    assert db.get(User, payload.id).apple_id == "a-1"


def test_unconfigured_provider(client):
    response = client.get("/api/auth/google", follow_redirects=False)
    assert response.status_code == 503
    assert response.json()["message"] == "Google login is not configured"


def test_generate_username_falls_back_after_collisions(db, register_user, monkeypatch):
    register_user("bob7", email="bob7@example.com")
    monkeypatch.setattr("services.oauth_service.random.randint", lambda a, b: 7)

    username = generate_username(UserService(db), "bob@example.com", max_attempts=3)
    assert username.startswith("bob")
    assert username != "bob7"
    assert len(username) == len("bob") + 8


def test_generate_username_strips_symbols(db):
    username = generate_username(UserService(db), "mary-jane.o'neil+news@example.com", max_attempts=5)
    assert username.startswith("maryjaneoneilnews")


def test_in_memory_state_store():
    now = [datetime(2026, 1, 1, tzinfo=timezone.utc)]
    store = InMemoryOAuthStateStore(ttl_seconds=60, clock=lambda: now[0])

    state = store.issue("google")
    assert store.consume(state, "google") is True
    assert store.consume(state, "google") is False

    wrong_provider = store.issue("google")
    assert store.consume(wrong_provider, "apple") is False

    expired = store.issue("google")
    now[0] += timedelta(seconds=61)
    assert store.consume(expired, "google") is False


def test_database_state_store():
    store = DatabaseOAuthStateStore(SessionLocal, ttl_seconds=60)

    state = store.issue("apple")
    assert store.consume(state, "apple") is True
    assert store.consume(state, "apple") is False

    expired = DatabaseOAuthStateStore(SessionLocal, ttl_seconds=-1)
    assert expired.consume(expired.issue("apple"), "apple") is False
