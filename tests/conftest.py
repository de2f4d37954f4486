"""
Shared fixtures: an in-memory SQLite database, a TestClient and request helpers.
"""
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["OAUTH_STATE_BACKEND"] = "memory"

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app import app
from core.config import settings
from db_config import Base, SessionLocal, engine
from services.category_service import CategoryService
from services.oauth_service import (
    InMemoryOAuthStateStore, OAuthIdentity, OAuthProvider, OAuthProviderError,
    get_oauth_providers, get_oauth_state_store
)


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        CategoryService(db).seed_taxonomy()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    """Register an account and return (user, auth headers)."""

    def _register(username="alice", email=None, password="secret1", **extra):
        payload = {
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "name": username.capitalize(),
            "location": "chandigarh",
        }
        payload.update(extra)
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def category_id(client):
    """Look up a category id by name."""

    def _category_id(name="announcement"):
        categories = client.get("/api/categories").json()["data"]
        return next(c["id"] for c in categories if c["name"] == name)

    return _category_id


@pytest.fixture
def make_post(client, category_id):
    """Create a post as the owner of ``headers`` and return its details."""

    def _make_post(headers, title="Lost wallet near market", category="announcement", **extra):
        payload = {
            "title": title,
            "description": "Brown leather wallet lost yesterday",
            "categoryId": category_id(category),
            "location": "chandigarh",
            "locationDetails": "Main Market",
            "visibility": "public",
        }
        payload.update(extra)
        response = client.post("/api/posts", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make_post


class FakeProvider(OAuthProvider):
    """Provider double that skips the network and returns a fixed identity."""

    def __init__(self, name: str, identity: Optional[OAuthIdentity] = None, fail: bool = False):
        super().__init__(settings)
        self.name = name
        self.display_name = name.capitalize()
        self.identity = identity
        self.fail = fail
        self.exchanged = []

    def is_configured(self) -> bool:
        return True

    def authorization_url(self, state: str) -> str:
        return f"https://{self.name}.example.com/authorize?state={state}"

    async def exchange_code(self, code: str, user_data: Optional[str] = None) -> OAuthIdentity:
        self.exchanged.append((code, user_data))
        if self.fail:
            raise OAuthProviderError("rejected")
        return self.identity


@pytest.fixture
def oauth():
    """Swap the OAuth collaborators for fakes; tests set ``identity`` on each provider."""
    providers = {"google": FakeProvider("google"), "apple": FakeProvider("apple")}
    store = InMemoryOAuthStateStore(ttl_seconds=60)
    app.dependency_overrides[get_oauth_providers] = lambda: providers
    app.dependency_overrides[get_oauth_state_store] = lambda: store
    yield providers, store
    app.dependency_overrides.pop(get_oauth_providers, None)
    app.dependency_overrides.pop(get_oauth_state_store, None)
