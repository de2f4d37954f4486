"""
OAuth Service: provider clients, handshake state storage and identity linking.

The handshake state store is an interface so that tests can run with the
in-memory store and production deployments can keep state in the database.
Both the store and the provider clients live on ``app.state`` and reach the
routes through FastAPI dependencies.
"""
import json
import random
import re
import secrets
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx
from fastapi import Request
from jose import jwt, JWTError
from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from core.config import Settings
from core.exceptions import AuthenticationException
from core.logging import get_logger
from models.models import OAuthState, User, LocationEnum, VisibilityEnum, UserRoleEnum
from services.user_service import UserService

logger = get_logger("oauth")

USERNAME_MAX_LENGTH = 30


class OAuthProviderError(Exception):
    """Raised when a provider rejects a code exchange or cannot be reached."""


class OAuthIdentity(BaseModel):
    """Identity asserted by a provider after a successful code exchange."""
    provider: str
    subject: str
    email: Optional[str] = None
    name: Optional[str] = None


# ============ Handshake state ============

class OAuthStateStore(ABC):
    """Single-use, expiring ``state`` values for the OAuth redirect handshake."""

    def __init__(self, ttl_seconds: int = 600):
        self.ttl = timedelta(seconds=ttl_seconds)

    @staticmethod
    def _new_state() -> str:
        return secrets.token_urlsafe(32)

    @abstractmethod
    def issue(self, provider: str) -> str:
        """Create and remember a new state value for ``provider``."""

    @abstractmethod
    def consume(self, state: str, provider: str) -> bool:
        """Forget ``state`` and report whether it was valid for ``provider``."""


class InMemoryOAuthStateStore(OAuthStateStore):
    """Process-local store. Suitable for tests and single-process deployments."""

    def __init__(self, ttl_seconds: int = 600, clock: Callable[[], datetime] = None):
        super().__init__(ttl_seconds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._states: Dict[str, Tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def issue(self, provider: str) -> str:
        state = self._new_state()
        now = self._clock()
        with self._lock:
            # Drop expired entries so abandoned handshakes do not accumulate
            self._states = {k: v for k, v in self._states.items() if v[1] > now}
            self._states[state] = (provider, now + self.ttl)
        return state

    def consume(self, state: str, provider: str) -> bool:
        with self._lock:
            entry = self._states.pop(state, None)
        if entry is None:
            return False
        stored_provider, expires_at = entry
        return stored_provider == provider and expires_at > self._clock()


class DatabaseOAuthStateStore(OAuthStateStore):
    """Store backed by the ``oauth_state`` table, shared by all workers."""

    def __init__(self, session_factory: Callable[[], Session], ttl_seconds: int = 600):
        super().__init__(ttl_seconds)
        self._session_factory = session_factory

    def issue(self, provider: str) -> str:
        state = self._new_state()
        now = datetime.now(timezone.utc)
        with self._session_factory() as db:
            db.execute(delete(OAuthState).where(OAuthState.expires_at <= now))
            db.add(OAuthState(state=state, provider=provider, created_at=now, expires_at=now + self.ttl))
            db.commit()
        return state

    def consume(self, state: str, provider: str) -> bool:
        with self._session_factory() as db:
            row = db.execute(select(OAuthState).where(OAuthState.state == state)).scalar_one_or_none()
            if row is None:
                return False
            stored_provider, expires_at = row.provider, row.expires_at
            db.delete(row)
            db.commit()
        if expires_at.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return stored_provider == provider and expires_at > datetime.now(timezone.utc)


def build_state_store(settings: Settings, session_factory: Callable[[], Session]) -> OAuthStateStore:
    if settings.oauth_state_backend == "database":
        return DatabaseOAuthStateStore(session_factory, settings.oauth_state_ttl_seconds)
    return InMemoryOAuthStateStore(settings.oauth_state_ttl_seconds)


# ============ Providers ============

class OAuthProvider(ABC):
    """Authorization-code flow client for one identity provider."""

    name: str = ""
    display_name: str = ""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.timeout = settings.oauth_http_timeout_seconds

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the credentials needed for this provider are present."""

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """URL the browser is sent to for consent."""

    @abstractmethod
    async def exchange_code(self, code: str, user_data: Optional[str] = None) -> OAuthIdentity:
        """Trade an authorization code for the user's identity."""

    async def _post_token(self, url: str, form: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, data=form, headers={"Accept": "application/json"})
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.error("OAuth token exchange failed", provider=self.name, error=str(e))
            raise OAuthProviderError(f"{self.display_name} token exchange failed") from e


class GoogleOAuthProvider(OAuthProvider):
    name = "google"
    display_name = "Google"

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

    def is_configured(self) -> bool:
        return bool(self.settings.google_client_id and self.settings.google_client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.settings.google_client_id,
            "redirect_uri": self.settings.google_redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, user_data: Optional[str] = None) -> OAuthIdentity:
        tokens = await self._post_token(self.TOKEN_URL, {
            "code": code,
            "client_id": self.settings.google_client_id,
            "client_secret": self.settings.google_client_secret,
            "redirect_uri": self.settings.google_redirect_uri,
            "grant_type": "authorization_code",
        })
        access_token = tokens.get("access_token")
        if not access_token:
            raise OAuthProviderError("Google did not return an access token")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"}
                )
                response.raise_for_status()
                profile = response.json()
        except httpx.HTTPError as e:
            logger.error("Google profile request failed", error=str(e))
            raise OAuthProviderError("Google profile request failed") from e

        return OAuthIdentity(
            provider=self.name,
            subject=str(profile["sub"]),
            email=profile.get("email"),
            name=profile.get("name"),
        )


class AppleOAuthProvider(OAuthProvider):
    name = "apple"
    display_name = "Apple"

    AUTHORIZE_URL = "https://appleid.apple.com/auth/authorize"
    TOKEN_URL = "https://appleid.apple.com/auth/token"
    AUDIENCE = "https://appleid.apple.com"

    def is_configured(self) -> bool:
        s = self.settings
        return bool(s.apple_client_id and s.apple_team_id and s.apple_key_id and s.apple_private_key)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.settings.apple_client_id,
            "redirect_uri": self.settings.apple_redirect_uri,
            "response_type": "code",
            "response_mode": "form_post",
            "scope": "name email",
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    def client_secret(self) -> str:
        """Short-lived ES256 JWT that Apple accepts as the client secret."""
        now = datetime.now(timezone.utc)
        claims = {
            "iss": self.settings.apple_team_id,
            "iat": now,
            "exp": now + timedelta(minutes=5),
            "aud": self.AUDIENCE,
            "sub": self.settings.apple_client_id,
        }
        private_key = self.settings.apple_private_key.replace("\\n", "\n")
        return jwt.encode(claims, private_key, algorithm="ES256", headers={"kid": self.settings.apple_key_id})

    @staticmethod
    def _name_from_user_data(user_data: Optional[str]) -> Optional[str]:
        # Apple posts the user's name only on the first authorization
        if not user_data:
            return None
        try:
            name = json.loads(user_data).get("name") or {}
        except (ValueError, AttributeError):
            return None
        first, last = name.get("firstName"), name.get("lastName")
        if first and last:
            return f"{first} {last}"
        return None

    async def exchange_code(self, code: str, user_data: Optional[str] = None) -> OAuthIdentity:
        tokens = await self._post_token(self.TOKEN_URL, {
            "code": code,
            "client_id": self.settings.apple_client_id,
            "client_secret": self.client_secret(),
            "redirect_uri": self.settings.apple_redirect_uri,
            "grant_type": "authorization_code",
        })
        id_token = tokens.get("id_token")
        if not id_token:
            raise OAuthProviderError("Apple did not return an identity token")

        try:
            # Received directly from Apple's token endpoint over TLS
            claims = jwt.get_unverified_claims(id_token)
        except JWTError as e:
            raise OAuthProviderError("Apple identity token is malformed") from e

        return OAuthIdentity(
            provider=self.name,
            subject=str(claims["sub"]),
            email=claims.get("email"),
            name=self._name_from_user_data(user_data),
        )


def build_providers(settings: Settings) -> Dict[str, OAuthProvider]:
    return {
        GoogleOAuthProvider.name: GoogleOAuthProvider(settings),
        AppleOAuthProvider.name: AppleOAuthProvider(settings),
    }


# ============ Dependencies ============

def get_oauth_state_store(request: Request) -> OAuthStateStore:
    return request.app.state.oauth_state_store


def get_oauth_providers(request: Request) -> Dict[str, OAuthProvider]:
    return request.app.state.oauth_providers


# ============ Identity linking ============

_PROVIDER_COLUMNS = {
    "google": "google_id",
    "apple": "apple_id",
}


def _username_base(email: str) -> str:
    local_part = email.split("@", 1)[0]
    base = re.sub(r"[^A-Za-z0-9_]", "", local_part) or "user"
    # Leave room for the numeric suffix
    return base[: USERNAME_MAX_LENGTH - 8]


def generate_username(service: UserService, email: str, max_attempts: int) -> str:
    """
    Email local part plus a random 0-999 suffix.

    After ``max_attempts`` collisions the suffix becomes 8 random hex digits.
    """
    base = _username_base(email)
    for _ in range(max_attempts):
        candidate = f"{base}{random.randint(0, 999)}"
        if not service.username_taken(candidate):
            return candidate
    logger.warning("Username suffixes exhausted, using random fallback", base=base)
    return f"{base}{secrets.token_hex(4)}"


def link_oauth_identity(db: Session, identity: OAuthIdentity, settings: Settings) -> User:
    """
    Resolve the local account for a provider identity.

    Lookup order: provider id, then email (linking the provider id to the
    existing account), then a new verified account.

    Raises:
        AuthenticationException: If the provider did not supply an email and
            no account is linked to the provider id yet
    """
    column_name = _PROVIDER_COLUMNS[identity.provider]
    column = getattr(User, column_name)
    display_name = identity.provider.capitalize()

    user = db.execute(select(User).where(column == identity.subject)).scalar_one_or_none()
    if user is not None:
        logger.info("OAuth login", provider=identity.provider, user_id=user.id)
        return user

    if not identity.email:
        raise AuthenticationException(f"No email found in {display_name} profile")

    service = UserService(db)
    user = service.get_by_email(identity.email)
    if user is not None:
        setattr(user, column_name, identity.subject)
        user.is_verified = True
        db.commit()
        db.refresh(user)
        logger.info("OAuth identity linked to existing account", provider=identity.provider, user_id=user.id)
        return user

    username = generate_username(service, identity.email, settings.oauth_username_max_attempts)
    user = User(
        username=username,
        email=identity.email,
        name=identity.name or username,
        role=UserRoleEnum.user,
        location=LocationEnum(settings.oauth_default_location),
        visibility=VisibilityEnum.public,
        is_verified=True,
    )
    setattr(user, column_name, identity.subject)
    user = service.create_user_with_preferences(user)
    logger.info("OAuth account created", provider=identity.provider, user_id=user.id)
    return user
