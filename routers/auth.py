"""
Authentication routes: registration, login, profile, password change and social login.
"""
from typing import Dict, Optional
from fastapi import APIRouter, Depends, Form, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import AuthenticationException, ServiceUnavailableException
from core.logging import get_logger
from core.security import create_user_token, get_current_user
from db_config import get_db
from schemas.auth import AuthResponse, ChangePasswordRequest, LoginRequest, TokenPayload
from schemas.common import ApiResponse, MessageResponse
from schemas.user import AuthUser, UserCreate, UserEnvelope, UserRead
from services.oauth_service import (
    OAuthProvider, OAuthProviderError, OAuthStateStore,
    get_oauth_providers, get_oauth_state_store, link_oauth_identity
)
from services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])

logger = get_logger("auth")


def _auth_response(user) -> AuthResponse:
    return AuthResponse(user=AuthUser.model_validate(user), token=create_user_token(user))


@router.post("/register", response_model=ApiResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user.

    - **username**: Must be unique, 3-30 characters
    - **email**: Must be unique and valid email format
    - **password**: Minimum 6 characters
    - **location**: One of the supported cities
    """
    logger.info("User registration attempt", username=user_data.username)
    user = UserService(db).register(user_data)
    return ApiResponse(data=_auth_response(user))


@router.post("/login", response_model=ApiResponse[AuthResponse])
async def login_user(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password and return a JWT token."""
    user = UserService(db).authenticate(login_data.email, login_data.password)
    return ApiResponse(data=_auth_response(user))


@router.get("/me", response_model=ApiResponse[UserEnvelope])
async def get_me(
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the authenticated user's full profile."""
    user = UserService(db).get_by_id(current_user.id)
    return ApiResponse(data=UserEnvelope(user=UserRead.model_validate(user)))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: TokenPayload = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the password of a password-based account."""
    UserService(db).change_password(current_user.id, payload)
    return MessageResponse(message="Password changed successfully")


# ============ Social login ============

def _configured_provider(providers: Dict[str, OAuthProvider], name: str) -> OAuthProvider:
    provider = providers[name]
    if not provider.is_configured():
        raise ServiceUnavailableException(f"{provider.display_name} login is not configured")
    return provider


def _begin_login(name: str, providers: Dict[str, OAuthProvider], store: OAuthStateStore) -> RedirectResponse:
    provider = _configured_provider(providers, name)
    state = store.issue(name)
    logger.info("OAuth login started", provider=name)
    return RedirectResponse(provider.authorization_url(state))


async def _complete_login(
    name: str,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
    providers: Dict[str, OAuthProvider],
    store: OAuthStateStore,
    db: Session,
    user_data: Optional[str] = None
) -> RedirectResponse:
    provider = _configured_provider(providers, name)
    failure = f"{provider.display_name} authentication failed"

    if not state or not store.consume(state, name):
        logger.warning("OAuth callback with invalid state", provider=name)
        raise AuthenticationException("Invalid or expired login session. Please try again.")

    if error or not code:
        logger.warning("OAuth provider returned an error", provider=name, error=error)
        raise AuthenticationException(failure)

    try:
        identity = await provider.exchange_code(code, user_data)
    except OAuthProviderError as e:
        logger.warning("OAuth code exchange failed", provider=name, error=str(e))
        raise AuthenticationException(failure) from e

    user = link_oauth_identity(db, identity, settings)
    token = create_user_token(user)
    return RedirectResponse(
        f"{settings.frontend_url}/auth/callback?token={token}",
        status_code=status.HTTP_302_FOUND
    )


@router.get("/google")
async def google_login(
    providers: Dict[str, OAuthProvider] = Depends(get_oauth_providers),
    store: OAuthStateStore = Depends(get_oauth_state_store)
):
    """Redirect to Google's consent screen."""
    return _begin_login("google", providers, store)


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    providers: Dict[str, OAuthProvider] = Depends(get_oauth_providers),
    store: OAuthStateStore = Depends(get_oauth_state_store),
    db: Session = Depends(get_db)
):
    """Finish Google login and redirect to the frontend with a token."""
    return await _complete_login("google", code, state, error, providers, store, db)


@router.get("/apple")
async def apple_login(
    providers: Dict[str, OAuthProvider] = Depends(get_oauth_providers),
    store: OAuthStateStore = Depends(get_oauth_state_store)
):
    """Redirect to Sign in with Apple."""
    return _begin_login("apple", providers, store)


@router.post("/apple/callback")
async def apple_callback(
    code: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    error: Optional[str] = Form(None),
    user: Optional[str] = Form(None),
    providers: Dict[str, OAuthProvider] = Depends(get_oauth_providers),
    store: OAuthStateStore = Depends(get_oauth_state_store),
    db: Session = Depends(get_db)
):
    """Finish Apple login (form_post response mode) and redirect to the frontend."""
    return await _complete_login("apple", code, state, error, providers, store, db, user_data=user)
