"""
Security utilities for password hashing, JWT handling and request authentication.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import JWTError, jwt
from pydantic import ValidationError
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.orm import Session
from core.config import settings
from core.exceptions import AuthenticationException
from core.logging import security_logger
from db_config import get_db
from models.models import User, UserRoleEnum
from schemas.auth import TokenPayload

logger = security_logger

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Missing credentials are reported by the dependencies below, not by HTTPBearer
bearer_scheme = HTTPBearer(auto_error=False)

MISSING_TOKEN = "Authentication required. Please log in."
INVALID_TOKEN = "Invalid or expired token. Please log in again."
UNKNOWN_USER = "User not found. Please log in again."


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a plain password against its hash.

    Args:
        plain_password: The plain text password
        hashed_password: The stored hash, None for social-login-only accounts

    Returns:
        bool: True if password matches, False otherwise
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning("Password verification error", error=str(e))
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a plain password.

    Args:
        password: The plain text password to hash

    Returns:
        str: The bcrypt hash
    """
    return pwd_context.hash(password)


def token_payload_for(user: User) -> TokenPayload:
    return TokenPayload(
        id=user.id,
        uuid=user.uuid,
        email=user.email,
        role=user.role.value if isinstance(user.role, UserRoleEnum) else str(user.role),
    )


def create_access_token(payload: TokenPayload, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT carrying the user's identity.

    Args:
        payload: Identity claims (id, uuid, email, role)
        expires_delta: Optional custom lifetime, defaults to the configured one

    Returns:
        str: The encoded JWT token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))

    to_encode = payload.model_dump()
    to_encode.update({"iat": now, "exp": expire})
    token = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    logger.info("Access token created", user_id=payload.id, expires_at=expire.isoformat())
    return token


def create_user_token(user: User) -> str:
    return create_access_token(token_payload_for(user))


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """
    Verify and decode an access token.

    Args:
        token: The JWT token to verify

    Returns:
        TokenPayload: The embedded identity if the token is valid, None otherwise
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return TokenPayload.model_validate(claims)
    except (JWTError, ValidationError) as e:
        logger.warning("Token verification failed", error=str(e))
        return None


def _resolve_identity(token: HTTPAuthorizationCredentials, db: Session) -> TokenPayload:
    if token is None or token.scheme.lower() != "bearer" or not token.credentials:
        raise AuthenticationException(MISSING_TOKEN)

    payload = decode_access_token(token.credentials)
    if payload is None:
        raise AuthenticationException(INVALID_TOKEN)

    user = db.execute(select(User).where(User.id == payload.id)).scalar_one_or_none()
    if user is None:
        logger.warning("User not found for token", user_id=payload.id)
        raise AuthenticationException(UNKNOWN_USER)

    # Role and email come from the database in case they changed since issuance
    return token_payload_for(user)


async def get_current_user(
    request: Request,
    token: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> TokenPayload:
    """
    Resolve the authenticated caller from the Bearer token.

    Args:
        request: The incoming request, its state receives the identity
        token: The credentials from the Authorization header
        db: Database session

    Returns:
        TokenPayload: The caller's identity

    Raises:
        AuthenticationException: If the token is missing, invalid or expired,
            or its user no longer exists
    """
    identity = _resolve_identity(token, db)
    request.state.user = identity
    return identity


async def get_optional_user(
    request: Request,
    token: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[TokenPayload]:
    """Like get_current_user, but yields None instead of rejecting the request."""
    if token is None:
        return None
    try:
        identity = _resolve_identity(token, db)
    except AuthenticationException:
        return None
    request.state.user = identity
    return identity

