"""
Authentication-related Pydantic schemas.
"""
from pydantic import EmailStr, Field, ValidationInfo, field_validator
from schemas.common import CamelModel
from schemas.user import AuthUser


class TokenPayload(CamelModel):
    """Identity embedded in an access token."""
    id: int
    uuid: str
    email: str
    role: str


class LoginRequest(CamelModel):
    """Login request schema."""
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=6, description="Password")


class AuthResponse(CamelModel):
    """Authenticated user plus a bearer token."""
    user: AuthUser
    token: str


class ChangePasswordRequest(CamelModel):
    """Password change request schema."""
    current_password: str = Field(..., min_length=6)
    new_password: str = Field(..., min_length=6)
    confirm_password: str = Field(..., min_length=6)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("Passwords don't match")
        return value
