"""Request/response schemas for auth endpoints."""

import re
from datetime import datetime

from pydantic import AliasChoices, EmailStr, Field, field_validator

from couponx.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)
from couponx.schemas.common import ApiModel

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
# At least one lowercase letter, one uppercase letter and one digit.
PASSWORD_STRENGTH_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])")


def check_password_strength(value: str) -> str:
    if not PASSWORD_STRENGTH_RE.match(value):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return value


class RegisterRequest(ApiModel):
    """New account. The front end sends the username as 'name'."""

    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        validation_alias=AliasChoices("username", "name"),
        description="Username (letters, numbers, underscores, hyphens)",
    )
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not USERNAME_RE.match(v):
            raise ValueError("Username can only contain letters, numbers, underscores, and hyphens")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(ApiModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshRequest(ApiModel):
    refresh_token: str | None = Field(default=None, description="Refresh token from login or a previous refresh")


class LogoutRequest(ApiModel):
    """Omit refreshToken to sign out of every device."""

    refresh_token: str | None = None


class PasswordResetRequest(ApiModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class PasswordResetConfirm(ApiModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class VerifyEmailRequest(ApiModel):
    token: str = Field(..., min_length=1)


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class ProfileUpdate(ApiModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    bio: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=100)


class TokenPair(ApiModel):
    """JWT pair returned after register, login and refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class UserView(ApiModel):
    """Public projection of a user. Never carries credentials."""

    id: int
    username: str
    email: str
    role: str
    is_premium: bool
    is_active: bool
    is_email_verified: bool
    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    location: str | None = None
    points: int
    level: int
    created_at: datetime | None = None
    last_login_at: datetime | None = None


class AuthData(ApiModel):
    user: UserView
    tokens: TokenPair


class TokensData(ApiModel):
    tokens: TokenPair


class UserData(ApiModel):
    user: UserView
