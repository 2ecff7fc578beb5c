"""Auth endpoints and auth dependencies (get_current_user, require_role)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from couponx.core.config import Settings, get_settings
from couponx.core.database import get_db
from couponx.core.errors import AppError
from couponx.core.rate_limit import auth_rate_limit
from couponx.models.user import User
from couponx.policy import Role, can_access
from couponx.schemas.auth import (
    AuthData,
    ChangePasswordRequest,
    LoginRequest,
    LogoutRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    TokensData,
    UserData,
    VerifyEmailRequest,
)
from couponx.schemas.common import Envelope
from couponx.services import auth as auth_service

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """
    Dependency: require a valid Bearer access token and return the persisted user.

    No Authorization header -> MISSING_TOKEN; a header that is not a usable
    Bearer token, or a bad/expired/revoked token -> INVALID_TOKEN.
    """
    if credentials is None:
        if request.headers.get("Authorization"):
            raise AppError(
                "Access denied. Invalid token format.",
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="INVALID_TOKEN",
                headers={"WWW-Authenticate": "Bearer"},
            )
        raise AppError(
            "Access denied. No token provided.",
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="MISSING_TOKEN",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.authenticate_access_token(db, credentials.credentials)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User | None:
    """Dependency: the current user when a valid token is sent, otherwise None."""
    if credentials is None:
        return None
    try:
        return auth_service.authenticate_access_token(db, credentials.credentials)
    except AppError:
        return None


def require_role(role: Role) -> Callable[[User], User]:
    """Build a dependency that lets through only users satisfying can_access(role, user)."""

    def dependency(current_user: Annotated[User, Depends(get_current_user)]) -> User:
        if not can_access(role, current_user):
            if role is Role.PREMIUM:
                raise AppError(
                    "Access denied. Premium subscription required.",
                    status_code=status.HTTP_403_FORBIDDEN,
                    code="PREMIUM_REQUIRED",
                )
            raise AppError(
                "Access denied. Insufficient permissions.",
                status_code=status.HTTP_403_FORBIDDEN,
                code="INSUFFICIENT_PERMISSIONS",
            )
        return current_user

    return dependency


require_admin = require_role(Role.ADMIN)
require_premium = require_role(Role.PREMIUM)


@router.post(
    "/register",
    response_model=Envelope[AuthData],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    background_tasks: BackgroundTasks,
) -> Envelope[AuthData]:
    """Create an account; returns the new user and a token pair."""
    user, tokens = auth_service.register_user(db, body, settings, background_tasks)
    return Envelope(
        message="User registered successfully",
        data=AuthData(user=auth_service.to_user_view(user), tokens=tokens),
    )


@router.post("/login", response_model=Envelope[AuthData], dependencies=[Depends(auth_rate_limit)])
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Envelope[AuthData]:
    """
    Authenticate with email and password; returns the user and a token pair.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    user, tokens = auth_service.login_user(db, body.email, body.password, settings)
    return Envelope(
        message="Login successful",
        data=AuthData(user=auth_service.to_user_view(user), tokens=tokens),
    )


@router.post("/refresh", response_model=Envelope[TokensData], dependencies=[Depends(auth_rate_limit)])
def refresh(
    body: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Envelope[TokensData]:
    """Exchange a refresh token for a new pair. The old refresh token stops working."""
    tokens = auth_service.refresh_tokens(db, body.refresh_token, settings)
    return Envelope(message="Token refreshed successfully", data=TokensData(tokens=tokens))


@router.post("/logout", response_model=Envelope[None])
def logout(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    body: LogoutRequest | None = None,
) -> Envelope[None]:
    """Revoke the given refresh token, or every refresh token when none is sent."""
    auth_service.logout_user(db, current_user, body.refresh_token if body else None)
    return Envelope(message="Logout successful")


@router.post("/logout-all", response_model=Envelope[None])
def logout_all(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[None]:
    """Sign out of every device, including access tokens that have not expired yet."""
    auth_service.logout_everywhere(db, current_user)
    return Envelope(message="Logged out from all devices successfully")


@router.get("/profile", response_model=Envelope[UserData])
def get_profile(current_user: Annotated[User, Depends(get_current_user)]) -> Envelope[UserData]:
    return Envelope(data=UserData(user=auth_service.to_user_view(current_user)))


@router.patch("/profile", response_model=Envelope[UserData])
def patch_profile(
    body: ProfileUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[UserData]:
    user = auth_service.update_profile(db, current_user, body)
    return Envelope(message="Profile updated successfully", data=UserData(user=auth_service.to_user_view(user)))


@router.post("/change-password", response_model=Envelope[None])
def change_password(
    body: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[None]:
    auth_service.change_password(db, current_user, body.current_password, body.new_password)
    return Envelope(message="Password changed successfully. Please log in again with your new password.")


@router.post(
    "/reset-password",
    response_model=Envelope[None],
    dependencies=[Depends(auth_rate_limit)],
)
def reset_password(
    body: PasswordResetRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    background_tasks: BackgroundTasks,
) -> Envelope[None]:
    """
    Always answers the same way so the response does not reveal whether the email exists.
    The reset link is only ever delivered by email.
    """
    auth_service.request_password_reset(db, body.email, settings, background_tasks)
    return Envelope(message=auth_service.RESET_REQUESTED_MESSAGE)


@router.post(
    "/reset-password/confirm",
    response_model=Envelope[None],
    dependencies=[Depends(auth_rate_limit)],
)
def confirm_reset_password(
    body: PasswordResetConfirm,
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[None]:
    auth_service.confirm_password_reset(db, body.token, body.new_password)
    return Envelope(message="Password has been reset successfully. Please log in with your new password.")


@router.post("/verify-email", response_model=Envelope[UserData])
def verify_email(
    body: VerifyEmailRequest,
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[UserData]:
    user = auth_service.verify_email(db, body.token)
    return Envelope(message="Email verified successfully", data=UserData(user=auth_service.to_user_view(user)))
