"""
Auth service: registration, login, token issue and rotation, logout, password
reset, email verification and account changes.

Every failure is raised as AppError with a machine-readable code. Access
tokens carry the user's token_version; bumping it revokes every access token
already issued for that user.
"""

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import jwt
from fastapi import BackgroundTasks, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from couponx.core.errors import AppError
from couponx.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_opaque_token,
    hash_password,
    hash_token,
    verify_password,
)
from couponx.models.base import ensure_utc, utcnow
from couponx.models.user import RefreshToken, User
from couponx.schemas.auth import ProfileUpdate, RegisterRequest, TokenPair, UserView
from couponx.services import mailer
from couponx.services.gamification import level_for_points

if TYPE_CHECKING:
    from couponx.core.config import Settings

logger = logging.getLogger(__name__)
audit = logging.getLogger("couponx.audit")

MAX_REFRESH_TOKENS_PER_USER = 5
MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION = timedelta(hours=2)
PASSWORD_RESET_TTL = timedelta(minutes=10)
EMAIL_VERIFICATION_TTL = timedelta(hours=24)

RESET_REQUESTED_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _invalid_credentials() -> AppError:
    # Same error for unknown email and wrong password.
    return AppError(
        "Invalid email or password",
        status_code=status.HTTP_401_UNAUTHORIZED,
        code="INVALID_CREDENTIALS",
    )


def _invalid_token(message: str = "Invalid or expired token") -> AppError:
    return AppError(
        message,
        status_code=status.HTTP_401_UNAUTHORIZED,
        code="INVALID_TOKEN",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _invalid_refresh_token() -> AppError:
    return AppError(
        "Invalid or expired refresh token",
        status_code=status.HTTP_401_UNAUTHORIZED,
        code="INVALID_REFRESH_TOKEN",
    )


def to_user_view(user: User) -> UserView:
    return UserView.model_validate(user)


def issue_tokens(db: Session, user: User, settings: "Settings") -> TokenPair:
    """Create an access/refresh pair and store the refresh token hash. Caller commits."""
    access_token = create_access_token(sub=user.id, role=user.role, version=user.token_version)
    refresh_token, expires_at = create_refresh_token(sub=user.id)
    db.add(RefreshToken(user_id=user.id, token_hash=hash_token(refresh_token), expires_at=expires_at))
    db.flush()

    stale = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user.id)
        .order_by(RefreshToken.id.desc())
        .offset(MAX_REFRESH_TOKENS_PER_USER)
        .all()
    )
    for token in stale:
        db.delete(token)

    return TokenPair(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=int(settings.JWT_ACCESS_EXPIRY.total_seconds()),
    )


def revoke_all_refresh_tokens(db: Session, user: User) -> int:
    """Delete every stored refresh token of user. Caller commits."""
    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user.id)
        .delete(synchronize_session=False)
    )
    db.expire(user, ["refresh_tokens"])
    return deleted


def revoke_sessions(db: Session, user: User) -> None:
    """Revoke refresh tokens and invalidate outstanding access tokens. Caller commits."""
    revoke_all_refresh_tokens(db, user)
    user.token_version += 1


def register_user(
    db: Session,
    body: RegisterRequest,
    settings: "Settings",
    background_tasks: BackgroundTasks,
) -> tuple[User, TokenPair]:
    """
    Create an account and sign it in. Raises USER_EXISTS when email or username is taken.

    The verification email is queued on background_tasks and sent after the response.
    """
    existing = (
        db.query(User)
        .filter(or_(User.email == body.email, User.username == body.username))
        .first()
    )
    if existing is not None:
        field = "email" if existing.email == body.email else "username"
        raise AppError(
            f"User with this {field} already exists",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="USER_EXISTS",
        )

    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        role="user",
        is_active=True,
        is_email_verified=False,
        first_name=body.first_name,
        last_name=body.last_name,
        points=settings.STARTING_POINTS,
        level=level_for_points(settings.STARTING_POINTS),
        points_earned=0,
        points_spent=0,
        coupons_uploaded=0,
        coupons_claimed=0,
        claims_today=0,
        login_attempts=0,
        token_version=0,
    )
    verification_token = None
    if settings.ENABLE_EMAIL_VERIFICATION:
        verification_token = generate_opaque_token()
        user.email_verification_token_hash = hash_token(verification_token)
        user.email_verification_expires = utcnow() + EMAIL_VERIFICATION_TTL

    db.add(user)
    try:
        db.flush()
        tokens = issue_tokens(db, user, settings)
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration with the same email/username.
        db.rollback()
        raise AppError(
            "User with this email already exists",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="USER_EXISTS",
        )
    db.refresh(user)

    audit.info("User registered: user_id=%s username=%s", user.id, user.username)
    if verification_token is not None:
        background_tasks.add_task(
            mailer.send_verification_email, settings, user.email, user.username, verification_token
        )
    return user, tokens


def _record_failed_login(db: Session, user: User) -> None:
    lock_until = ensure_utc(user.lock_until)
    if lock_until is not None and lock_until <= utcnow():
        # Previous lock expired; start counting again.
        user.lock_until = None
        user.login_attempts = 1
    else:
        user.login_attempts += 1
        if user.login_attempts >= MAX_LOGIN_ATTEMPTS and not user.is_locked:
            user.lock_until = utcnow() + LOCK_DURATION
            audit.warning("Account locked after %s failed logins: user_id=%s", user.login_attempts, user.id)
    db.commit()


def login_user(db: Session, email: str, password: str, settings: "Settings") -> tuple[User, TokenPair]:
    """
    Verify credentials and issue tokens.

    Lock and deactivation are only reported once the password matched, so a
    wrong password always yields INVALID_CREDENTIALS whether or not the email
    is known.
    """
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        verify_password(password, None)
        audit.warning("Failed login: unknown email")
        raise _invalid_credentials()

    if not verify_password(password, user.password_hash):
        _record_failed_login(db, user)
        audit.warning("Failed login: user_id=%s attempts=%s", user.id, user.login_attempts)
        raise _invalid_credentials()

    if user.is_locked:
        minutes = max(1, int((ensure_utc(user.lock_until) - utcnow()).total_seconds() // 60) + 1)
        raise AppError(
            f"Account is locked. Try again in {minutes} minutes",
            status_code=status.HTTP_423_LOCKED,
            code="ACCOUNT_LOCKED",
        )
    if not user.is_active:
        raise AppError(
            "Account is deactivated",
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="ACCOUNT_DEACTIVATED",
        )

    user.login_attempts = 0
    user.lock_until = None
    user.last_login_at = utcnow()
    tokens = issue_tokens(db, user, settings)
    db.commit()
    db.refresh(user)
    audit.info("User logged in: user_id=%s", user.id)
    return user, tokens


def authenticate_access_token(db: Session, token: str) -> User:
    """
    Resolve an access token to the persisted user.

    Role and premium state come from the database row, not from the token claims.
    """
    try:
        payload = decode_token(token)
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise _invalid_token()

    user = db.get(User, user_id)
    if user is None:
        raise AppError(
            "User not found",
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="USER_NOT_FOUND",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if payload.get("ver", 0) != user.token_version:
        raise _invalid_token("Token has been revoked")
    if not user.is_active:
        raise AppError(
            "Account is deactivated",
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="ACCOUNT_DEACTIVATED",
        )
    if user.is_locked:
        raise AppError(
            "Account is locked",
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="ACCOUNT_LOCKED",
        )
    return user


def refresh_tokens(db: Session, refresh_token: str | None, settings: "Settings") -> TokenPair:
    """Rotate a refresh token: the presented one is consumed and a new pair issued."""
    if not refresh_token:
        raise AppError(
            "Refresh token is required",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="MISSING_REFRESH_TOKEN",
        )
    try:
        payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise _invalid_refresh_token()

    stored = (
        db.query(RefreshToken)
        .filter(RefreshToken.token_hash == hash_token(refresh_token))
        .first()
    )
    if stored is None or stored.user_id != user_id:
        audit.warning("Unknown refresh token presented for user_id=%s", user_id)
        raise _invalid_refresh_token()

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise _invalid_refresh_token()

    db.delete(stored)
    tokens = issue_tokens(db, user, settings)
    db.commit()
    audit.info("Token refreshed: user_id=%s", user.id)
    return tokens


def logout_user(db: Session, user: User, refresh_token: str | None) -> None:
    """Revoke one refresh token, or all of them when none is given."""
    if refresh_token:
        (
            db.query(RefreshToken)
            .filter(
                RefreshToken.user_id == user.id,
                RefreshToken.token_hash == hash_token(refresh_token),
            )
            .delete(synchronize_session=False)
        )
        db.expire(user, ["refresh_tokens"])
    else:
        revoke_all_refresh_tokens(db, user)
    db.commit()
    audit.info("User logged out: user_id=%s all_devices=%s", user.id, not refresh_token)


def logout_everywhere(db: Session, user: User) -> None:
    revoke_sessions(db, user)
    db.commit()
    audit.info("User logged out from all devices: user_id=%s", user.id)


def request_password_reset(
    db: Session,
    email: str,
    settings: "Settings",
    background_tasks: BackgroundTasks,
) -> bool:
    """
    Store a reset token and queue the email. Returns False for unknown emails.

    The mail goes out after the response so known and unknown emails take the
    same time to answer. Callers must answer identically either way.
    """
    user = db.query(User).filter(User.email == email.strip().lower(), User.is_active.is_(True)).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return False

    token = generate_opaque_token()
    user.password_reset_token_hash = hash_token(token)
    user.password_reset_expires = utcnow() + PASSWORD_RESET_TTL
    db.commit()
    audit.info("Password reset requested: user_id=%s", user.id)
    background_tasks.add_task(mailer.send_password_reset_email, settings, user.email, user.username, token)
    return True


def confirm_password_reset(db: Session, token: str, new_password: str) -> None:
    user = db.query(User).filter(User.password_reset_token_hash == hash_token(token)).first()
    expires = ensure_utc(user.password_reset_expires) if user is not None else None
    if user is None or expires is None or expires <= utcnow():
        raise AppError(
            "Token is invalid or has expired",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_RESET_TOKEN",
        )
    user.password_hash = hash_password(new_password)
    user.password_reset_token_hash = None
    user.password_reset_expires = None
    user.login_attempts = 0
    user.lock_until = None
    revoke_sessions(db, user)
    db.commit()
    audit.info("Password reset completed: user_id=%s", user.id)


def verify_email(db: Session, token: str) -> User:
    user = db.query(User).filter(User.email_verification_token_hash == hash_token(token)).first()
    expires = ensure_utc(user.email_verification_expires) if user is not None else None
    if user is None or expires is None or expires <= utcnow():
        raise AppError(
            "Token is invalid or has expired",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_VERIFICATION_TOKEN",
        )
    user.is_email_verified = True
    user.email_verification_token_hash = None
    user.email_verification_expires = None
    db.commit()
    db.refresh(user)
    audit.info("Email verified: user_id=%s", user.id)
    return user


def update_profile(db: Session, user: User, body: ProfileUpdate) -> User:
    updates = body.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    audit.info("Profile updated: user_id=%s fields=%s", user.id, sorted(updates))
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    """Set a new password and sign the user out everywhere."""
    if not verify_password(current_password, user.password_hash):
        raise AppError(
            "Current password is incorrect",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_CURRENT_PASSWORD",
        )
    if verify_password(new_password, user.password_hash):
        raise AppError(
            "New password must be different from current password",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="SAME_PASSWORD",
        )
    user.password_hash = hash_password(new_password)
    revoke_sessions(db, user)
    db.commit()
    audit.info("Password changed: user_id=%s", user.id)


def delete_account(db: Session, user: User, password: str) -> None:
    """Soft delete: deactivate, free the email/username and revoke every session."""
    if not verify_password(password, user.password_hash):
        raise AppError(
            "Password is incorrect",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_PASSWORD",
        )
    stamp = int(utcnow().timestamp())
    user.is_active = False
    user.email = f"deleted_{stamp}_{user.email}"[:255]
    user.username = f"deleted_{stamp}_{user.username}"[:64]
    revoke_sessions(db, user)
    db.commit()
    audit.info("User account deleted: user_id=%s", user.id)
