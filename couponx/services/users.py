"""User stats, leaderboard and admin user management."""

import logging
from typing import TYPE_CHECKING, Literal

from fastapi import status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from couponx.core.errors import AppError
from couponx.models.user import User
from couponx.schemas.admin import AdminUserUpdate
from couponx.schemas.user import LeaderboardEntry, UserStats
from couponx.services.auth import revoke_sessions
from couponx.services.gamification import claims_used_today, daily_claims_remaining

if TYPE_CHECKING:
    from couponx.core.config import Settings

audit = logging.getLogger("couponx.audit")

LeaderboardKind = Literal["points", "uploads", "claims"]

_LEADERBOARD_ORDER = {
    "points": User.points,
    "uploads": User.coupons_uploaded,
    "claims": User.coupons_claimed,
}


def get_stats(user: User, settings: "Settings") -> UserStats:
    return UserStats(
        points=user.points,
        level=user.level,
        points_earned=user.points_earned,
        points_spent=user.points_spent,
        coupons_uploaded=user.coupons_uploaded,
        coupons_claimed=user.coupons_claimed,
        claims_today=claims_used_today(user),
        daily_claims_limit=None if user.is_premium else settings.DAILY_CLAIMS_LIMIT,
        daily_claims_remaining=daily_claims_remaining(user, settings),
    )


def get_leaderboard(db: Session, kind: LeaderboardKind = "points", limit: int = 10) -> list[LeaderboardEntry]:
    """Active users ranked by kind; ties are broken by earliest sign-up."""
    users = (
        db.query(User)
        .filter(User.is_active.is_(True))
        .order_by(_LEADERBOARD_ORDER[kind].desc(), User.id.asc())
        .limit(limit)
        .all()
    )
    return [
        LeaderboardEntry(
            rank=rank,
            username=u.username,
            points=u.points,
            level=u.level,
            coupons_uploaded=u.coupons_uploaded,
        )
        for rank, u in enumerate(users, start=1)
    ]


def list_users(
    db: Session,
    role: str | None = None,
    status_filter: Literal["active", "inactive"] | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[User], int]:
    """Filtered, newest-first page of users plus the total match count."""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if status_filter == "active":
        query = query.filter(User.is_active.is_(True))
    elif status_filter == "inactive":
        query = query.filter(User.is_active.is_(False))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return users, total


def update_user(db: Session, admin: User, user_id: int, body: AdminUserUpdate) -> User:
    """Change role and/or active flag. Deactivation ends all of the user's sessions."""
    user = db.get(User, user_id)
    if user is None:
        raise AppError("User not found", status_code=status.HTTP_404_NOT_FOUND, code="USER_NOT_FOUND")

    old_values = {"role": user.role, "is_active": user.is_active}
    if body.role is not None:
        user.role = body.role
    if body.is_active is not None:
        if user.is_active and not body.is_active:
            revoke_sessions(db, user)
        user.is_active = body.is_active
    db.commit()
    db.refresh(user)

    audit.info(
        "Admin user update: admin_id=%s target_user_id=%s old=%s new=%s reason=%r",
        admin.id,
        user.id,
        old_values,
        {"role": user.role, "is_active": user.is_active},
        body.reason,
    )
    return user
