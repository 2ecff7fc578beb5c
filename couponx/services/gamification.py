"""Point balance, level and daily claim counters kept on the user row."""

from datetime import datetime
from typing import TYPE_CHECKING

from fastapi import status

from couponx.core.errors import AppError
from couponx.models.base import ensure_utc, utcnow
from couponx.models.user import User

if TYPE_CHECKING:
    from couponx.core.config import Settings

POINTS_PER_LEVEL = 100


def level_for_points(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def add_points(user: User, points: int) -> None:
    """Credit points. Level follows the balance upwards but never drops."""
    user.points += points
    user.points_earned += points
    new_level = level_for_points(user.points)
    if new_level > user.level:
        user.level = new_level


def spend_points(user: User, points: int) -> None:
    """Debit points; the balance never goes below zero."""
    if user.points < points:
        raise AppError(
            f"Insufficient points. You need {points} points.",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INSUFFICIENT_POINTS",
        )
    user.points -= points
    user.points_spent += points


def claims_used_today(user: User, now: datetime | None = None) -> int:
    """Claims made on the current UTC calendar day."""
    now = now or utcnow()
    last = ensure_utc(user.last_claim_at)
    if last is None or last.date() != now.date():
        return 0
    return user.claims_today


def daily_claims_remaining(user: User, settings: "Settings", now: datetime | None = None) -> int | None:
    """Claims left today; None for premium users (unlimited)."""
    if user.is_premium:
        return None
    return max(0, settings.DAILY_CLAIMS_LIMIT - claims_used_today(user, now))


def can_claim(user: User, settings: "Settings", now: datetime | None = None) -> bool:
    remaining = daily_claims_remaining(user, settings, now)
    return remaining is None or remaining > 0


def record_claim(user: User, now: datetime | None = None) -> None:
    now = now or utcnow()
    user.claims_today = claims_used_today(user, now) + 1
    user.last_claim_at = now
    user.coupons_claimed += 1
