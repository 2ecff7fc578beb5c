"""Schemas for the signed-in user's gamification stats, leaderboard and account deletion."""

from pydantic import Field

from couponx.schemas.common import ApiModel


class UserStats(ApiModel):
    points: int
    level: int
    points_earned: int
    points_spent: int
    coupons_uploaded: int
    coupons_claimed: int
    claims_today: int
    daily_claims_limit: int | None = Field(
        default=None,
        description="Claims allowed per day; null for premium users (unlimited)",
    )
    daily_claims_remaining: int | None = Field(
        default=None,
        description="Claims left today; null for premium users (unlimited)",
    )


class StatsData(ApiModel):
    stats: UserStats


class LeaderboardEntry(ApiModel):
    rank: int
    username: str
    points: int
    level: int
    coupons_uploaded: int


class LeaderboardData(ApiModel):
    leaderboard: list[LeaderboardEntry]


class DeleteAccountRequest(ApiModel):
    password: str = Field(..., min_length=1, max_length=128)
