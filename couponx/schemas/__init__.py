"""Pydantic request/response schemas."""

from couponx.schemas.admin import AdminUserUpdate, UsersListData
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
    TokenPair,
    TokensData,
    UserData,
    UserView,
    VerifyEmailRequest,
)
from couponx.schemas.common import ApiModel, Envelope, Pagination
from couponx.schemas.coupon import (
    ClaimData,
    ClaimedCouponListData,
    ClaimedCouponView,
    CouponClaimerView,
    CouponClaimsData,
    CouponCreate,
    CouponCreatedData,
    CouponData,
    CouponListData,
    CouponUpdate,
    CouponView,
)
from couponx.schemas.health import HealthResponse
from couponx.schemas.user import (
    DeleteAccountRequest,
    LeaderboardData,
    LeaderboardEntry,
    StatsData,
    UserStats,
)

__all__ = [
    "AdminUserUpdate",
    "ApiModel",
    "AuthData",
    "ChangePasswordRequest",
    "ClaimData",
    "ClaimedCouponListData",
    "ClaimedCouponView",
    "CouponClaimerView",
    "CouponClaimsData",
    "CouponCreate",
    "CouponCreatedData",
    "CouponData",
    "CouponListData",
    "CouponUpdate",
    "CouponView",
    "DeleteAccountRequest",
    "Envelope",
    "HealthResponse",
    "LeaderboardData",
    "LeaderboardEntry",
    "LoginRequest",
    "LogoutRequest",
    "Pagination",
    "PasswordResetConfirm",
    "PasswordResetRequest",
    "ProfileUpdate",
    "RefreshRequest",
    "RegisterRequest",
    "StatsData",
    "TokenPair",
    "TokensData",
    "UserData",
    "UserStats",
    "UserView",
    "UsersListData",
    "VerifyEmailRequest",
]
