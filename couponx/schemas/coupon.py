"""Request/response schemas for coupon upload, listing and claiming."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from couponx.models.coupon import CATEGORIES
from couponx.models.base import ensure_utc, utcnow
from couponx.schemas.common import ApiModel, Pagination

DiscountType = Literal["percentage", "fixed"]


class CouponCreate(ApiModel):
    """Coupon upload. expires_at must lie in the future."""

    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    code: str = Field(..., min_length=1, max_length=50)
    discount_type: DiscountType
    discount_value: float = Field(..., gt=0)
    category: str
    store_name: str = Field(..., min_length=1, max_length=100)
    expires_at: datetime

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Coupon code cannot be blank")
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(CATEGORIES)}")
        return v

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime) -> datetime:
        v = ensure_utc(v)
        if v <= utcnow():
            raise ValueError("Expiry date must be in the future")
        return v


class CouponView(ApiModel):
    id: int
    title: str
    description: str
    code: str | None = Field(default=None, description="Hidden unless the caller uploaded or claimed it")
    discount_type: str
    discount_value: float
    category: str
    store_name: str
    expires_at: datetime
    uploaded_by_id: int
    claim_count: int
    created_at: datetime | None = None


class CouponData(ApiModel):
    coupon: CouponView


class CouponCreatedData(ApiModel):
    coupon: CouponView
    points_earned: int
    total_points: int


class CouponListData(ApiModel):
    coupons: list[CouponView]
    pagination: Pagination


class ClaimData(ApiModel):
    coupon: CouponView
    points_spent: int
    remaining_points: int
    daily_claims_remaining: int | None = Field(
        default=None,
        description="Claims left today; null means unlimited (premium)",
    )


class CouponUpdate(ApiModel):
    """Editable fields of an uploaded coupon. Code, discount, category and store are fixed once shared."""

    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=500)
    expires_at: datetime | None = None

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return v
        v = ensure_utc(v)
        if v <= utcnow():
            raise ValueError("Expiry date must be in the future")
        return v


class ClaimedCouponView(CouponView):
    claimed_at: datetime


class ClaimedCouponListData(ApiModel):
    coupons: list[ClaimedCouponView]
    pagination: Pagination


class CouponClaimerView(ApiModel):
    user_id: int
    username: str
    claimed_at: datetime


class CouponClaimsData(ApiModel):
    claims: list[CouponClaimerView]
    pagination: Pagination
