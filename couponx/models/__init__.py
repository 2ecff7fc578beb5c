"""SQLAlchemy ORM models."""

from couponx.models.base import Base
from couponx.models.coupon import Coupon, CouponClaim
from couponx.models.user import RefreshToken, User

__all__ = ["Base", "Coupon", "CouponClaim", "RefreshToken", "User"]
