"""ORM models for shared coupons and the claims made on them."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from couponx.models.base import Base, utcnow

CATEGORIES = (
    "electronics",
    "clothing",
    "food",
    "travel",
    "entertainment",
    "health",
    "home",
    "sports",
    "books",
    "automotive",
    "beauty",
    "other",
)


class Coupon(Base):
    """A discount code uploaded by a user. The code itself is revealed only to its uploader and claimers."""

    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    code = Column(String(50), nullable=False)
    discount_type = Column(String(16), nullable=False)
    discount_value = Column(Float, nullable=False)
    category = Column(String(32), nullable=False, index=True)
    store_name = Column(String(100), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    uploaded_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    claim_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    uploaded_by = relationship("User")
    claims = relationship("CouponClaim", back_populates="coupon", cascade="all, delete-orphan")


class CouponClaim(Base):
    """One user's claim of one coupon."""

    __tablename__ = "coupon_claims"
    __table_args__ = (UniqueConstraint("coupon_id", "user_id", name="uq_coupon_claims_coupon_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    claimed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    coupon = relationship("Coupon", back_populates="claims")
