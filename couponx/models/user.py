"""ORM models for user accounts and their stored refresh tokens."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from couponx.models.base import Base, ensure_utc, utcnow

ROLES = ("user", "premium", "admin")


class User(Base):
    """
    User account for JWT authentication, role-based access control and gamification.

    role: 'user', 'premium' or 'admin'
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)

    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String(100), nullable=True)

    points = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    points_earned = Column(Integer, nullable=False, default=0)
    points_spent = Column(Integer, nullable=False, default=0)
    coupons_uploaded = Column(Integer, nullable=False, default=0)
    coupons_claimed = Column(Integer, nullable=False, default=0)
    claims_today = Column(Integer, nullable=False, default=0)
    last_claim_at = Column(DateTime(timezone=True), nullable=True)
    premium_until = Column(DateTime(timezone=True), nullable=True)

    # Security
    login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime(timezone=True), nullable=True)
    token_version = Column(Integer, nullable=False, default=0)
    password_reset_token_hash = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    email_verification_token_hash = Column(String(64), nullable=True, index=True)
    email_verification_expires = Column(DateTime(timezone=True), nullable=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="RefreshToken.id",
    )

    @property
    def is_premium(self) -> bool:
        if self.role in ("premium", "admin"):
            return True
        premium_until = ensure_utc(self.premium_until)
        return premium_until is not None and premium_until > utcnow()

    @property
    def is_locked(self) -> bool:
        lock_until = ensure_utc(self.lock_until)
        return lock_until is not None and lock_until > utcnow()


class RefreshToken(Base):
    """A live refresh token, stored as its SHA-256 hash. Deleted on rotation or logout."""

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    user = relationship("User", back_populates="refresh_tokens")
