"""Coupon upload, browsing and claiming, with the point and daily-limit rules attached."""

import logging
from typing import TYPE_CHECKING, Literal

from fastapi import status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from couponx.core.errors import AppError
from couponx.models.base import ensure_utc, utcnow
from couponx.models.coupon import Coupon, CouponClaim
from couponx.models.user import User
from couponx.schemas.coupon import ClaimedCouponView, CouponClaimerView, CouponCreate, CouponUpdate, CouponView
from couponx.services.gamification import (
    add_points,
    can_claim,
    daily_claims_remaining,
    record_claim,
    spend_points,
)

if TYPE_CHECKING:
    from couponx.core.config import Settings

audit = logging.getLogger("couponx.audit")


def _not_found() -> AppError:
    return AppError("Coupon not found", status_code=status.HTTP_404_NOT_FOUND, code="COUPON_NOT_FOUND")


def _check_owner(coupon: Coupon, user: User, action: str) -> None:
    """Only the uploader or an admin may change a coupon or see who claimed it."""
    if coupon.uploaded_by_id != user.id and user.role != "admin":
        raise AppError(
            f"You can only {action} your own coupons",
            status_code=status.HTTP_403_FORBIDDEN,
            code="NOT_OWNER",
        )


def has_claimed(db: Session, coupon: Coupon, user: User | None) -> bool:
    if user is None:
        return False
    return (
        db.query(CouponClaim)
        .filter(CouponClaim.coupon_id == coupon.id, CouponClaim.user_id == user.id)
        .first()
        is not None
    )


def to_coupon_view(coupon: Coupon, viewer: User | None = None, claimed: bool = False) -> CouponView:
    """Public view; the code is shown only to the uploader, claimers and admins."""
    view = CouponView.model_validate(coupon)
    reveal = viewer is not None and (
        viewer.id == coupon.uploaded_by_id or claimed or viewer.role == "admin"
    )
    if not reveal:
        view = view.model_copy(update={"code": None})
    return view


def create_coupon(db: Session, user: User, body: CouponCreate, settings: "Settings") -> Coupon:
    coupon = Coupon(
        title=body.title.strip(),
        description=body.description.strip(),
        code=body.code,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        category=body.category,
        store_name=body.store_name.strip(),
        expires_at=body.expires_at,
        uploaded_by_id=user.id,
        claim_count=0,
        is_active=True,
    )
    db.add(coupon)
    add_points(user, settings.POINTS_UPLOAD)
    user.coupons_uploaded += 1
    db.commit()
    db.refresh(coupon)
    db.refresh(user)
    audit.info("Coupon created: user_id=%s coupon_id=%s category=%s", user.id, coupon.id, coupon.category)
    return coupon


def list_coupons(
    db: Session,
    category: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Coupon], int]:
    """Active, unexpired coupons, newest first."""
    query = db.query(Coupon).filter(Coupon.is_active.is_(True), Coupon.expires_at > utcnow())
    if category:
        query = query.filter(Coupon.category == category.strip().lower())
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Coupon.title.ilike(pattern),
                Coupon.description.ilike(pattern),
                Coupon.store_name.ilike(pattern),
            )
        )
    total = query.count()
    coupons = (
        query.order_by(Coupon.created_at.desc(), Coupon.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return coupons, total


def get_coupon(db: Session, coupon_id: int) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if coupon is None or not coupon.is_active:
        raise _not_found()
    return coupon


def claim_coupon(db: Session, user: User, coupon_id: int, settings: "Settings") -> tuple[Coupon, int | None]:
    """
    Claim a coupon for user. Returns (coupon, daily claims remaining or None if unlimited).

    The user row is locked for the duration so parallel claims cannot both pass
    the daily limit (databases without row locks ignore this).
    """
    user = (
        db.query(User)
        .filter(User.id == user.id)
        .with_for_update()
        .populate_existing()
        .one()
    )
    coupon = get_coupon(db, coupon_id)

    if ensure_utc(coupon.expires_at) <= utcnow():
        raise AppError("Coupon has expired", status_code=status.HTTP_400_BAD_REQUEST, code="COUPON_EXPIRED")
    if coupon.uploaded_by_id == user.id:
        raise AppError(
            "You cannot claim your own coupon",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="CANNOT_CLAIM_OWN",
        )
    if has_claimed(db, coupon, user):
        raise AppError(
            "You have already claimed this coupon",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="ALREADY_CLAIMED",
        )
    if not can_claim(user, settings):
        raise AppError(
            f"Daily claim limit reached. Free users can claim {settings.DAILY_CLAIMS_LIMIT} coupons per day. "
            "Upgrade to premium for unlimited claims.",
            status_code=status.HTTP_403_FORBIDDEN,
            code="DAILY_LIMIT_REACHED",
        )

    spend_points(user, settings.POINTS_CLAIM)
    record_claim(user)
    coupon.claim_count += 1
    db.add(CouponClaim(coupon_id=coupon.id, user_id=user.id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AppError(
            "You have already claimed this coupon",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="ALREADY_CLAIMED",
        )
    db.refresh(coupon)
    db.refresh(user)
    audit.info(
        "Coupon claimed: user_id=%s coupon_id=%s points_spent=%s",
        user.id,
        coupon.id,
        settings.POINTS_CLAIM,
    )
    return coupon, daily_claims_remaining(user, settings)


def update_coupon(db: Session, user: User, coupon_id: int, body: CouponUpdate) -> Coupon:
    """Apply the fields set in body. Fields not in CouponUpdate cannot be changed here."""
    coupon = get_coupon(db, coupon_id)
    _check_owner(coupon, user, "update")
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in updates.items():
        setattr(coupon, field, value)
    db.commit()
    db.refresh(coupon)
    audit.info(
        "Coupon updated: user_id=%s coupon_id=%s fields=%s",
        user.id,
        coupon.id,
        sorted(updates),
    )
    return coupon


def delete_coupon(db: Session, user: User, coupon_id: int) -> None:
    coupon = get_coupon(db, coupon_id)
    _check_owner(coupon, user, "delete")
    db.delete(coupon)
    db.commit()
    audit.info("Coupon deleted: user_id=%s coupon_id=%s", user.id, coupon_id)


def list_uploaded_coupons(
    db: Session,
    user: User,
    status_filter: Literal["active", "expired"] | None = None,
    category: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Coupon], int]:
    """The user's own uploads, newest first, including expired ones unless filtered."""
    query = db.query(Coupon).filter(Coupon.uploaded_by_id == user.id, Coupon.is_active.is_(True))
    if status_filter == "active":
        query = query.filter(Coupon.expires_at > utcnow())
    elif status_filter == "expired":
        query = query.filter(Coupon.expires_at <= utcnow())
    if category:
        query = query.filter(Coupon.category == category.strip().lower())
    total = query.count()
    coupons = (
        query.order_by(Coupon.created_at.desc(), Coupon.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return coupons, total


def list_claimed_coupons(
    db: Session, user: User, page: int = 1, limit: int = 20
) -> tuple[list[ClaimedCouponView], int]:
    """Coupons the user claimed, most recent claim first, with their codes revealed."""
    query = (
        db.query(Coupon, CouponClaim.claimed_at)
        .join(CouponClaim, CouponClaim.coupon_id == Coupon.id)
        .filter(CouponClaim.user_id == user.id)
    )
    total = query.count()
    rows = (
        query.order_by(CouponClaim.claimed_at.desc(), CouponClaim.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    views = [
        ClaimedCouponView(
            **to_coupon_view(coupon, user, claimed=True).model_dump(),
            claimed_at=claimed_at,
        )
        for coupon, claimed_at in rows
    ]
    return views, total


def list_coupon_claims(
    db: Session, user: User, coupon_id: int, page: int = 1, limit: int = 20
) -> tuple[list[CouponClaimerView], int]:
    """Who claimed a coupon and when. Owner or admin only."""
    coupon = get_coupon(db, coupon_id)
    _check_owner(coupon, user, "view claims on")
    query = (
        db.query(CouponClaim, User.username)
        .join(User, User.id == CouponClaim.user_id)
        .filter(CouponClaim.coupon_id == coupon.id)
    )
    total = query.count()
    rows = (
        query.order_by(CouponClaim.claimed_at.desc(), CouponClaim.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    claims = [
        CouponClaimerView(user_id=claim.user_id, username=username, claimed_at=claim.claimed_at)
        for claim, username in rows
    ]
    return claims, total
