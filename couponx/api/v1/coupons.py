"""Coupon endpoints: upload, browse, view, edit, claim, delete and claim insights."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from couponx.api.v1.auth import get_current_user, get_optional_user, require_premium
from couponx.core.config import Settings, get_settings
from couponx.core.database import get_db
from couponx.models.user import User
from couponx.schemas.common import Envelope, paginate
from couponx.schemas.coupon import (
    ClaimData,
    CouponClaimsData,
    CouponCreate,
    CouponCreatedData,
    CouponData,
    CouponListData,
    CouponUpdate,
)
from couponx.services import coupons as coupons_service

router = APIRouter()


@router.get("", response_model=Envelope[CouponListData])
def list_coupons(
    db: Annotated[Session, Depends(get_db)],
    viewer: Annotated[User | None, Depends(get_optional_user)],
    category: str | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[CouponListData]:
    """Browse active, unexpired coupons. Codes are hidden unless the viewer uploaded the coupon."""
    coupons, total = coupons_service.list_coupons(db, category, search, page, limit)
    return Envelope(
        data=CouponListData(
            coupons=[coupons_service.to_coupon_view(c, viewer) for c in coupons],
            pagination=paginate(page, limit, total),
        )
    )


@router.post("", response_model=Envelope[CouponCreatedData], status_code=status.HTTP_201_CREATED)
def create_coupon(
    body: CouponCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Envelope[CouponCreatedData]:
    """Upload a coupon; the uploader earns POINTS_UPLOAD points."""
    coupon = coupons_service.create_coupon(db, current_user, body, settings)
    return Envelope(
        message="Coupon created successfully",
        data=CouponCreatedData(
            coupon=coupons_service.to_coupon_view(coupon, current_user),
            points_earned=settings.POINTS_UPLOAD,
            total_points=current_user.points,
        ),
    )


@router.get("/{coupon_id}", response_model=Envelope[CouponData])
def get_coupon(
    coupon_id: int,
    db: Annotated[Session, Depends(get_db)],
    viewer: Annotated[User | None, Depends(get_optional_user)],
) -> Envelope[CouponData]:
    coupon = coupons_service.get_coupon(db, coupon_id)
    claimed = coupons_service.has_claimed(db, coupon, viewer)
    return Envelope(data=CouponData(coupon=coupons_service.to_coupon_view(coupon, viewer, claimed)))


@router.put("/{coupon_id}", response_model=Envelope[CouponData])
def update_coupon(
    coupon_id: int,
    body: CouponUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[CouponData]:
    """Edit title, description or expiry. Uploader or admin only."""
    coupon = coupons_service.update_coupon(db, current_user, coupon_id, body)
    return Envelope(
        message="Coupon updated successfully",
        data=CouponData(coupon=coupons_service.to_coupon_view(coupon, current_user)),
    )


@router.get("/{coupon_id}/claims", response_model=Envelope[CouponClaimsData])
def list_coupon_claims(
    coupon_id: int,
    current_user: Annotated[User, Depends(require_premium)],
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[CouponClaimsData]:
    """Premium: see who claimed one of your coupons and when."""
    claims, total = coupons_service.list_coupon_claims(db, current_user, coupon_id, page, limit)
    return Envelope(data=CouponClaimsData(claims=claims, pagination=paginate(page, limit, total)))


@router.post("/{coupon_id}/claim", response_model=Envelope[ClaimData])
def claim_coupon(
    coupon_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Envelope[ClaimData]:
    """Claim a coupon: costs POINTS_CLAIM points and counts against the free daily limit."""
    coupon, remaining = coupons_service.claim_coupon(db, current_user, coupon_id, settings)
    return Envelope(
        message="Coupon claimed successfully!",
        data=ClaimData(
            coupon=coupons_service.to_coupon_view(coupon, current_user, claimed=True),
            points_spent=settings.POINTS_CLAIM,
            remaining_points=current_user.points,
            daily_claims_remaining=remaining,
        ),
    )


@router.delete("/{coupon_id}", response_model=Envelope[None])
def delete_coupon(
    coupon_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[None]:
    coupons_service.delete_coupon(db, current_user, coupon_id)
    return Envelope(message="Coupon deleted successfully")
