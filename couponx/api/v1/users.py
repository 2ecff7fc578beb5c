"""Signed-in user endpoints: gamification stats, leaderboard, own coupons, account deletion."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from couponx.api.v1.auth import get_current_user
from couponx.core.config import Settings, get_settings
from couponx.core.database import get_db
from couponx.models.user import User
from couponx.schemas.common import Envelope, paginate
from couponx.schemas.coupon import ClaimedCouponListData, CouponListData
from couponx.schemas.user import DeleteAccountRequest, LeaderboardData, StatsData
from couponx.services import auth as auth_service
from couponx.services import coupons as coupons_service
from couponx.services import users as users_service
from couponx.services.users import LeaderboardKind

router = APIRouter()


@router.get("/me/stats", response_model=Envelope[StatsData])
def get_my_stats(
    current_user: Annotated[User, Depends(get_current_user)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Envelope[StatsData]:
    return Envelope(data=StatsData(stats=users_service.get_stats(current_user, settings)))


@router.get("/leaderboard", response_model=Envelope[LeaderboardData])
def get_leaderboard(
    _user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    type: Annotated[LeaderboardKind, Query()] = "points",
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> Envelope[LeaderboardData]:
    return Envelope(data=LeaderboardData(leaderboard=users_service.get_leaderboard(db, type, limit)))


@router.get("/my-coupons", response_model=Envelope[CouponListData])
def get_my_coupons(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    status: Literal["active", "expired"] | None = None,
    category: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[CouponListData]:
    """Coupons the caller uploaded, codes included."""
    coupons, total = coupons_service.list_uploaded_coupons(db, current_user, status, category, page, limit)
    return Envelope(
        data=CouponListData(
            coupons=[coupons_service.to_coupon_view(c, current_user) for c in coupons],
            pagination=paginate(page, limit, total),
        )
    )


@router.get("/claimed-coupons", response_model=Envelope[ClaimedCouponListData])
def get_claimed_coupons(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[ClaimedCouponListData]:
    """Coupons the caller claimed, most recent first."""
    coupons, total = coupons_service.list_claimed_coupons(db, current_user, page, limit)
    return Envelope(data=ClaimedCouponListData(coupons=coupons, pagination=paginate(page, limit, total)))


@router.delete("/me", response_model=Envelope[None])
def delete_my_account(
    body: DeleteAccountRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[None]:
    """Deactivate the account after re-checking the password."""
    auth_service.delete_account(db, current_user, body.password)
    return Envelope(message="Account deleted successfully")
