"""API v1 routes."""

from fastapi import APIRouter, Depends

from couponx.api.v1 import admin, auth, coupons, health, users
from couponx.core.rate_limit import general_rate_limit

router = APIRouter(dependencies=[Depends(general_rate_limit)])
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(coupons.router, prefix="/coupons", tags=["coupons"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
