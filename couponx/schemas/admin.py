"""Schemas for admin user management."""

from typing import Literal

from pydantic import Field

from couponx.schemas.auth import UserView
from couponx.schemas.common import ApiModel, Pagination


class AdminUserUpdate(ApiModel):
    """Fields an admin may change on another account."""

    role: Literal["user", "premium", "admin"] | None = None
    is_active: bool | None = None
    reason: str | None = Field(default=None, max_length=500, description="Recorded in the audit log")


class UsersListData(ApiModel):
    users: list[UserView]
    pagination: Pagination
