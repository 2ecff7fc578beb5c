"""Admin-only user management."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from couponx.api.v1.auth import require_admin
from couponx.core.database import get_db
from couponx.models.user import User
from couponx.schemas.admin import AdminUserUpdate, UsersListData
from couponx.schemas.auth import UserData
from couponx.schemas.common import Envelope, paginate
from couponx.services import users as users_service
from couponx.services.auth import to_user_view

router = APIRouter()


@router.get("/users", response_model=Envelope[UsersListData])
def list_users(
    _admin: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    role: Literal["user", "premium", "admin"] | None = None,
    status: Literal["active", "inactive"] | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> Envelope[UsersListData]:
    """List users (admin only), newest first."""
    users, total = users_service.list_users(db, role, status, search, page, limit)
    return Envelope(
        data=UsersListData(
            users=[to_user_view(u) for u in users],
            pagination=paginate(page, limit, total),
        )
    )


@router.patch("/users/{user_id}", response_model=Envelope[UserData])
def update_user(
    user_id: int,
    body: AdminUserUpdate,
    admin: Annotated[User, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[UserData]:
    """Change a user's role or active flag (admin only)."""
    user = users_service.update_user(db, admin, user_id, body)
    return Envelope(message="User updated successfully", data=UserData(user=to_user_view(user)))
