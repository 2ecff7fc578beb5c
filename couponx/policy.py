"""
Access policy shared by the API role dependencies and the client route gate.

Every role check goes through can_access so server and client agree on who may
see what.
"""

from enum import Enum
from typing import Protocol


class Role(str, Enum):
    USER = "user"
    PREMIUM = "premium"
    ADMIN = "admin"


class PolicySubject(Protocol):
    """Anything carrying a role and a premium flag (ORM user, API view, client view)."""

    role: str
    is_premium: bool


def can_access(required_role: Role | str | None, user: PolicySubject | None) -> bool:
    """
    Return True when user may access something gated by required_role.

    - no user, or an inactive user: never
    - 'user' (or no requirement): any authenticated user
    - 'premium': premium users and admins
    - 'admin': exact match on the admin role
    """
    if user is None:
        return False
    if getattr(user, "is_active", True) is False:
        return False
    required = Role(required_role) if required_role is not None else Role.USER
    if required is Role.ADMIN:
        return user.role == Role.ADMIN.value
    if required is Role.PREMIUM:
        return bool(user.is_premium) or user.role == Role.ADMIN.value
    return True
