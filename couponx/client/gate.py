"""Protected route gate: decide whether a page renders or redirects."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypeVar

from couponx.policy import PolicySubject, Role, can_access

T = TypeVar("T")

# Where users who are signed in but lack the role are sent.
FORBIDDEN_REDIRECTS = {
    Role.ADMIN: "/dashboard",
    Role.PREMIUM: "/premium",
}


class GateState(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    redirect_to: str | None = None


class AuthState(Protocol):
    @property
    def user(self) -> PolicySubject | None: ...

    @property
    def loading(self) -> bool: ...


class ProtectedRoute:
    """
    Wraps a page behind authentication and an optional role.

    Failures are never raised; they become redirects.
    """

    def __init__(
        self,
        required_role: Role | str = Role.USER,
        redirect_to: str = "/login",
        navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.required_role = Role(required_role)
        self.redirect_to = redirect_to
        self._navigate = navigate

    def evaluate(self, auth: AuthState) -> GateDecision:
        if auth.loading:
            return GateDecision(GateState.LOADING)
        if auth.user is None:
            return GateDecision(GateState.UNAUTHENTICATED, self.redirect_to)
        if not can_access(self.required_role, auth.user):
            return GateDecision(GateState.FORBIDDEN, FORBIDDEN_REDIRECTS.get(self.required_role, "/"))
        return GateDecision(GateState.AUTHENTICATED)

    def render(self, auth: AuthState, page: Callable[[], T]) -> T | None:
        """Call page() only when authenticated; otherwise navigate to the redirect, if any."""
        decision = self.evaluate(auth)
        if decision.state is GateState.AUTHENTICATED:
            return page()
        if decision.redirect_to and self._navigate is not None:
            self._navigate(decision.redirect_to)
        return None
