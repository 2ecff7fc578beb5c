"""
Client-side auth state: one AuthContext per client session.

The context is the only writer of the current user. Components read
`context.user` / `context.loading` or subscribe to snapshots; they never set
the user themselves.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Protocol

from couponx.client.api import AuthApiClient, AuthClientError
from couponx.schemas.auth import UserView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A user-facing message (rendered as a toast by the UI)."""

    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class Notifier(Protocol):
    def __call__(self, notification: Notification) -> None: ...


def log_notifier(notification: Notification) -> None:
    """Default notifier: write notifications to the log."""
    level = logging.WARNING if notification.variant == "destructive" else logging.INFO
    logger.log(level, "%s: %s", notification.title, notification.description)


@dataclass(frozen=True)
class AuthSnapshot:
    user: UserView | None
    loading: bool


Listener = Callable[[AuthSnapshot], None]


class AuthContext:
    """
    Holds the authoritative current user and wraps the auth API.

    Failing operations emit a destructive notification and re-raise so callers
    can keep their own form errors; logout never raises. Login, register and
    logout are serialized: a second call waits for the first to finish.
    """

    def __init__(self, service: AuthApiClient, notifier: Notifier = log_notifier) -> None:
        self._service = service
        self._notify = notifier
        self._user: UserView | None = None
        self._loading = True
        self._listeners: list[Listener] = []
        self._lock = asyncio.Lock()

    @property
    def user(self) -> UserView | None:
        return self._user

    @property
    def loading(self) -> bool:
        return self._loading

    def snapshot(self) -> AuthSnapshot:
        return AuthSnapshot(user=self._user, loading=self._loading)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener for every change; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, user: UserView | None, loading: bool | None = None) -> None:
        self._user = user
        if loading is not None:
            self._loading = loading
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Auth listener failed")

    async def initialize(self) -> None:
        """Resolve the current user from stored tokens. Called once at application start."""
        user = None
        try:
            if self._service.is_authenticated() or self._service.refresh_token:
                user = await self._service.get_current_user()
        except AuthClientError as e:
            logger.error("Auth initialization error: %s (%s)", e.message, e.code)
        finally:
            self._set_state(user, loading=False)

    async def login(self, email: str, password: str) -> UserView:
        async with self._lock:
            try:
                user, _ = await self._service.login(email, password)
            except AuthClientError as e:
                self._notify(
                    Notification(
                        "Login failed",
                        e.message or "Please check your credentials and try again.",
                        "destructive",
                    )
                )
                raise
            self._set_state(user)
        self._notify(Notification("Welcome back!", "You've successfully logged in."))
        return user

    async def register(self, username: str, email: str, password: str) -> UserView:
        async with self._lock:
            try:
                user, _ = await self._service.register(username, email, password)
            except AuthClientError as e:
                self._notify(Notification("Registration failed", e.message or "Please try again.", "destructive"))
                raise
            self._set_state(user)
        self._notify(Notification("Account created!", f"Welcome to CouponX, {username}!"))
        return user

    async def logout(self) -> None:
        """Sign out. The local user is cleared even when revoking or forgetting tokens fails."""
        async with self._lock:
            try:
                await self._service.logout()
            except Exception:
                logger.exception("Logout error")
            finally:
                self._set_state(None)
        self._notify(Notification("Logged out", "You've been successfully logged out."))

    async def reset_password(self, email: str) -> None:
        try:
            await self._service.reset_password(email)
        except AuthClientError as e:
            self._notify(Notification("Reset failed", e.message or "Please try again.", "destructive"))
            raise
        self._notify(Notification("Password reset sent", "Check your email for password reset instructions."))

    async def refresh_user(self) -> None:
        """Re-read the user from the API (e.g. after a role or points change)."""
        try:
            user = await self._service.get_current_user()
        except AuthClientError as e:
            logger.error("Refresh user error: %s (%s)", e.message, e.code)
            return
        self._set_state(user)
