"""Client auth layer: API client, shared auth context and protected route gate."""

from couponx.client.api import (
    AuthApiClient,
    AuthClientError,
    FileTokenStore,
    MemoryTokenStore,
    TokenStore,
)
from couponx.client.context import AuthContext, AuthSnapshot, Notification, log_notifier
from couponx.client.gate import GateDecision, GateState, ProtectedRoute

__all__ = [
    "AuthApiClient",
    "AuthClientError",
    "AuthContext",
    "AuthSnapshot",
    "FileTokenStore",
    "GateDecision",
    "GateState",
    "MemoryTokenStore",
    "Notification",
    "ProtectedRoute",
    "TokenStore",
    "log_notifier",
]
