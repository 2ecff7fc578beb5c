"""HTTP client for the auth endpoints; keeps the token pair between calls."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Protocol

import httpx
import jwt

from couponx.schemas.auth import TokenPair, UserView

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000/api/v1"
DEFAULT_TIMEOUT_SEC = 30.0


class AuthClientError(Exception):
    """Raised when an auth call fails; code is the API's machine-readable error."""

    def __init__(
        self,
        message: str,
        code: str = "REQUEST_FAILED",
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


class TokenStore(Protocol):
    def load(self) -> TokenPair | None: ...

    def save(self, tokens: TokenPair) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    """Tokens held for the life of the process."""

    def __init__(self) -> None:
        self._tokens: TokenPair | None = None

    def load(self) -> TokenPair | None:
        return self._tokens

    def save(self, tokens: TokenPair) -> None:
        self._tokens = tokens

    def clear(self) -> None:
        self._tokens = None


class FileTokenStore:
    """Tokens persisted as JSON so a later process resumes the session."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> TokenPair | None:
        if not self.path.exists():
            return None
        try:
            return TokenPair.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("Ignoring unreadable token file %s", self.path)
            return None

    def save(self, tokens: TokenPair) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(tokens.model_dump_json(by_alias=True), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def is_token_expired(token: str, leeway_sec: float = 0.0) -> bool:
    """Read exp without verifying the signature; the server still verifies every request."""
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return True
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        return True
    return exp <= time.time() + leeway_sec


class AuthApiClient:
    """
    Async client for /auth endpoints.

    Every failing call raises AuthClientError, except logout (always clears
    local tokens) and get_current_user (returns None when not signed in).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        token_store: TokenStore | None = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store or MemoryTokenStore()
        self.timeout = timeout
        self._transport = transport

    @property
    def access_token(self) -> str | None:
        tokens = self.token_store.load()
        return tokens.access_token if tokens else None

    @property
    def refresh_token(self) -> str | None:
        tokens = self.token_store.load()
        return tokens.refresh_token if tokens else None

    def is_authenticated(self) -> bool:
        token = self.access_token
        return token is not None and not is_token_expired(token)

    async def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        authenticated: bool = False,
    ) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if authenticated and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, f"{self.base_url}{path}", json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise AuthClientError("Request timed out", code="TIMEOUT") from e
        except httpx.RequestError as e:
            raise AuthClientError(f"Could not reach the API: {e}", code="NETWORK_ERROR") from e

        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError):
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.is_error:
            raise AuthClientError(
                payload.get("message") or f"Request failed with status {response.status_code}",
                code=payload.get("error") or "REQUEST_FAILED",
                status_code=response.status_code,
                errors=payload.get("errors"),
            )
        return payload

    def _store_auth_result(self, payload: dict[str, Any]) -> tuple[UserView, TokenPair]:
        data = payload.get("data") or {}
        user = UserView.model_validate(data["user"])
        tokens = TokenPair.model_validate(data["tokens"])
        self.token_store.save(tokens)
        return user, tokens

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> tuple[UserView, TokenPair]:
        body: dict[str, Any] = {"username": username, "email": email, "password": password}
        if first_name:
            body["firstName"] = first_name
        if last_name:
            body["lastName"] = last_name
        payload = await self._request("POST", "/auth/register", body)
        return self._store_auth_result(payload)

    async def login(self, email: str, password: str) -> tuple[UserView, TokenPair]:
        payload = await self._request("POST", "/auth/login", {"email": email, "password": password})
        return self._store_auth_result(payload)

    async def logout(self) -> None:
        """Tell the API to revoke the refresh token, then forget local tokens regardless."""
        try:
            if self.refresh_token and self.access_token:
                await self._request(
                    "POST",
                    "/auth/logout",
                    {"refreshToken": self.refresh_token},
                    authenticated=True,
                )
        except AuthClientError as e:
            logger.warning("Logout request failed (%s); clearing local tokens anyway", e.code)
        finally:
            self.token_store.clear()

    async def refresh_access_token(self) -> str | None:
        """Rotate the refresh token. Returns the new access token, or None after clearing tokens."""
        if not self.refresh_token:
            return None
        try:
            payload = await self._request("POST", "/auth/refresh", {"refreshToken": self.refresh_token})
            tokens = TokenPair.model_validate((payload.get("data") or {})["tokens"])
        except (AuthClientError, KeyError, ValueError) as e:
            logger.info("Token refresh failed: %s", e)
            self.token_store.clear()
            return None
        self.token_store.save(tokens)
        return tokens.access_token

    async def reset_password(self, email: str) -> None:
        await self._request("POST", "/auth/reset-password", {"email": email})

    async def get_current_user(self) -> UserView | None:
        """
        Fetch the signed-in user. On 401 the refresh token is tried once; None
        when there is no usable session.
        """
        if not self.access_token and not await self.refresh_access_token():
            return None
        for attempt in range(2):
            try:
                payload = await self._request("GET", "/auth/profile", authenticated=True)
            except AuthClientError as e:
                if e.status_code == 401 and attempt == 0:
                    if await self.refresh_access_token():
                        continue
                    return None
                if e.status_code == 401:
                    return None
                raise
            return UserView.model_validate((payload.get("data") or {})["user"])
        return None
