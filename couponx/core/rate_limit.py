"""In-process fixed-window rate limiting, applied per client IP as a FastAPI dependency."""

import logging
import math
import threading
import time
from collections.abc import Callable

from fastapi import Request, status

from couponx.core.config import Settings, get_settings
from couponx.core.errors import AppError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Count requests per (client, window) and reject once max_requests is exceeded.

    State lives in this process only; several workers each keep their own counters.
    """

    def __init__(
        self,
        scope: str,
        max_requests: Callable[[Settings], int],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.scope = scope
        self._max_requests = max_requests
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[str, tuple[float, int]] = {}
        self._next_sweep = 0.0

    def _sweep(self, now: float, window_sec: float) -> None:
        # Called with the lock held; at most once per window.
        if now < self._next_sweep:
            return
        expired = [key for key, (start, _) in self._hits.items() if now - start >= window_sec]
        for key in expired:
            del self._hits[key]
        self._next_sweep = now + window_sec

    def hit(self, key: str, limit: int, window_sec: float) -> tuple[bool, float]:
        """
        Record one request for key. Returns (allowed, seconds until the window resets).

        Counters whose window has ended are dropped so idle clients do not
        accumulate.
        """
        now = self._clock()
        with self._lock:
            self._sweep(now, window_sec)
            window_start, count = self._hits.get(key, (now, 0))
            if now - window_start >= window_sec:
                window_start, count = now, 0
            count += 1
            self._hits[key] = (window_start, count)
        return count <= limit, window_sec - (now - window_start)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._next_sweep = 0.0

    def tracked_clients(self) -> int:
        """Number of keys with a live or not yet swept window."""
        with self._lock:
            return len(self._hits)

    def __call__(self, request: Request) -> None:
        settings = get_settings()
        client = request.client.host if request.client else "unknown"
        allowed, retry_after = self.hit(
            client,
            self._max_requests(settings),
            settings.RATE_LIMIT_WINDOW * 60,
        )
        if not allowed:
            logger.warning(
                "Rate limit exceeded: scope=%s client=%s path=%s",
                self.scope,
                client,
                request.url.path,
            )
            raise AppError(
                "Too many requests, please try again later.",
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                code="RATE_LIMIT_EXCEEDED",
                headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
            )


general_rate_limit = RateLimiter("api", lambda s: s.RATE_LIMIT_MAX)
auth_rate_limit = RateLimiter("auth", lambda s: s.AUTH_RATE_LIMIT_MAX)
