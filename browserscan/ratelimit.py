"""
Per-client rate limiting using fixed-window counters.

Applied to every route. Excess requests are rejected with 429; nothing queues.
"""

import math
import time
import logging
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests, please try again later."


class FixedWindow:
    """Fixed-window counter for a single client."""

    def __init__(self, max_requests: int, window_seconds: int, time_func: Callable[[], float]):
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._time_func = time_func
        self._count = 0
        self._window_start = self._time_func()

    def expired(self, now: float) -> bool:
        return now - self._window_start >= self._window_seconds

    def hit(self) -> Tuple[bool, int, float]:
        """Count one request. Returns (allowed, remaining, seconds until reset)."""
        now = self._time_func()
        if self.expired(now):
            self._window_start = now
            self._count = 0

        self._count += 1
        remaining = max(self._max_requests - self._count, 0)
        reset_in = self._window_seconds - (now - self._window_start)
        return self._count <= self._max_requests, remaining, reset_in


class RateLimiter:
    """Manages per-client windows with thread-safe access."""

    def __init__(self, max_requests: int, window_seconds: int,
                 enabled: bool = True, time_func: Optional[Callable[[], float]] = None):
        self.enabled = enabled
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._time_func = time_func or time.monotonic
        self._windows: Dict[str, FixedWindow] = {}
        self._lock = Lock()
        self._last_sweep = self._time_func()

    def hit(self, client_key: str) -> Tuple[bool, int, float]:
        if not self.enabled:
            return True, self.max_requests, float(self.window_seconds)

        with self._lock:
            now = self._time_func()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            window = self._windows.get(client_key)
            if window is None:
                window = FixedWindow(self.max_requests, self.window_seconds, self._time_func)
                self._windows[client_key] = window
            return window.hit()

    def _sweep(self, now: float) -> None:
        """Forget clients whose window has ended. Caller holds the lock."""
        stale = [key for key, window in self._windows.items() if window.expired(now)]
        for key in stale:
            del self._windows[key]
        self._last_sweep = now
        if stale:
            logger.debug(f"[RateLimit] Dropped {len(stale)} expired client windows")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects over-limit clients and sets RateLimit-* headers."""

    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    @staticmethod
    def client_key(request: Request) -> str:
        # Transport peer address
        return request.client.host if request.client else "unknown"

    def _headers(self, remaining: int, reset_in: float) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limiter.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(max(math.ceil(reset_in), 0)),
        }

    async def dispatch(self, request: Request, call_next):
        if not self.limiter.enabled:
            return await call_next(request)

        key = self.client_key(request)
        allowed, remaining, reset_in = self.limiter.hit(key)
        headers = self._headers(remaining, reset_in)

        if not allowed:
            logger.warning(f"[RateLimit] Rejected request from {key} to {request.url.path}")
            headers["Retry-After"] = headers["RateLimit-Reset"]
            return JSONResponse(status_code=429, content={"error": RATE_LIMITED_MESSAGE}, headers=headers)

        response = await call_next(request)
        for name, value in headers.items():
            response.headers[name] = value
        return response
