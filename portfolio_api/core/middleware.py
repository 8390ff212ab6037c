import math
import time
from dataclasses import dataclass
from typing import Callable, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from portfolio_api.core.errors import error_response
from portfolio_api.core.logging_config import get_logger

logger = get_logger("rate_limit")


@dataclass
class Window:
    count: int
    reset_at: float


def client_id(request: Request, trust_forwarded_for: bool = False) -> str:
    # X-Forwarded-For is client-controlled unless a proxy in front rewrites it
    forwarded = request.headers.get("x-forwarded-for") if trust_forwarded_for else None
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"
    return f"ip:{ip}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window request limit per client IP.
    State is process-local; each worker counts independently.
    """

    def __init__(
        self,
        app,
        limit: int = 100,
        window_seconds: float = 3600,
        trust_forwarded_for: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.limit = limit
        self.window_seconds = window_seconds
        self.trust_forwarded_for = trust_forwarded_for
        self._clock = clock
        self._windows: Dict[str, Window] = {}

    def _evict_expired(self, now: float):
        for key in [k for k, w in self._windows.items() if w.reset_at < now]:
            del self._windows[key]

    async def dispatch(self, request: Request, call_next):
        now = self._clock()
        self._evict_expired(now)

        key = client_id(request, self.trust_forwarded_for)
        window = self._windows.get(key)
        if window is None:
            self._windows[key] = Window(count=1, reset_at=now + self.window_seconds)
            return await call_next(request)

        if window.count >= self.limit:
            retry_after = math.ceil(window.reset_at - now)
            logger.warning("rate_limited", client=key, path=request.url.path, retry_after=retry_after)
            return error_response(
                429,
                f"Rate limit exceeded. Try again in {retry_after} seconds.",
                details={"retryAfter": retry_after},
                headers={"Retry-After": str(retry_after)},
            )

        window.count += 1
        return await call_next(request)
