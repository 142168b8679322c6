"""
TitleDesk Backend — Rate Limiting Middleware
==============================================

What:  Per-IP sliding window limiter, settings.rate_limit_requests per
       settings.rate_limit_window seconds (100 per 15 minutes by default).
How:   Each client IP keeps a deque of request timestamps; timestamps
       older than the window are dropped before counting. Over the limit
       the request is answered with 429 and Retry-After.

State is per process. Health checks and the API docs are never limited.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from titledesk.config import settings
from titledesk.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

EXCLUDED_PREFIXES = ("/health", "/docs", "/redoc", "/openapi.json")
CLEANUP_EVERY = 1000


def client_key(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._seen = 0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS" or request.url.path.startswith(EXCLUDED_PREFIXES):
            return await call_next(request)

        key = client_key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window
        hits = self._hits[key]
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= settings.rate_limit_requests:
            retry_after = int(hits[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds",
                key,
                len(hits),
                settings.rate_limit_window,
            )
            # raised exceptions never reach the app handlers from here
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.error_code, "message": exc.message, "details": exc.context},
                headers={"Retry-After": str(exc.retry_after)},
            )

        hits.append(now)
        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._forget_idle(window_start)
        return await call_next(request)

    def _forget_idle(self, window_start: float) -> None:
        idle = [k for k, v in self._hits.items() if not v or v[-1] <= window_start]
        for k in idle:
            del self._hits[k]
        if idle:
            logger.debug("Dropped rate limit state for %d idle clients", len(idle))
