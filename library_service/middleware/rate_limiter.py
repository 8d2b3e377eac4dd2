"""
Redis-backed sliding window rate limiter (application level).

Requests carrying a valid patron access token are counted against that
library card; everything else is counted against the client IP. Branch
kiosks put many patrons behind one address, so a signed-in patron never
spends the shared IP budget.

Uses Redis sorted sets for the window. If Redis is unreachable the request
is allowed (fail open).
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass

import redis.asyncio as redis
import structlog
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from library_service.auth.jwt_handler import TokenType, decode_patron_token
from library_service.config import get_settings

logger = structlog.get_logger()

EXEMPT_PATHS = frozenset({"/health", "/live", "/metrics", "/ready"})


@dataclass(frozen=True)
class Quota:
    key: str
    limit: int
    scope: str


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    remaining: int


class SlidingWindow:
    """Counts hits per key inside a rolling window of ``window_seconds``."""

    def __init__(self, client: redis.Redis, window_seconds: int) -> None:
        self.client = client
        self.window_seconds = window_seconds

    async def hit(self, quota: Quota) -> Verdict:
        now = time.time()
        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(quota.key, 0, now - self.window_seconds)
            pipe.zcard(quota.key)
            # Unique member so simultaneous hits are all counted
            pipe.zadd(quota.key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
            pipe.expire(quota.key, self.window_seconds + 1)
            results = await pipe.execute()
        except (redis.RedisError, OSError):
            logger.warning("rate_limiter_redis_error", key=quota.key)
            return Verdict(allowed=True, remaining=quota.limit)

        seen = int(results[1])
        if seen >= quota.limit:
            return Verdict(allowed=False, remaining=0)
        return Verdict(allowed=True, remaining=quota.limit - seen - 1)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


def quota_for(request: Request, per_patron: int, per_ip: int) -> Quota:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        claims = decode_patron_token(auth_header.split(" ", 1)[1], TokenType.ACCESS)
        if claims is not None:
            return Quota(key=f"ratelimit:card:{claims.card_number}", limit=per_patron, scope="card")
    return Quota(key=f"ratelimit:ip:{client_ip(request)}", limit=per_ip, scope="ip")


class RateLimiterMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, window: SlidingWindow | None = None):
        super().__init__(app)
        settings = get_settings()
        self.enabled = settings.rate_limit_enabled
        self.per_patron_limit = settings.rate_limit_per_patron
        self.per_ip_limit = settings.rate_limit_per_ip
        self.window_seconds = settings.rate_limit_window_seconds
        self._redis_url = settings.redis_dsn
        self._window = window

    @property
    def window(self) -> SlidingWindow:
        if self._window is None:
            client = redis.from_url(self._redis_url, decode_responses=True)
            self._window = SlidingWindow(client, self.window_seconds)
        return self._window

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.enabled or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        quota = quota_for(request, self.per_patron_limit, self.per_ip_limit)
        verdict = await self.window.hit(quota)
        if not verdict.allowed:
            logger.info("rate_limited", scope=quota.scope, path=request.url.path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": f"Too many requests for this {quota.scope}, please try again later.",
                    "retry_after": self.window_seconds,
                },
                headers={"Retry-After": str(self.window_seconds)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(quota.limit)
        response.headers["X-RateLimit-Remaining"] = str(verdict.remaining)
        return response
