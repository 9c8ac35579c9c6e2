"""HTTP middleware and per-endpoint rate limits."""

import logging
import time

import redis.asyncio as redis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.config import settings
from app.core.exceptions import AuthenticationError, RateLimitExceeded
from app.core.security import verify_token

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
UNLIMITED_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})

_redis: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Shared Redis client for rate limit windows."""
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    return _redis


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


def caller_key(request: Request) -> str:
    """Identify the caller by verified token subject, or by IP otherwise.

    Tokens that fail verification are keyed by IP, so a forged subject
    cannot spend another user's window.
    """
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        try:
            return f"user:{verify_token(header[7:])['sub']}"
        except AuthenticationError:
            pass
    return f"ip:{client_ip(request)}"


async def hit_window(key: str) -> tuple[int, int]:
    """Record a request in the sliding window; return (prior count, now)."""
    now = time.time()
    async with get_redis().pipeline(transaction=True) as pipe:
        await pipe.zremrangebyscore(key, 0, now - WINDOW_SECONDS)
        await pipe.zcard(key)
        await pipe.zadd(key, {str(time.time_ns()): now})
        await pipe.expire(key, WINDOW_SECONDS)
        results = await pipe.execute()
    return results[1], int(now)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global per-IP sliding window. Provider webhooks are never limited."""

    def __init__(self, app, requests_per_minute: int = 100):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in UNLIMITED_PATHS or "/webhooks/" in path:
            return await call_next(request)

        try:
            count, now = await hit_window(f"rate_limit:{client_ip(request)}")
        except redis.RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing {request.method} {path}: {e}")
            return await call_next(request)

        limit_headers = {
            "X-RateLimit-Limit": str(self.requests_per_minute),
            "X-RateLimit-Remaining": str(max(0, self.requests_per_minute - count - 1)),
            "X-RateLimit-Reset": str(now + WINDOW_SECONDS),
        }
        if count >= self.requests_per_minute:
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Too many requests. Please try again later.",
                    "kind": RateLimitExceeded.kind,
                    "retry_after": WINDOW_SECONDS,
                },
                headers={**limit_headers, "Retry-After": str(WINDOW_SECONDS)},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its timing."""

    slow_after_seconds = 1.0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(time.time_ns())
        request.state.request_id = request_id

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        line = f"{request.method} {request.url.path} {response.status_code} {elapsed:.3f}s (request_id={request_id})"
        if elapsed > self.slow_after_seconds:
            logger.warning(f"SLOW REQUEST: {line}")
        else:
            logger.debug(line)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers. API responses carry contract and escrow data and are never cached."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if request.url.path.startswith(settings.api_prefix):
            response.headers["Cache-Control"] = "no-store"
        if not settings.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RateLimiter:
    """Per-caller limit for expensive endpoints, used as a route dependency."""

    def __init__(self, requests_per_minute: int, key_prefix: str):
        self.requests_per_minute = requests_per_minute
        self.key_prefix = key_prefix

    async def __call__(self, request: Request) -> None:
        try:
            count, _ = await hit_window(f"rate:{self.key_prefix}:{caller_key(request)}")
        except redis.RedisError as e:
            logger.warning(f"Rate limiter '{self.key_prefix}' unavailable: {e}")
            return

        if count >= self.requests_per_minute:
            raise RateLimitExceeded(f"Too many {self.key_prefix} requests. Please try again later.")


# Booking requests and escrow initiation hit the database lock and the payment provider
booking_limiter = RateLimiter(requests_per_minute=10, key_prefix="booking")
escrow_limiter = RateLimiter(requests_per_minute=5, key_prefix="escrow")
