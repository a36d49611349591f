"""API middleware for rate limiting, request tracing and security headers.

Status lookups need no authentication, so the token endpoint is throttled
per client to make guessing case tokens impractical.
"""

import asyncio
import hashlib
import time
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ..config import get_settings
from ..logging import get_context_logger, log_api_request
from . import RateLimitError, api_error_handler

logger = get_context_logger(__name__)

# Format: (requests, window_seconds)
RATE_LIMITS = {
    "default": (100, 60),
    "submit": (10, 60),
    "preview": (60, 60),
    "status": (20, 60),
}

REPORTS_PATH = "/api/v1/reports"

# Fixed routes under REPORTS_PATH that are not case tokens
STATIC_REPORT_PATHS = (f"{REPORTS_PATH}/interim-relief-options",)


def get_rate_limit_category(method: str, path: str) -> str:
    """Determine rate limit category for a request.

    Args:
        method: HTTP method
        path: Request path

    Returns:
        Rate limit category name
    """
    if not path.startswith(REPORTS_PATH):
        return "default"
    if path.startswith(f"{REPORTS_PATH}/mentions"):
        return "preview"
    if method == "POST" and path.rstrip("/") == REPORTS_PATH:
        return "submit"
    if path.rstrip("/") in STATIC_REPORT_PATHS:
        return "default"
    if method == "GET" and path.startswith(f"{REPORTS_PATH}/"):
        return "status"
    return "default"


def get_client_identifier(request: Request) -> str:
    """Get unique identifier for rate limiting, based on client IP."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            ip = real_ip
        elif request.client:
            ip = request.client.host
        else:
            ip = "unknown"

    return f"ip:{ip}"


class InMemoryRateLimiter:
    """Sliding-window rate limiter for development and single-process use."""

    def __init__(self):
        self._windows: dict[str, list[float]] = {}
        self._lock = asyncio.Lock()

    async def check_rate_limit(
        self, key: str, max_requests: int, window_seconds: int
    ) -> tuple[bool, int, int]:
        """Check if request is within rate limit.

        Returns:
            Tuple of (allowed, remaining, reset_seconds)
        """
        now = time.time()
        window_start = now - window_seconds

        async with self._lock:
            timestamps = [ts for ts in self._windows.get(key, []) if ts > window_start]
            self._windows[key] = timestamps

            if len(timestamps) >= max_requests:
                reset_seconds = int(min(timestamps) + window_seconds - now)
                return False, 0, max(1, reset_seconds)

            timestamps.append(now)
            return True, max(0, max_requests - len(timestamps)), window_seconds


class RedisRateLimiter:
    """Sliding-window rate limiter on Redis sorted sets, shared by all workers."""

    def __init__(self, redis_client):
        self._redis = redis_client
        self._key_prefix = "safereport:ratelimit:"

    async def check_rate_limit(
        self, key: str, max_requests: int, window_seconds: int
    ) -> tuple[bool, int, int]:
        """Check if request is within rate limit using Redis.

        Returns:
            Tuple of (allowed, remaining, reset_seconds)
        """
        redis_key = f"{self._key_prefix}{key}"
        now = time.time()
        window_start = now - window_seconds

        try:
            pipe = self._redis.pipeline()
            pipe.zremrangebyscore(redis_key, 0, window_start)
            pipe.zcard(redis_key)
            member = f"{now}:{hashlib.sha1(str(now).encode()).hexdigest()[:8]}"
            pipe.zadd(redis_key, {member: now})
            pipe.expire(redis_key, window_seconds + 1)

            results = await pipe.execute()
            current_count = results[1]

            if current_count >= max_requests:
                await self._redis.zrem(redis_key, member)
                oldest = await self._redis.zrange(redis_key, 0, 0, withscores=True)
                if oldest:
                    reset_seconds = int(oldest[0][1] + window_seconds - now)
                else:
                    reset_seconds = window_seconds
                return False, 0, max(1, reset_seconds)

            return True, max(0, max_requests - current_count - 1), window_seconds

        except Exception as e:
            # Fail open: a Redis outage must not block reporting
            logger.warning(f"Redis rate limit error: {e}, allowing request")
            return True, max_requests - 1, window_seconds


_rate_limiter: InMemoryRateLimiter | RedisRateLimiter | None = None


async def get_rate_limiter() -> InMemoryRateLimiter | RedisRateLimiter:
    """Get or create rate limiter instance.

    Uses Redis in production, in-memory otherwise.
    """
    global _rate_limiter

    if _rate_limiter is not None:
        return _rate_limiter

    settings = get_settings()

    if settings.is_production:
        try:
            from ..db import get_redis

            client = await get_redis()
            await client.ping()
            _rate_limiter = RedisRateLimiter(client)
            logger.info("Using Redis rate limiter")
        except Exception as e:
            logger.warning(f"Redis unavailable for rate limiting: {e}")
            _rate_limiter = InMemoryRateLimiter()
    else:
        _rate_limiter = InMemoryRateLimiter()
        logger.info("Using in-memory rate limiter")

    return _rate_limiter


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client sliding-window rate limiting on the API."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith("/api/"):
            return await call_next(request)

        client_id = get_client_identifier(request)
        category = get_rate_limit_category(request.method, request.url.path)
        max_requests, window_seconds = RATE_LIMITS[category]

        limiter = await get_rate_limiter()
        allowed, remaining, reset_seconds = await limiter.check_rate_limit(
            f"{client_id}:{category}", max_requests, window_seconds
        )

        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {category}",
                extra={"client": client_id, "category": category},
            )
            return await api_error_handler(request, RateLimitError(retry_after=reset_seconds))

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_seconds)

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        # Reports and their status must never sit in a shared cache.
        response.headers["Cache-Control"] = "no-store"

        if get_settings().is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and writes one access log line.

    The logged path has the case token masked; the token is a credential.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        path = request.url.path
        if get_rate_limit_category(request.method, path) == "status":
            path = f"{REPORTS_PATH}/<case_token>"
        log_api_request(request.method, path, response.status_code, duration_ms, request_id)

        response.headers["X-Request-ID"] = request_id
        return response


def setup_middleware(app) -> None:
    """Configure all middleware for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Added last runs first: request ID wraps everything
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    logger.info("API middleware configured")
