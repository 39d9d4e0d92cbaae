"""
Rate limiting middleware with Redis backend.

Each client gets a sliding window per endpoint group kept in a Redis sorted
set. Without a Redis connection requests are let through.
"""

import logging
import time
from typing import Dict, Optional, Tuple
from uuid import uuid4

from fastapi import Request
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..cache import CacheKeyBuilder, get_cache
from ..utils.exceptions import RateLimitError

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware using a sliding window algorithm."""

    def __init__(
        self,
        app,
        default_limit: int = 100,
        default_window: int = 60,
        burst_limit: int = 20,
        burst_window: int = 1,
        enabled: bool = True,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.default_window = default_window
        self.burst_limit = burst_limit
        self.burst_window = burst_window
        self.enabled = enabled
        self.cache = get_cache()

        # Longest prefix wins
        self.endpoint_limits: Dict[str, Dict[str, int]] = {
            "/api/v1/auth/login": {"limit": 5, "window": 300},
            "/api/v1/auth/register": {"limit": 3, "window": 300},
            "/api/v1/auth/forgot-password": {"limit": 3, "window": 900},
            "/api/v1/auth/reset-password": {"limit": 5, "window": 900},
            "/api/v1/bookings": {"limit": 30, "window": 60},
            "/api/v1/conversations": {"limit": 60, "window": 60},
        }

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or request.url.path in EXEMPT_PATHS or request.client is None:
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        endpoint = self._get_endpoint_pattern(request.url.path)

        exceeded, retry_after = await self._hit(
            CacheKeyBuilder.rate_limit("burst", client_ip), self.burst_limit, self.burst_window
        )
        if exceeded:
            return self._create_rate_limit_response(self.burst_limit, self.burst_window, retry_after)

        limit, window = self._limits_for(endpoint)
        key = CacheKeyBuilder.rate_limit(endpoint, client_ip)
        exceeded, retry_after = await self._hit(key, limit, window)
        if exceeded:
            logger.info(f"Rate limit exceeded for {client_ip} on {endpoint}")
            return self._create_rate_limit_response(limit, window, retry_after)

        response = await call_next(request)
        await self._add_rate_limit_headers(response, key, limit, window)
        return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        return request.client.host

    def _get_endpoint_pattern(self, path: str) -> str:
        matches = [pattern for pattern in self.endpoint_limits if path.startswith(pattern)]
        return max(matches, key=len) if matches else "default"

    def _limits_for(self, endpoint: str) -> Tuple[int, int]:
        config = self.endpoint_limits.get(endpoint)
        if config is None:
            return self.default_limit, self.default_window
        return config["limit"], config["window"]

    async def _hit(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Record a request in the window stored at ``key``.

        Returns:
            Tuple of (limit exceeded, seconds until a slot frees up)
        """
        pipe = self.cache.pipeline()
        if pipe is None:
            return False, 0

        now = time.time()
        try:
            pipe.zremrangebyscore(key, 0, now - window)
            pipe.zcard(key)
            pipe.zadd(key, {f"{now}:{uuid4().hex}": now})
            pipe.expire(key, window * 2)
            results = await pipe.execute()
        except RedisError as e:
            logger.error(f"Error checking rate limit: {e}")
            return False, 0

        current_count = results[1]
        if current_count < limit:
            return False, 0

        oldest: Optional[list] = await self.cache.zrange(key, 0, 0, withscores=True)
        retry_after = window
        if oldest:
            retry_after = max(1, int(oldest[0][1] + window - now))
        return True, retry_after

    async def _add_rate_limit_headers(self, response, key: str, limit: int, window: int) -> None:
        current_count = await self.cache.zcard(key)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Window"] = str(window)

    def _create_rate_limit_response(self, limit: int, window: int, retry_after: int) -> JSONResponse:
        error = RateLimitError(limit, window, retry_after)
        return JSONResponse(
            status_code=429,
            content={"error": error.to_dict()},
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Window": str(window),
            },
        )
