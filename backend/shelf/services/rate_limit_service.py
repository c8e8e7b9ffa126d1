"""Rate limiting service using Redis."""

import hashlib
import logging
from typing import Optional

import redis.asyncio as redis
from fastapi import Request

from shelf.config import settings
from shelf.core.exceptions import RateLimited

logger = logging.getLogger(__name__)


class RateLimitService:
    """Fixed-window request counters kept in Redis."""

    def __init__(self):
        self.redis_client: Optional[redis.Redis] = None

    async def get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                settings.REDIS_URL, encoding="utf-8", decode_responses=True
            )
        return self.redis_client

    @staticmethod
    def _client_ip(request: Request) -> str:
        # Rightmost X-Forwarded-For entry is the one our proxy appended
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ips = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
            if ips:
                return ips[-1]
        return request.client.host if request.client else "unknown"

    @staticmethod
    def _get_rate_limit_key(identifier: str, scope: str) -> str:
        # Hash to normalize key length, not for security
        digest = hashlib.sha256(f"{identifier}:{scope}".encode()).hexdigest()[:32]
        return f"rate_limit:{digest}"

    async def check_rate_limit(
        self,
        request: Request,
        max_requests: int = 5,
        window_seconds: int = 60,
        identifier: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> None:
        """
        Count this request and reject it once the window is full.

        Args:
            request: FastAPI request object
            max_requests: Maximum requests allowed in window
            window_seconds: Time window in seconds
            identifier: Who is limited (defaults to client IP)
            scope: What is limited (defaults to the request path)

        Raises:
            RateLimited: 429 Too Many Requests if limit exceeded
        """
        identifier = identifier or self._client_ip(request)
        if identifier == "unknown":
            return

        # Redis is optional during local development
        if settings.ENVIRONMENT == "development":
            return

        key = self._get_rate_limit_key(identifier, scope or request.url.path)

        try:
            redis_client = await self.get_redis()
            current = await redis_client.get(key)

            if current is None:
                await redis_client.setex(key, window_seconds, 1)
                return

            if int(current) >= max_requests:
                ttl = await redis_client.ttl(key)
                raise RateLimited(max(int(ttl), 1))

            await redis_client.incr(key)

        except RateLimited:
            raise
        except Exception as e:
            # Fail open: an unavailable Redis must not block sign-in or invites
            logger.warning("Rate limit check failed (fail-open): %s", e)


rate_limit_service = RateLimitService()


def get_rate_limit_service() -> RateLimitService:
    """FastAPI dependency returning the shared rate limiter."""
    return rate_limit_service
