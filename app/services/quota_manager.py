"""
Quota Manager Service

Tracks YouTube Data API usage so ingestion stops before the daily limit.
"""

from datetime import datetime
from typing import Optional

import redis.asyncio as aioredis

from ..config import get_settings
from ..core.logging import get_logger
from ..core.exceptions import QuotaExceededError

logger = get_logger(__name__)

_redis_client: Optional[aioredis.Redis] = None


def get_redis_client() -> Optional[aioredis.Redis]:
    """Get or create the async Redis client (None when REDIS_URL is unset)."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    settings = get_settings()
    if not settings.redis_url:
        logger.debug("redis_not_configured")
        return None

    _redis_client = aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )
    return _redis_client


class QuotaManager:
    """
    Manages API quota tracking to prevent bans.

    YouTube Data API: 10,000 units/day
    - Search: 100 units
    - Channel / playlistItems / videos list: 1 unit

    The configured limit (default 9,000) leaves a buffer.
    """

    COSTS = {
        "youtube": {"search": 100, "list": 1},
    }

    def __init__(self, redis_client=None):
        self.settings = get_settings()
        self.redis = redis_client
        self._local_usage: dict = {}  # Fallback if no Redis
        self.limits = {"youtube": self.settings.youtube_daily_quota_limit}

    def _get_today_key(self, api_name: str) -> str:
        """Get Redis key for today's usage."""
        today = datetime.now().strftime("%Y-%m-%d")
        return f"quota:{api_name}:{today}"

    def cost_of(self, api_name: str, operation: str) -> int:
        return self.COSTS.get(api_name, {}).get(operation, 1)

    async def get_usage(self, api_name: str) -> int:
        """Get current usage for an API."""
        key = self._get_today_key(api_name)

        if self.redis:
            try:
                usage = await self.redis.get(key)
                return int(usage) if usage else 0
            except Exception as e:
                logger.warning("redis_get_quota_failed", error=str(e))

        return self._local_usage.get(key, 0)

    async def can_make_request(self, api_name: str, cost: int = 1) -> bool:
        """
        Check if we have quota remaining for a request.

        Returns:
            True if request can be made, False if quota exceeded
        """
        if api_name not in self.limits:
            return True  # Untracked API, allow by default

        current_usage = await self.get_usage(api_name)
        return (current_usage + cost) <= self.limits[api_name]

    async def record_usage(self, api_name: str, cost: int = 1):
        """Record API usage."""
        key = self._get_today_key(api_name)

        if self.redis:
            try:
                await self.redis.incrby(key, cost)
                await self.redis.expire(key, 86400)  # 24 hour TTL
                return
            except Exception as e:
                logger.warning("redis_record_quota_failed", error=str(e))

        self._local_usage[key] = self._local_usage.get(key, 0) + cost

    async def require_quota(self, api_name: str, cost: int = 1):
        """
        Check quota and raise exception if exceeded.

        Use this before making API calls.
        """
        if not await self.can_make_request(api_name, cost):
            current = await self.get_usage(api_name)
            logger.error(
                "quota_exceeded",
                api=api_name,
                current=current,
                limit=self.limits.get(api_name, 0),
                requested=cost
            )
            raise QuotaExceededError(api_name)

    async def get_all_quotas(self) -> dict:
        """Get quota status for all tracked APIs."""
        result = {}
        for api_name, limit in self.limits.items():
            current = await self.get_usage(api_name)
            result[api_name] = {
                "used": current,
                "limit": limit,
                "remaining": max(0, limit - current),
                "percentage": round((current / limit) * 100, 1) if limit else 0.0
            }
        return result
