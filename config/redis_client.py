"""
config/redis_client.py
Async Redis client. Holds the access-token deny-list used by admin logout.
"""

from typing import Optional
import redis.asyncio as aioredis

from config.settings import settings


# ── Global client (initialized on startup) ───────────────────
redis_client: Optional[aioredis.Redis] = None


async def init_redis() -> None:
    """Initialize the Redis connection pool."""
    global redis_client
    redis_client = aioredis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    # Test connection
    await redis_client.ping()


async def close_redis() -> None:
    """Close Redis connection pool."""
    global redis_client
    if redis_client:
        await redis_client.aclose()


def get_redis() -> aioredis.Redis:
    """FastAPI dependency to get Redis client."""
    if not redis_client:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return redis_client


# ── Token Deny List ───────────────────────────────────────────
class TokenDenyList:
    """Revoked access-token JTIs, each kept until the token would expire anyway."""

    KEY_PREFIX = "jwt_revoked:"

    def __init__(self, client: aioredis.Redis):
        self.client = client

    async def revoke(self, jti: str, ttl_seconds: int) -> None:
        if ttl_seconds > 0:
            await self.client.setex(f"{self.KEY_PREFIX}{jti}", ttl_seconds, "1")

    async def is_revoked(self, jti: str) -> bool:
        return await self.client.exists(f"{self.KEY_PREFIX}{jti}") == 1
