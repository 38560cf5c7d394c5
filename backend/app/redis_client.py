# backend/app/redis_client.py

from redis.asyncio import Redis

from .config import settings


def create_redis_client() -> Redis | None:
    """Redis client for shared caches, None when no REDIS_URL is configured."""
    if not settings.redis_url:
        return None
    return Redis.from_url(settings.redis_url, decode_responses=True)
