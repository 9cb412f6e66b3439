"""Redis client shared by the read cache and the event channels."""
from functools import lru_cache

import redis

from inventory.config import get_settings


@lru_cache
def get_redis() -> redis.Redis:
    """Get the process-wide Redis client (connection pooled, str responses)."""
    settings = get_settings()
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)
