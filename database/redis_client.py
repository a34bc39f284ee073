"""
Redis client for the shared recognition cache.
Only used when REDIS_URL is configured.
"""

from typing import Optional

import redis

from decoding.config import get_redis_url

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(get_redis_url() or "redis://localhost:6379/0", decode_responses=True)
    return _redis_client


def recognition_key(content_hash: str) -> str:
    return f"recognition:{content_hash}"
