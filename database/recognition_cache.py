"""
Recognition cache: content hash -> recognized text, with a TTL.

The poller only talks to the RecognitionCache interface; the backing store is
an in-process bounded map by default, or Redis when REDIS_URL is set so that
several workers share results. Identical uploads racing to fill the same
slot is fine: last write wins and the values are identical.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional, Protocol, Tuple

import redis
from cachetools import TLRUCache

from database.redis_client import get_redis, recognition_key
from decoding.config import get_redis_url

log = logging.getLogger(__name__)

RECOGNITION_TTL_S = 5 * 60


@dataclass(frozen=True)
class CachedRecognition:
    text: str
    pages: Optional[int] = None


class RecognitionCache(Protocol):
    def get(self, content_hash: str) -> Optional[CachedRecognition]: ...

    def set(self, content_hash: str, value: CachedRecognition, ttl: float = RECOGNITION_TTL_S) -> None: ...


def _expires_at(_key: str, entry: Tuple[CachedRecognition, float], now: float) -> float:
    return now + entry[1]


class InMemoryRecognitionCache:
    """Bounded LRU map with per-entry expiry, backed by cachetools."""

    def __init__(self, max_entries: int = 256, clock: Callable[[], float] = time.monotonic):
        self._entries: TLRUCache = TLRUCache(maxsize=max_entries, ttu=_expires_at, timer=clock)

    def get(self, content_hash: str) -> Optional[CachedRecognition]:
        entry = self._entries.get(content_hash)
        return entry[0] if entry is not None else None

    def set(self, content_hash: str, value: CachedRecognition, ttl: float = RECOGNITION_TTL_S) -> None:
        self._entries[content_hash] = (value, ttl)

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)


class RedisRecognitionCache:
    """Redis-backed store; expiry is delegated to Redis (SET ... EX)."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis()
        return self._client

    def get(self, content_hash: str) -> Optional[CachedRecognition]:
        try:
            raw = self.client.get(recognition_key(content_hash))
        except redis.RedisError as e:
            log.warning(f"[EXTRACT] redis get failed, treating as miss: {e}")
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            log.warning(f"[EXTRACT] discarding unreadable cache entry {content_hash[:12]}")
            return None
        return CachedRecognition(text=data.get("text", ""), pages=data.get("pages"))

    def set(self, content_hash: str, value: CachedRecognition, ttl: float = RECOGNITION_TTL_S) -> None:
        try:
            self.client.set(recognition_key(content_hash), json.dumps(asdict(value)), ex=int(ttl))
        except redis.RedisError as e:
            log.warning(f"[EXTRACT] redis set failed, result not cached: {e}")


_cache: Optional[RecognitionCache] = None


def get_recognition_cache() -> RecognitionCache:
    """Process-wide cache instance, chosen once from configuration."""
    global _cache
    if _cache is None:
        _cache = RedisRecognitionCache() if get_redis_url() else InMemoryRecognitionCache()
    return _cache
