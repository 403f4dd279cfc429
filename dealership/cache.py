# dealership/cache.py
"""Optional Redis cache for listing and vehicle-detail reads.

Caching is disabled unless both REDIS_URL and ENABLE_REDIS=true are set;
every call is then a no-op. Redis failures never propagate: reads report a
miss, writes are dropped and invalidations return a failed
`InvalidationResult` for the caller to log.
"""
import json
import os
from dataclasses import dataclass
from typing import Any, Optional

import redis
from dotenv import load_dotenv

from .utils import logger

load_dotenv()

LISTING_PATTERN = "listing:*"


@dataclass
class InvalidationResult:
    ok: bool
    deleted: int = 0
    error: Optional[str] = None


class Cache:
    def __init__(self, client: Optional["redis.Redis"] = None):
        self._client = client

    @classmethod
    def from_env(cls) -> "Cache":
        url = os.getenv("REDIS_URL")
        if not url or os.getenv("ENABLE_REDIS", "false").lower() != "true":
            return cls(None)
        client = redis.Redis.from_url(url, socket_timeout=2, socket_connect_timeout=2)
        return cls(client)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def get(self, key: str) -> Optional[Any]:
        if self._client is None:
            return None
        try:
            raw = self._client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
        return json.loads(raw) if raw else None

    def set(self, key: str, value: Any, ttl_seconds: int = 60) -> bool:
        if self._client is None:
            return False
        try:
            self._client.set(key, json.dumps(value, default=str), ex=ttl_seconds)
        except redis.RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            return False
        return True

    def invalidate(self, pattern: str) -> InvalidationResult:
        if self._client is None:
            return InvalidationResult(ok=True)
        try:
            keys = list(self._client.scan_iter(match=pattern))
            deleted = self._client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.warning("Cache invalidation of %s failed: %s", pattern, e)
            return InvalidationResult(ok=False, error=str(e))
        except Exception as e:
            # invalidation never raises
            logger.exception("Unexpected error invalidating %s", pattern)
            return InvalidationResult(ok=False, error=f"{type(e).__name__}: {e}")
        return InvalidationResult(ok=True, deleted=deleted)


cache = Cache.from_env()


def get_cache() -> Cache:
    return cache
