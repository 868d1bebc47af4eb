"""Cache backends for stream listings, playback tokens and admin sessions."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Protocol, Tuple

import redis

from .settings import settings

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """JSON value cache with per-key TTL."""

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        ...

    def delete(self, key: str) -> None:
        ...

    def ping(self) -> bool:
        ...


class InMemoryCacheStore(CacheStore):
    """Process-local store used when no Redis URL is configured."""

    def __init__(self, time_fn: Callable[[], float] = time.monotonic) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, Tuple[float, str]] = {}
        self._time_fn = time_fn

    def get(self, key: str) -> Any | None:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            expires_at, payload = record
            if self._time_fn() >= expires_at:
                del self._records[key]
                return None
            return json.loads(payload)

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        payload = json.dumps(value)
        with self._lock:
            self._records[key] = (self._time_fn() + ttl_seconds, payload)
        return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def ping(self) -> bool:
        return True


class RedisCacheStore(CacheStore):
    """Redis-backed implementation of :class:`CacheStore`.

    Read and write failures are logged and reported as a cache miss, the
    metadata store stays the source of truth.
    """

    def __init__(self, url: str, *, namespace: str = "simulive") -> None:
        self._client = redis.Redis.from_url(url, decode_responses=True)
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def get(self, key: str) -> Any | None:
        try:
            payload = self._client.get(self._key(key))
        except redis.RedisError as exc:
            logger.error("Redis get failed for %s: %s", key, exc)
            return None
        if payload is None:
            return None
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            self._client.setex(self._key(key), ttl_seconds, json.dumps(value))
        except redis.RedisError as exc:
            logger.error("Redis set failed for %s: %s", key, exc)
            return False
        return True

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except redis.RedisError as exc:
            logger.error("Redis delete failed for %s: %s", key, exc)

    def ping(self) -> bool:
        return bool(self._client.ping())


def create_cache_store(url: str | None = None) -> CacheStore:
    """Build the cache backend selected by ``REDIS_URL``."""
    chosen = url if url is not None else settings.redis_url
    if chosen:
        logger.info("Using Redis cache backend")
        return RedisCacheStore(chosen)
    return InMemoryCacheStore()


__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "create_cache_store",
]
