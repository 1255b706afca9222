"""Cache for the admin statistics payload.

A single entry `{"computed_at": <epoch seconds>, "payload": {...}}` lives in a
store (process memory or Redis). Entries older than the TTL are recomputed on
the next read. Concurrent refreshes in one process share a single computation:
the first caller computes, the others wait for it and read its result.

`invalidate()` bumps a generation counter, so a computation that started
before the invalidation does not write its (stale) result back.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import redis

from storefront import settings

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = "storefront:admin_stats"

ComputeFn = Callable[[], Dict[str, Any]]


class MemoryStatsStore:
    name = "memory"

    def __init__(self) -> None:
        self._entry: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    def load(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._entry

    def save(self, entry: Dict[str, Any]) -> None:
        with self._lock:
            self._entry = entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None


class RedisStatsStore:
    """Entry stored as JSON under one key; Redis expiry is a multiple of the TTL."""

    name = "redis"

    def __init__(self, client: Optional[redis.Redis] = None, key: str = STATS_CACHE_KEY, expire_seconds: int = 300):
        self._client = client or redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        self._key = key
        self._expire_seconds = expire_seconds

    def load(self) -> Optional[Dict[str, Any]]:
        raw = self._client.get(self._key)
        if not raw:
            return None
        return json.loads(raw)

    def save(self, entry: Dict[str, Any]) -> None:
        self._client.setex(self._key, self._expire_seconds, json.dumps(entry, ensure_ascii=False, default=str))

    def clear(self) -> None:
        self._client.delete(self._key)


class StatsCache:
    def __init__(self, store=None, ttl_seconds: Optional[int] = None) -> None:
        self.store = store or MemoryStatsStore()
        self.ttl_seconds = settings.STATS_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._lock = threading.Lock()
        self._inflight: Optional[threading.Event] = None
        self._generation = 0

    def _is_fresh(self, entry: Optional[Dict[str, Any]]) -> bool:
        if not entry:
            return False
        return time.time() - float(entry["computed_at"]) < self.ttl_seconds

    def get(self, compute: ComputeFn) -> Dict[str, Any]:
        """Cached payload when fresh, otherwise a (shared) recomputation."""
        entry = self.store.load()
        if self._is_fresh(entry):
            return entry["payload"]
        return self._refresh(compute)

    def warm(self, compute: ComputeFn) -> Dict[str, Any]:
        """Recompute regardless of freshness."""
        return self._refresh(compute)

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
        self.store.clear()
        logger.debug("stats_cache: invalidated")

    def peek(self) -> Optional[Dict[str, Any]]:
        """Stored entry without computing anything."""
        return self.store.load()

    def info(self) -> Dict[str, Any]:
        entry = self.store.load()
        computed_at = float(entry["computed_at"]) if entry else None
        return {
            "backend": getattr(self.store, "name", type(self.store).__name__),
            "ttl_seconds": self.ttl_seconds,
            "cached": entry is not None,
            "fresh": self._is_fresh(entry),
            "computed_at": computed_at,
            "age_seconds": round(time.time() - computed_at, 3) if computed_at is not None else None,
            "in_flight": self._inflight is not None,
        }

    def _refresh(self, compute: ComputeFn) -> Dict[str, Any]:
        with self._lock:
            event = self._inflight
            leader = event is None
            if leader:
                event = threading.Event()
                self._inflight = event
            generation = self._generation

        if not leader:
            event.wait()
            entry = self.store.load()
            if entry:
                return entry["payload"]
            # Leader failed or was invalidated mid-flight
            return compute()

        try:
            started = time.monotonic()
            payload = compute()
            with self._lock:
                current = generation == self._generation
            if current:
                self.store.save({"computed_at": time.time(), "payload": payload})
            logger.info(f"stats_cache: computed in {time.monotonic() - started:.3f}s (stored={current})")
            return payload
        finally:
            with self._lock:
                self._inflight = None
            event.set()


def build_stats_cache() -> StatsCache:
    """Cache configured from settings (STATS_CACHE_BACKEND)."""
    if settings.STATS_CACHE_BACKEND == "redis":
        store = RedisStatsStore(expire_seconds=max(settings.STATS_CACHE_TTL_SECONDS * 10, 60))
    else:
        store = MemoryStatsStore()
    return StatsCache(store=store, ttl_seconds=settings.STATS_CACHE_TTL_SECONDS)
