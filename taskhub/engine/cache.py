"""
TaskHub Cache Layer — Two-tier TTL cache for dashboard data.

Tiers:
  1. Memory: in-process dict of CacheEntry objects (authoritative for reads)
  2. Durable: Redis mirror namespaced by a fixed prefix, so cache state
     survives process restarts. Best-effort; may lag the memory tier.

All cached data is non-authoritative and reconstructible from the database.
"""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import redis
from pydantic import TypeAdapter, ValidationError

from taskhub.engine.logging import log, log_cache_event

logger = logging.getLogger("taskhub.engine.cache")


def make_cache_key(entry_type: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Build a canonical cache key: ``type`` or ``type:k1:v1|k2:v2``.

    Parameter names are sorted so the key does not depend on argument order.
    """
    if not params:
        return entry_type
    param_string = "|".join(f"{key}:{params[key]}" for key in sorted(params))
    return f"{entry_type}:{param_string}"


@dataclass
class CacheEntry:
    """A cached value with its write time and time-to-live (seconds)."""
    data: Any
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp <= self.ttl


class RedisCache:
    """
    Redis wrapper with JSON helpers, pattern deletion and circuit breaker.

    Every failure is logged and reported as a miss / False so callers can
    keep serving from the primary data path.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "taskhub:",
        default_ttl: int = 300,
    ):
        self._redis_url = redis_url
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._client = None
        self._available = False

        # Circuit breaker state
        self._failure_count = 0
        self._failure_threshold = 5
        self._failure_window = 30  # seconds
        self._first_failure_time = 0.0
        self._circuit_open = False

    def connect(self) -> bool:
        """Initialize Redis connection."""
        try:
            self._client = redis.Redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            self._client.ping()
            self._available = True
            self._circuit_open = False
            self._failure_count = 0
            logger.info(f"Redis connected ({self._prefix})")
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed ({self._prefix}): {e}")
            self._available = False
            return False

    def _check_circuit(self) -> bool:
        if self._circuit_open:
            # Try to recover after window
            if time.time() - self._first_failure_time > self._failure_window:
                self._circuit_open = False
                self._failure_count = 0
                return self.connect()
            return False
        return self._available

    def _record_failure(self, operation: str, error: Exception) -> None:
        """Record a Redis failure for the circuit breaker."""
        logger.warning(f"Redis {operation} failed: {error}")
        now = time.time()
        if self._failure_count == 0:
            self._first_failure_time = now

        self._failure_count += 1

        if self._failure_count >= self._failure_threshold:
            elapsed = now - self._first_failure_time
            if elapsed <= self._failure_window:
                self._circuit_open = True
                logger.error(
                    f"Redis circuit breaker OPEN: {self._failure_count} failures in {elapsed:.1f}s"
                )

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    # ── Core Operations ──

    def get(self, key: str) -> Optional[str]:
        """Get a value from cache. Returns None on miss or failure."""
        if not self._check_circuit():
            return None
        try:
            return self._client.get(self._make_key(key))
        except redis.RedisError as e:
            self._record_failure("GET", e)
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Set a value with optional TTL. Returns False on failure."""
        if not self._check_circuit():
            return False
        try:
            self._client.set(self._make_key(key), value, ex=ttl or self._default_ttl)
            return True
        except redis.RedisError as e:
            self._record_failure("SET", e)
            return False

    def delete(self, key: str) -> bool:
        if not self._check_circuit():
            return False
        try:
            self._client.delete(self._make_key(key))
            return True
        except redis.RedisError as e:
            self._record_failure("DELETE", e)
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys in the namespace matching a glob pattern. Returns count deleted."""
        if not self._check_circuit():
            return 0
        try:
            keys = list(self._client.scan_iter(match=self._make_key(pattern), count=1000))
            if keys:
                return self._client.delete(*keys)
            return 0
        except redis.RedisError as e:
            self._record_failure("DELETE_PATTERN", e)
            return 0

    # ── JSON Operations ──

    def get_json(self, key: str) -> Optional[Any]:
        """Get and deserialize a JSON value."""
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache value for {key}")
            return None

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cannot serialize cache value for {key}: {e}")
            return False
        return self.set(key, payload, ttl=ttl)

    # ── Health & Management ──

    def ping(self) -> bool:
        if not self._client:
            return False
        try:
            return self._client.ping()
        except redis.RedisError:
            return False

    def close(self) -> None:
        """Close the Redis connection and release resources."""
        if self._client is not None:
            try:
                self._client.close()
            except redis.RedisError as e:
                logger.warning(f"Redis close failed: {e}")
            self._client = None
        self._available = False
        self._circuit_open = False
        self._failure_count = 0

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def is_available(self) -> bool:
        return self._available and not self._circuit_open

    @property
    def is_circuit_open(self) -> bool:
        return self._circuit_open


class TieredCache:
    """
    Read-through TTL cache: memory dict in front of an optional Redis mirror.

    Values written with a pydantic ``TypeAdapter`` are mirrored as JSON and
    re-validated on a durable hit; values without an adapter stay in memory
    only.

    Usage:
        cache = TieredCache(durable=create_durable_cache(url, prefix))
        cache.set("tasks", tasks, ttl=120, adapter=TASK_LIST)
        tasks = cache.get("tasks", adapter=TASK_LIST)
    """

    def __init__(
        self,
        durable: Optional[RedisCache] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._memory: Dict[str, CacheEntry] = {}
        self._durable = durable
        self._clock = clock

    def get(self, key: str, adapter: Optional[TypeAdapter] = None) -> Optional[Any]:
        """Return a fresh cached value, or None on miss / expiry."""
        entry = self._memory.get(key)
        tier = "memory"

        if entry is None and adapter is not None:
            entry = self._read_durable(key, adapter)
            tier = "durable"
            if entry is not None:
                self._memory[key] = entry

        if entry is None:
            log(log_cache_event("miss", key))
            return None

        if not entry.is_fresh(self._clock()):
            self._memory.pop(key, None)
            if self._durable is not None:
                self._durable.delete(key)
            log(log_cache_event("expired", key, tier=tier, ttl=entry.ttl))
            return None

        log(log_cache_event("hit", key, tier=tier))
        return entry.data

    def set(self, key: str, data: Any, ttl: float, adapter: Optional[TypeAdapter] = None) -> None:
        entry = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
        self._memory[key] = entry
        if adapter is not None:
            self._write_durable(key, entry, adapter)

    def invalidate(self, pattern: str) -> int:
        """Remove every entry whose key contains ``pattern``. Returns count removed."""
        doomed = [key for key in self._memory if pattern in key]
        for key in doomed:
            del self._memory[key]

        removed = len(doomed)
        if self._durable is not None:
            removed = max(removed, self._durable.delete_pattern(f"*{pattern}*"))
        log(log_cache_event("invalidated", pattern, removed=removed))
        return removed

    def clear(self) -> None:
        """Drop every entry from both tiers."""
        self._memory.clear()
        if self._durable is not None:
            self._durable.delete_pattern("*")
        log(log_cache_event("cleared", "*"))

    def close(self) -> None:
        """Clear the memory tier and release the durable client."""
        self._memory.clear()
        if self._durable is not None:
            self._durable.close()

    def keys(self) -> List[str]:
        return list(self._memory)

    def __contains__(self, key: str) -> bool:
        return key in self._memory

    def __len__(self) -> int:
        return len(self._memory)

    # ── Durable tier ──

    def _read_durable(self, key: str, adapter: TypeAdapter) -> Optional[CacheEntry]:
        if self._durable is None:
            return None
        stored = self._durable.get_json(key)
        if not isinstance(stored, dict):
            return None
        try:
            return CacheEntry(
                data=adapter.validate_python(stored["data"]),
                timestamp=float(stored["timestamp"]),
                ttl=float(stored["ttl"]),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"Discarding malformed durable cache entry {key}: {e}")
            self._durable.delete(key)
            return None

    def _write_durable(self, key: str, entry: CacheEntry, adapter: TypeAdapter) -> None:
        if self._durable is None:
            return
        payload = {
            "data": adapter.dump_python(entry.data, mode="json"),
            "timestamp": entry.timestamp,
            "ttl": entry.ttl,
        }
        # Expire the Redis key no earlier than the entry itself
        if not self._durable.set_json(key, payload, ttl=max(1, math.ceil(entry.ttl))):
            logger.debug(f"Durable cache write skipped for {key}")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_durable_cache(redis_url: str, prefix: str, ttl: int = 300) -> RedisCache:
    """Create and connect the durable cache tier."""
    cache = RedisCache(redis_url=redis_url, prefix=prefix, default_ttl=ttl)
    cache.connect()
    return cache
