"""
Query result caching for database reads.

A TTL cache keyed by string. Guild config and rule lists are read on every
event, so the cached stores keep them here for a short time and invalidate
by guild prefix on writes.
"""

from typing import Any, Dict, Optional, Tuple
import time

from warden.util.logger import get_logger

logger = get_logger("database_cache")


class DatabaseQueryCache:
    """
    TTL-based cache for database query results.

    Entries expire ``ttl_seconds`` after they are set. A cached ``None`` is
    distinguishable from a miss through ``contains``.
    """

    def __init__(self, ttl_seconds: int = 60, clock=time.monotonic):
        """
        Args:
            ttl_seconds: Time-to-live in seconds for cached entries.
            clock: Time source, overridable in tests.
        """
        self._cache: Dict[str, Tuple[float, Any]] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def _fresh_entry(self, cache_key: str) -> Optional[Tuple[float, Any]]:
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        if self._clock() - entry[0] < self._ttl_seconds:
            return entry
        del self._cache[cache_key]
        logger.debug("[CACHE] Expired key: %s", cache_key)
        return None

    def contains(self, cache_key: str) -> bool:
        return self._fresh_entry(cache_key) is not None

    def get(self, cache_key: str) -> Optional[Any]:
        """
        Get a cached result if still valid.

        Returns:
            Cached result if valid, None if expired or not found
        """
        entry = self._fresh_entry(cache_key)
        if entry is None:
            return None
        logger.debug("[CACHE] Hit for key: %s", cache_key)
        return entry[1]

    def set(self, cache_key: str, result: Any) -> None:
        self._cache[cache_key] = (self._clock(), result)
        logger.debug("[CACHE] Set key: %s", cache_key)

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """
        Invalidate cache entries whose key contains ``pattern``.

        Args:
            pattern: Substring to match in cache keys. None clears everything.

        Returns:
            Number of entries invalidated
        """
        if pattern is None:
            count = len(self._cache)
            self._cache.clear()
            logger.debug("[CACHE] Cleared all %d entries", count)
            return count

        keys_to_delete = [key for key in self._cache if pattern in key]
        for key in keys_to_delete:
            del self._cache[key]
        logger.debug("[CACHE] Cleared %d entries matching '%s'", len(keys_to_delete), pattern)
        return len(keys_to_delete)

    def get_db_cache_stats(self) -> Dict[str, int]:
        return {
            "size": len(self._cache),
            "ttl_seconds": self._ttl_seconds,
        }
