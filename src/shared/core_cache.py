"""
Core cache client with tag-based invalidation
"""

import threading
from datetime import datetime, timedelta
from typing import Any, Optional, Dict, Iterable, FrozenSet
from src.shared.utils import get_logger
from src.config.cache_config import cache_config

logger = get_logger(__name__)


class CacheEntry:
    """Cache entry with expiration time and the tags it was stored under"""
    def __init__(self, value: Any, ttl_seconds: Optional[int] = None, tags: Iterable[str] = ()):
        self.value = value
        self.tags: FrozenSet[str] = frozenset(tags)
        ttl = ttl_seconds or cache_config.DEFAULT_TTL
        self.expires_at = datetime.now() + timedelta(seconds=ttl)

    def is_expired(self) -> bool:
        return datetime.now() > self.expires_at


class CoreCacheClient:
    """In-process cache; entries are dropped by key or by any tag they carry"""

    def __init__(self):
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._last_cleanup = datetime.now()
        self._cleanup_interval = timedelta(minutes=cache_config.CLEANUP_INTERVAL_MINUTES)

        logger.info("Core cache client initialized with in-memory storage")

    def _cleanup_if_needed(self):
        """Clean up expired entries periodically"""
        now = datetime.now()
        if now - self._last_cleanup > self._cleanup_interval:
            expired_keys = [
                key for key, entry in self._cache.items()
                if entry.is_expired()
            ]

            for key in expired_keys:
                del self._cache[key]

            if expired_keys:
                logger.info(f"Cleaned up {len(expired_keys)} expired cache entries")

            self._last_cleanup = now

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        with self._lock:
            self._cleanup_if_needed()

            entry = self._cache.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._cache[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None, tags: Iterable[str] = ()) -> bool:
        """Set value in cache with TTL and invalidation tags"""
        with self._lock:
            self._cache[key] = CacheEntry(value, ttl_seconds, tags)
            return True

    def invalidate_tag(self, tag: str) -> int:
        """Drop every entry stored under ``tag``; returns the number removed"""
        with self._lock:
            keys_to_delete = [
                key for key, entry in self._cache.items() if tag in entry.tags
            ]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)

    def generate_key(self, prefix: str, *args) -> str:
        """Generate cache key from a prefix and identifiers"""
        return ":".join([prefix] + [str(arg) for arg in args])

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        with self._lock:
            total_keys = len(self._cache)
            expired_keys = sum(1 for entry in self._cache.values() if entry.is_expired())

            tag_counts: Dict[str, int] = {}
            for entry in self._cache.values():
                for tag in entry.tags:
                    tag_counts[tag] = tag_counts.get(tag, 0) + 1

            return {
                "backend": "in_memory",
                "total_keys": total_keys,
                "active_keys": total_keys - expired_keys,
                "expired_keys": expired_keys,
                "tag_breakdown": tag_counts,
            }


# Global core cache client instance
core_cache = CoreCacheClient()
