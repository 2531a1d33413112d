"""
Centralized tag-based cache invalidation
"""

from typing import Callable, Iterable, List, Optional

from src.shared.core_cache import CoreCacheClient, core_cache
from src.shared.utils import get_logger

logger = get_logger(__name__)

InvalidationHook = Callable[[str], Optional[int]]


class CacheInvalidationManager:
    """
    Marks named cache scopes (tags) stale.
    The in-process cache is always invalidated; external layers (CDN purge,
    shared cache) plug in through ``register_invalidation_hook``.
    """

    def __init__(self, cache: CoreCacheClient):
        self.cache = cache
        self._invalidation_hooks: List[InvalidationHook] = []

    def register_invalidation_hook(self, hook: InvalidationHook):
        """Register a callable invoked with every invalidated tag"""
        self._invalidation_hooks.append(hook)
        logger.debug(f"Registered invalidation hook: {getattr(hook, '__name__', hook)}")

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Invalidate each tag independently; failures are logged and skipped"""
        total_deleted = 0
        tags = list(tags)

        for tag in tags:
            try:
                total_deleted += self.cache.invalidate_tag(tag)
            except Exception as e:
                logger.warning(f"Cache invalidation error for tag {tag} (non-fatal): {e}")
            total_deleted += self._execute_invalidation_hooks(tag)

        logger.info(f"Invalidated tags {tags}; {total_deleted} cache keys deleted")
        return total_deleted

    def _execute_invalidation_hooks(self, tag: str) -> int:
        total_deleted = 0

        for hook in self._invalidation_hooks:
            try:
                result = hook(tag)
                if isinstance(result, int):
                    total_deleted += result
            except Exception as e:
                logger.warning(f"Error executing invalidation hook for {tag} (non-fatal): {e}")

        return total_deleted


# Global cache invalidation manager
cache_invalidation_manager = CacheInvalidationManager(core_cache)
