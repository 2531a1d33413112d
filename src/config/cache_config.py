"""
Cache configuration settings
Centralized cache TTL values for the tag cache
"""

import os


class CacheConfig:
    """Cache configuration with environment variable overrides"""

    # Default TTL values in seconds
    DEFAULT_TTL = int(os.getenv("CACHE_DEFAULT_TTL", "300"))  # 5 minutes

    # Payment status is polled by clients while a webhook is in flight
    PAYMENT_STATUS_TTL = int(os.getenv("CACHE_PAYMENT_STATUS_TTL", "30"))

    # Cache cleanup and maintenance
    CLEANUP_INTERVAL_MINUTES = int(
        os.getenv("CACHE_CLEANUP_INTERVAL", "5")
    )  # 5 minutes

    # Cache prefixes for organization
    PREFIXES = {
        "payments": "payments",
    }

    @classmethod
    def get_ttl(cls, cache_type: str) -> int:
        """Get TTL for specific cache type"""
        ttl_mapping = {
            "payment_status": cls.PAYMENT_STATUS_TTL,
            "default": cls.DEFAULT_TTL,
        }
        return ttl_mapping.get(cache_type, cls.DEFAULT_TTL)


# Global cache config instance
cache_config = CacheConfig()
