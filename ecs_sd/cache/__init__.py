"""
ecs_sd/cache - 메모리 TTL 캐시

사용법:
    from ecs_sd.cache import TTLCache

    cache = TTLCache(default_ttl=900, sweep_interval=1800, return_stale=True)
    cache.set_default("key", value)
    lookup = cache.get("key")
"""

from .ttl import CacheEntry, CacheLookup, CacheStats, LookupState, TTLCache

__all__ = [
    "CacheEntry",
    "CacheLookup",
    "CacheStats",
    "LookupState",
    "TTLCache",
]
