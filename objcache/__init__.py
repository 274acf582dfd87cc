"""objcache: a disk-persisted, group-scoped object cache with an in-memory front layer."""

from objcache.infrastructure.cache.caching_service import CachingServiceImpl, build_object_cache
from objcache.infrastructure.config.settings import CacheSettings, load_settings

__version__ = "0.1.0"

__all__ = ["CachingServiceImpl", "CacheSettings", "build_object_cache", "load_settings", "__version__"]
