from .cache_manager import CacheManager, cache_key

__all__ = ['CacheManager', 'cache_key']
