"""缓存模块"""

from .base import Cache
from .memory_cache import MemoryCache
from .redis_cache import RedisCache

__all__ = ['Cache', 'MemoryCache', 'RedisCache']
