"""Redis缓存实现"""

import pickle
from typing import Any, Optional

import redis.asyncio as redis

from .base import Cache, Loader
from ..utils.log_manager import get_logger


class RedisCache(Cache):
    """使用Redis保存缓存值，值通过pickle序列化"""

    def __init__(self, client: redis.Redis, namespace: str = ''):
        """
        初始化Redis缓存

        Args:
            client: redis.asyncio客户端
            namespace: 键前缀，用于隔离多个实例
        """
        self._redis = client
        self.namespace = namespace
        self.logger = get_logger('cache.redis')

    @classmethod
    def from_url(cls, url: str, namespace: str = '') -> 'RedisCache':
        return cls(redis.Redis.from_url(url), namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def get_or_set(self, key: str, loader: Loader, ttl: Optional[float] = None) -> Any:
        full_key = self._key(key)
        raw = await self._redis.get(full_key)
        if raw is not None:
            return pickle.loads(raw)

        value = await loader()
        data = pickle.dumps(value)
        if ttl is not None:
            await self._redis.setex(full_key, max(1, int(ttl)), data)
        else:
            await self._redis.set(full_key, data)
        return value

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def invalidate_pattern(self, pattern: str) -> int:
        deleted = 0
        async for key in self._redis.scan_iter(match=self._key(pattern), count=100):
            deleted += await self._redis.delete(key)
        if deleted:
            self.logger.debug(f"按模式 {pattern} 删除了 {deleted} 个Redis键")
        return deleted

    async def close(self) -> None:
        await self._redis.aclose()
