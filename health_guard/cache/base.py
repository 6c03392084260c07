"""缓存层抽象接口"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

Loader = Callable[[], Awaitable[Any]]


class Cache(ABC):
    """带TTL的键值缓存"""

    @abstractmethod
    async def get_or_set(self, key: str, loader: Loader, ttl: Optional[float] = None) -> Any:
        """
        读取缓存，未命中时调用loader加载并写入

        Args:
            key: 缓存键
            loader: 返回待缓存值的协程函数
            ttl: 过期时间（秒），为None时永不过期

        Returns:
            Any: 缓存值
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def invalidate_pattern(self, pattern: str) -> int:
        """按glob模式删除缓存键，返回删除数量"""
        pass

    async def close(self) -> None:
        """释放缓存连接"""
