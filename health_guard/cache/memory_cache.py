"""进程内缓存实现"""

import time
from fnmatch import fnmatchcase
from typing import Any, Dict, Optional, Tuple

from .base import Cache, Loader
from ..utils.log_manager import get_logger


class MemoryCache(Cache):
    """基于字典的缓存，过期时间使用单调时钟"""

    def __init__(self, clock=time.monotonic):
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._clock = clock
        self.logger = get_logger('cache.memory')

    def _lookup(self, key: str) -> Tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return False, None
        return True, value

    async def get_or_set(self, key: str, loader: Loader, ttl: Optional[float] = None) -> Any:
        hit, value = self._lookup(key)
        if hit:
            self.logger.debug(f"缓存命中: {key}")
            return value

        value = await loader()
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = (value, expires_at)
        return value

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def invalidate_pattern(self, pattern: str) -> int:
        keys = [k for k in self._entries if fnmatchcase(k, pattern)]
        for key in keys:
            del self._entries[key]
        if keys:
            self.logger.debug(f"按模式 {pattern} 失效了 {len(keys)} 个缓存键")
        return len(keys)

    def __len__(self) -> int:
        return len(self._entries)
