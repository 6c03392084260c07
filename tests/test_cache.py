"""缓存测试"""

import pickle
from unittest.mock import AsyncMock, Mock

import pytest

from health_guard.cache.memory_cache import MemoryCache
from health_guard.cache.redis_cache import RedisCache


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestMemoryCache:
    """内存缓存测试类"""

    def setup_method(self):
        """测试前准备"""
        self.clock = FakeClock()
        self.cache = MemoryCache(clock=self.clock)
        self.loads = 0

    async def _loader(self):
        self.loads += 1
        return f"value-{self.loads}"

    @pytest.mark.asyncio
    async def test_get_or_set_hits(self):
        """测试命中时不再调用加载函数"""
        assert await self.cache.get_or_set('health:overview', self._loader, 60) == 'value-1'
        assert await self.cache.get_or_set('health:overview', self._loader, 60) == 'value-1'
        assert self.loads == 1

    @pytest.mark.asyncio
    async def test_ttl_expiry(self):
        """测试过期后重新加载"""
        await self.cache.get_or_set('health:overview', self._loader, 60)
        self.clock.now = 60
        assert await self.cache.get_or_set('health:overview', self._loader, 60) == 'value-2'

    @pytest.mark.asyncio
    async def test_invalidate_pattern(self):
        """测试按glob模式失效"""
        for key in ('health:services:list:', 'health:services:id:a', 'health:alerts:x'):
            await self.cache.get_or_set(key, self._loader, 300)

        removed = await self.cache.invalidate_pattern('health:services:*')

        assert removed == 2
        assert len(self.cache) == 1

    @pytest.mark.asyncio
    async def test_loader_error_not_cached(self):
        """测试加载失败时不写入缓存"""
        async def failing():
            raise RuntimeError('boom')

        with pytest.raises(RuntimeError):
            await self.cache.get_or_set('health:x', failing, 60)
        assert len(self.cache) == 0

    @pytest.mark.asyncio
    async def test_delete(self):
        """测试删除单个键"""
        await self.cache.get_or_set('health:alert_rules', self._loader, 300)
        await self.cache.delete('health:alert_rules')
        await self.cache.delete('health:alert_rules')
        assert len(self.cache) == 0


class TestRedisCache:
    """Redis缓存测试类"""

    def setup_method(self):
        """测试前准备"""
        self.client = Mock()
        self.client.get = AsyncMock(return_value=None)
        self.client.set = AsyncMock()
        self.client.setex = AsyncMock()
        self.client.delete = AsyncMock(return_value=1)
        self.client.aclose = AsyncMock()
        self.cache = RedisCache(self.client, namespace='hg:')

    @pytest.mark.asyncio
    async def test_miss_sets_with_ttl(self):
        """测试未命中时写入并设置过期时间"""
        loader = AsyncMock(return_value={'total': 3})

        value = await self.cache.get_or_set('health:overview', loader, 60)

        assert value == {'total': 3}
        self.client.get.assert_awaited_once_with('hg:health:overview')
        key, ttl, data = self.client.setex.await_args.args
        assert (key, ttl) == ('hg:health:overview', 60)
        assert pickle.loads(data) == {'total': 3}

    @pytest.mark.asyncio
    async def test_hit_skips_loader(self):
        """测试命中时直接返回缓存值"""
        self.client.get.return_value = pickle.dumps([1, 2])
        loader = AsyncMock()

        assert await self.cache.get_or_set('health:x', loader, 60) == [1, 2]
        loader.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalidate_pattern(self):
        """测试按模式扫描并删除"""
        keys = ['hg:health:services:a', 'hg:health:services:b']

        async def scan_iter(match, count):
            assert match == 'hg:health:services:*'
            for key in keys:
                yield key

        self.client.scan_iter = scan_iter

        assert await self.cache.invalidate_pattern('health:services:*') == 2
        assert self.client.delete.await_count == 2

    @pytest.mark.asyncio
    async def test_close(self):
        """测试关闭连接"""
        await self.cache.close()
        self.client.aclose.assert_awaited_once()
