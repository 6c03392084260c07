"""任务队列测试"""

import asyncio

import pytest

from health_guard.services.job_queue import AsyncioJobQueue
from health_guard.utils.exceptions import ConfigError


class TestAsyncioJobQueue:
    """任务队列测试类"""

    def setup_method(self):
        """测试前准备"""
        self.queue = AsyncioJobQueue()
        self.executed = []

        async def record(payload):
            self.executed.append(payload['n'])

        async def fail(payload):
            raise RuntimeError('处理失败')

        self.queue.register_handler('record', record)
        self.queue.register_handler('fail', fail)

    @pytest.mark.asyncio
    async def test_unregistered_task(self):
        """测试提交未注册的任务"""
        with pytest.raises(ConfigError):
            await self.queue.add('unknown', {})

    @pytest.mark.asyncio
    async def test_priority_order(self):
        """测试高优先级任务先执行，同优先级按提交顺序"""
        await self.queue.add('record', {'n': 1})
        await self.queue.add('record', {'n': 2}, priority=8)
        await self.queue.add('record', {'n': 3})

        assert await self.queue.run_pending() == 3
        assert self.executed == [2, 1, 3]

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_queue(self):
        """测试处理函数异常不影响后续任务"""
        await self.queue.add('fail', {}, priority=9)
        await self.queue.add('record', {'n': 1})

        assert await self.queue.run_pending() == 2
        assert self.executed == [1]

    @pytest.mark.asyncio
    async def test_workers_process_jobs(self):
        """测试后台工作协程处理任务"""
        await self.queue.start()
        try:
            await self.queue.add('record', {'n': 1})
            await self.queue.add('fail', {})
            await asyncio.wait_for(self.queue.join(), timeout=1)
        finally:
            await self.queue.stop()

        assert self.executed == [1]
        assert self.queue.is_running is False

    @pytest.mark.asyncio
    async def test_delayed_job(self):
        """测试延迟任务在到期后入队"""
        await self.queue.add('record', {'n': 1}, delay=0.05)
        assert await self.queue.run_pending() == 0

        await asyncio.sleep(0.1)
        assert await self.queue.run_pending() == 1
        assert self.executed == [1]

    @pytest.mark.asyncio
    async def test_stop_cancels_delayed_jobs(self):
        """测试停止时取消未到期的延迟任务"""
        await self.queue.add('record', {'n': 1}, delay=10)
        await self.queue.stop()

        await asyncio.sleep(0)
        assert await self.queue.run_pending() == 0
