"""累计健康指标测试"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from health_guard.models.health_check import HealthCheckResult, HealthMetrics
from health_guard.services.metrics_aggregator import MetricsAggregator, apply_result
from health_guard.services.state import MonitorState
from health_guard.storage.memory_store import InMemoryMetricStore
from health_guard.utils.exceptions import StorageError


def _result(healthy: bool, response_time: float = 100.0) -> HealthCheckResult:
    return HealthCheckResult(service_id='svc', status='healthy' if healthy else 'unhealthy',
                             response_time=response_time)


class TestApplyResult:
    """测试单次结果的累加"""

    def test_counters_and_uptime(self):
        """测试计数、可用率和连续失败"""
        metrics = HealthMetrics(service_id='svc')
        for healthy in (True, False, False, True):
            metrics = apply_result(metrics, _result(healthy))

        assert metrics.total_checks == 4
        assert metrics.successful_checks == 2
        assert metrics.failed_checks == 2
        assert metrics.successful_checks + metrics.failed_checks == metrics.total_checks
        assert metrics.uptime == pytest.approx(50.0)
        assert metrics.consecutive_failures == 0
        assert metrics.current_status == 'healthy'

    def test_consecutive_failures(self):
        """测试连续失败计数"""
        metrics = HealthMetrics(service_id='svc')
        for healthy in (True, False, False, False):
            metrics = apply_result(metrics, _result(healthy))

        assert metrics.consecutive_failures == 3
        assert metrics.current_status == 'unhealthy'
        assert metrics.last_unhealthy_at is not None

    def test_incremental_average(self):
        """测试平均响应时间增量计算"""
        metrics = HealthMetrics(service_id='svc')
        for response_time in (100.0, 200.0, 600.0):
            metrics = apply_result(metrics, _result(True, response_time))
        assert metrics.average_response_time == pytest.approx(300.0)

    def test_original_unchanged(self):
        """测试返回新对象"""
        metrics = HealthMetrics(service_id='svc')
        apply_result(metrics, _result(True))
        assert metrics.total_checks == 0


class TestMetricsAggregator:
    """指标聚合器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.store = InMemoryMetricStore()
        self.state = MonitorState()
        self.aggregator = MetricsAggregator(self.store, self.state)

    @pytest.mark.asyncio
    async def test_update_persists(self):
        """测试更新后写入存储和内存缓存"""
        await self.aggregator.update_metrics('svc', _result(True))

        stored = await self.store.get_metrics('svc')
        assert stored.total_checks == 1
        assert self.state.metrics['svc'].total_checks == 1

    @pytest.mark.asyncio
    async def test_concurrent_updates_not_lost(self):
        """测试同一服务并发更新不会丢失"""
        await asyncio.gather(*(
            self.aggregator.update_metrics('svc', _result(i % 2 == 0)) for i in range(20)))

        metrics = await self.aggregator.get_metrics('svc')
        assert metrics.total_checks == 20
        assert metrics.successful_checks == 10

    @pytest.mark.asyncio
    async def test_reload_from_store(self):
        """测试内存缓存清空后从存储恢复"""
        await self.aggregator.update_metrics('svc', _result(True))
        self.state.clear()

        metrics = await self.aggregator.update_metrics('svc', _result(False))
        assert metrics.total_checks == 2

    @pytest.mark.asyncio
    async def test_store_failure_keeps_memory(self):
        """测试存储失败时仍保留内存中的指标"""
        store = AsyncMock()
        store.get_metrics.return_value = None
        store.upsert_metrics.side_effect = StorageError('写入失败')
        aggregator = MetricsAggregator(store, self.state)

        metrics = await aggregator.update_metrics('svc', _result(True))

        assert metrics.total_checks == 1
        assert (await aggregator.get_metrics('svc')).total_checks == 1
