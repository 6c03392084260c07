"""累计健康指标"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from .state import MonitorState
from ..models.health_check import HealthCheckResult, HealthMetrics
from ..storage.base import MetricStore
from ..utils.exceptions import StorageError
from ..utils.log_manager import get_logger


def apply_result(metrics: HealthMetrics, result: HealthCheckResult) -> HealthMetrics:
    """把一次检查结果累加到指标上，返回新对象"""
    total = metrics.total_checks + 1
    successful = metrics.successful_checks + (1 if result.is_healthy else 0)
    failed = metrics.failed_checks + (0 if result.is_healthy else 1)
    average = (metrics.average_response_time * metrics.total_checks + result.response_time) / total

    return replace(
        metrics,
        total_checks=total,
        successful_checks=successful,
        failed_checks=failed,
        uptime=successful / total * 100,
        average_response_time=average,
        last_check_at=result.timestamp,
        last_healthy_at=result.timestamp if result.is_healthy else metrics.last_healthy_at,
        last_unhealthy_at=metrics.last_unhealthy_at if result.is_healthy else result.timestamp,
        current_status=result.status,
        consecutive_failures=0 if result.is_healthy else metrics.consecutive_failures + 1,
        updated_at=datetime.now()
    )


class MetricsAggregator:
    """同一服务的读-改-写由该服务的锁串行化"""

    def __init__(self, store: MetricStore, state: MonitorState):
        self.store = store
        self.state = state
        self.logger = get_logger('metrics_aggregator')

    async def update_metrics(self, service_id: str, result: HealthCheckResult) -> HealthMetrics:
        async with self.state.lock_for(service_id):
            current = await self._load(service_id) or HealthMetrics(service_id=service_id)
            updated = apply_result(current, result)
            self.state.metrics[service_id] = updated

            try:
                await self.store.upsert_metrics(service_id, updated)
            except StorageError as e:
                self.logger.error(f"保存服务 {service_id} 的指标失败: {e.format_error()}")

            return updated

    async def get_metrics(self, service_id: str) -> Optional[HealthMetrics]:
        """优先读取内存缓存，未命中时从存储加载"""
        return await self._load(service_id)

    async def _load(self, service_id: str) -> Optional[HealthMetrics]:
        metrics = self.state.metrics.get(service_id)
        if metrics is not None:
            return metrics

        try:
            metrics = await self.store.get_metrics(service_id)
        except StorageError as e:
            self.logger.error(f"读取服务 {service_id} 的指标失败: {e.format_error()}")
            return None

        if metrics is not None:
            self.state.metrics[service_id] = metrics
        return metrics
