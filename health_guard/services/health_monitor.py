"""按服务的定时健康检查

每个服务一个监控循环任务，每个周期把一次检查作为独立任务启动，
上一次检查尚未结束时跳过本周期。停止监控只取消循环，不会打断正在进行的探测。
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .metrics_aggregator import MetricsAggregator
from .state import MonitorState
from ..alerts.manager import AlertManager
from ..checkers.engine import HealthCheckEngine
from ..models.alert import Alert, AlertRule
from ..models.health_check import CheckConfig, HealthCheckResult, ServiceTarget, STATUS_UNHEALTHY
from ..storage.base import MetricStore
from ..utils.exceptions import HealthGuardError, StorageError
from ..utils.log_manager import get_logger

RulesLoader = Callable[[], Awaitable[List[AlertRule]]]
CheckedCallback = Callable[[str], Awaitable[None]]


class HealthMonitor:
    """把检查引擎、指标聚合和阈值告警串成一条流水线"""

    def __init__(self, store: MetricStore, engine: HealthCheckEngine,
                 aggregator: MetricsAggregator, alert_manager: AlertManager,
                 state: MonitorState, rules_loader: Optional[RulesLoader] = None,
                 on_checked: Optional[CheckedCallback] = None):
        """
        Args:
            rules_loader: 返回当前启用的告警规则
            on_checked: 每次检查流程结束后以服务ID调用，用于失效读缓存
        """
        self.store = store
        self.engine = engine
        self.aggregator = aggregator
        self.alert_manager = alert_manager
        self.state = state
        self.rules_loader = rules_loader
        self.on_checked = on_checked
        self._check_tasks: Set[asyncio.Task] = set()
        self._running: Dict[str, asyncio.Task] = {}
        self.logger = get_logger('health_monitor')

    def is_monitoring(self, service_id: str) -> bool:
        task = self.state.tasks.get(service_id)
        return task is not None and not task.done()

    def is_checking(self, service_id: str) -> bool:
        """服务是否有定时检查正在进行"""
        task = self._running.get(service_id)
        return task is not None and not task.done()

    async def start_monitoring(self, service: ServiceTarget,
                               config: Optional[CheckConfig] = None):
        """启动服务的监控循环，已在监控时先停止旧循环"""
        await self.stop_monitoring(service.id)
        config = config or service.primary_check()

        task = asyncio.create_task(self._monitor_loop(service, config),
                                   name=f"monitor:{service.id}")
        self.state.tasks[service.id] = task
        self.logger.info(f"开始监控服务 {service.name}，检查间隔 {config.interval} 秒")

    async def stop_monitoring(self, service_id: str):
        task = self.state.tasks.pop(service_id, None)
        if task is None:
            return

        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.logger.info(f"已停止监控服务 {service_id}")

    async def stop_all_monitoring(self):
        """停止全部监控循环，等待进行中的检查结束后清空指标缓存"""
        for service_id in list(self.state.tasks):
            await self.stop_monitoring(service_id)
        await self.wait_for_checks()
        self._running.clear()
        self.state.clear()
        self.logger.info("已停止所有服务监控")

    async def wait_for_checks(self):
        """等待所有已启动的检查任务结束"""
        if self._check_tasks:
            await asyncio.gather(*list(self._check_tasks), return_exceptions=True)

    async def _monitor_loop(self, service: ServiceTarget, config: CheckConfig):
        while True:
            if self.is_checking(service.id):
                self.logger.warning(f"服务 {service.id} 的上一次检查仍在进行，跳过本周期")
            else:
                task = asyncio.create_task(self._run_scheduled_check(service.id, config))
                self._check_tasks.add(task)
                task.add_done_callback(self._check_tasks.discard)
                self._running[service.id] = task
            await asyncio.sleep(config.interval)

    async def _run_scheduled_check(self, service_id: str, config: CheckConfig):
        try:
            service = await self.store.get_service(service_id)
            if service is None:
                self.logger.warning(f"服务 {service_id} 已不存在，停止监控")
                await self.stop_monitoring(service_id)
                return
            await self.perform_health_check(service, config)
        except HealthGuardError as e:
            self.logger.error(f"服务 {service_id} 的定时检查失败: {e.format_error()}")
        except Exception as e:
            self.logger.error(f"服务 {service_id} 的定时检查出现未预期错误: {e}", exc_info=True)

    async def perform_health_check(self, service: ServiceTarget,
                                   config: Optional[CheckConfig] = None) -> HealthCheckResult:
        """
        执行一次完整的检查流程：探测、更新指标、评估阈值、检测状态变化

        流程结束后（无论成功与否）调用 on_checked。

        Returns:
            HealthCheckResult: 检查结果
        """
        config = config or service.primary_check()
        try:
            result = await self.engine.perform_health_check(service, config)
            metrics = await self.aggregator.update_metrics(service.id, result)

            rules = await self.rules_loader() if self.rules_loader else None
            await self.alert_manager.check_thresholds(
                service.id, config.thresholds, result, metrics, rules)

            await self._handle_status_change(service, result)
            return result
        finally:
            if self.on_checked:
                await self.on_checked(service.id)

    async def _handle_status_change(self, service: ServiceTarget, result: HealthCheckResult):
        # 在服务锁内重新读取状态，重叠的检查只会触发一次状态变化
        async with self.state.lock_for(service.id):
            current = await self.store.get_service(service.id)
            if current is None:
                return

            previous, new_status = current.status, result.status
            if new_status == previous:
                return

            self.logger.info(f"服务 {current.name} 状态变化: {previous} -> {new_status}")
            try:
                await self.store.update_service(service.id, status=new_status)
            except StorageError as e:
                self.logger.error(f"更新服务 {service.id} 状态失败: {e.format_error()}")

            if new_status == STATUS_UNHEALTHY:
                await self.alert_manager.create_alert(Alert(
                    service_id=service.id,
                    type='availability',
                    severity='error',
                    title='服务不可用',
                    message=f"服务 {current.name} 状态由 {previous} 变为 {new_status}: {result.error}",
                    metadata={'previous_status': previous, 'status': new_status,
                              'endpoint': result.endpoint}
                ))
