"""告警管理器"""

import asyncio
from typing import Dict, List, Any, Optional

from .base import BaseNotifier
from .email_notifier import EmailNotifier
from .evaluator import ThresholdEvaluator
from .webhook_notifier import WebhookNotifier
from ..models.alert import Alert, AlertFilter, AlertRule, DispatchResult
from ..models.health_check import HealthCheckResult, HealthMetrics, Thresholds
from ..storage.base import MetricStore
from ..utils.exceptions import AlertConfigError, StorageError
from ..utils.log_manager import get_logger

NOTIFIER_TYPES = {
    'webhook': WebhookNotifier,
    'email': EmailNotifier,
}


def create_notifier(config: Dict[str, Any]) -> BaseNotifier:
    """
    根据配置创建通知器

    Raises:
        AlertConfigError: 通知器类型不支持或配置无效
    """
    name = config.get('name', config.get('type', 'unnamed'))
    notifier_class = NOTIFIER_TYPES.get(config.get('type'))
    if notifier_class is None:
        raise AlertConfigError(f"不支持的通知器类型: {config.get('type')}", notifier_name=name)
    return notifier_class(name, config)


class AlertManager:
    """告警管理器，负责评估阈值、保存告警并发送通知"""

    def __init__(self, store: MetricStore, notifiers: Optional[List[BaseNotifier]] = None,
                 evaluator: Optional[ThresholdEvaluator] = None):
        self.store = store
        self.notifiers: List[BaseNotifier] = list(notifiers or [])
        self.evaluator = evaluator or ThresholdEvaluator()
        self.logger = get_logger('alerts.manager')

    def add_notifier(self, notifier: BaseNotifier):
        if not isinstance(notifier, BaseNotifier):
            raise AlertConfigError(f"通知器必须继承自BaseNotifier: {type(notifier)}")
        self.notifiers.append(notifier)
        self.logger.info(f"已添加通知器: {notifier.name} ({notifier.notifier_type})")

    async def check_thresholds(self, service_id: str, thresholds: Thresholds,
                               result: HealthCheckResult,
                               metrics: Optional[HealthMetrics] = None,
                               rules: Optional[List[AlertRule]] = None) -> List[Alert]:
        """
        评估阈值和自定义规则，为每条触发的规则创建告警

        Returns:
            List[Alert]: 创建的告警
        """
        alerts = self.evaluator.evaluate(service_id, thresholds, result, metrics)
        if rules:
            alerts.extend(self.evaluator.evaluate_rules(service_id, rules, result, metrics))

        created = []
        for alert in alerts:
            self.logger.warning(
                f"服务 {service_id} 触发告警 [{alert.severity}] {alert.title}: {alert.message}")
            if await self.create_alert(alert):
                created.append(alert)
        return created

    async def create_alert(self, alert: Alert, notify: bool = True) -> Optional[Alert]:
        """
        保存告警并按需发送通知

        保存失败时记录日志并返回None，通知失败不影响已保存的告警。
        """
        try:
            await self.store.insert_alert(alert)
        except StorageError as e:
            self.logger.error(f"保存告警失败: {e.format_error()}")
            return None

        if notify:
            await self._notify(alert)
        return alert

    async def dispatch(self, alert_id: str) -> List[DispatchResult]:
        """发送已保存的告警，供任务队列调用"""
        alert = await self.store.get_alert(alert_id)
        if alert is None:
            self.logger.warning(f"待发送的告警不存在: {alert_id}")
            return []
        return await self._notify(alert)

    async def _notify(self, alert: Alert) -> List[DispatchResult]:
        notifiers = self._select_notifiers(alert)
        if not notifiers:
            self.logger.debug("没有配置通知器，跳过告警发送")
            return []

        results = await asyncio.gather(*(n.send(alert) for n in notifiers))
        self._log_send_results(results, alert)
        return list(results)

    def _select_notifiers(self, alert: Alert) -> List[BaseNotifier]:
        channels = alert.metadata.get('channels')
        if not channels:
            return self.notifiers
        return [n for n in self.notifiers if n.name in channels]

    def _log_send_results(self, results: List[DispatchResult], alert: Alert):
        success_count = sum(1 for r in results if r.success)
        for result in results:
            if not result.success:
                self.logger.error(f"通知器 {result.notifier} 发送告警 {alert.id} 失败: {result.error}")
        self.logger.info(f"告警 {alert.id} 发送完成: {success_count}/{len(results)} 个通知器成功")

    async def get_active_alerts(self, service_id: Optional[str] = None) -> List[Alert]:
        return await self.store.query_alerts(AlertFilter(service_id=service_id, status='active'))

    async def query_alerts(self, alert_filter: Optional[AlertFilter] = None) -> List[Alert]:
        return await self.store.query_alerts(alert_filter)

    async def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> Alert:
        alert = await self.store.acknowledge_alert(alert_id, acknowledged_by)
        self.logger.info(f"告警 {alert_id} 已被 {acknowledged_by} 确认")
        return alert

    async def resolve_alert(self, alert_id: str) -> Alert:
        alert = await self.store.resolve_alert(alert_id)
        self.logger.info(f"告警 {alert_id} 已解决")
        return alert
