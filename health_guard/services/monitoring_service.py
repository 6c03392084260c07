"""健康监控服务

对外的统一入口：服务注册表、健康检查、告警、告警规则、报告与系统概览。
读操作经过缓存，写操作之后按前缀失效相关缓存。
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .health_monitor import HealthMonitor
from .job_queue import AsyncioJobQueue, JobQueue
from .metrics_aggregator import MetricsAggregator
from .state import MonitorState
from ..alerts.base import BaseNotifier
from ..alerts.manager import AlertManager
from ..anomaly.detector import AnomalyDetectionEngine
from ..cache.base import Cache
from ..cache.memory_cache import MemoryCache
from ..checkers.engine import HealthCheckEngine
from ..models.alert import Alert, AlertFilter, AlertRule
from ..models.anomaly import AnomalyDetectionConfig, AnomalyReport, DataPoint
from ..models.health_check import HealthCheckResult, HealthMetrics, MetricSample, ServiceTarget
from ..models.report import (
    HealthReport, HealthSummary, Recommendation, RecommendationAction, ServiceReport,
    ServiceTrends, SystemOverview
)
from ..storage.base import MetricStore
from ..utils.exceptions import ConfigError, ErrorCode, ServiceNotFoundError, StorageError
from ..utils.log_manager import get_logger

CACHE_PREFIX = 'health:'
SHORT_TTL = 60  # 检查记录、告警、概览
LONG_TTL = 300  # 服务、告警规则

HEALTH_CHECK_DELAY = 5
ALERT_NOTIFICATION_PRIORITY = 8

# 报告趋势判定的容差
TREND_MIN_CHECKS = 4
AVAILABILITY_TREND_TOLERANCE = 1.0
RESPONSE_TIME_TREND_RATIO = 0.1


def calculate_performance_score(availability: float, response_time: float,
                                error_rate: float) -> int:
    """0-100 的性能评分"""
    score = 100.0
    if availability < 99.9:
        score -= (99.9 - availability) * 10
    if availability < 99:
        score -= (99 - availability) * 20
    if response_time > 200:
        score -= min((response_time - 200) / 10, 30)
    if error_rate > 0.1:
        score -= min(error_rate * 100, 40)
    return int(round(max(0.0, score)))


def _availability(checks: List[HealthCheckResult]) -> float:
    return sum(1 for c in checks if c.is_healthy) / len(checks) * 100


def _mean_response_time(checks: List[HealthCheckResult]) -> float:
    return sum(c.response_time for c in checks) / len(checks)


def _longest_failure_streak(checks: List[HealthCheckResult]) -> int:
    longest = current = 0
    for check in checks:
        current = 0 if check.is_healthy else current + 1
        longest = max(longest, current)
    return longest


def calculate_trends(checks: List[HealthCheckResult]) -> ServiceTrends:
    """比较时间窗口前后两半的可用率、响应时间和最长连续失败"""
    if len(checks) < TREND_MIN_CHECKS:
        return ServiceTrends()

    ordered = sorted(checks, key=lambda c: c.timestamp)
    middle = len(ordered) // 2
    first, second = ordered[:middle], ordered[middle:]
    trends = ServiceTrends()

    delta = _availability(second) - _availability(first)
    if delta > AVAILABILITY_TREND_TOLERANCE:
        trends.availability = 'improving'
    elif delta < -AVAILABILITY_TREND_TOLERANCE:
        trends.availability = 'degrading'

    before, after = _mean_response_time(first), _mean_response_time(second)
    if after < before * (1 - RESPONSE_TIME_TREND_RATIO):
        trends.performance = 'improving'
    elif after > before * (1 + RESPONSE_TIME_TREND_RATIO):
        trends.performance = 'degrading'

    streak_before, streak_after = _longest_failure_streak(first), _longest_failure_streak(second)
    if streak_after < streak_before:
        trends.reliability = 'improving'
    elif streak_after > streak_before:
        trends.reliability = 'degrading'

    return trends


def generate_recommendations(reports: List[ServiceReport],
                             active_alerts: List[Alert]) -> List[Recommendation]:
    recommendations = []

    low_availability = [r for r in reports if r.availability < 99]
    if low_availability:
        recommendations.append(Recommendation(
            type='reliability',
            priority='high',
            title='提升服务可用率',
            description=f"{len(low_availability)} 个服务的可用率低于 99%",
            impact='影响用户体验并可能造成收入损失',
            effort='medium',
            timeline='1-2 周',
            actions=[
                RecommendationAction('完善健康检查', '为所有服务添加全面的健康检查', 'monitoring', False),
                RecommendationAction('配置自动扩缩容', '根据负载自动扩展实例', 'scaling', True),
            ],
            metrics=['availability', 'uptime']
        ))

    slow_services = [r for r in reports if r.average_response_time > 500]
    if slow_services:
        recommendations.append(Recommendation(
            type='performance',
            priority='medium',
            title='优化服务性能',
            description=f"{len(slow_services)} 个服务的平均响应时间超过 500ms",
            impact='用户体验变慢，吞吐量下降',
            effort='high',
            timeline='2-4 周',
            actions=[
                RecommendationAction('引入缓存', '增加缓存层以降低响应时间', 'optimization', False),
                RecommendationAction('数据库优化', '优化慢查询和索引', 'optimization', False),
            ],
            metrics=['response_time', 'throughput']
        ))

    critical_alerts = [a for a in active_alerts if a.severity == 'critical']
    if len(critical_alerts) > 5:
        recommendations.append(Recommendation(
            type='monitoring',
            priority='high',
            title='减少严重告警',
            description=f"当前有 {len(critical_alerts)} 条严重告警未解决",
            impact='告警疲劳，可能遗漏真正的故障',
            effort='low',
            timeline='1 周',
            actions=[
                RecommendationAction('复核告警阈值', '调整阈值以减少噪音', 'configuration', False),
                RecommendationAction('告警分组', '合并相关告警以降低数量', 'configuration', True),
            ],
            metrics=['alert_count', 'alert_resolution_time']
        ))

    return recommendations


class HealthMonitoringService:
    """健康监控服务门面"""

    def __init__(self, store: MetricStore, cache: Optional[Cache] = None,
                 job_queue: Optional[JobQueue] = None,
                 notifiers: Optional[List[BaseNotifier]] = None,
                 state: Optional[MonitorState] = None,
                 engine: Optional[HealthCheckEngine] = None,
                 anomaly_engine: Optional[AnomalyDetectionEngine] = None):
        self.store = store
        self.cache = cache or MemoryCache()
        self.state = state or MonitorState()
        self.engine = engine or HealthCheckEngine(store)
        self.aggregator = MetricsAggregator(store, self.state)
        self.alert_manager = AlertManager(store, notifiers)
        self.monitor = HealthMonitor(store, self.engine, self.aggregator, self.alert_manager,
                                     self.state, rules_loader=self._enabled_alert_rules,
                                     on_checked=self._invalidate_after_check)
        self.anomaly_engine = anomaly_engine or AnomalyDetectionEngine()
        self.logger = get_logger('monitoring_service')

        self.job_queue = job_queue or AsyncioJobQueue()
        self.job_queue.register_handler('health_check', self._run_health_check_job)
        self.job_queue.register_handler('alert_notification', self._run_alert_notification_job)

    async def _invalidate(self, *patterns: str):
        for pattern in patterns:
            await self.cache.invalidate_pattern(f"{CACHE_PREFIX}{pattern}")

    async def _invalidate_after_check(self, service_id: str):
        await self._invalidate(f"checks:{service_id}:*", 'alerts:*', 'services:*', 'overview')

    # 服务注册表
    async def get_services(self, filters: Optional[Dict[str, Any]] = None) -> List[ServiceTarget]:
        filters = filters or {}
        key = ','.join(f"{k}={filters[k]}" for k in sorted(filters))
        return await self.cache.get_or_set(
            f"{CACHE_PREFIX}services:list:{key}",
            lambda: self.store.list_services(filters),
            LONG_TTL)

    async def get_service(self, service_id: str) -> ServiceTarget:
        """
        Raises:
            ServiceNotFoundError: 服务不存在
        """
        async def load():
            service = await self.store.get_service(service_id)
            if service is None:
                raise ServiceNotFoundError(service_id)
            return service

        return await self.cache.get_or_set(f"{CACHE_PREFIX}services:id:{service_id}", load, LONG_TTL)

    async def create_service(self, service: ServiceTarget) -> ServiceTarget:
        created = await self.store.create_service(service)
        await self._invalidate('services:*', 'overview')
        await self.job_queue.add('health_check', {'service_id': created.id},
                                 delay=HEALTH_CHECK_DELAY)
        self.logger.info(f"已注册服务 {created.name} ({created.id})")
        return created

    async def update_service(self, service_id: str, **updates) -> ServiceTarget:
        try:
            updated = await self.store.update_service(service_id, **updates)
        except StorageError as e:
            if e.error_code == ErrorCode.RECORD_NOT_FOUND:
                raise ServiceNotFoundError(service_id, cause=e)
            raise
        await self._invalidate('services:*', 'overview')

        if 'checks' in updates and self.monitor.is_monitoring(service_id):
            await self.monitor.start_monitoring(updated)
        return updated

    async def delete_service(self, service_id: str) -> None:
        await self.monitor.stop_monitoring(service_id)
        try:
            await self.store.delete_service(service_id)
        except StorageError as e:
            if e.error_code == ErrorCode.RECORD_NOT_FOUND:
                raise ServiceNotFoundError(service_id, cause=e)
            raise
        self.state.metrics.pop(service_id, None)
        await self._invalidate('services:*', 'overview', f"checks:{service_id}:*")
        self.logger.info(f"已删除服务 {service_id}")

    # 监控
    async def start_monitoring(self, service_id: str) -> None:
        await self.monitor.start_monitoring(await self._require_service(service_id))

    async def stop_monitoring(self, service_id: str) -> None:
        await self.monitor.stop_monitoring(service_id)

    async def stop_all_monitoring(self) -> None:
        await self.monitor.stop_all_monitoring()

    async def perform_health_check(self, service_id: str) -> HealthCheckResult:
        """
        立即对服务执行一次健康检查

        Raises:
            ServiceNotFoundError: 服务不存在
        """
        service = await self._require_service(service_id)
        return await self.monitor.perform_health_check(service)

    async def _require_service(self, service_id: str) -> ServiceTarget:
        # 直接读取存储，状态变化检测需要最新的服务状态
        service = await self.store.get_service(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    async def get_health_metrics(self, service_id: str) -> Optional[HealthMetrics]:
        return await self.aggregator.get_metrics(service_id)

    async def get_health_checks(self, service_id: str, start: datetime,
                                end: datetime) -> List[HealthCheckResult]:
        return await self.cache.get_or_set(
            f"{CACHE_PREFIX}checks:{service_id}:{start.isoformat()}:{end.isoformat()}",
            lambda: self.store.get_health_checks(service_id, start, end),
            SHORT_TTL)

    async def get_recent_health_checks(self, service_id: str,
                                       limit: int = 10) -> List[HealthCheckResult]:
        return await self.cache.get_or_set(
            f"{CACHE_PREFIX}checks:{service_id}:recent:{limit}",
            lambda: self.store.get_health_checks(service_id, limit=limit),
            SHORT_TTL)

    # 指标采样
    async def record_metrics(self, service_id: str, values: Dict[str, float]) -> None:
        await self.store.record_metric_samples(MetricSample(service_id, dict(values)))
        await self._invalidate(f"metrics:{service_id}:*")

    async def get_metrics(self, service_id: str, start: Optional[datetime] = None,
                          end: Optional[datetime] = None) -> List[MetricSample]:
        start_key = start.isoformat() if start else ''
        end_key = end.isoformat() if end else ''
        return await self.cache.get_or_set(
            f"{CACHE_PREFIX}metrics:{service_id}:{start_key}:{end_key}",
            lambda: self.store.get_metric_samples(service_id, start, end),
            SHORT_TTL)

    # 告警
    async def get_alerts(self, alert_filter: Optional[AlertFilter] = None) -> List[Alert]:
        alert_filter = alert_filter or AlertFilter()
        return await self.cache.get_or_set(
            f"{CACHE_PREFIX}alerts:{alert_filter.cache_key()}",
            lambda: self.alert_manager.query_alerts(alert_filter),
            SHORT_TTL)

    async def create_alert(self, alert: Alert) -> Optional[Alert]:
        """保存告警，通知通过任务队列异步发送"""
        created = await self.alert_manager.create_alert(alert, notify=False)
        if created is None:
            return None

        await self._invalidate('alerts:*', 'overview')
        await self.job_queue.add('alert_notification', {'alert_id': created.id},
                                 priority=ALERT_NOTIFICATION_PRIORITY)
        return created

    async def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> Alert:
        alert = await self.alert_manager.acknowledge_alert(alert_id, acknowledged_by)
        await self._invalidate('alerts:*', 'overview')
        return alert

    async def resolve_alert(self, alert_id: str) -> Alert:
        alert = await self.alert_manager.resolve_alert(alert_id)
        await self._invalidate('alerts:*', 'overview')
        return alert

    # 告警规则
    async def get_alert_rules(self) -> List[AlertRule]:
        return await self.cache.get_or_set(f"{CACHE_PREFIX}alert_rules",
                                           self.store.list_alert_rules, LONG_TTL)

    async def _enabled_alert_rules(self) -> List[AlertRule]:
        return [rule for rule in await self.get_alert_rules() if rule.enabled]

    async def create_alert_rule(self, rule: AlertRule) -> AlertRule:
        created = await self.store.create_alert_rule(rule)
        await self.cache.delete(f"{CACHE_PREFIX}alert_rules")
        return created

    async def update_alert_rule(self, rule_id: str, **updates) -> AlertRule:
        updated = await self.store.update_alert_rule(rule_id, **updates)
        await self.cache.delete(f"{CACHE_PREFIX}alert_rules")
        return updated

    async def delete_alert_rule(self, rule_id: str) -> None:
        await self.store.delete_alert_rule(rule_id)
        await self.cache.delete(f"{CACHE_PREFIX}alert_rules")

    # 报告
    async def generate_health_report(self, hours: int = 24) -> HealthReport:
        """生成最近 hours 小时的健康报告并保存"""
        generated_at = datetime.now()
        end = generated_at
        start = end - timedelta(hours=hours)

        services = await self.store.list_services()
        active_alerts = await self.alert_manager.get_active_alerts()

        reports = []
        for service in services:
            checks = await self.store.get_health_checks(service.id, start, end)
            metrics = await self.aggregator.get_metrics(service.id)
            reports.append(self._build_service_report(service, checks, metrics, active_alerts))

        counts = {status: sum(1 for s in services if s.status == status)
                  for status in ('healthy', 'degraded', 'unhealthy', 'unknown')}
        critical_alerts = [a for a in active_alerts if a.severity == 'critical']

        if counts['unhealthy'] or critical_alerts:
            overall_status = 'unhealthy'
        elif counts['degraded']:
            overall_status = 'degraded'
        else:
            overall_status = 'healthy'

        summary = HealthSummary(
            total_services=len(services),
            healthy_services=counts['healthy'],
            degraded_services=counts['degraded'],
            unhealthy_services=counts['unhealthy'],
            unknown_services=counts['unknown'],
            overall_status=overall_status,
            availability=counts['healthy'] / len(services) * 100 if services else 100.0,
            average_response_time=(sum(r.average_response_time for r in reports) / len(reports)
                                   if reports else 0.0),
            total_alerts=len(active_alerts),
            critical_alerts=len(critical_alerts)
        )

        report = HealthReport(
            start=start,
            end=end,
            summary=summary,
            services=reports,
            recommendations=generate_recommendations(reports, active_alerts),
            metadata={
                'generated_by': 'system',
                'version': '1.0.0',
                'duration': (datetime.now() - generated_at).total_seconds()
            }
        )

        try:
            await self.store.save_report(report)
        except StorageError as e:
            self.logger.error(f"保存健康报告失败: {e.format_error()}")

        self.logger.info(f"健康报告已生成: {len(services)} 个服务，整体状态 {overall_status}")
        return report

    def _build_service_report(self, service: ServiceTarget, checks: List[HealthCheckResult],
                              metrics: Optional[HealthMetrics],
                              active_alerts: List[Alert]) -> ServiceReport:
        if checks:
            availability = _availability(checks)
            response_time = _mean_response_time(checks)
            error_rate = 100 - availability
        elif metrics is not None and metrics.total_checks:
            availability = metrics.uptime
            response_time = metrics.average_response_time
            error_rate = metrics.error_rate
        else:
            availability, response_time, error_rate = 100.0, 0.0, 0.0

        return ServiceReport(
            service_id=service.id,
            service_name=service.name,
            status=service.status,
            availability=availability,
            uptime=metrics.uptime if metrics is not None else availability,
            average_response_time=response_time,
            error_rate=error_rate,
            alerts=sum(1 for a in active_alerts if a.service_id == service.id),
            performance_score=calculate_performance_score(availability, response_time, error_rate),
            trends=calculate_trends(checks)
        )

    async def get_system_overview(self) -> SystemOverview:
        return await self.cache.get_or_set(f"{CACHE_PREFIX}overview",
                                           self._build_overview, SHORT_TTL)

    async def _build_overview(self) -> SystemOverview:
        services = await self.store.list_services()
        alerts = await self.alert_manager.query_alerts()

        by_type: Dict[str, int] = {}
        for service in services:
            by_type[service.type] = by_type.get(service.type, 0) + 1

        response_times = []
        for service in services:
            metrics = await self.aggregator.get_metrics(service.id)
            if metrics is not None and metrics.total_checks:
                response_times.append(metrics.average_response_time)

        healthy = sum(1 for s in services if s.status == 'healthy')
        return SystemOverview(
            services={
                'total': len(services),
                'healthy': healthy,
                'degraded': sum(1 for s in services if s.status == 'degraded'),
                'unhealthy': sum(1 for s in services if s.status == 'unhealthy'),
                'unknown': sum(1 for s in services if s.status == 'unknown'),
                'by_type': by_type,
            },
            alerts={
                'total': len(alerts),
                'critical': sum(1 for a in alerts if a.severity == 'critical'),
                'error': sum(1 for a in alerts if a.severity == 'error'),
                'warning': sum(1 for a in alerts if a.severity == 'warning'),
                'info': sum(1 for a in alerts if a.severity == 'info'),
                'active': sum(1 for a in alerts if a.status == 'active'),
            },
            availability=healthy / len(services) * 100 if services else 100.0,
            response_time=sum(response_times) / len(response_times) if response_times else 0.0
        )

    # 异常检测
    async def detect_service_anomalies(self, service_id: str, hours: int = 24,
                                       config: Optional[AnomalyDetectionConfig] = None,
                                       source: str = 'checks') -> AnomalyReport:
        """
        对服务的历史数据做异常检测

        Args:
            service_id: 服务ID
            hours: 时间窗口（小时）
            config: 检测配置
            source: "checks" 使用健康检查记录（response_time、failure），
                    "samples" 使用上报的指标采样

        Raises:
            ServiceNotFoundError: 服务不存在
            ConfigError: 数据源无效或窗口内没有数据
        """
        await self._require_service(service_id)
        end = datetime.now()
        start = end - timedelta(hours=hours)

        if source == 'checks':
            checks = await self.store.get_health_checks(service_id, start, end)
            points = [
                DataPoint(
                    id=check.id,
                    features={'response_time': check.response_time,
                              'failure': 0.0 if check.is_healthy else 1.0},
                    timestamp=check.timestamp,
                    metadata={'status_code': check.status_code}
                )
                for check in sorted(checks, key=lambda c: c.timestamp)
            ]
        elif source == 'samples':
            samples = await self.store.get_metric_samples(service_id, start, end)
            points = [
                DataPoint(id=f"{service_id}:{index}", features=dict(sample.values),
                          timestamp=sample.timestamp)
                for index, sample in enumerate(samples)
            ]
        else:
            raise ConfigError(f"不支持的异常检测数据源: {source}")

        return await self.anomaly_engine.detect_anomalies(points, config)

    # 任务处理
    async def _run_health_check_job(self, payload: Dict[str, Any]):
        await self.perform_health_check(payload['service_id'])

    async def _run_alert_notification_job(self, payload: Dict[str, Any]):
        await self.alert_manager.dispatch(payload['alert_id'])
