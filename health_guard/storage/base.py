"""存储层抽象接口"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Any

from ..models.alert import Alert, AlertFilter, AlertRule
from ..models.health_check import HealthCheckResult, HealthMetrics, ServiceTarget, MetricSample
from ..models.report import HealthReport


class MetricStore(ABC):
    """健康检查记录、累计指标、告警和服务注册表的持久化存储

    所有方法都是协程。违反约束（重复ID、记录不存在）时抛出 StorageError。
    """

    # 健康检查记录
    @abstractmethod
    async def insert_health_check(self, result: HealthCheckResult) -> None:
        pass

    @abstractmethod
    async def get_health_checks(self, service_id: str,
                                start: Optional[datetime] = None,
                                end: Optional[datetime] = None,
                                limit: Optional[int] = None) -> List[HealthCheckResult]:
        """按时间倒序返回服务的检查记录"""
        pass

    # 累计指标
    @abstractmethod
    async def get_metrics(self, service_id: str) -> Optional[HealthMetrics]:
        pass

    @abstractmethod
    async def upsert_metrics(self, service_id: str, metrics: HealthMetrics) -> None:
        pass

    # 告警
    @abstractmethod
    async def insert_alert(self, alert: Alert) -> None:
        pass

    @abstractmethod
    async def get_alert(self, alert_id: str) -> Optional[Alert]:
        pass

    @abstractmethod
    async def query_alerts(self, alert_filter: Optional[AlertFilter] = None) -> List[Alert]:
        """按时间倒序返回匹配的告警"""
        pass

    @abstractmethod
    async def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> Alert:
        pass

    @abstractmethod
    async def resolve_alert(self, alert_id: str) -> Alert:
        pass

    # 服务注册表
    @abstractmethod
    async def create_service(self, service: ServiceTarget) -> ServiceTarget:
        pass

    @abstractmethod
    async def get_service(self, service_id: str) -> Optional[ServiceTarget]:
        pass

    @abstractmethod
    async def list_services(self, filters: Optional[Dict[str, Any]] = None) -> List[ServiceTarget]:
        pass

    @abstractmethod
    async def update_service(self, service_id: str, **updates) -> ServiceTarget:
        pass

    @abstractmethod
    async def delete_service(self, service_id: str) -> None:
        pass

    # 告警规则
    @abstractmethod
    async def list_alert_rules(self) -> List[AlertRule]:
        pass

    @abstractmethod
    async def create_alert_rule(self, rule: AlertRule) -> AlertRule:
        pass

    @abstractmethod
    async def update_alert_rule(self, rule_id: str, **updates) -> AlertRule:
        pass

    @abstractmethod
    async def delete_alert_rule(self, rule_id: str) -> None:
        pass

    # 指标采样与报告
    @abstractmethod
    async def record_metric_samples(self, sample: MetricSample) -> None:
        pass

    @abstractmethod
    async def get_metric_samples(self, service_id: str,
                                 start: Optional[datetime] = None,
                                 end: Optional[datetime] = None) -> List[MetricSample]:
        pass

    @abstractmethod
    async def save_report(self, report: HealthReport) -> None:
        pass
