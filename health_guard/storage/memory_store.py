"""内存存储实现

所有数据保存在进程内，可选地把服务、指标、告警和最近的检查记录
持久化到JSON文件，重启后从文件恢复。
"""

import json
import os
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any

from .base import MetricStore
from .serialization import (
    service_to_dict, service_from_dict, metrics_to_dict, metrics_from_dict,
    alert_to_dict, alert_from_dict, result_to_dict, result_from_dict
)
from ..models.alert import Alert, AlertFilter, AlertRule
from ..models.health_check import HealthCheckResult, HealthMetrics, ServiceTarget, MetricSample
from ..models.report import HealthReport
from ..utils.exceptions import StorageError, ErrorCode
from ..utils.log_manager import get_logger


class InMemoryMetricStore(MetricStore):
    """基于字典的MetricStore实现"""

    def __init__(self, persistence_file: Optional[str] = None,
                 max_checks_per_service: int = 1000,
                 max_samples_per_service: int = 1000,
                 max_reports: int = 100):
        """
        初始化内存存储

        Args:
            persistence_file: JSON持久化文件路径，为None时不持久化
            max_checks_per_service: 每个服务保留的检查记录上限
            max_samples_per_service: 每个服务保留的指标采样上限
            max_reports: 保留的健康报告上限
        """
        self.persistence_file = persistence_file
        self.max_checks_per_service = max_checks_per_service
        self.max_samples_per_service = max_samples_per_service
        self.max_reports = max_reports
        self.logger = get_logger('storage.memory')

        self.services: Dict[str, ServiceTarget] = {}
        self.health_checks: Dict[str, List[HealthCheckResult]] = {}
        self.metrics: Dict[str, HealthMetrics] = {}
        self.alerts: Dict[str, Alert] = {}
        self.alert_rules: Dict[str, AlertRule] = {}
        self.metric_samples: Dict[str, List[MetricSample]] = {}
        self.reports: List[HealthReport] = []

        if self.persistence_file:
            self._load_state()

    # 健康检查记录
    async def insert_health_check(self, result: HealthCheckResult) -> None:
        checks = self.health_checks.setdefault(result.service_id, [])
        if any(c.id == result.id for c in checks):
            raise StorageError(f"检查记录已存在: {result.id}",
                               ErrorCode.DUPLICATE_RECORD, record_id=result.id)
        checks.append(result)
        if len(checks) > self.max_checks_per_service:
            del checks[:len(checks) - self.max_checks_per_service]
        self._save_state()

    async def get_health_checks(self, service_id: str,
                                start: Optional[datetime] = None,
                                end: Optional[datetime] = None,
                                limit: Optional[int] = None) -> List[HealthCheckResult]:
        checks = self.health_checks.get(service_id, [])
        if start:
            checks = [c for c in checks if c.timestamp >= start]
        if end:
            checks = [c for c in checks if c.timestamp <= end]

        checks = sorted(checks, key=lambda c: c.timestamp, reverse=True)
        if limit:
            checks = checks[:limit]
        return checks

    # 累计指标
    async def get_metrics(self, service_id: str) -> Optional[HealthMetrics]:
        metrics = self.metrics.get(service_id)
        return replace(metrics) if metrics else None

    async def upsert_metrics(self, service_id: str, metrics: HealthMetrics) -> None:
        self.metrics[service_id] = replace(metrics)
        self._save_state()

    # 告警
    async def insert_alert(self, alert: Alert) -> None:
        if alert.id in self.alerts:
            raise StorageError(f"告警已存在: {alert.id}",
                               ErrorCode.DUPLICATE_RECORD, record_id=alert.id)
        self.alerts[alert.id] = replace(alert)
        self._save_state()

    async def get_alert(self, alert_id: str) -> Optional[Alert]:
        alert = self.alerts.get(alert_id)
        return replace(alert) if alert else None

    async def query_alerts(self, alert_filter: Optional[AlertFilter] = None) -> List[Alert]:
        alert_filter = alert_filter or AlertFilter()
        matched = [replace(a) for a in self.alerts.values() if alert_filter.matches(a)]
        return sorted(matched, key=lambda a: a.timestamp, reverse=True)

    async def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> Alert:
        alert = self._require(self.alerts, alert_id, '告警')
        alert.acknowledged = True
        alert.acknowledged_at = datetime.now()
        alert.acknowledged_by = acknowledged_by
        self._save_state()
        return replace(alert)

    async def resolve_alert(self, alert_id: str) -> Alert:
        alert = self._require(self.alerts, alert_id, '告警')
        alert.status = 'resolved'
        alert.resolved_at = datetime.now()
        self._save_state()
        return replace(alert)

    # 服务注册表
    async def create_service(self, service: ServiceTarget) -> ServiceTarget:
        if service.id in self.services:
            raise StorageError(f"服务已存在: {service.id}",
                               ErrorCode.DUPLICATE_RECORD, record_id=service.id)
        self.services[service.id] = service
        self._save_state()
        return service

    async def get_service(self, service_id: str) -> Optional[ServiceTarget]:
        return self.services.get(service_id)

    async def list_services(self, filters: Optional[Dict[str, Any]] = None) -> List[ServiceTarget]:
        services = list(self.services.values())
        for key, value in (filters or {}).items():
            if value is None:
                continue
            if key == 'region':
                services = [s for s in services if s.metadata.get('region') == value]
            else:
                services = [s for s in services if getattr(s, key, None) == value]
        return services

    async def update_service(self, service_id: str, **updates) -> ServiceTarget:
        service = self._require(self.services, service_id, '服务')
        updated = service.with_updates(**updates)
        self.services[service_id] = updated
        self._save_state()
        return updated

    async def delete_service(self, service_id: str) -> None:
        self._require(self.services, service_id, '服务')
        del self.services[service_id]
        self.metrics.pop(service_id, None)
        self._save_state()

    # 告警规则
    async def list_alert_rules(self) -> List[AlertRule]:
        return list(self.alert_rules.values())

    async def create_alert_rule(self, rule: AlertRule) -> AlertRule:
        if rule.id in self.alert_rules:
            raise StorageError(f"告警规则已存在: {rule.id}",
                               ErrorCode.DUPLICATE_RECORD, record_id=rule.id)
        self.alert_rules[rule.id] = rule
        return rule

    async def update_alert_rule(self, rule_id: str, **updates) -> AlertRule:
        rule = self._require(self.alert_rules, rule_id, '告警规则')
        updated = replace(rule, **updates)
        self.alert_rules[rule_id] = updated
        return updated

    async def delete_alert_rule(self, rule_id: str) -> None:
        self._require(self.alert_rules, rule_id, '告警规则')
        del self.alert_rules[rule_id]

    # 指标采样与报告
    async def record_metric_samples(self, sample: MetricSample) -> None:
        samples = self.metric_samples.setdefault(sample.service_id, [])
        samples.append(sample)
        if len(samples) > self.max_samples_per_service:
            del samples[:len(samples) - self.max_samples_per_service]

    async def get_metric_samples(self, service_id: str,
                                 start: Optional[datetime] = None,
                                 end: Optional[datetime] = None) -> List[MetricSample]:
        samples = self.metric_samples.get(service_id, [])
        if start:
            samples = [s for s in samples if s.timestamp >= start]
        if end:
            samples = [s for s in samples if s.timestamp <= end]
        return list(samples)

    async def save_report(self, report: HealthReport) -> None:
        self.reports.append(report)
        if len(self.reports) > self.max_reports:
            del self.reports[:len(self.reports) - self.max_reports]

    def _require(self, table: Dict[str, Any], record_id: str, label: str) -> Any:
        record = table.get(record_id)
        if record is None:
            raise StorageError(f"{label}不存在: {record_id}",
                               ErrorCode.RECORD_NOT_FOUND, record_id=record_id)
        return record

    def _save_state(self):
        """保存状态到文件"""
        if not self.persistence_file:
            return

        try:
            Path(self.persistence_file).parent.mkdir(parents=True, exist_ok=True)

            state_data = {
                'last_updated': datetime.now().isoformat(),
                'services': [service_to_dict(s) for s in self.services.values()],
                'metrics': [metrics_to_dict(m) for m in self.metrics.values()],
                'alerts': [alert_to_dict(a) for a in self.alerts.values()],
                'health_checks': [
                    result_to_dict(c)
                    for checks in self.health_checks.values()
                    for c in checks[-100:]  # 每个服务只保存最近100条
                ]
            }

            with open(self.persistence_file, 'w', encoding='utf-8') as f:
                json.dump(state_data, f, ensure_ascii=False, indent=2, default=str)

        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"保存存储状态失败: {e}")

    def _load_state(self):
        """从文件加载状态"""
        if not os.path.exists(self.persistence_file):
            return

        try:
            with open(self.persistence_file, 'r', encoding='utf-8') as f:
                state_data = json.load(f)

            for data in state_data.get('services', []):
                service = service_from_dict(data)
                self.services[service.id] = service
            for data in state_data.get('metrics', []):
                metrics = metrics_from_dict(data)
                self.metrics[metrics.service_id] = metrics
            for data in state_data.get('alerts', []):
                alert = alert_from_dict(data)
                self.alerts[alert.id] = alert
            for data in state_data.get('health_checks', []):
                result = result_from_dict(data)
                self.health_checks.setdefault(result.service_id, []).append(result)

            self.logger.info(
                f"从 {self.persistence_file} 加载了 {len(self.services)} 个服务、"
                f"{len(self.alerts)} 条告警")

        except (OSError, ValueError, KeyError) as e:
            self.logger.error(f"加载存储状态失败: {e}")
