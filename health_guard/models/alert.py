"""告警相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, List

from .health_check import new_id

ALERT_TYPES = ('performance', 'availability', 'error')
ALERT_SEVERITIES = ('info', 'warning', 'error', 'critical')
RULE_METRICS = ('response_time', 'uptime', 'error_rate', 'consecutive_failures')
RULE_OPERATORS = ('>', '>=', '<', '<=', '==')


@dataclass
class Alert:
    """告警记录，只允许确认和解决两种修改"""
    service_id: str
    type: str  # "performance", "availability", "error"
    severity: str  # "info", "warning", "error", "critical"
    title: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    status: str = 'active'  # "active", "resolved"
    resolved_at: Optional[datetime] = None
    id: str = field(default_factory=lambda: new_id('alert'))

    def to_payload(self) -> Dict[str, Any]:
        """生成Webhook通知负载"""
        return {
            'alertId': self.id,
            'serviceId': self.service_id,
            'type': self.type,
            'severity': self.severity,
            'title': self.title,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
            'metadata': self.metadata
        }


@dataclass
class AlertFilter:
    """告警查询条件"""
    service_id: Optional[str] = None
    severity: Optional[str] = None
    status: Optional[str] = None
    acknowledged: Optional[bool] = None
    since: Optional[datetime] = None

    def matches(self, alert: Alert) -> bool:
        if self.service_id is not None and alert.service_id != self.service_id:
            return False
        if self.severity is not None and alert.severity != self.severity:
            return False
        if self.status is not None and alert.status != self.status:
            return False
        if self.acknowledged is not None and alert.acknowledged != self.acknowledged:
            return False
        if self.since is not None and alert.timestamp < self.since:
            return False
        return True

    def cache_key(self) -> str:
        parts = [
            f"service={self.service_id or ''}",
            f"severity={self.severity or ''}",
            f"status={self.status or ''}",
            f"ack={'' if self.acknowledged is None else int(self.acknowledged)}",
            f"since={self.since.isoformat() if self.since else ''}"
        ]
        return '&'.join(parts)


@dataclass
class RuleCondition:
    """告警规则条件"""
    metric: str  # RULE_METRICS 之一
    operator: str  # RULE_OPERATORS 之一
    value: float


@dataclass
class AlertRule:
    """声明式告警规则"""
    name: str
    condition: RuleCondition
    severity: str = 'warning'
    type: str = 'performance'
    enabled: bool = True
    channels: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id('rule'))


@dataclass
class DispatchResult:
    """一次通知投递的结果"""
    notifier: str
    success: bool
    error: Optional[str] = None
