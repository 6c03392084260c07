"""健康检查相关的数据模型"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Any, Optional, List, Union

SERVICE_TYPES = ('api', 'database', 'cache', 'other')
SERVICE_STATUSES = ('healthy', 'degraded', 'unhealthy', 'unknown')
SERVICE_CATEGORIES = ('ecommerce', 'accounting', 'payment', 'warehouse', 'banking')

STATUS_HEALTHY = 'healthy'
STATUS_UNHEALTHY = 'unhealthy'


def new_id(prefix: str) -> str:
    """生成带前缀的记录ID"""
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class NoAuth:
    """无认证"""


@dataclass(frozen=True)
class ApiKeyAuth:
    """API Key认证，密钥放在指定请求头中"""
    header: str
    key: str


@dataclass(frozen=True)
class BearerAuth:
    """Bearer Token认证"""
    token: str


@dataclass(frozen=True)
class BasicAuth:
    """HTTP Basic认证"""
    username: str
    password: str


AuthConfig = Union[NoAuth, ApiKeyAuth, BearerAuth, BasicAuth]


@dataclass
class Thresholds:
    """告警阈值"""
    response_time: float = 1000.0  # 毫秒
    error_rate: float = 5.0  # 百分比
    uptime: float = 99.0  # 百分比


@dataclass
class CheckConfig:
    """健康检查配置"""
    interval: int = 60  # 秒
    timeout: int = 10  # 秒
    retries: int = 3
    thresholds: Thresholds = field(default_factory=Thresholds)


@dataclass
class ServiceTarget:
    """被监控的服务"""
    name: str
    type: str  # "api", "database", "cache", "other"
    endpoint: Optional[str] = None
    category: Optional[str] = None  # 决定HTTP健康检查路径
    auth: AuthConfig = field(default_factory=NoAuth)
    checks: List[CheckConfig] = field(default_factory=list)
    status: str = 'unknown'
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id('svc'))
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def primary_check(self) -> CheckConfig:
        """返回第一个检查配置，没有配置时返回默认值"""
        return self.checks[0] if self.checks else CheckConfig()

    def with_updates(self, **updates) -> 'ServiceTarget':
        """返回应用更新后的副本"""
        updates.setdefault('updated_at', datetime.now())
        return replace(self, **updates)


@dataclass(frozen=True)
class HealthCheckResult:
    """健康检查结果数据模型，每次探测的最终结果一条"""
    service_id: str
    status: str  # "healthy", "unhealthy"
    response_time: float  # 毫秒
    status_code: int = 0
    error: Optional[str] = None
    attempt: int = 1
    endpoint: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id('hc'))

    @property
    def is_healthy(self) -> bool:
        return self.status == STATUS_HEALTHY


@dataclass
class HealthMetrics:
    """服务的累计健康指标"""
    service_id: str
    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    uptime: float = 0.0  # 百分比
    average_response_time: float = 0.0  # 毫秒
    last_check_at: Optional[datetime] = None
    last_healthy_at: Optional[datetime] = None
    last_unhealthy_at: Optional[datetime] = None
    current_status: str = 'unknown'
    consecutive_failures: int = 0
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def error_rate(self) -> float:
        """失败检查占比（百分比）"""
        if self.total_checks == 0:
            return 0.0
        return self.failed_checks / self.total_checks * 100


@dataclass
class MetricSample:
    """服务上报的指标采样"""
    service_id: str
    values: Dict[str, float]
    timestamp: datetime = field(default_factory=datetime.now)
