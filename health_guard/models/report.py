"""健康报告相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List

from .health_check import new_id


@dataclass
class HealthSummary:
    total_services: int
    healthy_services: int
    degraded_services: int
    unhealthy_services: int
    unknown_services: int
    overall_status: str  # "healthy", "degraded", "unhealthy"
    availability: float
    average_response_time: float
    total_alerts: int
    critical_alerts: int


@dataclass
class ServiceTrends:
    availability: str = 'stable'  # "improving", "stable", "degrading"
    performance: str = 'stable'
    reliability: str = 'stable'


@dataclass
class ServiceReport:
    service_id: str
    service_name: str
    status: str
    availability: float
    uptime: float
    average_response_time: float
    error_rate: float
    alerts: int
    performance_score: int
    trends: ServiceTrends = field(default_factory=ServiceTrends)


@dataclass
class RecommendationAction:
    title: str
    description: str
    type: str  # "configuration", "scaling", "optimization", "monitoring"
    automated: bool


@dataclass
class Recommendation:
    type: str  # "performance", "reliability", "monitoring"
    priority: str
    title: str
    description: str
    impact: str
    effort: str
    timeline: str
    actions: List[RecommendationAction] = field(default_factory=list)
    metrics: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id('rec'))


@dataclass
class HealthReport:
    start: datetime
    end: datetime
    summary: HealthSummary
    services: List[ServiceReport]
    recommendations: List[Recommendation]
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: new_id('report'))


@dataclass
class SystemOverview:
    services: Dict[str, Any]
    alerts: Dict[str, int]
    availability: float
    response_time: float
