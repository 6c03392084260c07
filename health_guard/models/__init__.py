"""数据模型模块"""

from .alert import Alert, AlertFilter, AlertRule, RuleCondition, DispatchResult
from .anomaly import (
    DataPoint, AnomalyResult, AnomalyDetectionConfig, AnomalyReport, PointResult,
    AnomalySummary, TopAnomaly
)
from .health_check import (
    ServiceTarget, CheckConfig, Thresholds, HealthCheckResult, HealthMetrics,
    MetricSample, NoAuth, ApiKeyAuth, BearerAuth, BasicAuth, AuthConfig
)
from .report import (
    HealthReport, HealthSummary, ServiceReport, ServiceTrends, Recommendation,
    RecommendationAction, SystemOverview
)

__all__ = [
    'ServiceTarget', 'CheckConfig', 'Thresholds', 'HealthCheckResult', 'HealthMetrics',
    'MetricSample', 'NoAuth', 'ApiKeyAuth', 'BearerAuth', 'BasicAuth', 'AuthConfig',
    'Alert', 'AlertFilter', 'AlertRule', 'RuleCondition', 'DispatchResult',
    'DataPoint', 'AnomalyResult', 'AnomalyDetectionConfig', 'AnomalyReport',
    'PointResult', 'AnomalySummary', 'TopAnomaly',
    'HealthReport', 'HealthSummary', 'ServiceReport', 'ServiceTrends',
    'Recommendation', 'RecommendationAction', 'SystemOverview'
]
