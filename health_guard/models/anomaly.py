"""异常检测相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, List

DETECTION_METHODS = ('statistical', 'isolation_forest', 'clustering', 'ai_based')

SENSITIVITY_THRESHOLDS = {
    'low': 0.8,
    'medium': 0.6,
    'high': 0.4
}


@dataclass
class DataPoint:
    """待检测的数据点"""
    id: str
    features: Dict[str, float]
    timestamp: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AnomalyResult:
    """单个检测方法对单个数据点的结果"""
    is_anomaly: bool
    score: float
    confidence: float
    method: str
    explanation: str = ''
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AnomalyDetectionConfig:
    """异常检测配置"""
    methods: List[str] = field(
        default_factory=lambda: ['statistical', 'isolation_forest', 'clustering'])
    sensitivity: str = 'medium'  # "low", "medium", "high"
    threshold: float = 0.7
    include_explanations: bool = True

    @property
    def sensitivity_threshold(self) -> float:
        return SENSITIVITY_THRESHOLDS.get(self.sensitivity, SENSITIVITY_THRESHOLDS['medium'])


@dataclass
class PointResult:
    """单个数据点的综合检测结果"""
    data_point: DataPoint
    anomaly_results: List[AnomalyResult]
    overall_score: float
    is_anomaly: bool


@dataclass
class TopAnomaly:
    id: str
    score: float
    explanation: str


@dataclass
class AnomalySummary:
    by_method: Dict[str, int] = field(default_factory=dict)
    by_severity: Dict[str, int] = field(default_factory=dict)
    top_anomalies: List[TopAnomaly] = field(default_factory=list)


@dataclass
class AnomalyReport:
    """批量异常检测报告"""
    total_points: int
    anomalies_detected: int
    anomaly_rate: float
    results: List[PointResult]
    summary: AnomalySummary
