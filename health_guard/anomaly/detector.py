"""异常检测引擎"""

from typing import Dict, List, Optional

import numpy as np

from .base import BaseDetector, create_detector
from ..models.anomaly import (
    AnomalyDetectionConfig, AnomalyReport, AnomalyResult, AnomalySummary, DataPoint,
    PointResult, SENSITIVITY_THRESHOLDS, TopAnomaly
)
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

TOP_ANOMALIES_LIMIT = 10


def calculate_overall_score(results: List[AnomalyResult]) -> float:
    """以各方法置信度为权重的加权平均分"""
    total_weight = sum(r.confidence for r in results)
    if total_weight <= 0:
        return 0.0
    return sum(r.score * r.confidence for r in results) / total_weight


def determine_severity(score: float) -> str:
    if score >= 0.8:
        return 'high'
    if score >= 0.6:
        return 'medium'
    return 'low'


def generate_explanation(results: List[AnomalyResult]) -> str:
    anomalous = [r for r in results if r.is_anomaly]
    if not anomalous:
        return 'No anomalies detected'
    methods = ', '.join(r.method for r in anomalous)
    max_score = max(r.score for r in anomalous)
    return f"Anomaly detected by {methods} (max score: {max_score:.2f})"


class AnomalyDetectionEngine:
    """多方法异常检测引擎

    随机数来源可注入，测试时传入固定种子的 numpy Generator。
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.logger = get_logger('anomaly.detector')

    def _build_detectors(self, points: List[DataPoint],
                         config: AnomalyDetectionConfig) -> List[BaseDetector]:
        if config.sensitivity not in SENSITIVITY_THRESHOLDS:
            raise ConfigError(f"未知的灵敏度: {config.sensitivity}",
                              ErrorCode.DETECTION_CONFIG_ERROR)
        detectors = [create_detector(method, self.rng) for method in config.methods]
        for detector in detectors:
            detector.fit(points)
        return detectors

    async def detect_anomalies(self, points: List[DataPoint],
                               config: Optional[AnomalyDetectionConfig] = None) -> AnomalyReport:
        """
        对数据集中的每个点执行检测

        Raises:
            ConfigError: 数据为空或配置无效
        """
        config = config or AnomalyDetectionConfig()
        if not points:
            raise ConfigError("没有提供用于异常检测的数据点", ErrorCode.DETECTION_CONFIG_ERROR)

        detectors = self._build_detectors(points, config)

        results = []
        by_method: Dict[str, int] = {}
        by_severity: Dict[str, int] = {}

        for point in points:
            anomaly_results = [d.detect(point, config) for d in detectors]
            for result in anomaly_results:
                if result.is_anomaly:
                    by_method[result.method] = by_method.get(result.method, 0) + 1

            overall = calculate_overall_score(anomaly_results)
            is_anomaly = overall >= config.threshold
            if is_anomaly:
                severity = determine_severity(overall)
                by_severity[severity] = by_severity.get(severity, 0) + 1

            results.append(PointResult(point, anomaly_results, overall, is_anomaly))

        anomalies = sorted((r for r in results if r.is_anomaly),
                           key=lambda r: r.overall_score, reverse=True)
        top_anomalies = [
            TopAnomaly(r.data_point.id, r.overall_score, generate_explanation(r.anomaly_results))
            for r in anomalies[:TOP_ANOMALIES_LIMIT]
        ]

        self.logger.info(
            f"异常检测完成: {len(points)} 个数据点，发现 {len(anomalies)} 个异常，"
            f"方法: {', '.join(config.methods)}")

        return AnomalyReport(
            total_points=len(points),
            anomalies_detected=len(anomalies),
            anomaly_rate=len(anomalies) / len(points),
            results=results,
            summary=AnomalySummary(by_method, by_severity, top_anomalies)
        )

    async def detect_real_time_anomaly(self, point: DataPoint, history: List[DataPoint],
                                       config: Optional[AnomalyDetectionConfig] = None
                                       ) -> List[AnomalyResult]:
        """以历史数据为基线对单个新数据点检测"""
        config = config or AnomalyDetectionConfig()
        detectors = self._build_detectors(history, config)
        return [d.detect(point, config) for d in detectors]
