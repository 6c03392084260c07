"""异常检测方法基类与注册表"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Tuple, Type

import numpy as np

from ..models.anomaly import AnomalyDetectionConfig, AnomalyResult, DataPoint
from ..utils.exceptions import ConfigError, ErrorCode

Score = Tuple[float, str, Dict[str, Any]]


def calculate_confidence(score: float, threshold: float) -> float:
    """分数离阈值越远置信度越高"""
    if score > threshold:
        return min((score - threshold) / (1 - threshold), 1.0)
    return max(1 - (threshold - score) / threshold, 0.0)


def collect_features(points: List[DataPoint]) -> List[str]:
    """按首次出现顺序收集所有特征名"""
    features: Dict[str, None] = {}
    for point in points:
        for name in point.features:
            features.setdefault(name, None)
    return list(features)


def feature_matrix(points: List[DataPoint], features: List[str]) -> np.ndarray:
    """构造 n x f 特征矩阵，缺失的特征按0处理"""
    return np.array(
        [[float(p.features.get(f, 0.0)) for f in features] for p in points],
        dtype=float
    ).reshape(len(points), len(features))


class BaseDetector(ABC):
    """检测方法基类

    fit 在数据集上建立模型，score 对单个数据点打分（0-1）。
    """

    method = ''

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    @abstractmethod
    def fit(self, points: List[DataPoint]) -> 'BaseDetector':
        pass

    @abstractmethod
    def score(self, point: DataPoint, threshold: float) -> Score:
        """返回 (分数, 解释, 元数据)"""
        pass

    def detect(self, point: DataPoint, config: AnomalyDetectionConfig) -> AnomalyResult:
        threshold = config.sensitivity_threshold
        score, explanation, metadata = self.score(point, threshold)
        metadata['threshold'] = threshold
        return AnomalyResult(
            is_anomaly=score > threshold,
            score=score,
            confidence=calculate_confidence(score, threshold),
            method=self.method,
            explanation=explanation if config.include_explanations else '',
            metadata=metadata
        )


_DETECTORS: Dict[str, Type[BaseDetector]] = {}


def register_method(name: str):
    """装饰器：注册检测方法"""
    def decorator(detector_class: Type[BaseDetector]):
        detector_class.method = name
        _DETECTORS[name] = detector_class
        return detector_class

    return decorator


def create_detector(name: str, rng: np.random.Generator) -> BaseDetector:
    """
    创建检测方法实例

    Raises:
        ConfigError: 未知的检测方法
    """
    detector_class = _DETECTORS.get(name)
    if detector_class is None:
        raise ConfigError(f"未知的异常检测方法: {name}", ErrorCode.DETECTION_CONFIG_ERROR,
                          details={'supported': sorted(_DETECTORS)})
    return detector_class(rng)


def supported_methods() -> List[str]:
    return sorted(_DETECTORS)
