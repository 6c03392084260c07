"""基于Z分数的统计检测"""

from typing import Dict, List, Tuple

import numpy as np

from .base import BaseDetector, Score, register_method
from ..models.anomaly import DataPoint

# |z| 达到该值时分数为1
Z_SCORE_SCALE = 3.0


@register_method('statistical')
class StatisticalDetector(BaseDetector):
    """每个特征计算 |z|/3 并截断到1，取平均作为数据点分数"""

    def fit(self, points: List[DataPoint]) -> 'StatisticalDetector':
        values: Dict[str, List[float]] = {}
        for point in points:
            for name, value in point.features.items():
                if value is not None:
                    values.setdefault(name, []).append(float(value))

        # 总体标准差
        self._stats: Dict[str, Tuple[int, float, float]] = {
            name: (len(v), float(np.mean(v)), float(np.std(v)))
            for name, v in values.items()
        }
        return self

    def _feature_score(self, name: str, value: float) -> float:
        count, mean, std = self._stats.get(name, (0, 0.0, 0.0))
        if count < 2:
            return 0.0
        if std == 0:
            return 0.0 if value == mean else 1.0
        return min(abs((value - mean) / std) / Z_SCORE_SCALE, 1.0)

    def score(self, point: DataPoint, threshold: float) -> Score:
        feature_scores = {
            name: self._feature_score(name, float(value))
            for name, value in point.features.items()
        }
        average = sum(feature_scores.values()) / len(feature_scores) if feature_scores else 0.0

        anomalous = [f"{name}: {s:.2f}" for name, s in feature_scores.items() if s > threshold]
        if anomalous:
            explanation = f"Anomalous features: {', '.join(anomalous)}"
        else:
            explanation = 'All features within normal statistical range'

        return average, explanation, {'feature_scores': feature_scores}
