"""基于四分位区间的模式匹配检测"""

import math
from typing import Dict, List, Tuple

from .base import BaseDetector, Score, register_method
from ..models.anomaly import DataPoint


@register_method('ai_based')
class PatternDetector(BaseDetector):
    """每个特征的 [Q1, Q3] 区间作为正常模式，落在区间外的特征按权重累加分数"""

    def fit(self, points: List[DataPoint]) -> 'PatternDetector':
        values: Dict[str, List[float]] = {}
        for point in points:
            for name, value in point.features.items():
                if value is not None:
                    values.setdefault(name, []).append(float(value))

        self.ranges: Dict[str, Tuple[float, float]] = {}
        for name, feature_values in values.items():
            ordered = sorted(feature_values)
            q1 = ordered[int(math.floor(len(ordered) * 0.25))]
            q3 = ordered[int(math.floor(len(ordered) * 0.75))]
            self.ranges[name] = (q1, q3)
        return self

    def score(self, point: DataPoint, threshold: float) -> Score:
        features = list(point.features)
        if not features:
            return 0.0, 'Pattern deviation score: 0.00', {'pattern_matches': {}}

        weight = 1 / len(features)
        matches = {}
        total = 0.0
        for name in features:
            if name not in self.ranges:
                continue
            low, high = self.ranges[name]
            value = point.features[name]
            match = 1.0 if value is not None and low <= value <= high else 0.0
            matches[f"{name}_normal_range"] = match
            total += weight * (1 - match)

        score = min(total, 1.0)
        return score, f"Pattern deviation score: {score:.2f}", {'pattern_matches': matches}
