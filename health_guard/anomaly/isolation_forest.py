"""孤立森林检测"""

import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .base import BaseDetector, Score, collect_features, feature_matrix, register_method
from ..models.anomaly import DataPoint

N_TREES = 100
MAX_SUBSAMPLE = 256
EULER_GAMMA = 0.5772156649


def expected_path_length(n: int) -> float:
    """n个样本的二叉搜索树平均路径长度 c(n)"""
    if n <= 1:
        return 0.0
    return 2 * (math.log(n - 1) + EULER_GAMMA) - 2 * (n - 1) / n


@dataclass
class _Node:
    size: int = 0
    feature: int = -1
    split: float = 0.0
    left: Optional['_Node'] = None
    right: Optional['_Node'] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None


@register_method('isolation_forest')
class IsolationForestDetector(BaseDetector):
    """越容易被随机切分孤立的点，平均路径越短，分数越接近1"""

    def fit(self, points: List[DataPoint]) -> 'IsolationForestDetector':
        self.features = collect_features(points)
        data = feature_matrix(points, self.features)
        self.subsample_size = min(MAX_SUBSAMPLE, len(points))
        self.expected_length = expected_path_length(self.subsample_size)
        self.trees: List[_Node] = []

        if self.subsample_size == 0 or not self.features:
            return self

        max_depth = math.log2(self.subsample_size)
        for _ in range(N_TREES):
            indices = self.rng.choice(len(points), size=self.subsample_size, replace=False)
            self.trees.append(self._build(data[indices], 0, max_depth))
        return self

    def _build(self, data: np.ndarray, depth: int, max_depth: float) -> _Node:
        if depth >= max_depth or len(data) <= 1:
            return _Node(size=len(data))

        feature = int(self.rng.integers(data.shape[1]))
        column = data[:, feature]
        low, high = column.min(), column.max()
        if low == high:
            # 取值相同无法再切分，路径在此结束
            return _Node(size=0)

        split = low + self.rng.random() * (high - low)
        mask = column < split
        return _Node(
            size=len(data),
            feature=feature,
            split=split,
            left=self._build(data[mask], depth + 1, max_depth),
            right=self._build(data[~mask], depth + 1, max_depth)
        )

    def _path_length(self, node: _Node, values: np.ndarray) -> float:
        depth = 0
        while not node.is_leaf:
            node = node.left if values[node.feature] < node.split else node.right
            depth += 1
        return depth + expected_path_length(node.size)

    def score(self, point: DataPoint, threshold: float) -> Score:
        if not self.trees or self.expected_length == 0:
            return 0.0, 'Not enough data for isolation forest', {}

        values = feature_matrix([point], self.features)[0]
        average_path = sum(self._path_length(t, values) for t in self.trees) / len(self.trees)
        score = 2 ** (-average_path / self.expected_length)

        explanation = (f"Isolation path length: {average_path:.2f} "
                       f"(expected: {self.expected_length:.2f})")
        return score, explanation, {
            'average_path_length': average_path,
            'expected_path_length': self.expected_length
        }
