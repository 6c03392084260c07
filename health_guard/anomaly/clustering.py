"""K-means聚类检测"""

import math
from typing import List

import numpy as np

from .base import BaseDetector, Score, collect_features, feature_matrix, register_method
from ..models.anomaly import DataPoint

MAX_CLUSTERS = 5
MAX_ITERATIONS = 100
CONVERGENCE_TOLERANCE = 0.001


def cluster_count(n: int) -> int:
    return max(1, min(MAX_CLUSTERS, int(math.floor(math.sqrt(n)))))


@register_method('clustering')
class ClusteringDetector(BaseDetector):
    """以到最近簇中心的距离与该簇半径之比作为分数"""

    def fit(self, points: List[DataPoint]) -> 'ClusteringDetector':
        self.features = collect_features(points)
        data = feature_matrix(points, self.features)
        self.centroids = np.empty((0, len(self.features)))
        self.radii = np.empty(0)

        if len(points) == 0 or not self.features:
            return self

        k = cluster_count(len(points))
        low, high = data.min(axis=0), data.max(axis=0)
        centroids = self.rng.uniform(low, high, size=(k, len(self.features)))

        for _ in range(MAX_ITERATIONS):
            labels = self._assign(data, centroids)
            converged = True
            for i in range(k):
                members = data[labels == i]
                if len(members) == 0:
                    continue
                new_center = members.mean(axis=0)
                if np.linalg.norm(new_center - centroids[i]) > CONVERGENCE_TOLERANCE:
                    converged = False
                centroids[i] = new_center
            if converged:
                break

        labels = self._assign(data, centroids)
        radii = np.zeros(k)
        for i in range(k):
            members = data[labels == i]
            if len(members):
                radii[i] = np.linalg.norm(members - centroids[i], axis=1).max()

        self.centroids = centroids
        self.radii = radii
        return self

    @staticmethod
    def _assign(data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        distances = np.linalg.norm(data[:, None, :] - centroids[None, :, :], axis=2)
        return distances.argmin(axis=1)

    def score(self, point: DataPoint, threshold: float) -> Score:
        if len(self.centroids) == 0:
            return 0.0, 'Not enough data for clustering', {}

        values = feature_matrix([point], self.features)[0]
        distances = np.linalg.norm(self.centroids - values, axis=1)
        nearest = int(distances.argmin())
        min_distance = float(distances[nearest])
        radius = float(self.radii[nearest])
        score = min(min_distance / (radius or 1), 1.0)

        explanation = (f"Distance to nearest cluster: {min_distance:.2f} "
                       f"(cluster radius: {radius:.2f})")
        return score, explanation, {
            'min_distance': min_distance,
            'cluster_radius': radius,
            'nearest_cluster': nearest
        }
