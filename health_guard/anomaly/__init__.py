"""异常检测模块"""

from .base import BaseDetector, calculate_confidence, create_detector, register_method, supported_methods
from .clustering import ClusteringDetector
from .detector import AnomalyDetectionEngine, calculate_overall_score, determine_severity
from .isolation_forest import IsolationForestDetector, expected_path_length
from .pattern import PatternDetector
from .statistical import StatisticalDetector

__all__ = [
    'BaseDetector', 'AnomalyDetectionEngine', 'StatisticalDetector',
    'IsolationForestDetector', 'ClusteringDetector', 'PatternDetector',
    'calculate_confidence', 'calculate_overall_score', 'determine_severity',
    'expected_path_length', 'create_detector', 'register_method', 'supported_methods'
]
