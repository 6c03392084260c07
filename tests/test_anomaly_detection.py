"""异常检测测试"""

import numpy as np
import pytest

from health_guard.anomaly import AnomalyDetectionEngine
from health_guard.anomaly.base import (
    calculate_confidence, create_detector, feature_matrix, supported_methods
)
from health_guard.anomaly.clustering import cluster_count
from health_guard.anomaly.detector import (
    calculate_overall_score, determine_severity, generate_explanation
)
from health_guard.anomaly.isolation_forest import expected_path_length
from health_guard.models.anomaly import AnomalyDetectionConfig, AnomalyResult, DataPoint
from health_guard.utils.exceptions import ConfigError, ErrorCode


def _series(values, feature='response_time'):
    return [DataPoint(id=f"p{i}", features={feature: float(v)}) for i, v in enumerate(values)]


def _with_outlier():
    """19个接近100的点和一个500的离群点"""
    values = [100 + (i % 5) for i in range(19)] + [500]
    return _series(values)


class TestHelpers:
    """测试评分辅助函数"""

    def test_confidence(self):
        """测试置信度随分数远离阈值增大"""
        assert calculate_confidence(1.0, 0.6) == pytest.approx(1.0)
        assert calculate_confidence(0.8, 0.6) == pytest.approx(0.5)
        assert calculate_confidence(0.6, 0.6) == pytest.approx(1.0)
        assert calculate_confidence(0.3, 0.6) == pytest.approx(0.5)
        assert calculate_confidence(0.0, 0.6) == pytest.approx(0.0)

    def test_overall_score_weighted(self):
        """测试以置信度加权"""
        results = [
            AnomalyResult(True, 1.0, 1.0, 'statistical'),
            AnomalyResult(False, 0.2, 0.0, 'clustering'),
        ]
        assert calculate_overall_score(results) == pytest.approx(1.0)
        assert calculate_overall_score([AnomalyResult(False, 0.5, 0.0, 'x')]) == 0.0

    def test_severity(self):
        """测试严重程度分级"""
        assert determine_severity(0.85) == 'high'
        assert determine_severity(0.6) == 'medium'
        assert determine_severity(0.59) == 'low'

    def test_explanation(self):
        """测试综合解释"""
        results = [AnomalyResult(True, 0.9, 0.7, 'statistical'),
                   AnomalyResult(True, 0.7, 0.2, 'isolation_forest')]
        assert generate_explanation(results) == \
            'Anomaly detected by statistical, isolation_forest (max score: 0.90)'
        assert generate_explanation([]) == 'No anomalies detected'

    def test_feature_matrix_missing_values(self):
        """测试缺失特征按0处理"""
        points = [DataPoint('a', {'x': 1.0, 'y': 2.0}), DataPoint('b', {'x': 3.0})]
        matrix = feature_matrix(points, ['x', 'y'])
        assert matrix.tolist() == [[1.0, 2.0], [3.0, 0.0]]

    def test_cluster_count(self):
        """测试簇数量"""
        assert cluster_count(1) == 1
        assert cluster_count(20) == 4
        assert cluster_count(1000) == 5

    def test_expected_path_length(self):
        """测试平均路径长度"""
        assert expected_path_length(1) == 0.0
        assert expected_path_length(2) == pytest.approx(2 * 0.5772156649 - 1)

    def test_registry(self):
        """测试检测方法注册表"""
        assert supported_methods() == ['ai_based', 'clustering', 'isolation_forest', 'statistical']
        with pytest.raises(ConfigError) as exc_info:
            create_detector('lstm', np.random.default_rng(0))
        assert exc_info.value.error_code == ErrorCode.DETECTION_CONFIG_ERROR


class TestDetectors:
    """测试各检测方法"""

    def setup_method(self):
        """测试前准备"""
        self.rng = np.random.default_rng(42)
        self.config = AnomalyDetectionConfig()

    def test_statistical_ten_sigma(self):
        """测试偏离10个标准差时分数为1"""
        history = _series([10, 12] * 10)
        detector = create_detector('statistical', self.rng).fit(history)

        result = detector.detect(DataPoint('new', {'response_time': 21.0}), self.config)

        assert result.score == pytest.approx(1.0)
        assert result.is_anomaly is True
        assert result.metadata['threshold'] == 0.6

    def test_statistical_constant_series(self):
        """测试取值完全相同时的分数"""
        detector = create_detector('statistical', self.rng).fit(_series([5] * 10))

        assert detector.detect(DataPoint('same', {'response_time': 5.0}), self.config).score == 0.0
        assert detector.detect(DataPoint('diff', {'response_time': 6.0}), self.config).score == 1.0

    def test_isolation_forest_outlier_scores_higher(self):
        """测试离群点的孤立分数更高"""
        points = _with_outlier()
        detector = create_detector('isolation_forest', self.rng).fit(points)

        outlier = detector.detect(points[-1], self.config).score
        normal = max(detector.detect(p, self.config).score for p in points[:-1])
        assert outlier > normal

    def test_isolation_forest_identical_values(self):
        """测试所有取值相同时不会报错"""
        detector = create_detector('isolation_forest', self.rng).fit(_series([7] * 16))
        result = detector.detect(DataPoint('p', {'response_time': 7.0}), self.config)
        assert 0.0 <= result.score <= 1.0

    def test_clustering_scores_bounded(self):
        """测试聚类分数在0到1之间"""
        points = _with_outlier()
        detector = create_detector('clustering', self.rng).fit(points)

        for point in points:
            result = detector.detect(point, self.config)
            assert 0.0 <= result.score <= 1.0
            assert result.metadata['cluster_radius'] >= 0

    def test_pattern_out_of_range(self):
        """测试落在四分位区间外的特征"""
        history = [DataPoint(f"p{i}", {'cpu': float(i), 'memory': 50.0}) for i in range(20)]
        detector = create_detector('ai_based', self.rng).fit(history)

        inside = detector.detect(DataPoint('a', {'cpu': 10.0, 'memory': 50.0}), self.config)
        half = detector.detect(DataPoint('b', {'cpu': 99.0, 'memory': 50.0}), self.config)
        outside = detector.detect(DataPoint('c', {'cpu': 99.0, 'memory': 90.0}), self.config)

        assert inside.score == 0.0
        assert half.score == pytest.approx(0.5)
        assert outside.score == pytest.approx(1.0)
        assert half.metadata['pattern_matches'] == {'cpu_normal_range': 0.0,
                                                    'memory_normal_range': 1.0}


class TestAnomalyDetectionEngine:
    """异常检测引擎测试类"""

    def setup_method(self):
        """测试前准备"""
        self.engine = AnomalyDetectionEngine(rng=np.random.default_rng(7))

    @pytest.mark.asyncio
    async def test_statistical_outlier_reported(self):
        """测试离群点出现在报告首位"""
        report = await self.engine.detect_anomalies(
            _with_outlier(), AnomalyDetectionConfig(methods=['statistical']))

        assert report.total_points == 20
        assert report.anomalies_detected == 1
        assert report.anomaly_rate == pytest.approx(0.05)
        assert report.summary.top_anomalies[0].id == 'p19'
        assert report.summary.by_method == {'statistical': 1}
        assert report.summary.by_severity == {'high': 1}

    @pytest.mark.asyncio
    async def test_default_methods_find_outlier(self):
        """测试默认方法组合能发现离群点"""
        report = await self.engine.detect_anomalies(_with_outlier())

        assert len(report.results) == 20
        assert 'p19' in [a.id for a in report.summary.top_anomalies]
        assert all(len(r.anomaly_results) == 3 for r in report.results)
        assert report.summary.by_method.get('statistical') == 1

    @pytest.mark.asyncio
    async def test_sensitivity_changes_method_counts(self):
        """测试高灵敏度标记的异常不少于低灵敏度"""
        points = _series([100] * 10 + [110, 90] * 4 + [130, 160])

        high = await self.engine.detect_anomalies(
            points, AnomalyDetectionConfig(methods=['statistical'], sensitivity='high'))
        low = await self.engine.detect_anomalies(
            points, AnomalyDetectionConfig(methods=['statistical'], sensitivity='low'))

        high_count = high.summary.by_method.get('statistical', 0)
        low_count = low.summary.by_method.get('statistical', 0)
        assert high_count > low_count

    @pytest.mark.asyncio
    async def test_explanations_can_be_disabled(self):
        """测试关闭解释"""
        report = await self.engine.detect_anomalies(
            _with_outlier(),
            AnomalyDetectionConfig(methods=['statistical'], include_explanations=False))
        assert all(r.anomaly_results[0].explanation == '' for r in report.results)

    @pytest.mark.asyncio
    async def test_invalid_config(self):
        """测试空数据、未知方法和未知灵敏度"""
        with pytest.raises(ConfigError):
            await self.engine.detect_anomalies([])
        with pytest.raises(ConfigError):
            await self.engine.detect_anomalies(_with_outlier(),
                                               AnomalyDetectionConfig(methods=['lstm']))
        with pytest.raises(ConfigError):
            await self.engine.detect_anomalies(_with_outlier(),
                                               AnomalyDetectionConfig(sensitivity='extreme'))

    @pytest.mark.asyncio
    async def test_real_time_detection(self):
        """测试以历史数据为基线检测新数据点"""
        history = _series([10, 12] * 10)
        results = await self.engine.detect_real_time_anomaly(
            DataPoint('new', {'response_time': 21.0}), history,
            AnomalyDetectionConfig(methods=['statistical', 'ai_based']))

        assert [r.method for r in results] == ['statistical', 'ai_based']
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_seeded_runs_reproducible(self):
        """测试相同种子结果一致"""
        points = _with_outlier()
        first = await AnomalyDetectionEngine(np.random.default_rng(3)).detect_anomalies(points)
        second = await AnomalyDetectionEngine(np.random.default_rng(3)).detect_anomalies(points)

        assert [r.overall_score for r in first.results] == [r.overall_score for r in second.results]
