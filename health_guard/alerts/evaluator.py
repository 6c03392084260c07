"""阈值评估：根据检查结果和累计指标生成告警"""

import operator
from typing import List, Optional

from ..models.alert import Alert, AlertRule, RULE_METRICS
from ..models.health_check import HealthCheckResult, HealthMetrics, Thresholds
from ..utils.exceptions import ConfigError

# 超过阈值该倍数时升级为 critical
RESPONSE_TIME_CRITICAL_MULTIPLIER = 2
ERROR_RATE_CRITICAL_MULTIPLIER = 2
# 可用率低于阈值该比例时升级为 critical
UPTIME_CRITICAL_RATIO = 0.5
CONSECUTIVE_FAILURE_ALERT = 3
CONSECUTIVE_FAILURE_CRITICAL = 5

RULE_OPERATORS = {
    '>': operator.gt,
    '>=': operator.ge,
    '<': operator.lt,
    '<=': operator.le,
    '==': operator.eq,
}


class ThresholdEvaluator:
    """阈值规则彼此独立，一次评估可以产生多条告警"""

    def evaluate(self, service_id: str, thresholds: Thresholds,
                 result: HealthCheckResult,
                 metrics: Optional[HealthMetrics] = None) -> List[Alert]:
        alerts = []

        if result.response_time > thresholds.response_time:
            critical = result.response_time > thresholds.response_time * RESPONSE_TIME_CRITICAL_MULTIPLIER
            alerts.append(Alert(
                service_id=service_id,
                type='performance',
                severity='critical' if critical else 'warning',
                title='响应时间过高',
                message=(f"响应时间 {result.response_time:.0f}ms "
                         f"超过阈值 {thresholds.response_time:.0f}ms"),
                metadata={'response_time': result.response_time,
                          'threshold': thresholds.response_time}
            ))

        if metrics is None or metrics.total_checks == 0:
            return alerts

        if metrics.uptime < thresholds.uptime:
            critical = metrics.uptime < thresholds.uptime * UPTIME_CRITICAL_RATIO
            alerts.append(Alert(
                service_id=service_id,
                type='availability',
                severity='critical' if critical else 'warning',
                title='可用率过低',
                message=f"可用率 {metrics.uptime:.2f}% 低于阈值 {thresholds.uptime}%",
                metadata={'uptime': metrics.uptime, 'threshold': thresholds.uptime}
            ))

        error_rate = metrics.error_rate
        if error_rate > thresholds.error_rate:
            critical = error_rate > thresholds.error_rate * ERROR_RATE_CRITICAL_MULTIPLIER
            alerts.append(Alert(
                service_id=service_id,
                type='error',
                severity='critical' if critical else 'warning',
                title='错误率过高',
                message=f"错误率 {error_rate:.2f}% 超过阈值 {thresholds.error_rate}%",
                metadata={'error_rate': error_rate, 'threshold': thresholds.error_rate}
            ))

        if metrics.consecutive_failures >= CONSECUTIVE_FAILURE_ALERT:
            critical = metrics.consecutive_failures >= CONSECUTIVE_FAILURE_CRITICAL
            alerts.append(Alert(
                service_id=service_id,
                type='availability',
                severity='critical' if critical else 'error',
                title='连续检查失败',
                message=f"服务已连续 {metrics.consecutive_failures} 次检查失败",
                metadata={'consecutive_failures': metrics.consecutive_failures}
            ))

        return alerts

    def evaluate_rules(self, service_id: str, rules: List[AlertRule],
                       result: HealthCheckResult,
                       metrics: Optional[HealthMetrics] = None) -> List[Alert]:
        """
        评估自定义告警规则

        Raises:
            ConfigError: 规则的指标或运算符无效
        """
        values = {'response_time': result.response_time}
        if metrics is not None:
            values.update({
                'uptime': metrics.uptime,
                'error_rate': metrics.error_rate,
                'consecutive_failures': metrics.consecutive_failures,
            })

        alerts = []
        for rule in rules:
            if not rule.enabled:
                continue

            condition = rule.condition
            compare = RULE_OPERATORS.get(condition.operator)
            if compare is None:
                raise ConfigError(f"告警规则 {rule.name} 的运算符无效: {condition.operator}")
            if condition.metric not in RULE_METRICS:
                raise ConfigError(f"告警规则 {rule.name} 的指标无效: {condition.metric}")

            value = values.get(condition.metric)
            if value is None or not compare(value, condition.value):
                continue

            alerts.append(Alert(
                service_id=service_id,
                type=rule.type,
                severity=rule.severity,
                title=rule.name,
                message=(f"{condition.metric} = {value:.2f} 满足规则条件 "
                         f"{condition.operator} {condition.value}"),
                metadata={'rule_id': rule.id, 'value': value, 'channels': rule.channels}
            ))

        return alerts
