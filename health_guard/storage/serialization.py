"""模型与JSON字典之间的转换，供文件持久化使用"""

from datetime import datetime
from typing import Dict, Any, Optional

from ..models.alert import Alert
from ..models.health_check import (
    ServiceTarget, CheckConfig, Thresholds, HealthCheckResult, HealthMetrics,
    NoAuth, ApiKeyAuth, BearerAuth, BasicAuth, AuthConfig
)
from ..utils.exceptions import ConfigError


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def auth_to_dict(auth: AuthConfig) -> Dict[str, Any]:
    if isinstance(auth, ApiKeyAuth):
        return {'type': 'api_key', 'header': auth.header, 'key': auth.key}
    if isinstance(auth, BearerAuth):
        return {'type': 'bearer_token', 'token': auth.token}
    if isinstance(auth, BasicAuth):
        return {'type': 'basic_auth', 'username': auth.username, 'password': auth.password}
    if isinstance(auth, NoAuth):
        return {'type': 'none'}
    raise ConfigError(f"未知的认证类型: {type(auth).__name__}")


def auth_from_dict(data: Optional[Dict[str, Any]]) -> AuthConfig:
    """根据配置字典构造认证描述

    Raises:
        ConfigError: 认证类型未知或缺少字段
    """
    if not data:
        return NoAuth()

    auth_type = data.get('type', 'none')
    try:
        if auth_type == 'api_key':
            return ApiKeyAuth(header=data['header'], key=data['key'])
        if auth_type == 'bearer_token':
            return BearerAuth(token=data['token'])
        if auth_type == 'basic_auth':
            return BasicAuth(username=data['username'], password=data['password'])
    except KeyError as e:
        raise ConfigError(f"认证配置 '{auth_type}' 缺少字段: {e}")
    if auth_type == 'none':
        return NoAuth()
    raise ConfigError(f"不支持的认证类型: {auth_type}")


def check_config_from_dict(data: Dict[str, Any],
                           defaults: Optional[CheckConfig] = None) -> CheckConfig:
    defaults = defaults or CheckConfig()
    thresholds = data.get('thresholds', {})
    return CheckConfig(
        interval=data.get('interval', defaults.interval),
        timeout=data.get('timeout', defaults.timeout),
        retries=data.get('retries', defaults.retries),
        thresholds=Thresholds(
            response_time=thresholds.get('response_time', defaults.thresholds.response_time),
            error_rate=thresholds.get('error_rate', defaults.thresholds.error_rate),
            uptime=thresholds.get('uptime', defaults.thresholds.uptime)
        )
    )


def check_config_to_dict(config: CheckConfig) -> Dict[str, Any]:
    return {
        'interval': config.interval,
        'timeout': config.timeout,
        'retries': config.retries,
        'thresholds': {
            'response_time': config.thresholds.response_time,
            'error_rate': config.thresholds.error_rate,
            'uptime': config.thresholds.uptime
        }
    }


def service_to_dict(service: ServiceTarget) -> Dict[str, Any]:
    return {
        'id': service.id,
        'name': service.name,
        'type': service.type,
        'endpoint': service.endpoint,
        'category': service.category,
        'auth': auth_to_dict(service.auth),
        'checks': [check_config_to_dict(c) for c in service.checks],
        'status': service.status,
        'metadata': service.metadata,
        'created_at': _dt(service.created_at),
        'updated_at': _dt(service.updated_at)
    }


def service_from_dict(data: Dict[str, Any]) -> ServiceTarget:
    return ServiceTarget(
        id=data['id'],
        name=data['name'],
        type=data['type'],
        endpoint=data.get('endpoint'),
        category=data.get('category'),
        auth=auth_from_dict(data.get('auth')),
        checks=[check_config_from_dict(c) for c in data.get('checks', [])],
        status=data.get('status', 'unknown'),
        metadata=data.get('metadata', {}),
        created_at=_parse_dt(data.get('created_at')) or datetime.now(),
        updated_at=_parse_dt(data.get('updated_at')) or datetime.now()
    )


def result_to_dict(result: HealthCheckResult) -> Dict[str, Any]:
    return {
        'id': result.id,
        'service_id': result.service_id,
        'status': result.status,
        'response_time': result.response_time,
        'status_code': result.status_code,
        'error': result.error,
        'attempt': result.attempt,
        'endpoint': result.endpoint,
        'timestamp': _dt(result.timestamp),
        'metadata': result.metadata
    }


def result_from_dict(data: Dict[str, Any]) -> HealthCheckResult:
    return HealthCheckResult(
        id=data['id'],
        service_id=data['service_id'],
        status=data['status'],
        response_time=data['response_time'],
        status_code=data.get('status_code', 0),
        error=data.get('error'),
        attempt=data.get('attempt', 1),
        endpoint=data.get('endpoint'),
        timestamp=_parse_dt(data['timestamp']),
        metadata=data.get('metadata', {})
    )


def metrics_to_dict(metrics: HealthMetrics) -> Dict[str, Any]:
    return {
        'service_id': metrics.service_id,
        'total_checks': metrics.total_checks,
        'successful_checks': metrics.successful_checks,
        'failed_checks': metrics.failed_checks,
        'uptime': metrics.uptime,
        'average_response_time': metrics.average_response_time,
        'last_check_at': _dt(metrics.last_check_at),
        'last_healthy_at': _dt(metrics.last_healthy_at),
        'last_unhealthy_at': _dt(metrics.last_unhealthy_at),
        'current_status': metrics.current_status,
        'consecutive_failures': metrics.consecutive_failures,
        'updated_at': _dt(metrics.updated_at)
    }


def metrics_from_dict(data: Dict[str, Any]) -> HealthMetrics:
    return HealthMetrics(
        service_id=data['service_id'],
        total_checks=data['total_checks'],
        successful_checks=data['successful_checks'],
        failed_checks=data['failed_checks'],
        uptime=data['uptime'],
        average_response_time=data['average_response_time'],
        last_check_at=_parse_dt(data.get('last_check_at')),
        last_healthy_at=_parse_dt(data.get('last_healthy_at')),
        last_unhealthy_at=_parse_dt(data.get('last_unhealthy_at')),
        current_status=data.get('current_status', 'unknown'),
        consecutive_failures=data.get('consecutive_failures', 0),
        updated_at=_parse_dt(data.get('updated_at')) or datetime.now()
    )


def alert_to_dict(alert: Alert) -> Dict[str, Any]:
    return {
        'id': alert.id,
        'service_id': alert.service_id,
        'type': alert.type,
        'severity': alert.severity,
        'title': alert.title,
        'message': alert.message,
        'timestamp': _dt(alert.timestamp),
        'metadata': alert.metadata,
        'acknowledged': alert.acknowledged,
        'acknowledged_at': _dt(alert.acknowledged_at),
        'acknowledged_by': alert.acknowledged_by,
        'status': alert.status,
        'resolved_at': _dt(alert.resolved_at)
    }


def alert_from_dict(data: Dict[str, Any]) -> Alert:
    return Alert(
        id=data['id'],
        service_id=data['service_id'],
        type=data['type'],
        severity=data['severity'],
        title=data['title'],
        message=data['message'],
        timestamp=_parse_dt(data['timestamp']),
        metadata=data.get('metadata', {}),
        acknowledged=data.get('acknowledged', False),
        acknowledged_at=_parse_dt(data.get('acknowledged_at')),
        acknowledged_by=data.get('acknowledged_by'),
        status=data.get('status', 'active'),
        resolved_at=_parse_dt(data.get('resolved_at'))
    )
