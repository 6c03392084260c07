"""配置验证工具"""

from typing import Dict, Any

from .exceptions import ConfigError
from ..models.alert import ALERT_SEVERITIES, ALERT_TYPES, RULE_METRICS, RULE_OPERATORS
from ..models.health_check import SERVICE_CATEGORIES, SERVICE_TYPES

AUTH_TYPES = ('none', 'api_key', 'bearer_token', 'basic_auth')
NOTIFICATION_TYPES = ('webhook', 'email')
CACHE_TYPES = ('memory', 'redis')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _require_positive_int(value: Any, name: str, minimum: int = 1) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise ConfigError(f"{name} 必须是不小于 {minimum} 的整数")


def _require_number(value: Any, name: str) -> None:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
        raise ConfigError(f"{name} 必须是非负数")


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_check_config(owner: str, config: Dict[str, Any]) -> None:
        """
        验证检查配置（间隔、超时、重试次数与阈值）

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError(f"{owner} 的检查配置必须是字典类型")

        for key in ('interval', 'timeout', 'retries'):
            if key in config:
                _require_positive_int(config[key], f"{owner}.{key}")

        thresholds = config.get('thresholds', {})
        if not isinstance(thresholds, dict):
            raise ConfigError(f"{owner}.thresholds 必须是字典类型")
        for key in ('response_time', 'error_rate', 'uptime'):
            if key in thresholds:
                _require_number(thresholds[key], f"{owner}.thresholds.{key}")

    @staticmethod
    def validate_service_config(service_name: str, config: Dict[str, Any]) -> None:
        """
        验证服务配置

        Args:
            service_name: 服务名称
            config: 服务配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError(f"服务 '{service_name}' 的配置必须是字典类型")

        for field in ('type', 'endpoint'):
            if field not in config:
                raise ConfigError(f"服务 '{service_name}' 缺少必需的配置项: {field}")

        service_type = config.get('type')
        if service_type not in SERVICE_TYPES:
            raise ConfigError(
                f"服务 '{service_name}' 的类型 '{service_type}' 不受支持。支持的类型: {list(SERVICE_TYPES)}")

        category = config.get('category')
        if category is not None and category not in SERVICE_CATEGORIES:
            raise ConfigError(
                f"服务 '{service_name}' 的类别 '{category}' 不受支持。支持的类别: {list(SERVICE_CATEGORIES)}")

        auth = config.get('auth')
        if auth is not None:
            if not isinstance(auth, dict) or auth.get('type', 'none') not in AUTH_TYPES:
                raise ConfigError(f"服务 '{service_name}' 的认证配置无效，支持的类型: {list(AUTH_TYPES)}")

        if 'check' in config:
            ConfigValidator.validate_check_config(f"服务 '{service_name}'", config['check'])

    @staticmethod
    def validate_notification_config(notification_config: Dict[str, Any]) -> None:
        """
        验证通知配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(notification_config, dict):
            raise ConfigError("通知配置必须是字典类型")

        for field in ('name', 'type'):
            if field not in notification_config:
                raise ConfigError(f"通知配置缺少必需的配置项: {field}")

        notification_type = notification_config['type']
        if notification_type not in NOTIFICATION_TYPES:
            raise ConfigError(f"不支持的通知类型: {notification_type}")

        if notification_type == 'webhook' and 'url' not in notification_config:
            raise ConfigError(f"Webhook通知 '{notification_config['name']}' 缺少 url")
        if notification_type == 'email':
            for field in ('smtp_server', 'to_emails'):
                if field not in notification_config:
                    raise ConfigError(f"邮件通知 '{notification_config['name']}' 缺少 {field}")

    @staticmethod
    def validate_alert_rule_config(rule_config: Dict[str, Any]) -> None:
        """验证告警规则配置"""
        if not isinstance(rule_config, dict):
            raise ConfigError("告警规则必须是字典类型")
        if 'name' not in rule_config or 'condition' not in rule_config:
            raise ConfigError("告警规则缺少 name 或 condition")

        condition = rule_config['condition']
        if condition.get('metric') not in RULE_METRICS:
            raise ConfigError(f"告警规则 '{rule_config['name']}' 的指标无效: {condition.get('metric')}")
        if condition.get('operator') not in RULE_OPERATORS:
            raise ConfigError(f"告警规则 '{rule_config['name']}' 的运算符无效: {condition.get('operator')}")
        _require_number(condition.get('value'), f"告警规则 '{rule_config['name']}' 的阈值")

        if rule_config.get('severity', 'warning') not in ALERT_SEVERITIES:
            raise ConfigError(f"告警规则 '{rule_config['name']}' 的严重程度无效")
        if rule_config.get('type', 'performance') not in ALERT_TYPES:
            raise ConfigError(f"告警规则 '{rule_config['name']}' 的告警类型无效")

    @staticmethod
    def validate_cache_config(cache_config: Dict[str, Any]) -> None:
        if not isinstance(cache_config, dict):
            raise ConfigError("cache配置必须是字典类型")
        cache_type = cache_config.get('type', 'memory')
        if cache_type not in CACHE_TYPES:
            raise ConfigError(f"不支持的缓存类型: {cache_type}")
        if cache_type == 'redis' and not cache_config.get('url'):
            raise ConfigError("Redis缓存缺少 url 配置")

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        log_level = global_config.get('log_level')
        if log_level is not None and log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {list(LOG_LEVELS)}")

        if 'default_check' in global_config:
            ConfigValidator.validate_check_config('global.default_check',
                                                  global_config['default_check'])
