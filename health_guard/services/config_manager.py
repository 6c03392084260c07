"""配置管理器"""

import os
from typing import Dict, Any, List, Optional

import yaml

from ..models.alert import AlertRule, RuleCondition
from ..models.health_check import CheckConfig, ServiceTarget
from ..storage.serialization import auth_from_dict, check_config_from_dict
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、验证以及转换为领域对象"""

    def __init__(self, config_path: str):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        if not os.path.exists(self.config_path):
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)
        except OSError as e:
            raise ConfigError(f"读取配置文件失败: {e}", ErrorCode.CONFIG_FILE_NOT_FOUND,
                              config_path=self.config_path, cause=e)

        if config is None:
            raise ConfigError("配置文件为空", config_path=self.config_path)

        self._validate_config(config)
        self.config = config

        self.logger.info(
            f"配置验证成功，包含 {len(config.get('services', {}))} 个服务和 "
            f"{len(config.get('notifications', []))} 个通知配置")
        return self.config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        if 'global' in config:
            ConfigValidator.validate_global_config(config['global'])

        if 'cache' in config:
            ConfigValidator.validate_cache_config(config['cache'])

        services = config.get('services', {})
        if not isinstance(services, dict):
            raise ConfigError("services配置必须是字典类型")
        for service_name, service_config in services.items():
            ConfigValidator.validate_service_config(service_name, service_config)

        notifications = config.get('notifications', [])
        if not isinstance(notifications, list):
            raise ConfigError("notifications配置必须是列表类型")
        for notification_config in notifications:
            ConfigValidator.validate_notification_config(notification_config)

        rules = config.get('alert_rules', [])
        if not isinstance(rules, list):
            raise ConfigError("alert_rules配置必须是列表类型")
        for rule_config in rules:
            ConfigValidator.validate_alert_rule_config(rule_config)

    def get_global_config(self) -> Dict[str, Any]:
        return self.config.get('global', {})

    def get_cache_config(self) -> Dict[str, Any]:
        return self.config.get('cache', {'type': 'memory'})

    def get_notifications_config(self) -> List[Dict[str, Any]]:
        return self.config.get('notifications', [])

    def get_default_check(self) -> CheckConfig:
        return check_config_from_dict(self.get_global_config().get('default_check', {}))

    def build_services(self) -> List[ServiceTarget]:
        """把 services 配置转换为服务对象，服务名同时作为服务ID"""
        default_check = self.get_default_check()
        services = []
        for name, service_config in self.config.get('services', {}).items():
            services.append(ServiceTarget(
                id=name,
                name=service_config.get('name', name),
                type=service_config['type'],
                endpoint=service_config['endpoint'],
                category=service_config.get('category'),
                auth=auth_from_dict(service_config.get('auth')),
                checks=[check_config_from_dict(service_config.get('check', {}), default_check)],
                metadata=service_config.get('metadata', {})
            ))
        return services

    def build_alert_rules(self) -> List[AlertRule]:
        rules = []
        for rule_config in self.config.get('alert_rules', []):
            condition = rule_config['condition']
            rules.append(AlertRule(
                id=rule_config.get('id', rule_config['name']),
                name=rule_config['name'],
                condition=RuleCondition(condition['metric'], condition['operator'],
                                        condition['value']),
                severity=rule_config.get('severity', 'warning'),
                type=rule_config.get('type', 'performance'),
                enabled=rule_config.get('enabled', True),
                channels=rule_config.get('channels', [])
            ))
        return rules

    def get_service_config(self, service_name: str) -> Optional[Dict[str, Any]]:
        return self.config.get('services', {}).get(service_name)
