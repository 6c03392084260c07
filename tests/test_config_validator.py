"""配置验证器测试"""

import pytest

from health_guard.utils.config_validator import ConfigValidator
from health_guard.utils.exceptions import ConfigError


class TestConfigValidator:
    """配置验证器测试类"""

    def test_valid_service(self):
        """测试有效的服务配置"""
        ConfigValidator.validate_service_config('orders', {
            'type': 'api',
            'endpoint': 'https://orders.example.com',
            'category': 'payment',
            'auth': {'type': 'api_key', 'header': 'X-Key', 'key': 'k'},
            'check': {'interval': 30, 'retries': 3, 'thresholds': {'uptime': 99.9}}
        })

    @pytest.mark.parametrize('config', [
        {'endpoint': 'https://orders.example.com'},
        {'type': 'api'},
        {'type': 'queue', 'endpoint': 'amqp://x'},
        {'type': 'api', 'endpoint': 'https://x', 'category': 'retail'},
        {'type': 'api', 'endpoint': 'https://x', 'auth': {'type': 'oauth'}},
        {'type': 'api', 'endpoint': 'https://x', 'check': {'interval': 0}},
        {'type': 'api', 'endpoint': 'https://x', 'check': {'retries': True}},
        {'type': 'api', 'endpoint': 'https://x', 'check': {'thresholds': {'uptime': -1}}},
    ])
    def test_invalid_service(self, config):
        """测试无效的服务配置"""
        with pytest.raises(ConfigError):
            ConfigValidator.validate_service_config('orders', config)

    def test_notification_config(self):
        """测试通知配置"""
        ConfigValidator.validate_notification_config(
            {'name': 'ops', 'type': 'webhook', 'url': 'https://hooks.example.com'})

        for config in ({'name': 'ops', 'type': 'webhook'},
                       {'name': 'mail', 'type': 'email', 'smtp_server': 'smtp.example.com'},
                       {'name': 'sms', 'type': 'sms'},
                       {'type': 'webhook'}):
            with pytest.raises(ConfigError):
                ConfigValidator.validate_notification_config(config)

    def test_alert_rule_config(self):
        """测试告警规则配置"""
        ConfigValidator.validate_alert_rule_config(
            {'name': 'r', 'condition': {'metric': 'uptime', 'operator': '<', 'value': 99}})

        for condition in ({'metric': 'cpu', 'operator': '<', 'value': 1},
                          {'metric': 'uptime', 'operator': '!=', 'value': 1},
                          {'metric': 'uptime', 'operator': '<', 'value': 'high'}):
            with pytest.raises(ConfigError):
                ConfigValidator.validate_alert_rule_config({'name': 'r', 'condition': condition})

    def test_cache_and_global_config(self):
        """测试缓存和全局配置"""
        ConfigValidator.validate_cache_config({'type': 'redis', 'url': 'redis://localhost'})
        ConfigValidator.validate_global_config({'log_level': 'DEBUG'})

        with pytest.raises(ConfigError):
            ConfigValidator.validate_cache_config({'type': 'redis'})
        with pytest.raises(ConfigError):
            ConfigValidator.validate_cache_config({'type': 'memcached'})
        with pytest.raises(ConfigError):
            ConfigValidator.validate_global_config({'log_level': 'VERBOSE'})
