"""异常类测试"""

from datetime import datetime

from health_guard.utils.exceptions import (
    AlertConfigError,
    AlertSendError,
    CheckerError,
    ConfigError,
    ErrorCode,
    HealthGuardError,
    ServiceNotFoundError,
    StorageError
)


class TestErrorCode:
    """错误代码测试"""

    def test_error_code_values(self):
        """测试错误代码值"""
        assert ErrorCode.UNKNOWN_ERROR.value == 1000
        assert ErrorCode.CONFIG_FILE_NOT_FOUND.value == 2000
        assert ErrorCode.CONNECTION_ERROR.value == 3001
        assert ErrorCode.ALERT_SEND_ERROR.value == 4001
        assert ErrorCode.RECORD_NOT_FOUND.value == 6001
        assert ErrorCode.DETECTION_CONFIG_ERROR.value == 7000


class TestHealthGuardError:
    """HealthGuardError基础异常测试"""

    def test_basic_error_creation(self):
        """测试基础错误创建"""
        error = HealthGuardError("测试错误")

        assert str(error) == "测试错误"
        assert error.error_code == ErrorCode.UNKNOWN_ERROR
        assert error.details == {}
        assert error.cause is None
        assert error.recoverable is True
        assert isinstance(error.timestamp, datetime)

    def test_to_dict(self):
        """测试转换为字典"""
        cause = ValueError("原始错误")
        error = HealthGuardError("包装错误", ErrorCode.VALIDATION_ERROR, {'field': 'x'}, cause)
        data = error.to_dict()

        assert data['error_code'] == 1002
        assert data['error_name'] == 'VALIDATION_ERROR'
        assert data['details'] == {'field': 'x'}
        assert data['cause'] == '原始错误'

    def test_format_error(self):
        """测试格式化错误信息"""
        error = HealthGuardError("失败", ErrorCode.TIMEOUT_ERROR, {'timeout': 5},
                                 cause=TimeoutError("超时"))
        assert error.format_error() == "[TIMEOUT_ERROR] 失败 (详情: timeout=5) (原因: 超时)"


class TestSubclasses:
    """具体异常类测试"""

    def test_config_error(self):
        """测试配置异常不可恢复并记录路径"""
        error = ConfigError("配置错误", config_path="/etc/hg.yaml")

        assert isinstance(error, HealthGuardError)
        assert error.error_code == ErrorCode.CONFIG_VALIDATION_ERROR
        assert error.details['config_path'] == "/etc/hg.yaml"
        assert error.recoverable is False

    def test_checker_error(self):
        """测试检查器异常"""
        error = CheckerError("连接失败", service_id='svc', service_type='api')
        assert error.details == {'service_id': 'svc', 'service_type': 'api'}

    def test_alert_errors(self):
        """测试告警异常"""
        config_error = AlertConfigError("配置无效", notifier_name='ops')
        send_error = AlertSendError("发送失败", notifier_name='ops')

        assert config_error.error_code == ErrorCode.ALERT_CONFIG_ERROR
        assert config_error.recoverable is False
        assert send_error.error_code == ErrorCode.ALERT_SEND_ERROR
        assert send_error.recoverable is True
        assert send_error.details['notifier_name'] == 'ops'

    def test_storage_errors(self):
        """测试存储和服务不存在异常"""
        storage_error = StorageError("不存在", ErrorCode.RECORD_NOT_FOUND, record_id='a1')
        not_found = ServiceNotFoundError('orders-api')

        assert storage_error.details == {'record_id': 'a1'}
        assert not_found.service_id == 'orders-api'
        assert not_found.error_code == ErrorCode.RECORD_NOT_FOUND
        assert 'orders-api' in str(not_found)
