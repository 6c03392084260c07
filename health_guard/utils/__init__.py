"""工具模块"""

from .exceptions import (
    HealthGuardError, ErrorCode, ConfigError, CheckerError, AlertError,
    AlertConfigError, AlertSendError, StorageError, ServiceNotFoundError
)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'HealthGuardError', 'ErrorCode', 'ConfigError', 'CheckerError', 'AlertError',
    'AlertConfigError', 'AlertSendError', 'StorageError', 'ServiceNotFoundError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
