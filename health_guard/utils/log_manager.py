"""
日志管理器模块

所有组件的日志记录器都挂在 ``health_guard`` 根记录器之下，
处理器只配置在根记录器上，子记录器通过传播输出。
支持控制台输出、按大小轮转的文件输出和日志级别配置。
"""

import logging
import logging.handlers
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List

ROOT_LOGGER_NAME = 'health_guard'


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogManager:
    """
    日志管理器类

    负责根记录器的处理器装配：
    - 控制台输出（stdout）
    - RotatingFileHandler 文件输出
    - 全局日志级别调整
    """

    def __init__(self):
        """初始化日志管理器"""
        self._file_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
        self._console_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        self._date_format = '%Y-%m-%d %H:%M:%S'

        self._log_level = LogLevel.INFO
        self._log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True

        self._root = logging.getLogger(ROOT_LOGGER_NAME)
        self._handlers: List[logging.Handler] = []
        self._apply()

    def configure(self, config: Dict[str, Any]) -> None:
        """
        根据全局配置重新装配日志处理器

        Args:
            config: 日志配置字典，支持的键：
                - log_level: DEBUG / INFO / WARNING / ERROR / CRITICAL
                - log_file: 日志文件路径，为空则不写文件
                - max_log_size: 单个日志文件最大字节数
                - log_backup_count: 轮转保留的文件个数
                - enable_console: 是否输出到控制台

        Raises:
            ValueError: 日志级别无效
        """
        if 'log_level' in config:
            level_str = str(config['log_level']).upper()
            if level_str not in LogLevel.__members__:
                raise ValueError(f"无效的日志级别: {level_str}")
            self._log_level = LogLevel[level_str]

        self._log_file = config.get('log_file', self._log_file)
        self._max_file_size = config.get('max_log_size', self._max_file_size)
        self._backup_count = config.get('log_backup_count', self._backup_count)
        self._enable_console = config.get('enable_console', self._enable_console)

        self._apply()

    def _apply(self) -> None:
        """按当前设置替换根记录器上的处理器"""
        self._close_handlers()

        if self._enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(
                logging.Formatter(self._console_format, datefmt=self._date_format))
            self._handlers.append(console_handler)

        if self._log_file:
            Path(self._log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(
                logging.Formatter(self._file_format, datefmt=self._date_format))
            self._handlers.append(file_handler)

        for handler in self._handlers:
            handler.setLevel(self._log_level.value)
            self._root.addHandler(handler)

        self._root.setLevel(self._log_level.value)
        self._root.propagate = False

    def _close_handlers(self) -> None:
        for handler in self._handlers:
            self._root.removeHandler(handler)
            handler.close()
        self._handlers = []

    def set_level(self, level: LogLevel) -> None:
        """
        设置全局日志级别

        Args:
            level: 新的日志级别
        """
        self._log_level = level
        self._root.setLevel(level.value)
        for handler in self._handlers:
            handler.setLevel(level.value)

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取组件日志记录器

        Args:
            name: 组件名称，如 ``checker.http.orders-api``

        Returns:
            ``health_guard.<name>`` 日志记录器
        """
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')

    def get_log_stats(self) -> Dict[str, Any]:
        """获取日志统计信息"""
        stats = {
            'log_level': self._log_level.name,
            'file_logging_enabled': bool(self._log_file),
            'console_logging_enabled': self._enable_console,
            'log_file': self._log_file,
            'handlers_count': len(self._handlers)
        }

        if self._log_file and os.path.exists(self._log_file):
            stats['current_log_size'] = os.path.getsize(self._log_file)

        return stats

    def cleanup(self) -> None:
        """关闭所有处理器"""
        self._close_handlers()


# 全局日志管理器实例
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """获取日志记录器的便捷函数"""
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """配置日志系统的便捷函数"""
    log_manager.configure(config)
