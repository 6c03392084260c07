"""健康检查器工厂"""

from typing import Dict, Type

from .base import BaseHealthChecker
from ..models.health_check import ServiceTarget
from ..utils.exceptions import CheckerError, ConfigError, ErrorCode


class HealthCheckerFactory:
    """健康检查器工厂类，按服务类型创建检查器"""

    def __init__(self):
        self._checkers: Dict[str, Type[BaseHealthChecker]] = {}

    def register_checker(self, service_type: str, checker_class: Type[BaseHealthChecker]):
        """
        注册健康检查器类

        Args:
            service_type: 服务类型名称
            checker_class: 健康检查器类

        Raises:
            CheckerError: 注册失败
        """
        if not issubclass(checker_class, BaseHealthChecker):
            raise CheckerError(f"检查器类 {checker_class.__name__} 必须继承自 BaseHealthChecker",
                               ErrorCode.CHECKER_INITIALIZATION_ERROR)

        if service_type in self._checkers:
            raise CheckerError(f"服务类型 '{service_type}' 已经注册了检查器",
                               ErrorCode.CHECKER_INITIALIZATION_ERROR)

        self._checkers[service_type] = checker_class

    def unregister_checker(self, service_type: str):
        self._checkers.pop(service_type, None)

    def create_checker(self, target: ServiceTarget) -> BaseHealthChecker:
        """
        为服务创建健康检查器实例

        Args:
            target: 被检查的服务

        Returns:
            BaseHealthChecker: 健康检查器实例

        Raises:
            ConfigError: 服务类型不支持或配置无效
        """
        checker_class = self._checkers.get(target.type)
        if checker_class is None:
            raise ConfigError(f"不支持的服务类型: '{target.type}'",
                              details={'service_id': target.id})

        checker = checker_class(target)
        if not checker.validate_config():
            raise ConfigError(f"服务 '{target.name}' 的配置验证失败",
                              details={'service_id': target.id, 'service_type': target.type})
        return checker

    def get_supported_types(self) -> list:
        return list(self._checkers.keys())

    def is_type_supported(self, service_type: str) -> bool:
        return service_type in self._checkers


# 全局工厂实例
health_checker_factory = HealthCheckerFactory()


def register_checker(*service_types: str):
    """
    装饰器：为一个或多个服务类型注册健康检查器类

    Args:
        service_types: 服务类型名称

    Returns:
        装饰器函数
    """
    def decorator(checker_class: Type[BaseHealthChecker]):
        for service_type in service_types:
            health_checker_factory.register_checker(service_type, checker_class)
        return checker_class

    return decorator
