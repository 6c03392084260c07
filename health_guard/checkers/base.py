"""健康检查器基类"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from ..models.health_check import ServiceTarget
from ..utils.log_manager import get_logger


@dataclass
class ProbeOutcome:
    """单次探测的结果，由检查引擎汇总为 HealthCheckResult"""
    healthy: bool
    status_code: int = 0
    error: Optional[str] = None
    endpoint: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class BaseHealthChecker(ABC):
    """健康检查器抽象基类"""

    def __init__(self, target: ServiceTarget):
        """
        初始化健康检查器

        Args:
            target: 被检查的服务
        """
        self.target = target
        self.name = target.name
        self.service_type = self.__class__.__name__.replace('HealthChecker', '').lower()
        self.logger = get_logger(f'checker.{self.service_type}.{self.name}')

    @abstractmethod
    async def probe(self, timeout: float) -> ProbeOutcome:
        """
        执行一次探测

        探测失败（网络错误、超时、响应异常）通过 healthy=False 返回，不抛出异常。

        Args:
            timeout: 超时时间（秒）

        Returns:
            ProbeOutcome: 探测结果
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证服务配置是否满足该检查器要求

        Returns:
            bool: 配置是否有效
        """
        pass
