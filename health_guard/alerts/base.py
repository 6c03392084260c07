"""通知器基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from ..models.alert import Alert, DispatchResult
from ..utils.exceptions import AlertSendError
from ..utils.log_manager import get_logger


class BaseNotifier(ABC):
    """通知器抽象基类

    子类实现 _deliver，投递失败时抛出 AlertSendError；
    send 把异常转换为失败的 DispatchResult，不做重试。
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化通知器

        Args:
            name: 通知器名称
            config: 通知器配置参数
        """
        self.name = name
        self.config = config
        self.notifier_type = self.__class__.__name__.replace('Notifier', '').lower()
        self.logger = get_logger(f'alerter.{self.notifier_type}.{self.name}')

    async def send(self, alert: Alert) -> DispatchResult:
        """
        发送告警

        Args:
            alert: 告警记录

        Returns:
            DispatchResult: 投递结果
        """
        try:
            await self._deliver(alert)
        except AlertSendError as e:
            self.logger.error(f"告警 {alert.id} 投递失败: {e.format_error()}")
            return DispatchResult(self.name, False, e.message)

        self.logger.info(f"告警 {alert.id} 已通过 {self.name} 发送")
        return DispatchResult(self.name, True)

    @abstractmethod
    async def _deliver(self, alert: Alert) -> None:
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        pass

    def get_timeout(self) -> int:
        return self.config.get('timeout', 30)
