"""Webhook通知器"""

import asyncio
from typing import Dict, Any
from urllib.parse import urlparse

import aiohttp

from .base import BaseNotifier
from ..models.alert import Alert
from ..utils.exceptions import AlertConfigError, AlertSendError


class WebhookNotifier(BaseNotifier):
    """通过HTTP POST发送告警JSON负载"""

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)
        self.url = config.get('url', '')
        self.headers = config.get('headers', {})

        if not self.validate_config():
            raise AlertConfigError(f"Webhook通知器配置无效: {name}", notifier_name=name)

    def validate_config(self) -> bool:
        if not self.url:
            self.logger.error(f"Webhook通知器 {self.name} 缺少URL配置")
            return False

        parsed_url = urlparse(self.url)
        if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
            self.logger.error(f"Webhook通知器 {self.name} URL格式无效: {self.url}")
            return False

        return True

    async def _deliver(self, alert: Alert) -> None:
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        headers = {'Content-Type': 'application/json', **self.headers}

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=alert.to_payload(),
                                        headers=headers) as response:
                    if not 200 <= response.status < 300:
                        body = await response.text()
                        raise AlertSendError(
                            f"Webhook返回状态码 {response.status}: {body[:200]}",
                            notifier_name=self.name)

        except asyncio.TimeoutError:
            raise AlertSendError(f"Webhook请求超时: {self.url}", notifier_name=self.name)
        except aiohttp.ClientError as e:
            raise AlertSendError(f"Webhook请求失败: {e}", notifier_name=self.name, cause=e)
