"""HTTP接口健康检查器"""

import asyncio
import base64
from typing import Dict

import aiohttp

from .base import BaseHealthChecker, ProbeOutcome
from .factory import register_checker
from ..models.health_check import (
    AuthConfig, NoAuth, ApiKeyAuth, BearerAuth, BasicAuth, ServiceTarget
)
from ..utils.exceptions import ConfigError

USER_AGENT = 'HealthGuard-HealthMonitor/1.0'

# 按业务类别选择健康检查路径
CATEGORY_HEALTH_PATHS = {
    'ecommerce': '/admin/api/health',
    'accounting': '/v3/companyinfo/health',
    'payment': '/v1/account',
    'warehouse': '/api/v1/status',
    'banking': '/health',
}
DEFAULT_HEALTH_PATH = '/health'


def build_health_endpoint(target: ServiceTarget) -> str:
    """根据服务类别拼接健康检查URL"""
    base_url = (target.endpoint or '').rstrip('/')
    path = CATEGORY_HEALTH_PATHS.get(target.category, DEFAULT_HEALTH_PATH)
    return f"{base_url}{path}"


def build_auth_headers(auth: AuthConfig) -> Dict[str, str]:
    """
    构造探测请求头

    Raises:
        ConfigError: 未知的认证类型
    """
    headers = {
        'Content-Type': 'application/json',
        'User-Agent': USER_AGENT,
    }

    if isinstance(auth, ApiKeyAuth):
        headers[auth.header] = auth.key
    elif isinstance(auth, BearerAuth):
        headers['Authorization'] = f"Bearer {auth.token}"
    elif isinstance(auth, BasicAuth):
        credentials = base64.b64encode(
            f"{auth.username}:{auth.password}".encode('utf-8')).decode('ascii')
        headers['Authorization'] = f"Basic {credentials}"
    elif not isinstance(auth, NoAuth):
        raise ConfigError(f"不支持的认证类型: {type(auth).__name__}")

    return headers


@register_checker('api', 'other')
class HttpHealthChecker(BaseHealthChecker):
    """HTTP接口健康检查器，GET健康检查路径，2xx视为健康"""

    def validate_config(self) -> bool:
        endpoint = self.target.endpoint
        if not isinstance(endpoint, str) or not endpoint.startswith(('http://', 'https://')):
            self.logger.error(f"HTTP服务端点无效: {endpoint}")
            return False
        return True

    async def probe(self, timeout: float) -> ProbeOutcome:
        url = build_health_endpoint(self.target)
        headers = build_auth_headers(self.target.auth)
        client_timeout = aiohttp.ClientTimeout(total=timeout)

        self.logger.debug(f"发送健康检查请求: GET {url}")

        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                async with session.get(url, headers=headers) as response:
                    metadata = {
                        'headers': dict(response.headers),
                        'content_length': int(response.headers.get('Content-Length', 0) or 0),
                        'ssl_info': {
                            'protocol': 'HTTPS' if url.startswith('https://') else 'HTTP',
                            'secure': url.startswith('https://'),
                        },
                    }

                    if 200 <= response.status < 300:
                        return ProbeOutcome(True, response.status, endpoint=url,
                                            metadata=metadata)

                    return ProbeOutcome(False, response.status,
                                        error=f"HTTP状态码异常: {response.status}",
                                        endpoint=url, metadata=metadata)

        except asyncio.TimeoutError:
            return ProbeOutcome(False, error=f"健康检查超时 ({timeout}秒)", endpoint=url)
        except aiohttp.ClientError as e:
            return ProbeOutcome(False, error=f"HTTP客户端错误: {e}", endpoint=url)
