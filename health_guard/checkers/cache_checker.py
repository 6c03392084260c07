"""Redis缓存健康检查器"""

import asyncio

import redis.asyncio as redis
from redis.exceptions import RedisError

from .base import BaseHealthChecker, ProbeOutcome
from .factory import register_checker


@register_checker('cache')
class CacheHealthChecker(BaseHealthChecker):
    """通过 PING 检查Redis连通性，服务端点为 redis:// URL"""

    def validate_config(self) -> bool:
        endpoint = self.target.endpoint
        if not isinstance(endpoint, str) or not endpoint.startswith(('redis://', 'rediss://')):
            self.logger.error(f"Redis端点无效: {endpoint}")
            return False
        return True

    async def probe(self, timeout: float) -> ProbeOutcome:
        client = redis.Redis.from_url(
            self.target.endpoint,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True
        )
        try:
            pong = await asyncio.wait_for(client.ping(), timeout=timeout)
            if pong:
                return ProbeOutcome(True, endpoint=self.target.endpoint)
            return ProbeOutcome(False, error="PING 未返回 PONG", endpoint=self.target.endpoint)

        except asyncio.TimeoutError:
            return ProbeOutcome(False, error=f"Redis检查超时 ({timeout}秒)",
                                endpoint=self.target.endpoint)
        except (RedisError, OSError) as e:
            return ProbeOutcome(False, error=f"Redis连接失败: {e}",
                                endpoint=self.target.endpoint)
        finally:
            await client.aclose()
