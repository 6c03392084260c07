"""健康检查引擎：单次探测、超时与指数退避重试"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from .base import ProbeOutcome
from .factory import HealthCheckerFactory, health_checker_factory
from ..models.health_check import (
    CheckConfig, HealthCheckResult, ServiceTarget, STATUS_HEALTHY, STATUS_UNHEALTHY
)
from ..storage.base import MetricStore
from ..utils.exceptions import StorageError
from ..utils.log_manager import get_logger

Sleep = Callable[[float], Awaitable[None]]


class HealthCheckEngine:
    """对单个服务执行带重试的健康检查

    失败后第 attempt 次重试前等待 backoff_base ** attempt 秒，
    重试次数耗尽后返回 unhealthy 结果，探测失败不会抛出异常。
    """

    def __init__(self, store: Optional[MetricStore] = None,
                 factory: HealthCheckerFactory = health_checker_factory,
                 sleep: Sleep = asyncio.sleep,
                 backoff_base: float = 2):
        self.store = store
        self.factory = factory
        self._sleep = sleep
        self.backoff_base = backoff_base
        self.logger = get_logger('checker.engine')

    async def perform_health_check(self, target: ServiceTarget,
                                   config: Optional[CheckConfig] = None) -> HealthCheckResult:
        """
        执行健康检查并持久化结果

        Args:
            target: 被检查的服务
            config: 检查配置，默认使用服务的第一个检查配置

        Returns:
            HealthCheckResult: 最终检查结果

        Raises:
            ConfigError: 服务类型或认证配置无效
        """
        config = config or target.primary_check()
        checker = self.factory.create_checker(target)
        retries = max(1, config.retries)

        attempt = 0
        last_outcome: Optional[ProbeOutcome] = None
        elapsed_ms = 0.0

        while attempt < retries:
            start_time = time.monotonic()
            outcome = await checker.probe(config.timeout)
            elapsed_ms = (time.monotonic() - start_time) * 1000

            if outcome.healthy:
                result = self._build_result(target, outcome, elapsed_ms, attempt + 1)
                await self._store(result)
                return result

            last_outcome = outcome
            attempt += 1
            self.logger.warning(
                f"服务 {target.name} 第 {attempt}/{retries} 次检查失败: {outcome.error}")

            if attempt < retries:
                delay = self.backoff_base ** attempt
                self.logger.debug(f"等待 {delay} 秒后重试")
                await self._sleep(delay)

        result = self._build_result(target, last_outcome, elapsed_ms, retries)
        self.logger.error(f"服务 {target.name} 健康检查失败，已重试 {retries} 次: {result.error}")
        await self._store(result)
        return result

    def _build_result(self, target: ServiceTarget, outcome: ProbeOutcome,
                      response_time: float, attempt: int) -> HealthCheckResult:
        return HealthCheckResult(
            service_id=target.id,
            status=STATUS_HEALTHY if outcome.healthy else STATUS_UNHEALTHY,
            response_time=response_time,
            status_code=outcome.status_code,
            error=outcome.error,
            attempt=attempt,
            endpoint=outcome.endpoint or target.endpoint,
            metadata=outcome.metadata
        )

    async def _store(self, result: HealthCheckResult):
        if self.store is None:
            return
        try:
            await self.store.insert_health_check(result)
        except StorageError as e:
            self.logger.error(f"保存健康检查结果失败: {e.format_error()}")
