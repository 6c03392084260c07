"""测试共用的脚本化检查器和工厂"""

from typing import Iterable, List

import pytest

from health_guard.checkers.base import BaseHealthChecker, ProbeOutcome
from health_guard.models.health_check import CheckConfig, ServiceTarget, Thresholds
from health_guard.storage.memory_store import InMemoryMetricStore


class ScriptedChecker(BaseHealthChecker):
    """按顺序返回预设探测结果的检查器"""

    def __init__(self, target: ServiceTarget, outcomes: List[ProbeOutcome]):
        super().__init__(target)
        self.outcomes = outcomes

    async def probe(self, timeout: float) -> ProbeOutcome:
        return self.outcomes.pop(0)

    def validate_config(self) -> bool:
        return True


class ScriptedFactory:
    """替代 HealthCheckerFactory，所有服务共用一份探测脚本"""

    def __init__(self, outcomes: Iterable[ProbeOutcome] = ()):
        self.outcomes = list(outcomes)
        self.created = 0

    def script(self, *healthy_flags: bool):
        """按 True/False 序列追加探测结果"""
        for healthy in healthy_flags:
            if healthy:
                self.outcomes.append(ProbeOutcome(True, 200))
            else:
                self.outcomes.append(ProbeOutcome(False, 503, error='HTTP状态码异常: 503'))

    def create_checker(self, target: ServiceTarget) -> ScriptedChecker:
        self.created += 1
        return ScriptedChecker(target, self.outcomes)


def make_service(service_id: str = 'orders-api', retries: int = 1,
                 thresholds: Thresholds = None, **kwargs) -> ServiceTarget:
    config = CheckConfig(interval=60, timeout=5, retries=retries,
                         thresholds=thresholds or Thresholds())
    kwargs.setdefault('type', 'api')
    kwargs.setdefault('endpoint', 'https://orders.example.com')
    return ServiceTarget(id=service_id, name=service_id, checks=[config], **kwargs)


@pytest.fixture
def store():
    return InMemoryMetricStore()


@pytest.fixture
def factory():
    return ScriptedFactory()
