"""监控进程内状态"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict

from ..models.health_check import HealthMetrics


@dataclass
class MonitorState:
    """指标缓存、监控循环句柄和每个服务的锁

    由调用方创建并注入聚合器和监控器，可以从存储中重新加载指标。
    """
    metrics: Dict[str, HealthMetrics] = field(default_factory=dict)
    tasks: Dict[str, asyncio.Task] = field(default_factory=dict)
    locks: Dict[str, asyncio.Lock] = field(default_factory=dict)

    def lock_for(self, service_id: str) -> asyncio.Lock:
        lock = self.locks.get(service_id)
        if lock is None:
            lock = self.locks[service_id] = asyncio.Lock()
        return lock

    def clear(self):
        self.metrics.clear()
        self.tasks.clear()
        self.locks.clear()
