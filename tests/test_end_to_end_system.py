"""端到端系统测试：检查、指标、告警和通知整条流水线"""

from unittest.mock import AsyncMock

import pytest

from conftest import ScriptedFactory, make_service
from health_guard.alerts.base import BaseNotifier
from health_guard.checkers.engine import HealthCheckEngine
from health_guard.models.alert import Alert, AlertFilter
from health_guard.models.health_check import Thresholds
from health_guard.services.job_queue import AsyncioJobQueue
from health_guard.services.monitoring_service import HealthMonitoringService
from health_guard.storage.memory_store import InMemoryMetricStore


class RecordingNotifier(BaseNotifier):
    """记录收到的告警"""

    def __init__(self, name: str = 'recorder'):
        super().__init__(name, {})
        self.received = []

    async def _deliver(self, alert: Alert) -> None:
        self.received.append(alert)

    def validate_config(self) -> bool:
        return True


class TestEndToEndSystem:
    """端到端系统测试类"""

    def setup_method(self):
        """测试前准备"""
        self.store = InMemoryMetricStore()
        self.factory = ScriptedFactory()
        self.notifier = RecordingNotifier()
        self.job_queue = AsyncioJobQueue()
        self.service = HealthMonitoringService(
            self.store,
            job_queue=self.job_queue,
            notifiers=[self.notifier],
            engine=HealthCheckEngine(self.store, factory=self.factory, sleep=AsyncMock())
        )

    @pytest.mark.asyncio
    async def test_check_sequence(self):
        """测试十次检查后的累计指标、状态和告警"""
        thresholds = Thresholds(response_time=200, error_rate=5, uptime=99)
        await self.store.create_service(make_service('orders-api', thresholds=thresholds))
        self.factory.script(True, True, False, True, True, False, True, True, True, True)

        for _ in range(10):
            await self.service.perform_health_check('orders-api')

        metrics = await self.service.get_health_metrics('orders-api')
        assert metrics.total_checks == 10
        assert metrics.successful_checks == 8
        assert metrics.failed_checks == 2
        assert metrics.uptime == pytest.approx(80.0)
        assert metrics.consecutive_failures == 0
        assert metrics.current_status == 'healthy'

        service = await self.store.get_service('orders-api')
        assert service.status == 'healthy'

        alerts = await self.service.get_alerts(AlertFilter(service_id='orders-api'))
        assert any(a.type == 'availability' and a.severity == 'warning' for a in alerts)
        assert any(a.type == 'error' for a in alerts)
        assert sum(1 for a in alerts if a.title == '服务不可用') == 2
        assert not any(a.type == 'performance' for a in alerts)

        assert len(self.notifier.received) == len(alerts)

        checks = await self.service.get_recent_health_checks('orders-api', limit=20)
        assert len(checks) == 10
        assert all(c.attempt == 1 for c in checks)

    @pytest.mark.asyncio
    async def test_manual_alert_delivered_by_queue(self):
        """测试手动创建的告警由任务队列投递"""
        alert = await self.service.create_alert(
            Alert(service_id='orders-api', type='error', severity='critical',
                  title='人工告警', message='支付回调失败'))
        assert self.notifier.received == []

        assert await self.job_queue.run_pending() == 1
        assert [a.id for a in self.notifier.received] == [alert.id]

    @pytest.mark.asyncio
    async def test_health_check_job(self):
        """测试健康检查任务通过队列执行"""
        await self.store.create_service(make_service('orders-api'))
        self.factory.script(True)

        await self.job_queue.add('health_check', {'service_id': 'orders-api'})
        await self.job_queue.run_pending()

        metrics = await self.service.get_health_metrics('orders-api')
        assert metrics.total_checks == 1

    @pytest.mark.asyncio
    async def test_report_after_checks(self):
        """测试检查之后生成的报告"""
        await self.store.create_service(make_service('orders-api'))
        self.factory.script(True, False, True, True)
        for _ in range(4):
            await self.service.perform_health_check('orders-api')

        report = await self.service.generate_health_report(hours=1)
        service_report = report.services[0]

        assert service_report.availability == pytest.approx(75.0)
        assert service_report.uptime == pytest.approx(75.0)
        assert service_report.alerts > 0
        assert report.summary.total_alerts > 0
