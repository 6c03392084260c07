"""服务模块"""

from .config_manager import ConfigManager
from .health_monitor import HealthMonitor
from .job_queue import AsyncioJobQueue, Job, JobQueue
from .metrics_aggregator import MetricsAggregator, apply_result
from .monitoring_service import HealthMonitoringService, calculate_performance_score
from .state import MonitorState

__all__ = [
    'ConfigManager', 'HealthMonitor', 'AsyncioJobQueue', 'Job', 'JobQueue',
    'MetricsAggregator', 'apply_result', 'HealthMonitoringService',
    'calculate_performance_score', 'MonitorState'
]
