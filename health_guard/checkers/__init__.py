"""健康检查器模块"""

from .base import BaseHealthChecker, ProbeOutcome
from .cache_checker import CacheHealthChecker
from .database_checker import DatabaseHealthChecker
from .engine import HealthCheckEngine
from .factory import HealthCheckerFactory, health_checker_factory, register_checker
from .http_checker import HttpHealthChecker, build_auth_headers, build_health_endpoint

__all__ = ['BaseHealthChecker', 'ProbeOutcome', 'HealthCheckerFactory',
           'health_checker_factory', 'register_checker', 'HealthCheckEngine',
           'HttpHealthChecker', 'DatabaseHealthChecker', 'CacheHealthChecker',
           'build_auth_headers', 'build_health_endpoint']
