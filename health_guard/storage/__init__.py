"""存储模块"""

from .base import MetricStore
from .memory_store import InMemoryMetricStore

__all__ = ['MetricStore', 'InMemoryMetricStore']
