"""health_guard - 服务健康监控与异常检测"""

__version__ = '1.0.0'
