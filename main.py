#!/usr/bin/env python3
"""
服务健康监控系统主应用程序入口

加载配置、组装组件、启动定时监控，并提供一次性检查、
报告生成和异常检测等命令行模式。
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from dataclasses import asdict
from typing import Optional, Dict, Any

from health_guard import __version__
from health_guard.alerts.manager import create_notifier
from health_guard.cache.base import Cache
from health_guard.cache.memory_cache import MemoryCache
from health_guard.cache.redis_cache import RedisCache
from health_guard.models.anomaly import AnomalyDetectionConfig
from health_guard.services.config_manager import ConfigManager
from health_guard.services.job_queue import AsyncioJobQueue
from health_guard.services.monitoring_service import HealthMonitoringService
from health_guard.storage.memory_store import InMemoryMetricStore
from health_guard.utils.exceptions import HealthGuardError, ConfigError
from health_guard.utils.log_manager import log_manager, get_logger


class HealthGuardApp:
    """健康监控系统主应用程序类"""

    def __init__(self, config_path: str, log_overrides: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径
            log_overrides: 命令行指定的日志配置，优先于配置文件
        """
        self.config_path = config_path
        self.log_overrides = log_overrides or {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        self.config_manager: Optional[ConfigManager] = None
        self.cache: Optional[Cache] = None
        self.job_queue: Optional[AsyncioJobQueue] = None
        self.service: Optional[HealthMonitoringService] = None

    async def initialize(self):
        """加载配置并组装组件"""
        self.config_manager = ConfigManager(self.config_path)
        self.config_manager.load_config()

        global_config = dict(self.config_manager.get_global_config())
        global_config.update(self.log_overrides)
        self._configure_logging(global_config)
        self.logger = get_logger('main')
        self.logger.info("开始初始化健康监控系统")

        store = InMemoryMetricStore(global_config.get('store_file'))
        self.cache = self._create_cache(self.config_manager.get_cache_config())
        self.job_queue = AsyncioJobQueue()
        notifiers = [create_notifier(c) for c in self.config_manager.get_notifications_config()]

        self.service = HealthMonitoringService(store, cache=self.cache,
                                               job_queue=self.job_queue, notifiers=notifiers)
        await self._sync_registry(store)
        self.logger.info("应用程序组件初始化完成")

    def _configure_logging(self, global_config: Dict[str, Any]):
        log_manager.configure({
            'log_level': global_config.get('log_level', 'INFO'),
            'log_file': global_config.get('log_file'),
            'max_log_size': global_config.get('max_log_size', 10 * 1024 * 1024),
            'log_backup_count': global_config.get('log_backup_count', 5),
            'enable_console': True
        })

    @staticmethod
    def _create_cache(cache_config: Dict[str, Any]) -> Cache:
        if cache_config.get('type', 'memory') == 'redis':
            return RedisCache.from_url(cache_config['url'], cache_config.get('namespace', ''))
        return MemoryCache()

    async def _sync_registry(self, store: InMemoryMetricStore):
        """把配置文件中的服务和告警规则写入注册表，保留已有服务的状态"""
        for target in self.config_manager.build_services():
            existing = await store.get_service(target.id)
            if existing is None:
                await store.create_service(target)
            else:
                await store.update_service(
                    target.id, name=target.name, type=target.type, endpoint=target.endpoint,
                    category=target.category, auth=target.auth, checks=target.checks,
                    metadata=target.metadata)

        existing_rules = {rule.id for rule in await store.list_alert_rules()}
        for rule in self.config_manager.build_alert_rules():
            if rule.id not in existing_rules:
                await store.create_alert_rule(rule)

    async def start(self):
        """启动所有服务的监控并等待关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        self.is_running = True
        try:
            await self.job_queue.start()
            for target in await self.service.get_services():
                await self.service.start_monitoring(target.id)

            self.logger.info("健康监控系统启动完成")
            await self.shutdown_event.wait()
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止健康监控系统...")
        self.is_running = False

        await self.service.stop_all_monitoring()
        await self.service.monitor.wait_for_checks()
        await self.job_queue.stop()

        self.logger.info("健康监控系统已停止")
        log_manager.cleanup()

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()


# 全局应用程序实例
app: Optional[HealthGuardApp] = None


def signal_handler(signum, frame):
    """信号处理器"""
    signal_name = signal.Signals(signum).name
    print(f"\n收到信号 {signal_name} ({signum})")

    if app:
        app.shutdown()
    else:
        print("应用程序未初始化，直接退出")
        sys.exit(0)


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='health-guard',
        description='服务健康监控系统 - 定时检查服务健康状态、阈值告警和异常检测',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  health-guard config.yaml                      # 启动监控
  health-guard config.yaml --validate           # 验证配置文件
  health-guard config.yaml --check-once         # 执行一次健康检查
  health-guard config.yaml --report --hours 6   # 输出最近6小时的健康报告
  health-guard config.yaml --detect-anomalies orders-api
        """
    )

    parser.add_argument('config_file', help='配置文件路径 (YAML格式)')
    parser.add_argument('--validate', action='store_true', help='验证配置文件并退出')
    parser.add_argument('--check-once', action='store_true',
                        help='对所有服务执行一次健康检查，全部健康时返回0')
    parser.add_argument('--report', action='store_true', help='以JSON格式输出健康报告')
    parser.add_argument('--hours', type=int, default=24, help='报告和异常检测的时间窗口（小时）')
    parser.add_argument('--detect-anomalies', metavar='SERVICE',
                        help='对指定服务的历史检查记录做异常检测')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='日志级别（覆盖配置文件）')
    parser.add_argument('--log-file', help='日志文件路径（覆盖配置文件）')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser


def validate_config_file(config_path: str) -> bool:
    """验证配置文件"""
    print(f"正在验证配置文件: {config_path}")
    try:
        config = ConfigManager(config_path).load_config()
    except ConfigError as e:
        print(f"❌ 配置文件验证失败: {e.format_error()}")
        return False

    services = config.get('services', {})
    notifications = config.get('notifications', [])
    print("✅ 配置文件验证成功!")
    print(f"   - 服务数量: {len(services)}")
    for service_name, service_config in services.items():
        print(f"     * {service_name} ({service_config.get('type')})")
    print(f"   - 通知配置数量: {len(notifications)}")
    for notification in notifications:
        print(f"     * {notification.get('name')} ({notification.get('type')})")
    print(f"   - 告警规则数量: {len(config.get('alert_rules', []))}")
    return True


async def check_once(application: HealthGuardApp) -> bool:
    """对所有服务执行一次健康检查"""
    services = await application.service.get_services()
    all_healthy = True

    for target in services:
        result = await application.service.perform_health_check(target.id)
        if result.is_healthy:
            print(f"   ✅ {target.name}: 健康 (响应时间: {result.response_time:.0f}ms)")
        else:
            print(f"   ❌ {target.name}: 不健康 - {result.error}")
            all_healthy = False

    print(f"健康检查完成，共检查 {len(services)} 个服务")
    return all_healthy


def _to_json(obj) -> str:
    return json.dumps(asdict(obj), ensure_ascii=False, indent=2, default=str)


async def main() -> int:
    """主函数"""
    global app

    parser = create_argument_parser()
    args = parser.parse_args()

    if not os.path.exists(args.config_file):
        print(f"配置文件不存在: {args.config_file}", file=sys.stderr)
        return 1

    if args.validate:
        return 0 if validate_config_file(args.config_file) else 1

    log_overrides = {}
    if args.log_level:
        log_overrides['log_level'] = args.log_level
    if args.log_file:
        log_overrides['log_file'] = args.log_file

    app = HealthGuardApp(args.config_file, log_overrides)
    try:
        await app.initialize()

        if args.check_once:
            return 0 if await check_once(app) else 1

        if args.report:
            print(_to_json(await app.service.generate_health_report(args.hours)))
            return 0

        if args.detect_anomalies:
            report = await app.service.detect_service_anomalies(
                args.detect_anomalies, args.hours, AnomalyDetectionConfig())
            print(_to_json(report.summary))
            print(f"共 {report.total_points} 个数据点，发现 {report.anomalies_detected} 个异常")
            return 0

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        print(f"服务健康监控系统 v{__version__} 已启动")
        print(f"配置文件: {args.config_file}")
        print("按 Ctrl+C 停止程序")
        await app.start()
        return 0

    except ConfigError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        return 1
    except HealthGuardError as e:
        print(f"健康监控系统错误: {e.format_error()}", file=sys.stderr)
        return 1
    finally:
        if app.cache is not None:
            await app.cache.close()


def run():
    """命令行入口"""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
