"""进程内异步任务队列"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..models.health_check import new_id
from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]

DEFAULT_PRIORITY = 5


@dataclass
class Job:
    name: str
    payload: Dict[str, Any]
    priority: int = DEFAULT_PRIORITY
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: new_id('job'))


class JobQueue(ABC):
    """任务队列接口"""

    @abstractmethod
    def register_handler(self, task_name: str, handler: Handler) -> None:
        pass

    @abstractmethod
    async def add(self, task_name: str, payload: Dict[str, Any],
                  delay: Optional[float] = None, priority: Optional[int] = None) -> Job:
        """
        提交任务

        Args:
            task_name: 任务名称，对应已注册的处理函数
            payload: 任务参数
            delay: 延迟执行的秒数
            priority: 优先级，数值越大越先执行
        """
        pass

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass


class AsyncioJobQueue(JobQueue):
    """基于 asyncio.PriorityQueue 的任务队列"""

    def __init__(self, workers: int = 1):
        self.workers = workers
        self._handlers: Dict[str, Handler] = {}
        self._queue: asyncio.PriorityQueue = asyncio.PriorityQueue()
        self._sequence = itertools.count()
        self._worker_tasks: Set[asyncio.Task] = set()
        self._delayed: Set[asyncio.Task] = set()
        self.logger = get_logger('job_queue')

    @property
    def is_running(self) -> bool:
        return bool(self._worker_tasks)

    def register_handler(self, task_name: str, handler: Handler) -> None:
        self._handlers[task_name] = handler
        self.logger.debug(f"注册任务处理函数: {task_name}")

    async def add(self, task_name: str, payload: Dict[str, Any],
                  delay: Optional[float] = None, priority: Optional[int] = None) -> Job:
        if task_name not in self._handlers:
            raise ConfigError(f"任务 {task_name} 没有注册处理函数")

        job = Job(task_name, payload, DEFAULT_PRIORITY if priority is None else priority)
        if delay:
            task = asyncio.create_task(self._enqueue_later(job, delay))
            self._delayed.add(task)
            task.add_done_callback(self._delayed.discard)
        else:
            self._enqueue(job)

        self.logger.debug(f"提交任务 {job.name} ({job.id})，优先级 {job.priority}，延迟 {delay or 0} 秒")
        return job

    def _enqueue(self, job: Job):
        self._queue.put_nowait((-job.priority, next(self._sequence), job))

    async def _enqueue_later(self, job: Job, delay: float):
        await asyncio.sleep(delay)
        self._enqueue(job)

    async def start(self) -> None:
        if self.is_running:
            self.logger.warning("任务队列已经在运行")
            return

        for index in range(self.workers):
            self._worker_tasks.add(asyncio.create_task(self._worker(), name=f"job-worker-{index}"))
        self.logger.info(f"任务队列已启动，工作协程数: {self.workers}")

    async def stop(self) -> None:
        tasks = self._worker_tasks | self._delayed
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._worker_tasks.clear()
        self._delayed.clear()
        self.logger.info("任务队列已停止")

    async def join(self) -> None:
        """等待队列中已入队的任务全部处理完"""
        await self._queue.join()

    async def run_pending(self) -> int:
        """在当前协程中处理已入队的任务，返回处理数量"""
        processed = 0
        while not self._queue.empty():
            _, _, job = self._queue.get_nowait()
            await self._execute(job)
            self._queue.task_done()
            processed += 1
        return processed

    async def _worker(self):
        while True:
            _, _, job = await self._queue.get()
            try:
                await self._execute(job)
            finally:
                self._queue.task_done()

    async def _execute(self, job: Job):
        handler = self._handlers[job.name]
        try:
            await handler(job.payload)
            self.logger.debug(f"任务 {job.name} ({job.id}) 执行完成")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"任务 {job.name} ({job.id}) 执行失败: {e}", exc_info=True)
