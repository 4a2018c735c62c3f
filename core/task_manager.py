from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from astrbot.api import logger

from .constants import LOG_PREFIX


class TaskManager:
    """后台任务管理器，持有任务引用并记录未处理的异常。"""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def running_count(self) -> int:
        return len(self._tasks)

    def create_task(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task:
        """创建后台任务，调用方无需等待其完成。"""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"{LOG_PREFIX} 后台任务 {task.get_name()} 异常退出: {exc}",
                exc_info=exc,
            )

    async def cancel_all(self) -> None:
        """取消所有尚未结束的任务。"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"{LOG_PREFIX} 已取消 {len(tasks)} 个后台任务")
        self._tasks.clear()
