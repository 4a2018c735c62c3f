from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from astrbot.api import logger

from .constants import (
    LOG_PREFIX,
    MSG_GENERATION_FAILED,
    MSG_NO_URL,
    MSG_TIMEOUT,
    POLL_INTERVAL_SECONDS,
    POLL_MAX_ATTEMPTS,
)
from .messenger import GroupMessenger
from .types import PollOutcome, TaskState, TaskStatus


class TaskPoller:
    """按固定间隔轮询任务状态，直到完成、失败或超时。

    每个会话只发送一条结果消息；单次查询失败会被记录并继续下一次轮询，
    只有用完全部次数才算超时。
    """

    def __init__(
        self,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        interval: float = POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.max_attempts = max(1, max_attempts)
        self.interval = interval
        self._sleep = sleep

    async def run(
        self,
        task_id: str,
        group_id: int | str,
        messenger: GroupMessenger,
        query_task: Callable[..., Awaitable[TaskState | None]],
        request_id: str | None = None,
    ) -> PollOutcome:
        """轮询 query_task 直到终态。

        query_task 来自提交该任务的适配器，会话期间切换供应商不影响本次轮询。
        """
        prefix = f"{LOG_PREFIX} [Poll] [{task_id}]"
        for attempt in range(1, self.max_attempts + 1):
            await self._sleep(self.interval)

            try:
                state = await query_task(task_id, request_id=request_id)
            except Exception as e:
                logger.error(f"{prefix} 第 {attempt} 次轮询出错: {e}")
                continue

            if state is None or state.status is TaskStatus.PROCESSING:
                continue

            if state.status is TaskStatus.COMPLETED:
                if not state.image_url:
                    logger.error(f"{prefix} 任务已完成但未返回图片地址")
                    await messenger.send_text(
                        group_id, MSG_GENERATION_FAILED.format(reason=MSG_NO_URL)
                    )
                    return PollOutcome.FAILED
                logger.info(f"{prefix} 任务完成 (第 {attempt} 次轮询)")
                await messenger.send_image(group_id, state.image_url)
                return PollOutcome.COMPLETED

            reason = state.error or "Unknown error"
            logger.warning(f"{prefix} 任务失败: {reason}")
            await messenger.send_text(group_id, MSG_GENERATION_FAILED.format(reason=reason))
            return PollOutcome.FAILED

        logger.warning(f"{prefix} 轮询 {self.max_attempts} 次仍未完成，判定超时")
        await messenger.send_text(group_id, MSG_TIMEOUT.format(task_id=task_id))
        return PollOutcome.TIMED_OUT
