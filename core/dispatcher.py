from __future__ import annotations

import hashlib
import time
from typing import Any

from astrbot.api import logger

from .constants import (
    LOG_PREFIX,
    MSG_ACCEPTED,
    MSG_NO_API_KEY,
    MSG_SYSTEM_ERROR,
    TRIGGER_PREFIXES,
)
from .generator import ImageGenerator
from .messenger import GroupMessenger
from .poller import TaskPoller
from .task_manager import TaskManager
from .types import ChatEvent, ResultKind


def parse_trigger(
    text: str | None, prefixes: tuple[str, ...] = TRIGGER_PREFIXES
) -> str | None:
    """从聊天文本中提取提示词。

    前缀按声明顺序匹配，且其后必须是空白字符。未命中返回 None，
    命中但提示词为空返回空字符串。
    """
    msg = (text or "").strip()
    for prefix in prefixes:
        if not msg.startswith(prefix):
            continue
        rest = msg[len(prefix):]
        if rest and not rest[0].isspace():
            continue
        return rest.strip()
    return None


class CommandDispatcher:
    """识别生图指令并编排生成、轮询与消息发送。"""

    def __init__(
        self,
        config: dict[str, Any],
        generator: ImageGenerator,
        poller: TaskPoller,
        task_manager: TaskManager,
    ):
        self.config = config
        self.generator = generator
        self.poller = poller
        self.task_manager = task_manager

    async def handle(self, event: ChatEvent, messenger: GroupMessenger) -> bool:
        """处理一条入站消息。返回 True 表示消息是生图指令且已被本插件处理。"""
        if not event.is_group_message:
            return False

        prompt = parse_trigger(event.raw_message)
        if not prompt:
            return False

        group_id = event.group_id
        request_id = hashlib.md5(
            f"{time.time()}{group_id}{event.user_id}".encode()
        ).hexdigest()[:8]
        logger.info(
            f"{LOG_PREFIX} [{request_id}] 收到生图指令 - 群: {group_id}, 用户: {event.user_id}, 提示词: {prompt}"
        )

        if not str(self.config.get("api_key") or "").strip():
            logger.warning(f"{LOG_PREFIX} [{request_id}] 未配置 API Key，忽略请求")
            await messenger.send_text(group_id, MSG_NO_API_KEY)
            return True

        await messenger.send_text(group_id, MSG_ACCEPTED.format(prompt=prompt))

        try:
            result = await self.generator.generate(prompt, request_id=request_id)
        except Exception as e:
            logger.error(f"{LOG_PREFIX} [{request_id}] 生成请求异常: {e}", exc_info=True)
            await messenger.send_text(group_id, MSG_SYSTEM_ERROR.format(reason=e))
            return True

        if result.kind is ResultKind.TASK:
            self.task_manager.create_task(
                self.poller.run(
                    result.task_id,
                    group_id,
                    messenger,
                    result.poll,
                    request_id=request_id,
                ),
                name=f"poll-{result.task_id}",
            )
            return True

        if result.kind is ResultKind.IMAGE:
            await messenger.send_image(group_id, result.image_url)
            return True

        logger.warning(f"{LOG_PREFIX} [{request_id}] 生成失败: {result.error}")
        await messenger.send_text(group_id, result.error or "生成失败")
        return True
