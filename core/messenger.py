from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from astrbot.api import logger

from .constants import LOG_PREFIX

# 宿主动作调用签名：call_action(action, params) -> 响应
ActionCaller = Callable[[str, dict[str, Any]], Awaitable[Any]]


def text_segment(text: str) -> dict[str, Any]:
    return {"type": "text", "data": {"text": text}}


def image_segment(file: str) -> dict[str, Any]:
    return {"type": "image", "data": {"file": file}}


class GroupMessenger:
    """将宿主的 send_msg 动作包装为面向群聊的发送原语。

    发送失败只记录日志，不向调用方抛出。
    """

    def __init__(self, call_action: ActionCaller):
        self._call_action = call_action

    async def send(self, group_id: int | str, message: list[dict[str, Any]]) -> Any:
        params = {
            "message_type": "group",
            "group_id": str(group_id),
            "message": message,
        }
        try:
            return await self._call_action("send_msg", params)
        except Exception as e:
            logger.error(f"{LOG_PREFIX} 调用 send_msg 失败 (群 {group_id}): {e}")
            return None

    async def send_text(self, group_id: int | str, text: str) -> Any:
        return await self.send(group_id, [text_segment(text)])

    async def send_image(self, group_id: int | str, url: str) -> Any:
        return await self.send(group_id, [image_segment(url)])
