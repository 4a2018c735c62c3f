from __future__ import annotations

import os
from typing import Any

from astrbot.api import logger
from astrbot.api.event import AstrMessageEvent, filter
from astrbot.api.star import Context, Star, StarTools
from astrbot.core.config.astrbot_config import AstrBotConfig

from .core.config_store import (
    ConfigStore,
    apply_config_command,
    mirror_to_host_config,
)
from .core.constants import CONFIG_FILE_NAME, LOG_PREFIX
from .core.dispatcher import CommandDispatcher
from .core.generator import ImageGenerator
from .core.messenger import GroupMessenger
from .core.poller import TaskPoller
from .core.task_manager import TaskManager
from .core.types import ChatEvent


class TSDrawPlugin(Star):
    """群聊 AI 生图插件：/draw 或 生图 + 提示词"""

    def __init__(self, context: Context, config: AstrBotConfig | None = None):
        super().__init__(context)
        self.context = context
        self.config = config

        data_dir = StarTools.get_data_dir()
        self.config_store = ConfigStore(os.path.join(str(data_dir), CONFIG_FILE_NAME))
        self.config_store.load()
        if self.config:
            self.config_store.sync_from(self.config)

        self.task_manager = TaskManager()
        self.generator = ImageGenerator(self.config_store.config)
        self.poller = TaskPoller()
        self.dispatcher = CommandDispatcher(
            self.config_store.config,
            self.generator,
            self.poller,
            self.task_manager,
        )

        logger.info(
            f"{LOG_PREFIX} 插件加载完成，供应商: {self.config_store.config.get('provider')}"
        )

    # ---------------------------- 消息处理 -----------------------------
    @filter.event_message_type(filter.EventMessageType.GROUP_MESSAGE)
    async def on_group_message(self, event: AstrMessageEvent):
        """监听群消息，识别生图指令。"""
        if event.get_platform_name() != "aiocqhttp":
            return

        raw = getattr(event.message_obj, "raw_message", None)
        if not isinstance(raw, dict):
            return

        bot = getattr(event, "bot", None)
        if bot is None:
            return

        async def call_action(action: str, params: dict[str, Any]) -> Any:
            return await bot.api.call_action(action, **params)

        handled = await self.dispatcher.handle(
            ChatEvent.from_onebot(raw), GroupMessenger(call_action)
        )
        if handled:
            event.stop_event()

    @filter.permission_type(filter.PermissionType.ADMIN)
    @filter.command("生图设置")
    async def config_command(self, event: AstrMessageEvent, key: str = "", value: str = ""):
        """查看或修改单项配置：/生图设置 [配置项] [值]"""
        reply = apply_config_command(
            self.config_store,
            key,
            value,
            on_change=lambda k, v: mirror_to_host_config(self.config, k, v),
        )
        yield event.plain_result(reply)

    async def terminate(self):
        """插件卸载时清理资源。"""
        try:
            await self.task_manager.cancel_all()
            await self.generator.close()
            logger.info(f"{LOG_PREFIX} 插件已卸载")
        except Exception as exc:
            logger.error(f"{LOG_PREFIX} 卸载清理出错: {exc}")
