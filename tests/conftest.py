from __future__ import annotations

import sys
from pathlib import Path

import pytest

bootstrap_plugin_root = Path(__file__).resolve().parents[1]
if str(bootstrap_plugin_root) not in sys.path:
    # 将插件根目录放到导入搜索路径最前面，确保测试能直接导入 core 下模块。
    sys.path.insert(0, str(bootstrap_plugin_root))

from core.messenger import GroupMessenger  # noqa: E402


def pytest_configure(config) -> None:
    """测试时开启 debug 日志输出。"""
    config.option.log_cli = True
    config.option.log_cli_level = "DEBUG"


class RecordingActions:
    """记录所有宿主动作调用的假 call_action。"""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.fail = fail

    async def __call__(self, action: str, params: dict) -> dict:
        self.calls.append((action, params))
        if self.fail:
            raise RuntimeError("transport down")
        return {"message_id": len(self.calls)}

    @property
    def messages(self) -> list[list[dict]]:
        return [params["message"] for _, params in self.calls]

    @property
    def texts(self) -> list[str]:
        return [
            seg["data"]["text"]
            for message in self.messages
            for seg in message
            if seg["type"] == "text"
        ]

    @property
    def images(self) -> list[str]:
        return [
            seg["data"]["file"]
            for message in self.messages
            for seg in message
            if seg["type"] == "image"
        ]


@pytest.fixture
def actions() -> RecordingActions:
    return RecordingActions()


@pytest.fixture
def messenger(actions: RecordingActions) -> GroupMessenger:
    return GroupMessenger(actions)
