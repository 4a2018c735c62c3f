from __future__ import annotations

import asyncio
from typing import Any

import pytest
from core.adapter import CogViewAdapter, TsaiAdapter
from core.constants import DEFAULT_CONFIG, MSG_NO_API_KEY
from core.dispatcher import CommandDispatcher, parse_trigger
from core.generator import ImageGenerator
from core.poller import TaskPoller
from core.task_manager import TaskManager
from core.types import ChatEvent, GenerationResult, TaskState, TaskStatus


class _FakeGenerator:
    def __init__(
        self,
        result: GenerationResult | None = None,
        error: Exception | None = None,
        states: list[TaskState] | None = None,
        task_id: str | None = None,
    ) -> None:
        self.result = result
        self.task_id = task_id
        self.error = error
        self.states = list(states or [])
        self.prompts: list[str] = []

    async def generate(self, prompt: str, request_id: str | None = None) -> GenerationResult:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if self.task_id is not None:
            return GenerationResult.task(self.task_id, poll=self.query_task)
        return self.result

    async def query_task(self, task_id: str, request_id: str | None = None) -> TaskState:
        if self.states:
            return self.states.pop(0)
        return TaskState(status=TaskStatus.PROCESSING)


class _RecordingTaskManager(TaskManager):
    def __init__(self) -> None:
        super().__init__()
        self.created: list[asyncio.Task] = []

    def create_task(self, coro, name=None):
        task = super().create_task(coro, name=name)
        self.created.append(task)
        return task


async def _no_sleep(_: float) -> None:
    return None


def _event(text: str, message_type: str = "group") -> ChatEvent:
    return ChatEvent(
        post_type="message",
        message_type=message_type,
        group_id=10001,
        user_id=20002,
        raw_message=text,
    )


def _dispatcher(
    generator: _FakeGenerator, api_key: str = "sk-test", attempts: int = 60
) -> tuple[CommandDispatcher, _RecordingTaskManager]:
    config: dict[str, Any] = dict(DEFAULT_CONFIG)
    config["api_key"] = api_key
    task_manager = _RecordingTaskManager()
    poller = TaskPoller(max_attempts=attempts, interval=2, sleep=_no_sleep)
    return CommandDispatcher(config, generator, poller, task_manager), task_manager


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("/draw a cat", "a cat"),
        ("  /draw   a cat on a roof  ", "a cat on a roof"),
        ("生图 山水画", "山水画"),
        ("生图\t夜景", "夜景"),
        ("/drawing a cat", None),
        ("生图片 一只猫", None),
        ("please /draw a cat", None),
        ("/draw", ""),
        ("生图   ", ""),
        ("", None),
        (None, None),
    ],
)
def test_parse_trigger(text: str | None, expected: str | None) -> None:
    assert parse_trigger(text) == expected


def test_parse_trigger_first_declared_prefix_wins() -> None:
    assert parse_trigger("/draw 生图 x", prefixes=("/draw", "生图")) == "生图 x"
    assert parse_trigger("生图 /draw x", prefixes=("/draw", "生图")) == "/draw x"


@pytest.mark.parametrize("text", ["hello", "/drawcat", "draw a cat", "", "生图", "/draw    "])
@pytest.mark.asyncio
async def test_non_trigger_text_produces_no_action(actions, messenger, text: str) -> None:
    generator = _FakeGenerator(result=GenerationResult.image("https://x"))
    dispatcher, _ = _dispatcher(generator)

    handled = await dispatcher.handle(_event(text), messenger)

    assert handled is False
    assert actions.calls == []
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_private_message_is_ignored(actions, messenger) -> None:
    generator = _FakeGenerator(result=GenerationResult.image("https://x"))
    dispatcher, _ = _dispatcher(generator)

    handled = await dispatcher.handle(_event("/draw a cat", message_type="private"), messenger)

    assert handled is False
    assert actions.calls == []


@pytest.mark.asyncio
async def test_non_message_post_type_is_ignored(actions, messenger) -> None:
    dispatcher, _ = _dispatcher(_FakeGenerator())
    event = ChatEvent.from_onebot(
        {"post_type": "notice", "message_type": "group", "group_id": 1, "raw_message": "/draw x"}
    )

    await dispatcher.handle(event, messenger)

    assert actions.calls == []


@pytest.mark.asyncio
async def test_missing_api_key_sends_single_warning(actions, messenger) -> None:
    """验证：未配置密钥时只发一条警告，且不调用生成接口。"""
    generator = _FakeGenerator(result=GenerationResult.image("https://x"))
    dispatcher, _ = _dispatcher(generator, api_key="  ")

    handled = await dispatcher.handle(_event("/draw a cat"), messenger)

    assert handled is True
    assert actions.texts == [MSG_NO_API_KEY]
    assert len(actions.calls) == 1
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_sync_image_sends_ack_then_image(actions, messenger) -> None:
    """验证：同步返回图片时依次发送确认消息和图片。"""
    generator = _FakeGenerator(result=GenerationResult.image("https://cdn/cat.png"))
    dispatcher, task_manager = _dispatcher(generator)

    handled = await dispatcher.handle(_event("/draw a cat"), messenger)

    assert handled is True
    assert len(actions.calls) == 2
    first, second = actions.messages
    assert first == [{"type": "text", "data": {"text": "已收到生图请求，正在生成: a cat"}}]
    assert second == [{"type": "image", "data": {"file": "https://cdn/cat.png"}}]
    assert generator.prompts == ["a cat"]
    assert task_manager.created == []


@pytest.mark.asyncio
async def test_sync_error_sends_ack_then_error(actions, messenger) -> None:
    generator = _FakeGenerator(result=GenerationResult.failure("内容安全审核未通过: user"))
    dispatcher, _ = _dispatcher(generator)

    await dispatcher.handle(_event("生图 x"), messenger)

    assert actions.texts == ["已收到生图请求，正在生成: x", "内容安全审核未通过: user"]
    assert actions.images == []


@pytest.mark.asyncio
async def test_generator_exception_is_reported_not_raised(actions, messenger) -> None:
    generator = _FakeGenerator(error=ValueError("不支持的供应商: foo"))
    dispatcher, _ = _dispatcher(generator)

    handled = await dispatcher.handle(_event("/draw x"), messenger)

    assert handled is True
    assert actions.texts == ["已收到生图请求，正在生成: x", "系统错误: 不支持的供应商: foo"]


@pytest.mark.asyncio
async def test_task_result_polls_in_background(actions, messenger) -> None:
    """验证：任务型结果立即返回，后台轮询最终只发送一条结果消息。"""
    generator = _FakeGenerator(
        task_id="task-42",
        states=[
            TaskState(status=TaskStatus.PROCESSING),
            TaskState(status=TaskStatus.COMPLETED, image_url="https://img/42.png"),
        ],
    )
    dispatcher, task_manager = _dispatcher(generator)

    handled = await dispatcher.handle(_event("/draw a cat"), messenger)

    assert handled is True
    assert actions.texts == ["已收到生图请求，正在生成: a cat"]
    assert len(task_manager.created) == 1

    await asyncio.gather(*task_manager.created)

    assert actions.images == ["https://img/42.png"]
    assert len(actions.calls) == 2


@pytest.mark.asyncio
async def test_task_result_times_out_with_task_id(actions, messenger) -> None:
    generator = _FakeGenerator(task_id="task-slow")
    dispatcher, task_manager = _dispatcher(generator, attempts=3)

    await dispatcher.handle(_event("/draw a cat"), messenger)
    await asyncio.gather(*task_manager.created)

    assert actions.texts == [
        "已收到生图请求，正在生成: a cat",
        "生成超时 (Task: task-slow)",
    ]


@pytest.mark.asyncio
async def test_concurrent_requests_run_independent_sessions(actions, messenger) -> None:
    generator = _FakeGenerator(
        task_id="t",
        states=[
            TaskState(status=TaskStatus.COMPLETED, image_url="https://img/a.png"),
            TaskState(status=TaskStatus.COMPLETED, image_url="https://img/b.png"),
        ],
    )
    dispatcher, task_manager = _dispatcher(generator)

    await dispatcher.handle(_event("/draw a"), messenger)
    await dispatcher.handle(_event("/draw b"), messenger)
    await asyncio.gather(*task_manager.created)

    assert len(task_manager.created) == 2
    assert sorted(actions.images) == ["https://img/a.png", "https://img/b.png"]


@pytest.mark.asyncio
async def test_provider_switch_does_not_hijack_running_poll(
    actions, messenger, monkeypatch: pytest.MonkeyPatch
) -> None:
    """验证：任务提交后切换到同步供应商，轮询仍由提交任务的适配器完成。"""
    config: dict[str, Any] = dict(DEFAULT_CONFIG)
    config.update({"api_key": "sk-test", "provider": "tsai"})
    generator = ImageGenerator(config)
    task_manager = _RecordingTaskManager()
    dispatcher = CommandDispatcher(
        config, generator, TaskPoller(interval=2, sleep=_no_sleep), task_manager
    )

    tsai = await generator.get_adapter()
    assert isinstance(tsai, TsaiAdapter)
    tsai_calls: list[dict[str, Any]] = []

    async def tsai_transport(method: str, url: str, **kwargs: Any) -> tuple[int, Any]:
        tsai_calls.append({"method": method, **kwargs})
        if method == "POST":
            return 200, {"success": True, "data": {"id": 77}}
        return 200, {
            "success": True,
            "data": {"status": "completed", "result": {"image_url": "https://img/77.png"}},
        }

    monkeypatch.setattr(tsai, "_request_json", tsai_transport)

    await dispatcher.handle(_event("/draw a lighthouse"), messenger)
    config["provider"] = "cogview"
    cogview = await generator.get_adapter()
    assert isinstance(cogview, CogViewAdapter)

    async def cogview_transport(method: str, url: str, **kwargs: Any) -> tuple[int, Any]:
        raise AssertionError("任务轮询不应发往同步供应商")

    monkeypatch.setattr(cogview, "_request_json", cogview_transport)

    await asyncio.gather(*task_manager.created)

    assert actions.images == ["https://img/77.png"]
    assert [call["method"] for call in tsai_calls] == ["POST", "GET"]
    assert tsai_calls[1]["params"] == {"endpoint": "task_status", "task_id": "77"}

    await generator.close()
