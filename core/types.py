"""
Core type definitions for image generation plugin
定义生图插件的核心数据类型
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AdapterType(str, Enum):
    """适配器类型枚举"""

    TSAI = "tsai"
    COGVIEW = "cogview"


class ResultKind(str, Enum):
    """生成结果类型"""

    IMAGE = "image"
    TASK = "task"
    ERROR = "error"


class TaskStatus(str, Enum):
    """任务状态，未知取值一律视为处理中。"""

    COMPLETED = "completed"
    FAILED = "failed"
    PROCESSING = "processing"

    @classmethod
    def parse(cls, value: object) -> TaskStatus:
        if value == cls.COMPLETED.value:
            return cls.COMPLETED
        if value == cls.FAILED.value:
            return cls.FAILED
        return cls.PROCESSING


class PollOutcome(str, Enum):
    """轮询会话的终态"""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ChatEvent:
    """OneBot 入站消息事件（只读）"""

    post_type: str
    message_type: str
    group_id: int | str | None
    user_id: int | str | None
    raw_message: str

    @classmethod
    def from_onebot(cls, data: Mapping[str, Any]) -> ChatEvent:
        return cls(
            post_type=str(data.get("post_type") or ""),
            message_type=str(data.get("message_type") or ""),
            group_id=data.get("group_id"),
            user_id=data.get("user_id"),
            raw_message=str(data.get("raw_message") or ""),
        )

    @property
    def is_group_message(self) -> bool:
        return (
            self.post_type == "message"
            and self.message_type == "group"
            and self.group_id is not None
        )


@dataclass(frozen=True)
class GenerationRequest:
    """图像生成请求，发送后不可变"""

    prompt: str
    request_id: str | None = None

    # 构建请求时从配置中快照的供应商参数
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class GenerationResult:
    """图像生成结果：图片地址、任务 ID 或错误信息三选一"""

    kind: ResultKind
    image_url: str | None = None
    task_id: str | None = None
    error: str | None = None

    # 提交该任务的适配器的状态查询方法，轮询全程使用它
    poll: Callable[..., Awaitable[TaskState | None]] | None = field(
        default=None, repr=False, compare=False
    )

    @classmethod
    def image(cls, url: str) -> GenerationResult:
        return cls(kind=ResultKind.IMAGE, image_url=url)

    @classmethod
    def task(
        cls,
        task_id: str,
        poll: Callable[..., Awaitable[TaskState | None]],
    ) -> GenerationResult:
        return cls(kind=ResultKind.TASK, task_id=task_id, poll=poll)

    @classmethod
    def failure(cls, error: str) -> GenerationResult:
        return cls(kind=ResultKind.ERROR, error=error)

    @property
    def is_error(self) -> bool:
        return self.kind is ResultKind.ERROR


@dataclass
class TaskState:
    """单次任务状态查询的结果"""

    status: TaskStatus
    image_url: str | None = None
    error: str | None = None
