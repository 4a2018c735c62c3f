"""
Provider response schemas
供应商响应结构，统一用 pydantic 校验，校验失败即视为响应格式错误
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore")


def describe_error(error: Any) -> str | None:
    """把供应商返回的 error 字段整理成可读文本。"""
    if error is None or error == "":
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("msg") or error)
    return str(error)


# ---------------------------- TS-AI 任务接口 ----------------------------


class TaskSubmitData(_Response):
    id: str | int | None = None


class TaskSubmitResponse(_Response):
    success: bool = False
    data: TaskSubmitData | None = None
    error: Any = None


class TaskResultData(_Response):
    image_url: str | None = None


class TaskStatusData(_Response):
    status: str | None = None
    result: TaskResultData | None = None
    error: Any = None


class TaskStatusResponse(_Response):
    success: bool = False
    data: TaskStatusData | None = None
    error: Any = None


# ---------------------------- CogView 同步接口 ----------------------------


class CogViewImage(_Response):
    url: str | None = None


class ContentFilterEntry(_Response):
    role: str | None = None
    level: int | None = None


class CogViewError(_Response):
    code: str | int | None = None
    message: str | None = None


class CogViewResponse(_Response):
    data: list[CogViewImage] = []
    content_filter: list[ContentFilterEntry] = []
    error: CogViewError | None = None

    def blocked_entries(self, threshold: int) -> list[ContentFilterEntry]:
        return [
            entry
            for entry in self.content_filter
            if entry.level is not None and entry.level <= threshold
        ]

    @property
    def first_url(self) -> str | None:
        for item in self.data:
            if item.url:
                return item.url
        return None
