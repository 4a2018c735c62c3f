from __future__ import annotations

from .constants import MSG_REQUEST_FAILED


class ApiRequestError(Exception):
    """供应商请求在传输层失败（网络、DNS、超时、非 JSON 响应）。"""

    def __init__(self, reason: str, status: int | None = None) -> None:
        super().__init__(MSG_REQUEST_FAILED.format(reason=reason))
        self.reason = reason
        self.status = status

    @property
    def message(self) -> str:
        return str(self)
