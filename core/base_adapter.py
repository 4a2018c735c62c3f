from __future__ import annotations

import abc
import asyncio
import json
import time
from collections.abc import Mapping
from typing import Any

import aiohttp

from astrbot.api import logger

from .constants import LOG_PREFIX, USER_AGENT
from .errors import ApiRequestError
from .types import GenerationRequest, GenerationResult, TaskState

_SECRET_HEADERS = {"authorization", "x-api-key"}


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """日志输出前隐藏鉴权头。"""
    return {
        key: "<redacted>" if key.lower() in _SECRET_HEADERS else value
        for key, value in headers.items()
    }


class BaseImageAdapter(abc.ABC):
    """图像生成适配器基类。

    适配器持有插件配置字典的引用，每次请求时读取最新值。
    """

    PARAM_KEYS: tuple[str, ...] = ()
    """构建请求时需要从配置中快照的参数键。"""

    def __init__(self, config: Mapping[str, Any]):
        self.config = config
        self._session: aiohttp.ClientSession | None = None

    @property
    def api_key(self) -> str:
        return str(self.config.get("api_key") or "").strip()

    @property
    def timeout(self) -> float:
        try:
            return max(1.0, float(self.config.get("timeout") or 60))
        except (TypeError, ValueError):
            return 60.0

    def build_request(
        self, prompt: str, request_id: str | None = None
    ) -> GenerationRequest:
        """根据当前配置构建不可变的生成请求。"""
        params = {key: self.config.get(key) for key in self.PARAM_KEYS}
        return GenerationRequest(prompt=prompt, request_id=request_id, params=params)

    async def close(self) -> None:
        """关闭底层的 HTTP 会话。"""

        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        """获取或创建 HTTP 会话。"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _get_log_prefix(self, request_id: str | None = None) -> str:
        """获取统一的日志前缀。"""
        adapter_name = self.__class__.__name__.replace("Adapter", "")
        prefix = f"{LOG_PREFIX} [{adapter_name}]"
        if request_id:
            prefix += f" [{request_id}]"
        return prefix

    def _base_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        request_id: str | None = None,
    ) -> tuple[int, Any]:
        """发送请求并返回 (HTTP 状态码, JSON 响应体)。

        传输层异常与非 JSON 响应统一包装为 ApiRequestError。
        """
        prefix = self._get_log_prefix(request_id)
        start_time = time.time()
        logger.debug(
            f"{prefix} {method} {url} params={params} headers={mask_headers(headers)}"
        )
        try:
            async with self._get_session().request(
                method,
                url,
                json=payload,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                text = await resp.text()
                duration = time.time() - start_time
                logger.debug(
                    f"{prefix} 响应 ({resp.status}, 耗时: {duration:.2f}s): {text[:400]}"
                )
                status = resp.status
        except asyncio.TimeoutError as e:
            duration = time.time() - start_time
            logger.error(f"{prefix} 请求超时 (耗时: {duration:.2f}s)")
            raise ApiRequestError("请求超时") from e
        except aiohttp.ClientError as e:
            duration = time.time() - start_time
            logger.error(f"{prefix} 请求异常 (耗时: {duration:.2f}s): {e}")
            raise ApiRequestError(str(e) or type(e).__name__) from e
        except UnicodeDecodeError as e:
            logger.error(f"{prefix} 响应解码失败: {e}")
            raise ApiRequestError(f"无效的响应编码 ({e.encoding})") from e

        try:
            return status, json.loads(text)
        except json.JSONDecodeError as e:
            raise ApiRequestError(f"无效的 JSON 响应 (HTTP {status})", status) from e

    @abc.abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """执行生成请求，返回图片地址、任务 ID 或错误信息，不抛出传输异常。"""

    async def query_task(
        self, task_id: str, request_id: str | None = None
    ) -> TaskState | None:
        """查询任务状态。仅任务型适配器需要实现。

        返回 None 表示本次查询没有可用的状态，调用方应继续轮询。
        """
        raise NotImplementedError(f"{self.__class__.__name__} 不支持任务轮询")
