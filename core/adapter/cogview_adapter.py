from __future__ import annotations

import time
from typing import Any

from pydantic import ValidationError

from astrbot.api import logger

from ..base_adapter import BaseImageAdapter
from ..constants import (
    COGVIEW_DEFAULT_API_URL,
    CONTENT_FILTER_BLOCK_LEVEL,
    MSG_CONTENT_FILTERED,
    MSG_MALFORMED,
    MSG_NO_URL,
    MSG_REQUEST_FAILED,
)
from ..errors import ApiRequestError
from ..schemas import CogViewResponse
from ..types import GenerationRequest, GenerationResult


class CogViewAdapter(BaseImageAdapter):
    """智谱 CogView 同步适配器：单次请求直接返回图片地址。"""

    DEFAULT_API_URL = COGVIEW_DEFAULT_API_URL
    PARAM_KEYS = ("model", "size", "quality", "watermark_enabled")

    @property
    def api_url(self) -> str:
        return str(self.config.get("cogview_url") or self.DEFAULT_API_URL).strip()

    def _build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        """构建请求载荷。"""
        params = request.params
        payload: dict[str, Any] = {
            "model": params.get("model") or "cogview-3-flash",
            "prompt": request.prompt,
            "size": params.get("size") or "1024x1024",
            "watermark_enabled": bool(params.get("watermark_enabled")),
        }
        # quality 为可选参数，留空时不传
        if params.get("quality"):
            payload["quality"] = params["quality"]
        return payload

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """执行生图逻辑。"""
        start_time = time.time()
        prefix = self._get_log_prefix(request.request_id)
        payload = self._build_payload(request)
        headers = self._base_headers()
        headers["Authorization"] = f"Bearer {self.api_key}"

        logger.info(
            f"{prefix} 开始生成: prompt='{request.prompt[:50]}', model='{payload['model']}'"
        )

        try:
            status, body = await self._request_json(
                "POST",
                self.api_url,
                headers=headers,
                payload=payload,
                request_id=request.request_id,
            )
        except ApiRequestError as e:
            return GenerationResult.failure(e.message)

        duration = time.time() - start_time
        try:
            response = CogViewResponse.model_validate(body)
        except ValidationError as e:
            logger.error(f"{prefix} 响应格式错误 ({status}, 耗时: {duration:.2f}s): {e}")
            return GenerationResult.failure(MSG_MALFORMED)

        # 内容安全判定与 HTTP 状态无关
        blocked = response.blocked_entries(CONTENT_FILTER_BLOCK_LEVEL)
        if blocked:
            roles = ", ".join(sorted({entry.role or "unknown" for entry in blocked}))
            logger.warning(
                f"{prefix} 内容安全拦截 ({status}, 耗时: {duration:.2f}s): {roles}"
            )
            return GenerationResult.failure(MSG_CONTENT_FILTERED.format(reason=roles))

        if not 200 <= status < 300 or response.error is not None:
            reason = (
                response.error.message if response.error and response.error.message
                else f"Server rejected ({status})"
            )
            logger.error(f"{prefix} API 错误 ({status}, 耗时: {duration:.2f}s): {reason}")
            return GenerationResult.failure(MSG_REQUEST_FAILED.format(reason=reason))

        url = response.first_url
        if not url:
            logger.error(f"{prefix} 响应中未找到图片地址 (耗时: {duration:.2f}s)")
            return GenerationResult.failure(MSG_NO_URL)

        logger.info(f"{prefix} 生成成功 (耗时: {duration:.2f}s)")
        return GenerationResult.image(url)
