from __future__ import annotations

import time
from typing import Any

from pydantic import ValidationError

from astrbot.api import logger

from ..base_adapter import BaseImageAdapter
from ..constants import (
    MSG_MALFORMED,
    MSG_NO_TASK_ID,
    MSG_REQUEST_FAILED,
    TSAI_DEFAULT_API_URL,
    USER_AGENT,
)
from ..errors import ApiRequestError
from ..schemas import TaskStatusResponse, TaskSubmitResponse, describe_error
from ..types import GenerationRequest, GenerationResult, TaskState, TaskStatus


class TsaiAdapter(BaseImageAdapter):
    """TS-AI 任务型适配器：提交后返回任务 ID，结果需轮询获取。"""

    DEFAULT_API_URL = TSAI_DEFAULT_API_URL
    PARAM_KEYS = ("workflow", "width", "height", "steps")

    @property
    def api_url(self) -> str:
        return str(self.config.get("api_url") or self.DEFAULT_API_URL).strip()

    def _auth_headers(self) -> dict[str, str]:
        headers = self._base_headers()
        headers["x-api-key"] = self.api_key
        return headers

    def _build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        params = request.params
        return {
            "prompt": request.prompt,
            "workflow": params.get("workflow") or "rr3",
            "width": int(params.get("width") or 832),
            "height": int(params.get("height") or 1216),
            "steps": int(params.get("steps") or 20),
        }

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """提交生图任务。"""
        start_time = time.time()
        prefix = self._get_log_prefix(request.request_id)
        payload = self._build_payload(request)
        logger.info(
            f"{prefix} 提交任务: prompt='{request.prompt[:50]}', workflow={payload['workflow']}"
        )

        try:
            _, body = await self._request_json(
                "POST",
                self.api_url,
                headers=self._auth_headers(),
                payload=payload,
                params={"endpoint": "image_generation"},
                request_id=request.request_id,
            )
        except ApiRequestError as e:
            return GenerationResult.failure(e.message)

        duration = time.time() - start_time
        try:
            response = TaskSubmitResponse.model_validate(body)
        except ValidationError as e:
            logger.error(f"{prefix} 响应格式错误 (耗时: {duration:.2f}s): {e}")
            return GenerationResult.failure(MSG_MALFORMED)

        if not response.success:
            reason = describe_error(response.error) or "Server rejected"
            logger.warning(f"{prefix} 任务被拒绝 (耗时: {duration:.2f}s): {reason}")
            return GenerationResult.failure(MSG_REQUEST_FAILED.format(reason=reason))

        task_id = response.data.id if response.data else None
        if task_id is None or task_id == "":
            logger.error(f"{prefix} 响应中缺少任务 ID: {body}")
            return GenerationResult.failure(MSG_NO_TASK_ID)

        logger.info(f"{prefix} 任务已提交 (耗时: {duration:.2f}s): {task_id}")
        return GenerationResult.task(str(task_id), poll=self.query_task)

    async def query_task(
        self, task_id: str, request_id: str | None = None
    ) -> TaskState | None:
        """查询一次任务状态。传输异常向上抛出，由轮询器决定如何处理。"""
        prefix = self._get_log_prefix(request_id)
        _, body = await self._request_json(
            "GET",
            self.api_url,
            headers={"x-api-key": self.api_key, "User-Agent": USER_AGENT},
            params={"endpoint": "task_status", "task_id": task_id},
            request_id=request_id,
        )

        try:
            response = TaskStatusResponse.model_validate(body)
        except ValidationError as e:
            logger.warning(f"{prefix} 任务状态响应格式错误: {e}")
            return None

        if not response.success or response.data is None:
            logger.debug(
                f"{prefix} 任务状态查询未成功: {describe_error(response.error)}"
            )
            return None

        data = response.data
        status = TaskStatus.parse(data.status)
        return TaskState(
            status=status,
            image_url=data.result.image_url if data.result else None,
            error=describe_error(data.error),
        )
