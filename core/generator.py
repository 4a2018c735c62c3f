from __future__ import annotations

from typing import Any

from astrbot.api import logger

from .adapter import CogViewAdapter, TsaiAdapter
from .base_adapter import BaseImageAdapter
from .constants import LOG_PREFIX
from .types import AdapterType, GenerationResult


class ImageGenerator:
    """适配器编排器，负责分发生图请求。

    供应商由配置中的 provider 决定，配置变更后下一次请求会切换到对应适配器。
    """

    def __init__(self, config: dict[str, Any]):
        self.config = config
        self.adapter: BaseImageAdapter | None = None
        self._adapter_type: AdapterType | None = None
        # 切换供应商后旧适配器保持打开，已提交任务的轮询仍使用它的会话
        self._adapters: dict[AdapterType, BaseImageAdapter] = {}

    def _create_adapter(self, adapter_type: AdapterType) -> BaseImageAdapter:
        """根据配置创建对应的适配器。"""
        adapter_map: dict[AdapterType, type[BaseImageAdapter]] = {
            AdapterType.TSAI: TsaiAdapter,
            AdapterType.COGVIEW: CogViewAdapter,
        }

        adapter_cls = adapter_map.get(adapter_type)
        if not adapter_cls:
            raise ValueError(f"不支持的适配器类型: {adapter_type}")
        return adapter_cls(self.config)

    async def get_adapter(self) -> BaseImageAdapter:
        raw_type = str(self.config.get("provider") or AdapterType.TSAI.value)
        try:
            adapter_type = AdapterType(raw_type.strip().lower())
        except ValueError as exc:
            raise ValueError(f"不支持的供应商: {raw_type}") from exc

        if self.adapter is None or adapter_type is not self._adapter_type:
            if self.adapter is not None:
                logger.info(f"{LOG_PREFIX} 供应商已切换: {self._adapter_type} -> {adapter_type}")
            if adapter_type not in self._adapters:
                self._adapters[adapter_type] = self._create_adapter(adapter_type)
            self.adapter = self._adapters[adapter_type]
            self._adapter_type = adapter_type
        return self.adapter

    async def generate(
        self, prompt: str, request_id: str | None = None
    ) -> GenerationResult:
        """执行生图逻辑。配置错误等非传输异常会直接抛出。"""
        adapter = await self.get_adapter()
        request = adapter.build_request(prompt, request_id=request_id)
        return await adapter.generate(request)

    async def close(self) -> None:
        """关闭所有创建过的适配器。"""
        for adapter in self._adapters.values():
            await adapter.close()
