"""
Core module for image generation plugin
生图插件的核心模块
"""

from .base_adapter import BaseImageAdapter
from .config_store import (
    ConfigStore,
    apply_config_command,
    build_config_schema,
    coerce_config_value,
    mirror_to_host_config,
)
from .constants import (
    DEFAULT_CONFIG,
    LOG_PREFIX,
    POLL_INTERVAL_SECONDS,
    POLL_MAX_ATTEMPTS,
    TRIGGER_PREFIXES,
)
from .dispatcher import CommandDispatcher, parse_trigger
from .errors import ApiRequestError
from .generator import ImageGenerator
from .messenger import GroupMessenger, image_segment, text_segment
from .poller import TaskPoller
from .task_manager import TaskManager
from .types import (
    AdapterType,
    ChatEvent,
    GenerationRequest,
    GenerationResult,
    PollOutcome,
    ResultKind,
    TaskState,
    TaskStatus,
)

__all__ = [
    # 基类和核心组件
    "BaseImageAdapter",
    "CommandDispatcher",
    "ConfigStore",
    "GroupMessenger",
    "ImageGenerator",
    "TaskManager",
    "TaskPoller",
    # 数据类型
    "AdapterType",
    "ChatEvent",
    "GenerationRequest",
    "GenerationResult",
    "PollOutcome",
    "ResultKind",
    "TaskState",
    "TaskStatus",
    # 工具函数
    "apply_config_command",
    "build_config_schema",
    "coerce_config_value",
    "mirror_to_host_config",
    "image_segment",
    "parse_trigger",
    "text_segment",
    # 异常
    "ApiRequestError",
    # 常量
    "DEFAULT_CONFIG",
    "LOG_PREFIX",
    "POLL_INTERVAL_SECONDS",
    "POLL_MAX_ATTEMPTS",
    "TRIGGER_PREFIXES",
]
