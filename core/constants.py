"""常量定义模块。

集中管理项目中使用的常量，避免魔法字符串分散在代码中。
"""

from __future__ import annotations

# ========================== 日志常量 ==========================

LOG_PREFIX = "[TSDraw]"
"""统一的日志前缀。"""

USER_AGENT = "AstrBot-TSDraw/1.0"
"""请求供应商时使用的 User-Agent。"""


# ========================== 触发指令 ==========================

TRIGGER_PREFIXES = ("/draw", "生图")
"""触发前缀，按优先级排列，前缀后必须跟空白字符。"""


# ========================== 轮询策略 ==========================

POLL_MAX_ATTEMPTS = 60
"""任务状态最大轮询次数。"""

POLL_INTERVAL_SECONDS = 2
"""两次轮询之间的间隔（秒），与次数相乘即为 2 分钟上限。"""


# ========================== 内容安全 ==========================

CONTENT_FILTER_BLOCK_LEVEL = 1
"""content_filter 中 level 小于等于该值即视为拦截（0 最严重，3 最轻微）。"""


# ========================== API 端点 ==========================

TSAI_DEFAULT_API_URL = "https://api.tavr.top/v1/index.php"
"""TS-AI 任务型接口默认入口。"""

COGVIEW_DEFAULT_API_URL = "https://open.bigmodel.cn/api/paas/v4/images/generations"
"""智谱 CogView 同步接口默认地址。"""


# ========================== 默认配置值 ==========================

DEFAULT_CONFIG: dict[str, object] = {
    "provider": "tsai",
    "api_key": "",
    "api_url": TSAI_DEFAULT_API_URL,
    "workflow": "rr3",
    "width": 832,
    "height": 1216,
    "steps": 20,
    "cogview_url": COGVIEW_DEFAULT_API_URL,
    "model": "cogview-3-flash",
    "size": "1024x1024",
    "quality": "",
    "watermark_enabled": True,
    "timeout": 60,
}
"""所有可识别配置项及其默认值。"""

CONFIG_FIELDS: dict[str, tuple[str, str]] = {
    "provider": ("供应商", "tsai 为任务轮询接口，cogview 为同步返回接口"),
    "api_key": ("API Key", "请输入您的 API Key (sk-...)"),
    "api_url": ("API URL", "TS-AI 接口入口地址"),
    "workflow": ("工作流", "TS-AI 使用的工作流名称"),
    "width": ("宽度", "TS-AI 生成图片宽度"),
    "height": ("高度", "TS-AI 生成图片高度"),
    "steps": ("步数", "TS-AI 采样步数"),
    "cogview_url": ("CogView 地址", "同步生图接口地址"),
    "model": ("模型", "CogView 使用的模型名称"),
    "size": ("尺寸", "CogView 图片尺寸，如 1024x1024"),
    "quality": ("质量", "CogView 质量档位 (standard/hd)，留空则不传"),
    "watermark_enabled": ("水印", "CogView 是否添加水印"),
    "timeout": ("超时时间", "单次 HTTP 请求超时（秒）"),
}
"""配置项在设置界面中的标签与说明。"""

PROVIDER_OPTIONS = ("tsai", "cogview")
"""可选的供应商。"""

SECRET_CONFIG_KEYS = frozenset({"api_key"})
"""展示配置时需要打码的键。"""


# ========================== 文件路径 ==========================

CONFIG_FILE_NAME = "config.json"
"""插件配置持久化文件名。"""


# ========================== 用户提示 ==========================

MSG_NO_API_KEY = "⚠️ 未配置 API Key，请联系管理员配置生图插件。"
MSG_ACCEPTED = "已收到生图请求，正在生成: {prompt}"
MSG_REQUEST_FAILED = "请求失败: {reason}"
MSG_SYSTEM_ERROR = "系统错误: {reason}"
MSG_GENERATION_FAILED = "生成失败: {reason}"
MSG_TIMEOUT = "生成超时 (Task: {task_id})"
MSG_CONTENT_FILTERED = "内容安全审核未通过: {reason}"
MSG_NO_URL = "未返回图片地址"
MSG_NO_TASK_ID = "未返回任务 ID"
MSG_MALFORMED = "响应格式错误"
