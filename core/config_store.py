from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping
from typing import Any

from astrbot.api import logger

from .constants import (
    CONFIG_FIELDS,
    DEFAULT_CONFIG,
    LOG_PREFIX,
    PROVIDER_OPTIONS,
    SECRET_CONFIG_KEYS,
)

_TRUE_VALUES = {"1", "true", "yes", "on", "是", "开"}
_FALSE_VALUES = {"0", "false", "no", "off", "否", "关"}


def _schema_type(default: object) -> str:
    if isinstance(default, bool):
        return "bool"
    if isinstance(default, int):
        return "int"
    return "string"


def build_config_schema() -> dict[str, dict[str, Any]]:
    """根据默认配置生成 AstrBot 设置界面的字段描述。"""
    schema: dict[str, dict[str, Any]] = {}
    for key, default in DEFAULT_CONFIG.items():
        label, hint = CONFIG_FIELDS.get(key, (key, ""))
        item: dict[str, Any] = {
            "description": label,
            "type": _schema_type(default),
            "default": default,
            "hint": hint,
        }
        if key == "provider":
            item["options"] = list(PROVIDER_OPTIONS)
        schema[key] = item
    return schema


def coerce_config_value(key: str, raw: str) -> Any:
    """把指令中的字符串参数转换为配置项默认值的类型。"""
    if key not in DEFAULT_CONFIG:
        raise KeyError(key)
    default = DEFAULT_CONFIG[key]
    value = raw.strip()
    if isinstance(default, bool):
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"{key} 需要布尔值 (true/false)")
    if isinstance(default, int):
        try:
            return int(value)
        except ValueError as exc:
            raise ValueError(f"{key} 需要整数") from exc
    if key == "provider" and value not in PROVIDER_OPTIONS:
        raise ValueError(f"provider 仅支持: {', '.join(PROVIDER_OPTIONS)}")
    return value


def mask_config(config: Mapping[str, Any]) -> dict[str, Any]:
    masked = dict(config)
    for key in SECRET_CONFIG_KEYS:
        value = str(masked.get(key) or "")
        if value:
            masked[key] = value[:4] + "****" if len(value) > 8 else "****"
    return masked


class ConfigStore:
    """插件配置的加载、合并与持久化。

    config 字典在插件生命周期内始终是同一个对象，只做原地更新，
    各组件持有其引用即可读到最新配置。
    """

    def __init__(self, path: str, defaults: Mapping[str, Any] | None = None):
        self.path = str(path)
        self.defaults = dict(DEFAULT_CONFIG if defaults is None else defaults)
        self.config: dict[str, Any] = dict(self.defaults)

    def load(self) -> dict[str, Any]:
        """读取持久化配置并覆盖默认值；文件不存在时写出默认配置。"""
        try:
            if not os.path.exists(self.path):
                self.save({})
                return self.config

            with open(self.path, encoding="utf-8") as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise ValueError("配置文件内容必须是 JSON 对象")

            unknown = [key for key in loaded if key not in self.defaults]
            if unknown:
                logger.debug(f"{LOG_PREFIX} 忽略未知配置项: {unknown}")

            merged = dict(self.defaults)
            merged.update({k: v for k, v in loaded.items() if k in self.defaults})
            self.config.clear()
            self.config.update(merged)
            logger.info(f"{LOG_PREFIX} 配置已加载")
        except Exception as exc:
            logger.error(f"{LOG_PREFIX} 加载配置失败: {exc}")
        return self.config

    def save(self, update: Mapping[str, Any]) -> dict[str, Any]:
        """合并部分配置并写入磁盘，写入失败只记录日志。"""
        self.config.update(update)
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.config, f, ensure_ascii=False, indent=2)
            logger.info(f"{LOG_PREFIX} 配置已保存")
        except Exception as exc:
            logger.error(f"{LOG_PREFIX} 保存配置失败: {exc}")
        return self.config

    def set_one(self, key: str, value: Any) -> dict[str, Any]:
        return self.save({key: value})

    def set_many(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return self.save(dict(values))

    def get_config(self) -> dict[str, Any]:
        return dict(self.config)

    def sync_from(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """把外部（WebUI）提交的整份配置中有变化的已知项一次性写入。

        返回实际变更的键值；没有变化时不写盘。
        """
        changed = {
            key: values[key]
            for key in self.defaults
            if key in values and values[key] != self.config.get(key)
        }
        if changed:
            self.set_many(changed)
            logger.info(f"{LOG_PREFIX} 配置已通过 WebUI 更新: {sorted(changed)}")
        return changed


def mirror_to_host_config(host_config: Any, key: str, value: Any) -> None:
    """把单项修改写回 AstrBot 配置对象，使 WebUI 显示一致。"""
    if host_config is None:
        return
    try:
        host_config[key] = value
        host_config.save_config()
    except Exception as exc:
        logger.error(f"{LOG_PREFIX} 同步 WebUI 配置失败: {exc}")


def apply_config_command(
    store: ConfigStore,
    key: str = "",
    value: str = "",
    on_change: Callable[[str, Any], None] | None = None,
) -> str:
    """执行 /生图设置 指令并返回回复文本。

    不带配置项时列出当前配置（密钥打码）；否则转换类型后通过 set_one 写入。
    """
    if not key:
        lines = ["📋 当前配置:"]
        for name, current in mask_config(store.get_config()).items():
            lines.append(f"{name} = {current}")
        return "\n".join(lines)

    try:
        coerced = coerce_config_value(key, value)
    except KeyError:
        return f"❌ 未知配置项: {key}"
    except ValueError as exc:
        return f"❌ {exc}"

    store.set_one(key, coerced)
    if on_change is not None:
        on_change(key, coerced)
    shown = mask_config({key: coerced})[key]
    return f"✅ 已更新 {key} = {shown}"
