"""
Adapter module for image generation plugin
生图插件的适配器模块
"""

from .cogview_adapter import CogViewAdapter
from .tsai_adapter import TsaiAdapter

__all__ = [
    "CogViewAdapter",
    "TsaiAdapter",
]
