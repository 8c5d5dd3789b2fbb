"""
工具模块
========

包含日志记录等工具功能。
"""

from .logger import get_logger, setup_logger, set_level

__all__ = [
    "get_logger",
    "setup_logger",
    "set_level",
]
