"""
日志记录模块
============

提供统一的日志记录功能，控制台彩色输出，可选写入文件。
"""

import datetime
import logging
import sys
from typing import Dict, Optional

ROOT_LOGGER_NAME = "serial_assistant"


class ColoredFormatter(logging.Formatter):
    """彩色日志格式化器"""

    # ANSI颜色代码
    COLORS = {
        'DEBUG': '\033[36m',    # 青色
        'INFO': '\033[0m',      # 默认色
        'WARNING': '\033[33m',  # 黄色
        'ERROR': '\033[31m',    # 红色
        'CRITICAL': '\033[35m', # 紫色
        'RESET': '\033[0m'      # 重置
    }

    def format(self, record: logging.LogRecord) -> str:
        """格式化日志记录：[时间.毫秒] 消息 [文件.函数():行号]"""
        created = datetime.datetime.fromtimestamp(record.created)
        timestamp = created.strftime("%Y-%m-%d %H:%M:%S.") + f"{created.microsecond // 1000:03d}"

        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        return (
            f"{color}[{timestamp}] {record.getMessage()} "
            f"[{record.filename}.{record.funcName}():{record.lineno}]{reset}"
        )


# 已创建的日志器
_loggers: Dict[str, logging.Logger] = {}


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    设置日志器

    Args:
        name: 日志器名称
        level: 日志级别
        log_file: 日志文件路径，None表示不写入文件
        console_output: 是否输出到控制台

    Returns:
        配置好的日志器
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 清除已有的处理器
    logger.handlers.clear()

    # 控制台处理器（stderr）
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ColoredFormatter())
        logger.addHandler(console_handler)

    # 文件处理器
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(file_handler)

    # 防止重复输出
    logger.propagate = False

    _loggers[name] = logger
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    获取日志器实例

    Args:
        name: 日志器名称

    Returns:
        日志器实例
    """
    if name not in _loggers:
        setup_logger(name)
    return _loggers[name]


def set_level(level: int) -> None:
    """调整所有已创建日志器的级别"""
    for logger in _loggers.values():
        logger.setLevel(level)
