"""
串口参数配置档
==============

在程序启动时从配置文件读取串口参数，退出时写回。
"""

import sys
from pathlib import Path
from typing import Callable, TypeVar

from .constants import (
    CONFIG_FILE_NAME,
    CONFIG_SECTION,
    KEY_PORT_NAME,
    KEY_BAUD_RATE,
    KEY_DATA_BITS,
    KEY_STOP_BITS,
    KEY_PARITY,
    DEFAULT_PORT_NAME,
    DEFAULT_BAUDRATE,
    DEFAULT_DATA_BITS,
    DEFAULT_STOP_BITS,
    DEFAULT_PARITY,
)
from .ini_file import IniFile
from .settings import SessionConfig, format_stop_bits
from ..utils.logger import get_logger

logger = get_logger(__name__)

_T = TypeVar("_T")


def default_config_path() -> Path:
    """配置文件默认路径：程序所在目录下的 Cfg.ini"""
    if getattr(sys, "frozen", False):
        base_dir = Path(sys.executable).resolve().parent
    elif sys.argv and sys.argv[0]:
        base_dir = Path(sys.argv[0]).resolve().parent
    else:
        base_dir = Path.cwd()
    return base_dir / CONFIG_FILE_NAME


def _read_value(
    store: IniFile, key: str, default: _T, convert: Callable[[str], _T]
) -> _T:
    """读取并转换一个值，缺失或无法解析时使用默认值"""
    raw = store.read_string(CONFIG_SECTION, key, "").strip()
    if not raw:
        return default
    try:
        return convert(raw)
    except ValueError:
        logger.warning(f"配置项 {key}={raw!r} 无法解析，使用默认值 {default}")
        return default


def load_profile(store: IniFile) -> SessionConfig:
    """
    从配置文件读取串口参数

    缺失或无法解析的项使用默认值；能解析但不在合法范围内的值原样返回，
    由打开串口时的校验负责拒绝。

    Args:
        store: 配置文件存储

    Returns:
        串口会话配置
    """
    config = SessionConfig(
        port_name=store.read_string(CONFIG_SECTION, KEY_PORT_NAME, DEFAULT_PORT_NAME),
        baud_rate=_read_value(store, KEY_BAUD_RATE, DEFAULT_BAUDRATE, int),
        data_bits=_read_value(store, KEY_DATA_BITS, DEFAULT_DATA_BITS, int),
        stop_bits=_read_value(store, KEY_STOP_BITS, DEFAULT_STOP_BITS, float),
        parity=_read_value(store, KEY_PARITY, DEFAULT_PARITY, str),
    )
    logger.debug(f"已加载串口参数: {config.describe()}")
    return config


def save_profile(store: IniFile, config: SessionConfig) -> bool:
    """
    将串口参数写回配置文件

    Returns:
        全部写入成功返回True
    """
    values = {
        KEY_PORT_NAME: config.port_name,
        KEY_BAUD_RATE: str(config.baud_rate),
        KEY_DATA_BITS: str(config.data_bits),
        KEY_STOP_BITS: format_stop_bits(config.stop_bits),
        KEY_PARITY: str(config.parity),
    }
    results = [store.write_string(CONFIG_SECTION, k, v) for k, v in values.items()]
    if all(results):
        logger.info(f"已保存串口参数: {config.describe()}")
    return all(results)
