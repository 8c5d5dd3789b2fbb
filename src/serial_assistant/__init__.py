"""
串口通信助手
============

这是一个基于串口通信的终端工具，与对端设备收发数据。

主要功能：
- 串口打开/关闭，参数配置（波特率、数据位、停止位、校验位）
- 字符串/16进制格式收发
- 定时发送
- 串口参数保存到 Cfg.ini

作者: lanford
版本: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "lanford"
__email__ = ""
__description__ = "基于串口通信的收发终端工具"

# 导出主要类
from .errors import ErrorKind, SerialAssistantError
from .config.settings import FrameMode, Parity, StopBits, SessionConfig
from .config.ini_file import IniFile
from .config.profile import load_profile, save_profile
from .core.frame_codec import FrameCodec
from .core.serial_session import SerialSession, ConnectionState
from .core.transmit_scheduler import TransmitScheduler
from .core.assistant import SerialAssistant

__all__ = [
    "ErrorKind",
    "SerialAssistantError",
    "FrameMode",
    "Parity",
    "StopBits",
    "SessionConfig",
    "IniFile",
    "load_profile",
    "save_profile",
    "FrameCodec",
    "SerialSession",
    "ConnectionState",
    "TransmitScheduler",
    "SerialAssistant",
]
