"""
配置模块
=======

包含系统常量定义、串口会话配置和INI配置文件存储。
"""

from .constants import *
from .settings import *
from .ini_file import IniFile
from .profile import default_config_path, load_profile, save_profile

__all__ = [
    # 常量
    "CONFIG_FILE_NAME",
    "CONFIG_SECTION",
    "DEFAULT_BAUDRATE",
    "DEFAULT_DATA_BITS",
    "DEFAULT_STOP_BITS",
    "DEFAULT_PARITY",
    "VALID_DATA_BITS",
    "STANDARD_BAUDRATES",
    # 配置
    "FrameMode",
    "Parity",
    "StopBits",
    "SessionConfig",
    # 配置文件
    "IniFile",
    "default_config_path",
    "load_profile",
    "save_profile",
]
