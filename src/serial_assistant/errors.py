"""
异常定义
========

串口助手引擎抛出的全部异常，每种异常对应一个 ErrorKind，
供界面层通过 on_error 回调区分错误类型。
"""

from enum import Enum


class ErrorKind(Enum):
    """错误类型"""

    INVALID_CONFIG = "InvalidConfig"
    PORT_UNAVAILABLE = "PortUnavailable"
    ALREADY_OPEN = "AlreadyOpen"
    NOT_OPEN = "NotOpen"
    WRITE_FAILED = "WriteFailed"
    DEVICE_LOST = "DeviceLost"
    INVALID_HEX_TOKEN = "InvalidHexToken"
    INVALID_INTERVAL = "InvalidInterval"


class SerialAssistantError(Exception):
    """串口助手异常基类"""

    kind: ErrorKind


class InvalidConfigError(SerialAssistantError, ValueError):
    """串口参数不合法（打开串口前检查）"""

    kind = ErrorKind.INVALID_CONFIG


class PortUnavailableError(SerialAssistantError):
    """串口不存在、被占用或驱动拒绝参数"""

    kind = ErrorKind.PORT_UNAVAILABLE


class AlreadyOpenError(SerialAssistantError):
    """串口已经打开"""

    kind = ErrorKind.ALREADY_OPEN


class NotOpenError(SerialAssistantError):
    """串口未打开"""

    kind = ErrorKind.NOT_OPEN


class WriteFailedError(SerialAssistantError):
    """写入串口时发生IO错误"""

    kind = ErrorKind.WRITE_FAILED


class DeviceLostError(SerialAssistantError):
    """串口打开期间设备被移除"""

    kind = ErrorKind.DEVICE_LOST


class InvalidHexTokenError(SerialAssistantError, ValueError):
    """16进制输入中含有非法字节"""

    kind = ErrorKind.INVALID_HEX_TOKEN

    def __init__(self, token: str):
        super().__init__(f"非法的16进制字节: '{token}'")
        self.token = token


class InvalidIntervalError(SerialAssistantError, ValueError):
    """定时发送间隔不是正整数"""

    kind = ErrorKind.INVALID_INTERVAL
