"""
配置管理
========

提供串口会话配置类和帧格式相关的枚举。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

import serial

from .constants import (
    DEFAULT_PORT_NAME,
    DEFAULT_BAUDRATE,
    DEFAULT_DATA_BITS,
    DEFAULT_STOP_BITS,
    DEFAULT_PARITY,
    VALID_DATA_BITS,
    READ_TIMEOUT,
)
from ..errors import InvalidConfigError


class FrameMode(Enum):
    """帧格式：字符串或16进制"""

    TEXT = "text"
    HEX = "hex"


class Parity(str, Enum):
    """校验位，取值即配置文件中保存的字符串"""

    NONE = "NONE"
    ODD = "ODD"
    EVEN = "EVEN"

    def __str__(self) -> str:
        return self.value

    @property
    def serial_value(self) -> str:
        return {
            Parity.NONE: serial.PARITY_NONE,
            Parity.ODD: serial.PARITY_ODD,
            Parity.EVEN: serial.PARITY_EVEN,
        }[self]


class StopBits(float, Enum):
    """停止位"""

    ONE = 1
    ONE_POINT_FIVE = 1.5
    TWO = 2

    @property
    def serial_value(self) -> float:
        return {
            StopBits.ONE: serial.STOPBITS_ONE,
            StopBits.ONE_POINT_FIVE: serial.STOPBITS_ONE_POINT_FIVE,
            StopBits.TWO: serial.STOPBITS_TWO,
        }[self]

    def __str__(self) -> str:
        return format_stop_bits(self.value)


def format_stop_bits(value: Union[float, int]) -> str:
    """停止位转换为字符串，1.0 -> "1"，1.5 -> "1.5" """
    return f"{float(value):g}"


@dataclass
class SessionConfig:
    """
    串口会话配置

    字段可以保存任意值（例如从配置文件读到的越界值），
    只有在打开串口前调用 validate() 时才会被拒绝。
    """

    port_name: str = DEFAULT_PORT_NAME  # 串口号
    baud_rate: int = DEFAULT_BAUDRATE  # 波特率
    data_bits: int = DEFAULT_DATA_BITS  # 数据位
    stop_bits: float = DEFAULT_STOP_BITS  # 停止位
    parity: str = DEFAULT_PARITY  # 校验位
    timeout: float = READ_TIMEOUT  # 读取超时时间

    def validate(self) -> None:
        """
        校验所有字段是否为合法取值

        Raises:
            InvalidConfigError: 任一字段不合法
        """
        if not isinstance(self.port_name, str) or not self.port_name.strip():
            raise InvalidConfigError("串口号不能为空")
        self.validate_parameters()

    def validate_parameters(self) -> None:
        """只校验波特率、数据位、停止位和校验位，不要求已选择串口"""
        if isinstance(self.baud_rate, bool) or not isinstance(self.baud_rate, int):
            raise InvalidConfigError(f"波特率必须是整数: {self.baud_rate!r}")
        if self.baud_rate <= 0:
            raise InvalidConfigError(f"波特率必须大于0: {self.baud_rate}")
        if self.data_bits not in VALID_DATA_BITS:
            raise InvalidConfigError(
                f"数据位必须是 {VALID_DATA_BITS} 之一: {self.data_bits!r}"
            )
        if self.stop_bits not in [s.value for s in StopBits]:
            raise InvalidConfigError(f"停止位必须是 1、1.5 或 2: {self.stop_bits!r}")
        if self.parity not in [p.value for p in Parity]:
            raise InvalidConfigError(
                f"校验位必须是 NONE、ODD 或 EVEN: {self.parity!r}"
            )

    def to_serial_kwargs(self) -> Dict[str, Any]:
        """转换为pyserial的参数字典，调用前应先 validate()"""
        return {
            "baudrate": self.baud_rate,
            "bytesize": self.data_bits,
            "parity": Parity(self.parity).serial_value,
            "stopbits": StopBits(self.stop_bits).serial_value,
            "timeout": self.timeout,
        }

    def describe(self) -> str:
        """用于状态栏显示的摘要"""
        port = self.port_name or "未指定"
        return (
            f"串口号:{port} | 波特率:{self.baud_rate} | 数据位:{self.data_bits} | "
            f"停止位:{format_stop_bits(self.stop_bits)} | 校验位:{self.parity}"
        )
