"""
数据帧编解码模块
================

负责用户输入文本与串口字节数据之间的转换，支持字符串和16进制两种格式。

16进制格式：字节之间用空格、逗号（含全角逗号）隔开，每个字节1~2位16进制数，
例如 "01 A0,ff，3"。
"""

import locale
import re
from typing import Optional

from ..config.settings import FrameMode
from ..errors import InvalidHexTokenError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# 分隔符：空白字符、半角逗号、全角逗号
HEX_SEPARATOR_PATTERN = re.compile(r"[\s,，]+")
HEX_TOKEN_PATTERN = re.compile(r"[0-9A-Fa-f]{1,2}")


def default_encoding() -> str:
    """字符串模式使用的默认编码（系统首选编码）"""
    return locale.getpreferredencoding(False)


class FrameCodec:
    """数据帧编解码器，全部为无状态的静态方法"""

    @staticmethod
    def encode(text: str, mode: FrameMode, encoding: Optional[str] = None) -> bytes:
        """
        将用户输入的文本编码为要发送的字节

        Args:
            text: 用户输入
            mode: 发送格式
            encoding: 字符串模式下的编码，None表示系统默认编码

        Returns:
            编码后的字节，16进制模式下输入为空时返回空bytes

        Raises:
            InvalidHexTokenError: 16进制模式下出现非法字节

        Examples:
            >>> FrameCodec.encode("01 a0,FF", FrameMode.HEX)
            b'\\x01\\xa0\\xff'
        """
        if mode is FrameMode.HEX:
            return FrameCodec.parse_hex(text)
        return text.encode(encoding or default_encoding(), errors="replace")

    @staticmethod
    def decode(data: bytes, mode: FrameMode, encoding: Optional[str] = None) -> str:
        """
        将收到的字节解码为显示文本，不会失败

        Args:
            data: 收到的字节
            mode: 接收格式
            encoding: 字符串模式下的编码，None表示系统默认编码

        Returns:
            显示文本；16进制模式下为以单个空格分隔的两位大写16进制数
        """
        if mode is FrameMode.HEX:
            return FrameCodec.format_hex(data)
        return bytes(data).decode(encoding or default_encoding(), errors="replace")

    @staticmethod
    def parse_hex(text: str) -> bytes:
        """解析以空格或逗号分隔的16进制字节"""
        result = bytearray()
        for token in HEX_SEPARATOR_PATTERN.split(text):
            if not token:
                continue
            if not HEX_TOKEN_PATTERN.fullmatch(token):
                logger.debug(f"16进制解析失败: {text!r}")
                raise InvalidHexTokenError(token)
            result.append(int(token, 16))
        return bytes(result)

    @staticmethod
    def format_hex(data: bytes) -> str:
        return " ".join(f"{b:02X}" for b in data)
