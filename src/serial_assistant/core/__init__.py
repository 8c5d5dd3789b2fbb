"""
核心模块
========

包含数据帧编解码、串口会话、接收线程和定时发送等核心功能。
"""

from .frame_codec import FrameCodec
from .serial_session import SerialSession, ConnectionState
from .transmit_scheduler import TransmitScheduler, parse_interval
from .assistant import SerialAssistant

__all__ = [
    "FrameCodec",
    "SerialSession",
    "ConnectionState",
    "TransmitScheduler",
    "parse_interval",
    "SerialAssistant",
]
