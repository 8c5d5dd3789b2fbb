"""
命令行接口模块
==============

提供交互式串口终端。
"""

from .console import SerialConsoleCLI, main

__all__ = [
    "SerialConsoleCLI",
    "main",
]
