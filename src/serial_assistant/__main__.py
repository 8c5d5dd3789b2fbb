#!/usr/bin/env python3
"""
串口通信助手 - 模块入口
=======================

支持通过 python -m serial_assistant 调用，启动交互式串口终端。
"""

import sys

from .cli.console import main
from .utils.logger import get_logger

logger = get_logger(__name__)


def run() -> None:
    """主函数"""
    try:
        success = main()
    except KeyboardInterrupt:
        print("\n\n👋 用户中断程序，退出")
        sys.exit(1)
    except Exception as e:
        logger.error(f"程序异常: {e}")
        print(f"\n💥 程序异常: {e}")
        sys.exit(1)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    run()
