#!/usr/bin/env python3
"""
回环收发示例
============

演示如何在没有硬件的情况下使用串口助手引擎：
使用 pyserial 的 loop:// 回环串口，发送的数据会被原样收到。
- 字符串格式发送，16进制格式显示
- 定时发送
"""

import sys
import tempfile
import time
from pathlib import Path

# 添加src路径到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from serial_assistant import FrameMode, IniFile, SerialAssistant, SessionConfig
from serial_assistant.errors import SerialAssistantError


def main():
    """主函数"""
    print("串口通信助手 - 回环收发示例")
    print("=" * 40)

    with tempfile.TemporaryDirectory() as tmp_dir:
        with IniFile(Path(tmp_dir) / "Cfg.ini") as store:
            with SerialAssistant(store, encoding="utf-8") as assistant:
                assistant.on_text_received = lambda text: print(f"⬇️  {text}")
                assistant.on_error = lambda error: print(f"❌ {error}")
                assistant.receive_mode = FrameMode.HEX

                try:
                    assistant.open(SessionConfig(port_name="loop://", baud_rate=115200))
                    print(f"📡 {assistant.config.describe()}")

                    assistant.send_text("hello")
                    time.sleep(0.5)

                    print("定时发送 3 秒...")
                    assistant.start_timed_send(1, "tick")
                    time.sleep(3.5)
                    assistant.stop_timed_send()
                except SerialAssistantError as e:
                    print(f"\n💥 程序异常: {e}")


if __name__ == "__main__":
    main()
