"""
交互式串口终端
==============

选择串口后直接输入内容发送，收到的数据实时打印；以 / 开头的输入为命令。
"""

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

from ..config.constants import STANDARD_BAUDRATES
from ..config.ini_file import IniFile
from ..config.profile import default_config_path
from ..config.settings import FrameMode, SessionConfig
from ..core.assistant import SerialAssistant
from ..core.serial_session import SerialSession
from ..errors import SerialAssistantError
from ..utils.logger import get_logger, set_level

logger = get_logger(__name__)

HELP_TEXT = """\
命令列表：
  /hex            发送格式切换为16进制（字节之间用空格或逗号隔开）
  /text           发送格式切换为字符串
  /rhex           接收格式切换为16进制
  /rtext          接收格式切换为字符串
  /timer N [内容] 每N秒发送一次内容（省略内容时使用上一次发送的内容）
  /stop           停止定时发送
  /set 参数 值    修改串口参数（baud/databits/stopbits/parity），串口打开时自动重新打开
  /open           按当前参数重新打开串口
  /debug on|off   打开或关闭调试日志
  /status         显示串口状态和收发统计
  /save           保存串口参数
  /clear          清屏
  /help           显示本帮助
  /quit           退出"""

# /set 命令的参数名 -> SessionConfig字段及类型转换
SETTABLE_FIELDS = {
    "baud": ("baud_rate", int),
    "databits": ("data_bits", int),
    "stopbits": ("stop_bits", float),
    "parity": ("parity", str.upper),
}


class SerialConsoleCLI:
    """交互式串口终端"""

    def __init__(self, assistant: SerialAssistant):
        self.assistant = assistant
        self.last_text: Optional[str] = None
        assistant.on_text_received = self.print_received
        assistant.on_error = self.print_error

    @staticmethod
    def print_received(text: str) -> None:
        print(f"⬇️  {text}", flush=True)

    @staticmethod
    def print_error(error: SerialAssistantError) -> None:
        print(f"❌ [{error.kind.value}] {error}", flush=True)

    @staticmethod
    def get_user_input_port(default: str = "") -> Optional[str]:
        """获取用户选择的串口号，可输入序号或直接输入串口名"""
        ports = SerialSession.list_available_ports()

        if ports:
            print("可用的串口列表:")
            for i, port in enumerate(ports, 1):
                print(f"  {i}. {port['device']} - {port['description']}")
        else:
            print("❌ 没有找到可用的串口，可以直接输入串口名。")

        hint = f"（回车使用 {default}）" if default else ""
        while True:
            try:
                choice = input(f"\n请选择串口序号或输入串口名{hint}: ").strip()
            except (KeyboardInterrupt, EOFError):
                print("\n用户取消选择")
                return None

            if not choice:
                if default:
                    return default
                print("请输入有效的选择。")
                continue

            if choice.isdecimal() and ports:
                index = int(choice) - 1
                if 0 <= index < len(ports):
                    return ports[index]["device"]
                print(f"请输入1到{len(ports)}之间的数字。")
                continue

            return choice

    def show_status(self) -> None:
        assistant = self.assistant
        state = "已打开" if assistant.is_open else "已关闭"
        stats = assistant.session.get_statistics()
        print(f"📡 {assistant.config.describe()} | 状态:{state}")
        print(
            f"   发送格式:{assistant.send_mode.value} 接收格式:{assistant.receive_mode.value} | "
            f"已发送 {stats['bytes_sent']} 字节，已接收 {stats.get('bytes_received', 0)} 字节"
        )
        if assistant.scheduler.armed:
            print(f"   定时发送中，间隔 {assistant.scheduler.interval_seconds} 秒")

    def set_parameter(self, name: str, value: str) -> None:
        """修改串口参数，串口打开时按新参数重新打开"""
        if name not in SETTABLE_FIELDS:
            print(f"未知参数: {name}，可选 {', '.join(SETTABLE_FIELDS)}")
            return

        field, convert = SETTABLE_FIELDS[name]
        try:
            new_config = dataclasses.replace(self.assistant.config, **{field: convert(value)})
        except ValueError:
            print(f"参数值无效: {value}")
            return

        if name == "baud" and new_config.baud_rate not in STANDARD_BAUDRATES:
            print(f"⚠️  {new_config.baud_rate} 不是常用波特率")

        try:
            new_config.validate_parameters()
        except SerialAssistantError as e:
            self.print_error(e)
            return

        if not self.assistant.is_open:
            self.assistant.config = new_config
            print(f"✅ {new_config.describe()}")
            return

        self.assistant.close()
        try:
            self.assistant.open(new_config)
        except SerialAssistantError as e:
            self.print_error(e)
            self.assistant.config = new_config
            print("串口已关闭，使用 /open 重新打开")
            return
        print(f"✅ {new_config.describe()}")

    def open_port(self) -> None:
        """按当前参数重新打开串口"""
        if self.assistant.is_open:
            print("串口已经打开")
            return
        self.assistant.open()
        self.show_status()

    def handle_command(self, line: str) -> bool:
        """
        执行一条命令

        Returns:
            需要退出时返回False
        """
        parts = line[1:].split(maxsplit=2)
        command = parts[0].lower() if parts else ""
        assistant = self.assistant

        if command in ("quit", "exit"):
            return False
        if command == "hex":
            assistant.send_mode = FrameMode.HEX
        elif command == "text":
            assistant.send_mode = FrameMode.TEXT
        elif command == "rhex":
            assistant.receive_mode = FrameMode.HEX
        elif command == "rtext":
            assistant.receive_mode = FrameMode.TEXT
        elif command == "timer":
            if len(parts) < 2:
                print("用法: /timer N [内容]")
                return True
            text = parts[2] if len(parts) > 2 else self.last_text
            if text is None:
                print("没有可发送的内容")
                return True
            assistant.start_timed_send(parts[1], text)
            self.last_text = text
        elif command == "open":
            self.open_port()
            return True
        elif command == "debug":
            enabled = len(parts) < 2 or parts[1].lower() != "off"
            set_level(logging.DEBUG if enabled else logging.INFO)
            print(f"调试日志已{'打开' if enabled else '关闭'}")
            return True
        elif command == "stop":
            assistant.stop_timed_send()
        elif command == "set":
            if len(parts) < 3:
                print("用法: /set 参数 值")
                return True
            self.set_parameter(parts[1].lower(), parts[2])
            return True
        elif command == "status":
            self.show_status()
            return True
        elif command == "save":
            if assistant.save_profile():
                print("✅ 串口参数已保存")
            else:
                print("❌ 保存失败")
            return True
        elif command == "clear":
            assistant.session.clear_received()
            print("\033[2J\033[H", end="", flush=True)
            return True
        else:
            print(HELP_TEXT)
            return True

        self.show_status()
        return True

    def handle_line(self, line: str) -> bool:
        """处理一行输入，返回False表示退出"""
        if line.startswith("/"):
            try:
                return self.handle_command(line)
            except SerialAssistantError as e:
                self.print_error(e)
                return True

        if not line:
            return True
        try:
            sent = self.assistant.send_text(line)
            self.last_text = line
            logger.debug(f"已发送 {sent} 字节")
        except SerialAssistantError as e:
            self.print_error(e)
        return True

    def run(self) -> None:
        """读取输入直到 /quit 或 EOF"""
        print("输入内容回车发送，/help 查看命令。")
        while True:
            try:
                line = input()
            except (KeyboardInterrupt, EOFError):
                print()
                break
            if not self.handle_line(line.rstrip("\r\n")):
                break


def main(config_path: Optional[Path] = None) -> bool:
    """
    终端入口：加载配置、选择并打开串口、进入收发循环，退出时保存配置

    Returns:
        正常退出返回True
    """
    with IniFile(config_path or default_config_path()) as store:
        assistant = SerialAssistant(store)
        cli = SerialConsoleCLI(assistant)

        port = cli.get_user_input_port(default=assistant.config.port_name)
        if not port:
            return False

        config: SessionConfig = dataclasses.replace(assistant.config, port_name=port)
        try:
            assistant.open(config)
        except SerialAssistantError as e:
            cli.print_error(e)
            return False

        try:
            cli.show_status()
            cli.run()
        finally:
            assistant.shutdown()
    return True


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
