"""
串口助手引擎
============

把配置档、编解码器、串口会话和定时发送组合在一起，供界面层调用：

    界面参数 -> SessionConfig -> SerialSession.open
    用户输入 -> FrameCodec.encode -> SerialSession.send
    接收数据 -> FrameCodec.decode -> on_text_received
    退出时   -> SessionConfig 写回配置文件
"""

from typing import Callable, Optional, Union

from ..config.ini_file import IniFile
from ..config.profile import load_profile, save_profile
from ..config.settings import FrameMode, SessionConfig
from ..errors import SerialAssistantError
from ..utils.logger import get_logger
from .frame_codec import FrameCodec
from .serial_session import SerialSession
from .transmit_scheduler import TransmitScheduler

logger = get_logger(__name__)


class SerialAssistant:
    """串口助手引擎"""

    def __init__(self, store: IniFile, encoding: Optional[str] = None):
        """
        Args:
            store: 配置文件存储，启动时从中加载串口参数
            encoding: 字符串模式使用的编码，None表示系统默认编码
        """
        self.store = store
        self.config = load_profile(store)
        self.encoding = encoding

        # 发送和接收格式相互独立
        self.send_mode = FrameMode.TEXT
        self.receive_mode = FrameMode.TEXT

        self.on_text_received: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[SerialAssistantError], None]] = None

        self.session = SerialSession(
            on_data_received=self._handle_data, on_error=self._handle_error
        )
        self.scheduler = TransmitScheduler(on_error=self._handle_error)

    @property
    def is_open(self) -> bool:
        return self.session.is_open

    def open(self, config: Optional[SessionConfig] = None) -> None:
        """
        打开串口

        Args:
            config: 串口配置，None表示使用当前配置；打开成功后成为当前配置
        """
        config = config or self.config
        self.session.open(config)
        self.config = config

    def close(self) -> None:
        """停止定时发送并关闭串口"""
        self.scheduler.disarm()
        self.session.close()

    def send_text(self, text: str) -> int:
        """
        按发送格式编码并发送

        Returns:
            发送的字节数
        """
        data = FrameCodec.encode(text, self.send_mode, self.encoding)
        return self.session.send(data)

    def start_timed_send(self, interval_seconds: Union[str, int], text: str) -> None:
        """
        定时发送同一段输入

        启动前先按当前发送格式编码一次，输入不合法时立即抛出异常。
        """
        FrameCodec.encode(text, self.send_mode, self.encoding)
        self.scheduler.arm(interval_seconds, lambda: self.send_text(text))

    def stop_timed_send(self) -> None:
        self.scheduler.disarm()

    def save_profile(self) -> bool:
        """将当前串口参数写回配置文件"""
        return save_profile(self.store, self.config)

    def shutdown(self) -> None:
        """退出：停止定时发送、关闭串口并保存配置"""
        self.close()
        self.save_profile()
        logger.info("串口助手已退出")

    def _handle_data(self, data: bytes) -> None:
        callback = self.on_text_received
        if callback is not None:
            callback(FrameCodec.decode(data, self.receive_mode, self.encoding))

    def _handle_error(self, error: SerialAssistantError) -> None:
        callback = self.on_error
        if callback is not None:
            callback(error)

    def __enter__(self):
        """支持with语句"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """支持with语句"""
        self.shutdown()
