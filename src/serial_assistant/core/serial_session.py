"""
串口会话模块
============

管理唯一一条串口连接：打开/关闭、同步发送、后台接收通知。

状态转换：Closed --open(config)--> Open --close()--> Closed
设备在打开期间被移除时，通过 on_error 回调上报 DeviceLostError 并转为 Closed。
"""

import queue
import threading
from contextlib import contextmanager
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional

import serial
from serial.tools import list_ports

from ..config.constants import RECEIVE_QUEUE_SIZE
from ..config.settings import SessionConfig
from ..errors import (
    SerialAssistantError,
    AlreadyOpenError,
    NotOpenError,
    PortUnavailableError,
    WriteFailedError,
    DeviceLostError,
)
from ..utils.logger import get_logger
from .receive_thread import ReceiveThread, ReceivedBatch

logger = get_logger(__name__)

DataCallback = Callable[[bytes], None]
ErrorCallback = Callable[[SerialAssistantError], None]


class ConnectionState(Enum):
    """串口连接状态"""

    CLOSED = "closed"
    OPEN = "open"


class SerialSession:
    """
    串口会话

    回调在接收线程中执行，不能假设与调用 open() 的是同一线程，
    回调内应尽快返回；需要在其他线程处理时可改用 get_received() 轮询队列。
    """

    def __init__(
        self,
        on_data_received: Optional[DataCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        queue_size: int = RECEIVE_QUEUE_SIZE,
    ):
        """
        初始化串口会话

        Args:
            on_data_received: 收到一批数据时的回调
            on_error: 后台错误（设备丢失）回调
            queue_size: 接收队列最多缓存的批次数
        """
        self.on_data_received = on_data_received
        self.on_error = on_error

        self._config: Optional[SessionConfig] = None
        self._port: Optional[serial.SerialBase] = None
        self._receive_thread: Optional[ReceiveThread] = None
        self._receive_queue: "queue.Queue[ReceivedBatch]" = queue.Queue(
            maxsize=queue_size
        )

        # 状态锁保护 _port/_receive_thread，写锁保证同一时间只有一个写入者
        self._state_lock = threading.Lock()
        self._write_lock = threading.Lock()

        self.bytes_sent = 0

    @property
    def config(self) -> Optional[SessionConfig]:
        """最近一次成功打开时使用的配置"""
        return self._config

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.OPEN if self._port is not None else ConnectionState.CLOSED

    @property
    def is_open(self) -> bool:
        """检查串口是否已打开"""
        return self._port is not None

    def open(self, config: SessionConfig) -> None:
        """
        按配置打开串口并启动接收线程

        Args:
            config: 串口会话配置

        Raises:
            InvalidConfigError: 配置参数不合法
            AlreadyOpenError: 串口已经打开
            PortUnavailableError: 串口不存在、被占用或参数被驱动拒绝
        """
        config.validate()

        with self._state_lock:
            if self._port is not None:
                logger.warning(f"串口 {self._config.port_name} 已经打开")
                raise AlreadyOpenError(f"串口 {self._config.port_name} 已经打开")

            try:
                port = serial.serial_for_url(
                    config.port_name, **config.to_serial_kwargs()
                )
            except (serial.SerialException, ValueError, OSError) as e:
                logger.error(f"打开串口 {config.port_name} 失败: {e}")
                raise PortUnavailableError(
                    f"无法打开串口 {config.port_name}: {e}"
                ) from e

            self._port = port
            self._config = config
            self._receive_thread = ReceiveThread(
                port,
                self._receive_queue,
                on_data=self._handle_data,
                on_failure=partial(self._handle_device_lost, port),
            )
            self._receive_thread.start()

        logger.info(f"成功打开串口 {config.describe()}")

    def close(self) -> None:
        """
        关闭串口，重复调用无副作用

        先等待接收线程结束再释放串口，返回后不会再有数据回调。
        回调阻塞时 close() 会一直等到回调返回；在回调中调用时只通知线程退出。
        正在进行的发送会因串口被关闭而以 NotOpenError 失败。
        """
        with self._state_lock:
            port, receive_thread = self._port, self._receive_thread
            if port is None:
                return
            self._port = None
            self._receive_thread = None

        if receive_thread is not None:
            receive_thread.stop(timeout=None)
        self._release_port(port)
        logger.info(f"已关闭串口 {port.port}")

    def send(self, data: bytes) -> int:
        """
        同步写入全部数据

        Args:
            data: 要发送的字节

        Returns:
            写入的字节数

        Raises:
            NotOpenError: 串口未打开
            WriteFailedError: 驱动层写入失败
        """
        with self._write_lock:
            port = self._port
            if port is None:
                logger.error("串口未打开，无法写入数据")
                raise NotOpenError("串口未打开")

            try:
                written = port.write(data)
                port.flush()
            except Exception as e:
                if self._port is not port:
                    raise NotOpenError("发送过程中串口已关闭") from e
                if isinstance(e, (serial.SerialException, OSError)):
                    logger.error(f"写入数据失败: {e}")
                    raise WriteFailedError(f"写入数据失败: {e}") from e
                raise

            if written is not None and written != len(data):
                logger.error(f"写入不完整: {written}/{len(data)}")
                raise WriteFailedError(f"写入不完整: {written}/{len(data)} 字节")

            self.bytes_sent += len(data)
            logger.debug(f"发送 {len(data)} 字节")
            return len(data)

    def get_received(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """
        从接收队列取出一批数据

        Args:
            timeout: 超时时间(秒)，None表示阻塞等待

        Returns:
            收到的数据，超时返回None
        """
        try:
            return self._receive_queue.get(timeout=timeout).data
        except queue.Empty:
            return None

    def clear_received(self) -> None:
        """清空接收队列"""
        while True:
            try:
                self._receive_queue.get_nowait()
            except queue.Empty:
                break

    def get_statistics(self) -> dict:
        """获取收发统计信息"""
        receive_thread = self._receive_thread
        stats = receive_thread.get_statistics() if receive_thread else {}
        stats.update(
            {
                "state": self.state.value,
                "bytes_sent": self.bytes_sent,
                "queue_size": self._receive_queue.qsize(),
            }
        )
        return stats

    def _handle_data(self, data: bytes) -> None:
        callback = self.on_data_received
        if callback is not None:
            callback(data)

    def _handle_device_lost(self, port: serial.SerialBase, error: Exception) -> None:
        """接收线程读取失败时调用，在接收线程中执行"""
        with self._state_lock:
            if self._port is not port:
                return
            self._port = None
            self._receive_thread = None

        self._release_port(port)
        logger.error(f"串口 {port.port} 设备丢失: {error}")
        self._emit_error(DeviceLostError(f"串口 {port.port} 设备丢失: {error}"))

    def _emit_error(self, error: SerialAssistantError) -> None:
        callback = self.on_error
        if callback is None:
            return
        try:
            callback(error)
        except Exception as e:
            logger.error(f"错误回调异常: {e}")

    @staticmethod
    def _release_port(port: serial.SerialBase) -> None:
        try:
            port.close()
        except (serial.SerialException, OSError) as e:
            logger.error(f"关闭串口失败: {e}")

    @contextmanager
    def connection(self, config: SessionConfig):
        """
        上下文管理器，自动管理串口连接

        Examples:
            >>> session = SerialSession()
            >>> with session.connection(SessionConfig(port_name='COM1')):
            ...     session.send(b'hello')
        """
        self.open(config)
        try:
            yield self
        finally:
            self.close()

    @staticmethod
    def list_available_ports() -> List[Dict[str, str]]:
        """
        获取系统可用的串口列表

        Returns:
            串口信息列表，每个元素包含device、description、hwid字段
        """
        try:
            return [
                {
                    "device": port_info.device,
                    "description": port_info.description or "未知设备",
                    "hwid": port_info.hwid or "未知硬件ID",
                }
                for port_info in list_ports.comports()
            ]
        except Exception as e:
            logger.error(f"获取串口列表失败: {e}")
            return []

    def __enter__(self):
        """支持with语句"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """支持with语句"""
        self.close()
