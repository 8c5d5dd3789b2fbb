"""
接收线程模块
============

独立线程读取串口当前可用的全部字节，作为一批数据投递到队列并通知回调。

不做任何分帧：对端的一次写入可能被拆成多批，多次写入也可能合并为一批。
"""

import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import serial

from ..config.constants import READ_CHUNK_SIZE, THREAD_JOIN_TIMEOUT
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ReceivedBatch:
    """接收线程读取的一批数据"""

    data: bytes
    timestamp: float = 0.0

    def __post_init__(self):
        """添加接收时间戳"""
        if self.timestamp == 0.0:
            self.timestamp = time.time()


class ReceiveThread:
    """
    接收线程

    串口读取带超时，线程在每次读取返回后检查停止标志，
    因此 stop() 最多等待一个读取超时周期。
    """

    def __init__(
        self,
        port: serial.SerialBase,
        batch_queue: "queue.Queue[ReceivedBatch]",
        on_data: Callable[[bytes], None],
        on_failure: Callable[[Exception], None],
    ):
        """
        初始化接收线程

        Args:
            port: 已打开的串口对象
            batch_queue: 接收数据队列，满时丢弃最旧的一批
            on_data: 每收到一批数据调用一次，在接收线程中执行
            on_failure: 读取出错（设备丢失）时调用一次，之后线程退出
        """
        self.port = port
        self.batch_queue = batch_queue
        self._on_data = on_data
        self._on_failure = on_failure

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # 统计信息
        self.batches_received = 0
        self.bytes_received = 0
        self.batches_dropped = 0
        self.read_errors = 0

    def start(self) -> None:
        """启动接收线程"""
        if self.is_running:
            logger.warning("接收线程已经在运行")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._receive_loop, name="serial-receive", daemon=True
        )
        self._thread.start()
        logger.debug("接收线程已启动")

    def stop(self, timeout: Optional[float] = THREAD_JOIN_TIMEOUT) -> bool:
        """
        停止接收线程并等待其结束

        在接收线程自身（例如数据回调中）调用时只设置停止标志，不等待。
        超时返回时线程仍可能在执行当前这次数据回调。

        Args:
            timeout: 等待线程结束的超时时间(秒)，None表示一直等到线程结束

        Returns:
            线程已结束返回True，超时返回False
        """
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True

        thread.join(timeout)
        if thread.is_alive():
            logger.warning(f"接收线程未在{timeout}秒内结束")
            return False

        logger.debug("接收线程已停止")
        return True

    @property
    def is_running(self) -> bool:
        """检查接收线程是否在运行"""
        return self._thread is not None and self._thread.is_alive()

    def get_statistics(self) -> dict:
        """
        获取接收统计信息

        Returns:
            包含统计信息的字典
        """
        return {
            "running": self.is_running,
            "queue_size": self.batch_queue.qsize(),
            "batches_received": self.batches_received,
            "bytes_received": self.bytes_received,
            "batches_dropped": self.batches_dropped,
            "read_errors": self.read_errors,
        }

    def _receive_loop(self) -> None:
        """接收线程主循环"""
        while not self._stop_event.is_set():
            try:
                # 至少读1字节，阻塞到有数据或超时
                size = min(max(1, self.port.in_waiting), READ_CHUNK_SIZE)
                data = self.port.read(size)
                if not data:
                    continue

                pending = self.port.in_waiting
                if pending:
                    data += self.port.read(min(pending, READ_CHUNK_SIZE))

            except (serial.SerialException, OSError) as e:
                if self._stop_event.is_set():
                    break
                self.read_errors += 1
                logger.error(f"串口读取异常: {e}")
                self._on_failure(e)
                break

            if self._stop_event.is_set():
                break
            self._deliver(bytes(data))

        logger.debug("接收线程已结束")

    def _deliver(self, data: bytes) -> None:
        """入队并通知回调"""
        self.batches_received += 1
        self.bytes_received += len(data)
        logger.debug(f"收到 {len(data)} 字节")

        self._queue_batch(ReceivedBatch(data=data))
        try:
            self._on_data(data)
        except Exception as e:
            logger.error(f"接收回调异常: {e}")

    def _queue_batch(self, batch: ReceivedBatch) -> None:
        """
        将数据加入队列

        Args:
            batch: 要加入的数据
        """
        try:
            self.batch_queue.put_nowait(batch)
        except queue.Full:
            # 队列满，丢弃最老的数据
            try:
                self.batch_queue.get_nowait()
                self.batch_queue.put_nowait(batch)
                self.batches_dropped += 1
                logger.warning("接收队列满，丢弃旧数据")
            except (queue.Empty, queue.Full):
                self.batches_dropped += 1
