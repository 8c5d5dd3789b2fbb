"""
定时发送模块
============

按固定间隔重复调用发送动作。发送动作在定时线程中顺序执行，
一次发送耗时超过间隔时，错过的节拍直接跳过，不会并发执行。
"""

import threading
import time
from typing import Callable, Optional, Union

from ..config.constants import MIN_INTERVAL_SECONDS, THREAD_JOIN_TIMEOUT
from ..errors import SerialAssistantError, NotOpenError, InvalidIntervalError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SendAction = Callable[[], object]
ErrorCallback = Callable[[SerialAssistantError], None]


def parse_interval(value: Union[str, int]) -> int:
    """
    校验定时发送间隔

    Args:
        value: 用户输入的秒数（字符串或整数）

    Returns:
        间隔秒数

    Raises:
        InvalidIntervalError: 不是正整数
    """
    if isinstance(value, bool):
        raise InvalidIntervalError(f"时间间隔必须是整数: {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not text.isdecimal():
            raise InvalidIntervalError(f"时间间隔必须是整数: {value!r}")
        value = int(text)
    if not isinstance(value, int):
        raise InvalidIntervalError(f"时间间隔必须是整数: {value!r}")
    if value < MIN_INTERVAL_SECONDS:
        raise InvalidIntervalError(
            f"时间间隔不能小于{MIN_INTERVAL_SECONDS}秒: {value}"
        )
    return value


class TransmitScheduler:
    """定时发送器"""

    def __init__(self, on_error: Optional[ErrorCallback] = None):
        """
        Args:
            on_error: 发送动作失败时的回调，在定时线程中执行
        """
        self.on_error = on_error

        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._interval_seconds = MIN_INTERVAL_SECONDS

        self.ticks = 0

    @property
    def armed(self) -> bool:
        """定时器是否在运行"""
        thread = self._thread
        return (
            thread is not None
            and thread.is_alive()
            and not self._stop_event.is_set()
        )

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    def arm(self, interval_seconds: Union[str, int], send_action: SendAction) -> None:
        """
        启动定时发送，已启动时按新参数重新启动

        Args:
            interval_seconds: 发送间隔（秒），必须为正整数
            send_action: 每个节拍调用一次的发送动作

        Raises:
            InvalidIntervalError: 间隔不合法
        """
        interval = parse_interval(interval_seconds)
        self.disarm()

        with self._lock:
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._interval_seconds = interval
            self.ticks = 0
            self._thread = threading.Thread(
                target=self._run,
                args=(interval, send_action, stop_event),
                name="transmit-scheduler",
                daemon=True,
            )
            self._thread.start()

        logger.info(f"定时发送已启动，间隔 {interval} 秒")

    def disarm(self) -> None:
        """
        停止定时发送，可重复调用，也可在发送动作内部调用

        最多等待 THREAD_JOIN_TIMEOUT 秒。发送动作卡住超过这个时间时，
        旧线程在这次发送返回后才退出，期间重新 arm() 会有两个发送同时进行，
        写串口由 SerialSession 的写锁串行化。
        """
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            self._thread = None

        if thread is not threading.current_thread():
            thread.join(THREAD_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"定时线程未在{THREAD_JOIN_TIMEOUT}秒内结束")
        logger.info("定时发送已停止")

    def _run(
        self, interval: int, send_action: SendAction, stop_event: threading.Event
    ) -> None:
        """定时线程主循环"""
        next_tick = time.monotonic() + interval
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self.ticks += 1
            try:
                send_action()
            except NotOpenError as e:
                logger.warning(f"串口未打开，定时发送自动停止: {e}")
                self._stop_current()
                self._report(e)
                break
            except SerialAssistantError as e:
                logger.error(f"定时发送失败: {e}")
                self._report(e)
            except Exception as e:
                logger.error(f"定时发送异常: {e}")

            # 跳过发送期间错过的节拍
            next_tick += interval
            now = time.monotonic()
            while next_tick <= now:
                next_tick += interval

    def _stop_current(self) -> None:
        """定时线程内部停止自身；期间已被重新启动时不影响新的定时线程"""
        with self._lock:
            if self._thread is not threading.current_thread():
                return
            self._stop_event.set()
            self._thread = None
        logger.info("定时发送已停止")

    def _report(self, error: SerialAssistantError) -> None:
        callback = self.on_error
        if callback is None:
            return
        try:
            callback(error)
        except Exception as e:
            logger.error(f"错误回调异常: {e}")
