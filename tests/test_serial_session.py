#!/usr/bin/env python3
"""
串口会话测试
============

测试 serial_assistant.core.serial_session 模块。

串口测试涉及硬件设备，这里用两种方式替代：
- patch serial.serial_for_url，返回模拟的串口对象
- pyserial 自带的 loop:// 回环串口，写入的数据会被原样读回
"""

import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import serial

from serial_assistant.config.constants import THREAD_JOIN_TIMEOUT
from serial_assistant.core.serial_session import SerialSession, ConnectionState
from serial_assistant.config.settings import SessionConfig
from serial_assistant.errors import (
    AlreadyOpenError,
    DeviceLostError,
    InvalidConfigError,
    NotOpenError,
    PortUnavailableError,
    WriteFailedError,
)


def make_mock_port(chunks=(), read_error=None):
    """
    创建模拟串口对象

    Args:
        chunks: 依次被读取到的数据
        read_error: 数据读完后抛出的异常，None表示之后一直读不到数据
    """
    port = MagicMock()
    port.port = "COM1"
    port.in_waiting = 0
    pending = list(chunks)

    def read(size=1):
        if pending:
            return pending.pop(0)
        if read_error is not None:
            raise read_error
        time.sleep(0.01)
        return b""

    port.read.side_effect = read
    port.write.side_effect = lambda data: len(data)
    return port


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def config():
    return SessionConfig(port_name="COM1", baud_rate=9600)


@pytest.fixture
def mock_port():
    return make_mock_port()


@pytest.fixture
def session():
    session = SerialSession()
    yield session
    session.close()


class TestSerialSessionLifecycle:
    """打开/关闭和状态转换"""

    def test_init(self, session):
        assert session.state is ConnectionState.CLOSED
        assert session.is_open is False
        assert session.config is None

    def test_open_success(self, session, config, mock_port):
        with patch("serial.serial_for_url", return_value=mock_port) as mock_for_url:
            session.open(config)

        assert session.state is ConnectionState.OPEN
        assert session.config == config
        mock_for_url.assert_called_once_with("COM1", **config.to_serial_kwargs())
        assert session.get_statistics()["running"] is True

    def test_open_invalid_config(self, session):
        with patch("serial.serial_for_url") as mock_for_url:
            with pytest.raises(InvalidConfigError):
                session.open(SessionConfig(port_name="COM1", data_bits=9))

        mock_for_url.assert_not_called()
        assert session.state is ConnectionState.CLOSED

    def test_open_failure(self, session, config):
        with patch("serial.serial_for_url", side_effect=serial.SerialException("busy")):
            with pytest.raises(PortUnavailableError):
                session.open(config)

        assert session.state is ConnectionState.CLOSED

    def test_open_rejected_parameters(self, session, config):
        """驱动拒绝参数时 pyserial 抛出 ValueError"""
        with patch("serial.serial_for_url", side_effect=ValueError("bad baud")):
            with pytest.raises(PortUnavailableError):
                session.open(config)

    def test_open_nonexistent_port(self, session):
        config = SessionConfig(port_name="/dev/ttyDOES_NOT_EXIST_42", data_bits=8)

        with pytest.raises(PortUnavailableError):
            session.open(config)

        assert session.state is ConnectionState.CLOSED

    def test_reopen_after_failure(self, session, config, mock_port):
        with patch("serial.serial_for_url", side_effect=serial.SerialException("busy")):
            with pytest.raises(PortUnavailableError):
                session.open(config)

        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        assert session.is_open

    def test_open_twice(self, session, config, mock_port):
        with patch("serial.serial_for_url", return_value=mock_port) as mock_for_url:
            session.open(config)
            with pytest.raises(AlreadyOpenError):
                session.open(config)

        assert mock_for_url.call_count == 1
        assert session.is_open

    def test_close(self, session, config, mock_port):
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        session.close()

        mock_port.close.assert_called_once()
        assert session.state is ConnectionState.CLOSED

    def test_close_is_idempotent(self, session, config, mock_port):
        session.close()

        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)
        session.close()
        session.close()

        mock_port.close.assert_called_once()

    def test_close_with_exception(self, session, config, mock_port):
        """关闭串口出错时仍然转为Closed"""
        mock_port.close.side_effect = serial.SerialException("close failed")
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        session.close()

        assert session.state is ConnectionState.CLOSED

    def test_connection_context(self, session, config, mock_port):
        with patch("serial.serial_for_url", return_value=mock_port):
            with session.connection(config):
                assert session.is_open

        assert not session.is_open


class TestSerialSessionSend:
    """发送测试"""

    def test_send_when_closed(self, session):
        with pytest.raises(NotOpenError):
            session.send(b"data")

        assert session.bytes_sent == 0

    def test_send_when_closed_after_close(self, session, config, mock_port):
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)
        session.close()

        with pytest.raises(NotOpenError):
            session.send(b"data")

        mock_port.write.assert_not_called()

    def test_send_success(self, session, config, mock_port):
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        assert session.send(b"\x01\x02\x03") == 3

        mock_port.write.assert_called_once_with(b"\x01\x02\x03")
        mock_port.flush.assert_called_once()
        assert session.bytes_sent == 3

    def test_send_write_failed(self, session, config, mock_port):
        """写入失败后串口仍然保持打开"""
        mock_port.write.side_effect = serial.SerialException("device removed")
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        with pytest.raises(WriteFailedError):
            session.send(b"data")

        assert session.is_open

    def test_send_partial_write(self, session, config, mock_port):
        mock_port.write.side_effect = lambda data: len(data) - 1
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        with pytest.raises(WriteFailedError):
            session.send(b"data")

    def test_writes_are_serialized(self, session, config, mock_port):
        """多个线程同时发送时，同一时间只有一个写入"""
        active = []
        max_active = []
        lock = threading.Lock()

        def slow_write(data):
            with lock:
                active.append(data)
                max_active.append(len(active))
            time.sleep(0.02)
            with lock:
                active.remove(data)
            return len(data)

        mock_port.write.side_effect = slow_write
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        threads = [
            threading.Thread(target=session.send, args=(bytes([i]),)) for i in range(5)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert max(max_active) == 1
        assert session.bytes_sent == 5

    def test_close_during_send(self, session, config, mock_port):
        """发送过程中关闭串口，发送以NotOpenError快速失败"""
        write_started = threading.Event()
        port_closed = threading.Event()

        def blocking_write(data):
            write_started.set()
            port_closed.wait(2.0)
            raise serial.SerialException("port closed")

        mock_port.write.side_effect = blocking_write
        mock_port.close.side_effect = port_closed.set
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        errors = []

        def do_send():
            try:
                session.send(b"data")
            except Exception as e:
                errors.append(e)

        sender = threading.Thread(target=do_send)
        sender.start()
        assert write_started.wait(1.0)

        session.close()
        sender.join(2.0)

        assert not sender.is_alive()
        assert len(errors) == 1
        assert isinstance(errors[0], NotOpenError)


class TestSerialSessionReceive:
    """接收测试"""

    def test_callback_receives_batches(self, config):
        received = []
        session = SerialSession(on_data_received=received.append)
        mock_port = make_mock_port([b"ab", b"c"])

        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)
        try:
            assert wait_until(lambda: b"".join(received) == b"abc")
        finally:
            session.close()

        assert session.get_received(timeout=0.1) == b"ab"
        assert session.get_received(timeout=0.1) == b"c"
        assert session.get_received(timeout=0.05) is None

    def test_clear_received(self, session, config):
        mock_port = make_mock_port([b"x"])
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)
        assert wait_until(lambda: session.get_statistics()["queue_size"] == 1)

        session.clear_received()

        assert session.get_received(timeout=0.05) is None

    def test_no_callback_after_close(self, config):
        received = []
        session = SerialSession(on_data_received=received.append)
        mock_port = make_mock_port()
        mock_port.read.side_effect = lambda size=1: (time.sleep(0.005), b"z")[1]

        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)
        assert wait_until(lambda: len(received) > 0)

        session.close()
        count = len(received)
        time.sleep(0.1)

        assert len(received) == count

    def test_close_waits_for_slow_callback(self, config):
        """回调阻塞超过线程等待超时时，close() 仍等到回调返回"""
        entered = threading.Event()
        calls = []

        def slow(data):
            calls.append("enter")
            entered.set()
            time.sleep(THREAD_JOIN_TIMEOUT + 0.5)
            calls.append("exit")

        session = SerialSession(on_data_received=slow)
        mock_port = make_mock_port([b"1", b"2"])
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)
        assert entered.wait(2.0)

        session.close()

        assert calls == ["enter", "exit"]
        time.sleep(0.1)
        assert calls == ["enter", "exit"]
        mock_port.close.assert_called_once()

    def test_close_from_callback(self, config):
        """在接收回调中关闭串口不会死锁"""
        session = SerialSession()
        session.on_data_received = lambda data: session.close()
        mock_port = make_mock_port([b"bye"])

        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        assert wait_until(lambda: not session.is_open)
        mock_port.close.assert_called_once()

    def test_callback_exception_does_not_stop_listener(self, config):
        received = []

        def flaky(data):
            received.append(data)
            if len(received) == 1:
                raise RuntimeError("ui error")

        session = SerialSession(on_data_received=flaky)
        mock_port = make_mock_port([b"1", b"2"])
        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)
        try:
            assert wait_until(lambda: received == [b"1", b"2"])
        finally:
            session.close()

    def test_device_lost(self, config):
        errors = []
        session = SerialSession(on_error=errors.append)
        mock_port = make_mock_port(read_error=serial.SerialException("device disconnected"))

        with patch("serial.serial_for_url", return_value=mock_port):
            session.open(config)

        assert wait_until(lambda: len(errors) == 1)
        assert isinstance(errors[0], DeviceLostError)
        assert session.state is ConnectionState.CLOSED
        mock_port.close.assert_called_once()

        with pytest.raises(NotOpenError):
            session.send(b"data")

        # 设备丢失后可以重新打开
        with patch("serial.serial_for_url", return_value=make_mock_port()):
            session.open(config)
        assert session.is_open
        session.close()
        assert len(errors) == 1


class TestSerialSessionLoopback:
    """使用 loop:// 回环串口的测试"""

    def test_send_and_receive(self):
        received = []
        session = SerialSession(on_data_received=received.append)

        with session.connection(SessionConfig(port_name="loop://", baud_rate=115200)):
            session.send(b"hello")
            assert wait_until(lambda: b"".join(received) == b"hello")

        assert session.get_statistics()["state"] == "closed"


class TestListPorts:
    """串口列表测试"""

    def test_list_available_ports(self):
        ports = [
            SimpleNamespace(device="COM1", description="USB Serial", hwid="USB VID:PID=1A86:7523"),
            SimpleNamespace(device="COM2", description="", hwid=None),
        ]
        with patch(
            "serial_assistant.core.serial_session.list_ports.comports", return_value=ports
        ):
            result = SerialSession.list_available_ports()

        assert result[0] == {
            "device": "COM1",
            "description": "USB Serial",
            "hwid": "USB VID:PID=1A86:7523",
        }
        assert result[1]["description"] == "未知设备"
        assert result[1]["hwid"] == "未知硬件ID"

    def test_list_available_ports_failure(self):
        with patch(
            "serial_assistant.core.serial_session.list_ports.comports",
            side_effect=OSError("no access"),
        ):
            assert SerialSession.list_available_ports() == []
