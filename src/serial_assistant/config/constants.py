"""
系统常量定义
============

定义串口参数的合法取值、默认值以及配置文件的分区和键名。
"""

from typing import Final, Tuple

# 配置文件
CONFIG_FILE_NAME: Final[str] = "Cfg.ini"  # 配置文件名，位于程序所在目录
CONFIG_SECTION: Final[str] = "CONFIG"  # 串口参数所在分区

KEY_PORT_NAME: Final[str] = "PortName"
KEY_BAUD_RATE: Final[str] = "BaudRate"
KEY_DATA_BITS: Final[str] = "DataBits"
KEY_STOP_BITS: Final[str] = "StopBits"
KEY_PARITY: Final[str] = "Parity"

# 串口配置默认值
DEFAULT_PORT_NAME: Final[str] = ""
DEFAULT_BAUDRATE: Final[int] = 4800  # 默认波特率
DEFAULT_DATA_BITS: Final[int] = 8  # 默认数据位
DEFAULT_STOP_BITS: Final[float] = 1  # 默认停止位
DEFAULT_PARITY: Final[str] = "NONE"  # 默认校验位

# 合法取值
VALID_DATA_BITS: Final[Tuple[int, ...]] = (5, 6, 7, 8)
STANDARD_BAUDRATES: Final[Tuple[int, ...]] = (
    300,
    600,
    1200,
    2400,
    4800,
    9600,
    19200,
    38400,
    115200,
)

# 接收线程
READ_TIMEOUT: Final[float] = 0.1  # 串口读取超时(秒)，决定接收线程的停止响应时间
READ_CHUNK_SIZE: Final[int] = 4096  # 单次最多读取的字节数
RECEIVE_QUEUE_SIZE: Final[int] = 256  # 接收队列最多缓存的批次数
THREAD_JOIN_TIMEOUT: Final[float] = 2.0  # 等待后台线程结束的超时时间(秒)

# 定时发送
MIN_INTERVAL_SECONDS: Final[int] = 1  # 定时发送的最小间隔(秒)
