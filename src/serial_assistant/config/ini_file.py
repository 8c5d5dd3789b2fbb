"""
INI配置文件模块
===============

提供按分区组织的字符串键值存储，底层为普通的INI文本文件。

- 分区名和键名区分大小写
- 读取失败（文件不存在、无法解析）时返回默认值，不抛出异常
- 每次写入立即落盘，关闭时再刷新一次
"""

import configparser
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Union

from ..utils.logger import get_logger

logger = get_logger(__name__)


def _is_valid_name(name: Optional[str]) -> bool:
    """分区名不能为空，也不能包含NUL或换行"""
    return bool(name) and not any(ch in name for ch in ("\0", "\r", "\n"))


def _is_valid_key(key: Optional[str]) -> bool:
    """
    键名还需要能被原样读回：

    - 首尾不能有空白（首字符为空白会被当作上一行的续行）
    - 不能以 # ; [ 开头（会被读成注释或分区头）
    - 不能包含 =（分隔符）
    """
    return (
        _is_valid_name(key)
        and key == key.strip()
        and not key.startswith(("#", ";", "["))
        and "=" not in key
    )


def _is_valid_value(value: str) -> bool:
    """值的首尾空白在读回时会被去掉，多行值也无法原样读回"""
    return value == value.strip() and not any(ch in value for ch in ("\0", "\r", "\n"))


class IniFile:
    """INI文件键值存储"""

    def __init__(self, file_name: Union[str, Path]):
        """
        初始化并加载配置文件

        Args:
            file_name: 配置文件路径，文件不存在时视为空配置
        """
        self._file_name = Path(file_name)
        self._lock = threading.RLock()
        self._parser = self._new_parser()
        self._load()

    @property
    def file_name(self) -> Path:
        """配置文件路径"""
        return self._file_name

    @staticmethod
    def _new_parser() -> configparser.ConfigParser:
        # 空字符串不可能出现在 [section] 行中，因此不会与真实分区冲突
        parser = configparser.ConfigParser(
            interpolation=None, delimiters=("=",), default_section=""
        )
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        return parser

    def _load(self) -> None:
        """从文件加载，失败时退化为空配置"""
        if not self._file_name.exists():
            logger.debug(f"配置文件不存在，使用默认值: {self._file_name}")
            return

        try:
            with open(self._file_name, "r", encoding="utf-8") as f:
                self._parser.read_file(f)
            logger.debug(f"已加载配置文件: {self._file_name}")
        except (OSError, UnicodeDecodeError, configparser.Error) as e:
            logger.warning(f"读取配置文件失败，使用默认值: {e}")
            self._parser = self._new_parser()

    def read_string(self, section: str, key: str, default: str) -> str:
        """
        读取字符串值

        Args:
            section: 分区名
            key: 键名
            default: 分区或键不存在时返回的默认值

        Returns:
            读取到的字符串，读取失败时返回default
        """
        if not (_is_valid_name(section) and _is_valid_name(key)):
            return default
        with self._lock:
            return self._parser.get(section, key, fallback=default)

    def write_string(self, section: str, key: str, value: str) -> bool:
        """
        写入字符串值，分区不存在时自动创建

        键名或值无法被原样读回时拒绝写入，不影响已有内容。

        Returns:
            写入并落盘成功返回True
        """
        if not (_is_valid_name(section) and _is_valid_key(key)):
            logger.error(f"非法的分区名或键名: [{section!r}] {key!r}")
            return False
        value = str(value)
        if not _is_valid_value(value):
            logger.error(f"值首尾不能有空白或换行: {key}={value!r}")
            return False
        with self._lock:
            if not self._parser.has_section(section):
                self._parser.add_section(section)
            self._parser.set(section, key, value)
            return self.update_file()

    def read_section(self, section: str) -> List[str]:
        """读取分区下的键名列表，分区不存在时返回空列表"""
        with self._lock:
            if not _is_valid_name(section) or not self._parser.has_section(section):
                return []
            return list(self._parser[section].keys())

    def read_section_values(self, section: str) -> List[str]:
        """读取分区下的全部内容，格式为 "键=值" """
        with self._lock:
            return [
                f"{key}={self.read_string(section, key, '')}"
                for key in self.read_section(section)
            ]

    def read_sections(self) -> List[str]:
        """读取全部分区名"""
        with self._lock:
            return self._parser.sections()

    def section_exists(self, section: str) -> bool:
        return section in self.read_sections()

    def value_exists(self, section: str, key: str) -> bool:
        return key in self.read_section(section)

    def erase_section(self, section: str) -> bool:
        """删除整个分区，分区不存在也视为成功"""
        with self._lock:
            if _is_valid_name(section) and self._parser.has_section(section):
                self._parser.remove_section(section)
                return self.update_file()
            return True

    def delete_key(self, section: str, key: str) -> bool:
        """删除指定键，键不存在也视为成功"""
        with self._lock:
            if (
                _is_valid_name(section)
                and _is_valid_name(key)
                and self._parser.has_option(section, key)
            ):
                self._parser.remove_option(section, key)
                return self.update_file()
            return True

    def update_file(self) -> bool:
        """
        将内存中的配置写回文件

        先写入同目录下的临时文件再替换原文件，避免写到一半时留下损坏的配置。

        Returns:
            成功返回True，失败返回False
        """
        with self._lock:
            tmp_name = None
            try:
                directory = self._file_name.parent
                directory.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=directory,
                    prefix=f".{self._file_name.name}.",
                    delete=False,
                ) as f:
                    tmp_name = f.name
                    self._parser.write(f)
                os.replace(tmp_name, self._file_name)
                return True
            except OSError as e:
                logger.error(f"写入配置文件失败: {e}")
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                return False

    def close(self) -> None:
        """关闭存储，最后刷新一次文件"""
        self.update_file()

    def __enter__(self):
        """支持with语句"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """支持with语句，任何退出路径都会刷新文件"""
        self.close()
