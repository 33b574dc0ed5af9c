"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from cmdutils.applog import AppLogger, StreamSink  # noqa: E402

# 测试用子进程脚本
CHATTY_CHILD = Path(__file__).parent / "fixtures" / "chatty_child.py"


@pytest.fixture
def chatty_argv() -> list[str]:
    """运行 chatty_child.py 的命令前缀。"""
    return [sys.executable, str(CHATTY_CHILD)]


@pytest.fixture
def out_buffer() -> io.StringIO:
    """捕获 out sink 输出。"""
    return io.StringIO()


@pytest.fixture
def err_buffer() -> io.StringIO:
    """捕获 err sink 输出。"""
    return io.StringIO()


@pytest.fixture
def verbose_logger(out_buffer: io.StringIO, err_buffer: io.StringIO) -> AppLogger:
    """写入内存缓冲区的 verbose logger（无颜色）。"""
    return AppLogger(StreamSink(out_buffer), StreamSink(err_buffer), verbose=True)


@pytest.fixture
def quiet_logger(out_buffer: io.StringIO, err_buffer: io.StringIO) -> AppLogger:
    """写入内存缓冲区的非 verbose logger（无颜色）。"""
    return AppLogger(StreamSink(out_buffer), StreamSink(err_buffer), verbose=False)
