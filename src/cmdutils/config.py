"""cmdutils 环境变量配置管理。

环境变量:
    CMDUTILS_VERBOSE: 控制台 logger 是否为 verbose 模式
        - true/1/yes/on = 开启
        - 其他/未设置 = 关闭 (默认)

    CMDUTILS_COLOR: 彩色输出模式
        - auto = 仅当输出流是终端时着色 (默认)
        - always = 总是着色
        - never = 从不着色

    NO_COLOR: 任意非空值 = 强制 never

    CMDUTILS_LOG_DEBUG: 诊断日志调试模式
        - true/1/yes = 开启 (诊断日志以 DEBUG 级别输出到临时文件)
        - false/0/no = 关闭 (默认，INFO 级别输出到 stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TextIO

from .colors import detect_color_support

__all__ = ["ColorMode", "Config", "load_config", "get_config", "reload_config"]


class ColorMode(Enum):
    """彩色输出模式。

    - AUTO: 输出流是终端时着色
    - ALWAYS: 总是着色
    - NEVER: 从不着色
    """

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"

    @classmethod
    def from_string(cls, value: str) -> "ColorMode":
        """从字符串解析模式。

        Args:
            value: 模式字符串 (auto/always/never)

        Returns:
            对应的 ColorMode 枚举值，无效值返回 AUTO
        """
        value = value.lower().strip()
        for mode in cls:
            if mode.value == value:
                return mode
        return cls.AUTO  # 默认值


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower().strip() in ("true", "1", "yes", "on")


def _parse_color_mode(value: str | None, no_color: str | None) -> ColorMode:
    """解析彩色模式环境变量，NO_COLOR 优先。"""
    if no_color:
        return ColorMode.NEVER
    if not value:
        return ColorMode.AUTO
    return ColorMode.from_string(value)


@dataclass
class Config:
    """cmdutils 配置。

    Attributes:
        verbose: 控制台 logger 是否为 verbose 模式
        color_mode: 彩色输出模式
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    verbose: bool = False
    color_mode: ColorMode = ColorMode.AUTO
    log_debug: bool = False
    log_file: str | None = None

    def color_enabled(self, stream: TextIO | None = None) -> bool:
        """判断给定输出流是否应当着色。"""
        if self.color_mode is ColorMode.ALWAYS:
            return True
        if self.color_mode is ColorMode.NEVER:
            return False
        return detect_color_support(stream)

    def __repr__(self) -> str:
        return (
            f"Config(verbose={self.verbose}, "
            f"color_mode={self.color_mode.value}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "cmdutils"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"cmdutils_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("CMDUTILS_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        verbose=_parse_bool(os.environ.get("CMDUTILS_VERBOSE"), default=False),
        color_mode=_parse_color_mode(
            os.environ.get("CMDUTILS_COLOR"),
            os.environ.get("NO_COLOR"),
        ),
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
