"""ANSI terminal colors.

Only the pieces the console logger needs: the color codes, wrapping and
stripping them, and deciding whether a stream can render them.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from enum import Enum
from typing import TextIO

__all__ = [
    "RESET",
    "TerminalColor",
    "colorize",
    "detect_color_support",
    "strip_colors",
]

RESET = "\x1b[0m"

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


class TerminalColor(str, Enum):
    """ANSI color escape codes."""

    BLUE = "\x1b[34m"
    BRIGHT_RED = "\x1b[31;1m"
    CYAN = "\x1b[36m"
    GREEN = "\x1b[32m"
    PURPLE = "\x1b[35m"
    RED = "\x1b[31m"
    WHITE = "\x1b[37m"
    YELLOW = "\x1b[33m"


def colorize(text: str, color: TerminalColor, enabled: bool = True) -> str:
    """Wrap text in a color code and a reset code.

    Args:
        text: Text to wrap
        color: Color to apply
        enabled: When False the text is returned unchanged

    Returns:
        The (possibly) colorized text
    """
    if not enabled:
        return text
    return f"{color.value}{text}{RESET}"


def strip_colors(text: str) -> str:
    """Remove every ANSI color sequence from text."""
    return _ANSI_PATTERN.sub("", text)


def detect_color_support(
    stream: TextIO | None = None,
    env: Mapping[str, str] | None = None,
) -> bool:
    """Check whether a stream is an interactive terminal that renders colors.

    Args:
        stream: Stream to probe (None = no stream, never colored)
        env: Environment to consult (None = os.environ)

    Returns:
        True if the stream is a TTY, NO_COLOR is unset and TERM is not "dumb"
    """
    environ = os.environ if env is None else env
    if environ.get("NO_COLOR"):
        return False
    if environ.get("TERM", "").lower() == "dumb":
        return False
    if stream is None:
        return False
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        # closed or detached stream
        return False
