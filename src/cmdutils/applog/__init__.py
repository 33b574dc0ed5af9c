"""Console logging: sinks and the verbose/colorized AppLogger.

This module provides:
- OutputSink implementations writing immediately or deferring writes
- AppLogger, a thread-safe logger composed of an out sink and an err sink
"""

from __future__ import annotations

from .logger import AppLogger
from .sinks import DeferredQueue, DeferredSink, OutputSink, StreamSink, format_message

__all__ = [
    "AppLogger",
    "DeferredQueue",
    "DeferredSink",
    "OutputSink",
    "StreamSink",
    "format_message",
]
