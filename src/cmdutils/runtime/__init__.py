"""Runtime module for subprocess execution and output capture.

This module provides process execution with both output streams drained
concurrently, either into in-memory results or into an AppLogger.
"""

from __future__ import annotations

from .errors import ProcessError, SpawnError, StreamIOError, WaitInterruptedError
from .process_runner import ProcessRunner, StreamDrain, capture_stdout, pipe_to_logger, run
from .types import ProcessResult, ProcessSpec

__all__ = [
    "ProcessError",
    "ProcessResult",
    "ProcessRunner",
    "ProcessSpec",
    "SpawnError",
    "StreamDrain",
    "StreamIOError",
    "WaitInterruptedError",
    "capture_stdout",
    "pipe_to_logger",
    "run",
]
