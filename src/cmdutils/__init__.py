"""cmdutils - helpers for command-line tools.

Console logging with verbose gating, colors and deferred output, plus
subprocess execution that drains stdout and stderr without deadlocking.

Environment variables:
    CMDUTILS_VERBOSE: verbose console logger (default false)
    CMDUTILS_COLOR: auto / always / never (default auto)
    CMDUTILS_LOG_DEBUG: diagnostic logs to a temp file (default false)

Usage:
    from cmdutils import AppLogger, run

    app_logger = AppLogger(verbose=True)
    result = run("git", "status", "--short")
    result.pretty_print(app_logger)
"""

__version__ = "0.1.0"

from .applog import AppLogger
from .runtime import (
    ProcessError,
    ProcessResult,
    ProcessRunner,
    ProcessSpec,
    SpawnError,
    StreamIOError,
    WaitInterruptedError,
    capture_stdout,
    pipe_to_logger,
    run,
)

__all__ = [
    "__version__",
    "AppLogger",
    "ProcessError",
    "ProcessResult",
    "ProcessRunner",
    "ProcessSpec",
    "SpawnError",
    "StreamIOError",
    "WaitInterruptedError",
    "capture_stdout",
    "pipe_to_logger",
    "run",
]
