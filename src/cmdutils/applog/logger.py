"""Console logger with verbose gating and colorized message kinds.

AppLogger writes normal output to an "out" sink and errors/warnings to an
"err" sink. Every message kind comes in four flavors:

    print_<kind>(fmt, *args)            emitted as-is
    println_<kind>(fmt, *args)          newline appended
    print_<kind>_verbose(fmt, *args)    only when the logger is verbose
    println_<kind>_verbose(fmt, *args)  both of the above

Kinds: plain (out), err (err, bright red), warn (err, yellow) and
success (out, green). The message is formatted first and color-wrapped
once, so the same text reaches an immediate or a deferred sink.

Example:
    app_logger = AppLogger(verbose=True, colors=True)
    app_logger.println_warn("duplicate entries: '%s' and '%s'", a, b)

    with app_logger.deferred() as batch:
        batch.println("queued until the block exits")
"""

from __future__ import annotations

import logging
import sys
import threading
import traceback
from typing import Any

from ..colors import TerminalColor, colorize
from ..config import Config, get_config
from .sinks import DeferredQueue, DeferredSink, OutputSink, StreamSink, format_message

__all__ = ["AppLogger"]

logger = logging.getLogger(__name__)


def render_exception(exc: BaseException) -> str:
    """Render a traceback for exc, falling back to a one-line summary."""
    try:
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    except Exception:
        try:
            return f"{type(exc).__name__}: {exc}"
        except Exception:
            return f"<unprintable {type(exc).__name__}>"


class AppLogger:
    """Thread-safe console logger over an out sink and an err sink.

    Verbosity and the color flag are fixed at construction. All calls are
    serialized on ``lock``; callers may hold it to keep several calls
    together, and flushes of loggers made by ``deferred()`` wait for it.
    Logging never raises: a failing sink is reported to the module logger
    and the message is dropped.
    """

    def __init__(
        self,
        out: OutputSink | None = None,
        err: OutputSink | None = None,
        *,
        verbose: bool = False,
        colors: bool = False,
    ) -> None:
        self._out = out if out is not None else StreamSink()
        self._err = err if err is not None else StreamSink(stderr=True)
        self._verbose = bool(verbose)
        self._colors = bool(colors)
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: Config | None = None, *, verbose: bool | None = None) -> AppLogger:
        """Build a stdout/stderr logger from configuration.

        Args:
            config: Configuration (None = global config)
            verbose: Overrides config.verbose when given

        Returns:
            A new console logger
        """
        if config is None:
            config = get_config()
        return cls(
            StreamSink(),
            StreamSink(stderr=True),
            verbose=config.verbose if verbose is None else verbose,
            colors=config.color_enabled(sys.stdout),
        )

    @property
    def verbose(self) -> bool:
        return self._verbose

    @property
    def colors(self) -> bool:
        return self._colors

    @property
    def out(self) -> OutputSink:
        return self._out

    @property
    def err(self) -> OutputSink:
        return self._err

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # ------------------------------------------------------------------
    # Deferred output
    # ------------------------------------------------------------------

    def deferred(self) -> AppLogger:
        """Create a logger whose output is queued until flushed into this one.

        Out and err writes share a single queue, so replay keeps the
        order in which the calls were made. Replay runs under this
        logger's lock, so a flush never lands inside a ``with lock:`` block.
        """
        queue = DeferredQueue(self._lock)
        return AppLogger(
            DeferredSink(self._out, queue),
            DeferredSink(self._err, queue),
            verbose=self._verbose,
            colors=self._colors,
        )

    @property
    def pending(self) -> int:
        """Number of queued writes (always 0 for immediate sinks)."""
        queues = {
            id(sink.queue): sink.queue
            for sink in (self._out, self._err)
            if isinstance(sink, DeferredSink)
        }
        return sum(len(queue) for queue in queues.values())

    def flush(self) -> None:
        self._out.flush()
        if self._err is not self._out:
            self._err.flush()

    def close(self) -> None:
        self.flush()

    def __enter__(self) -> AppLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Core emission
    # ------------------------------------------------------------------

    def _emit(
        self,
        sink: OutputSink,
        fmt: str,
        args: tuple[Any, ...],
        color: TerminalColor | None = None,
        newline: bool = False,
    ) -> None:
        with self._lock:
            text = format_message(fmt, args)
            if color is not None:
                text = colorize(text, color, self._colors)
            try:
                if newline:
                    sink.write_line(text)
                else:
                    sink.write("%s", text)
            except Exception as e:
                logger.debug(f"Dropped message, {type(sink).__name__} failed: {e!r}")

    # plain

    def print(self, fmt: str, *args: Any) -> None:
        self._emit(self._out, fmt, args)

    def println(self, fmt: str = "", *args: Any) -> None:
        self._emit(self._out, fmt, args, newline=True)

    def print_verbose(self, fmt: str, *args: Any) -> None:
        if self._verbose:
            self._emit(self._out, fmt, args)

    def println_verbose(self, fmt: str = "", *args: Any) -> None:
        if self._verbose:
            self._emit(self._out, fmt, args, newline=True)

    # err

    def print_err(self, fmt: str, *args: Any) -> None:
        self._emit(self._err, fmt, args, TerminalColor.BRIGHT_RED)

    def println_err(self, fmt: str = "", *args: Any) -> None:
        self._emit(self._err, fmt, args, TerminalColor.BRIGHT_RED, newline=True)

    def print_err_verbose(self, fmt: str, *args: Any) -> None:
        if self._verbose:
            self._emit(self._err, fmt, args, TerminalColor.BRIGHT_RED)

    def println_err_verbose(self, fmt: str = "", *args: Any) -> None:
        if self._verbose:
            self._emit(self._err, fmt, args, TerminalColor.BRIGHT_RED, newline=True)

    # warn

    def print_warn(self, fmt: str, *args: Any) -> None:
        self._emit(self._err, fmt, args, TerminalColor.YELLOW)

    def println_warn(self, fmt: str = "", *args: Any) -> None:
        self._emit(self._err, fmt, args, TerminalColor.YELLOW, newline=True)

    def print_warn_verbose(self, fmt: str, *args: Any) -> None:
        if self._verbose:
            self._emit(self._err, fmt, args, TerminalColor.YELLOW)

    def println_warn_verbose(self, fmt: str = "", *args: Any) -> None:
        if self._verbose:
            self._emit(self._err, fmt, args, TerminalColor.YELLOW, newline=True)

    # success

    def print_success(self, fmt: str, *args: Any) -> None:
        self._emit(self._out, fmt, args, TerminalColor.GREEN)

    def println_success(self, fmt: str = "", *args: Any) -> None:
        self._emit(self._out, fmt, args, TerminalColor.GREEN, newline=True)

    def print_success_verbose(self, fmt: str, *args: Any) -> None:
        if self._verbose:
            self._emit(self._out, fmt, args, TerminalColor.GREEN)

    def println_success_verbose(self, fmt: str = "", *args: Any) -> None:
        if self._verbose:
            self._emit(self._out, fmt, args, TerminalColor.GREEN, newline=True)

    # exceptions

    def print_exception(self, exc: BaseException) -> None:
        """Write the traceback of exc to the err sink."""
        text = render_exception(exc).rstrip("\n")
        with self._lock:
            try:
                self._err.write_line(text)
            except Exception as e:
                logger.debug(f"Dropped traceback, {type(self._err).__name__} failed: {e!r}")

    def print_exception_verbose(self, exc: BaseException) -> None:
        """Write the traceback of exc to the err sink in verbose mode only."""
        if self._verbose:
            self.print_exception(exc)

    def __repr__(self) -> str:
        return (
            f"AppLogger(out={self._out!r}, err={self._err!r}, "
            f"verbose={self._verbose}, colors={self._colors})"
        )
