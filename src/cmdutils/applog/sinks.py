"""Output sinks for the console logger.

A sink is a destination for formatted text. Two kinds exist:

- StreamSink writes straight through to a text stream on the calling thread
- DeferredSink queues each write and replays it against a target sink
  when flushed

Sinks never raise on emission: logging is best-effort and must not take
the host program down.
"""

from __future__ import annotations

import logging
import sys
import threading
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any, TextIO

__all__ = [
    "DeferredQueue",
    "DeferredSink",
    "OutputSink",
    "StreamSink",
    "format_message",
]

logger = logging.getLogger(__name__)


def _safe_repr(value: Any) -> str:
    try:
        return repr(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


def format_message(fmt: str, args: tuple[Any, ...]) -> str:
    """Render a printf-style message.

    Without args the format is returned verbatim, so a literal "%" is
    safe. A single mapping argument enables "%(key)s" placeholders, the
    same convention the logging module uses.

    Never raises. Mismatched format/argument pairs, or an argument whose
    __str__ fails, degrade to the raw format followed by the repr of
    each argument.

    Args:
        fmt: printf-style format string
        args: Positional format arguments

    Returns:
        The rendered text
    """
    if not args:
        return _safe_str(fmt)
    values: Any = args
    if len(args) == 1 and isinstance(args[0], Mapping):
        values = args[0]
    try:
        return str(fmt) % values
    except Exception as e:
        logger.debug(f"Format failed for {_safe_repr(fmt)}: {e!r}")
        return " ".join([_safe_str(fmt), *map(_safe_repr, args)])


class OutputSink(ABC):
    """A destination for formatted text."""

    @abstractmethod
    def write(self, fmt: str, *args: Any) -> None:
        """Format and emit one chunk of text."""

    def write_line(self, text: str) -> None:
        """Emit text followed by a line terminator."""
        self.write("%s\n", text)

    def flush(self) -> None:
        """Publish pending output. Nothing is pending by default."""


class StreamSink(OutputSink):
    """Immediate sink writing to a text stream.

    When no stream is given, the current sys.stdout (or sys.stderr) is
    looked up on every write, so redirections done after construction
    are honored.
    """

    def __init__(self, stream: TextIO | None = None, *, stderr: bool = False) -> None:
        self._stream = stream
        self._stderr = stderr
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        if self._stream is not None:
            return self._stream
        return sys.stderr if self._stderr else sys.stdout

    def write(self, fmt: str, *args: Any) -> None:
        text = format_message(fmt, args)
        with self._lock:
            try:
                stream = self.stream
                stream.write(text)
                stream.flush()
            except (OSError, ValueError) as e:
                logger.debug(f"Dropped {len(text)} chars of output: {e}")

    def __repr__(self) -> str:
        target = "stderr" if self._stderr else "stdout"
        return f"StreamSink({self._stream!r})" if self._stream is not None else f"StreamSink(<{target}>)"


class DeferredQueue:
    """FIFO of pending write actions.

    Appends from any number of threads land in one total order. drain()
    replays and removes actions until the queue is empty, including
    actions appended while the drain is running. Concurrent drains are
    serialized on ``drain_lock`` so replay order always matches append
    order. Passing the target logger's lock as ``drain_lock`` keeps a
    replay from splitting a block written under that lock.
    """

    def __init__(self, drain_lock: threading.RLock | None = None) -> None:
        self._actions: deque[Callable[[], None]] = deque()
        self._lock = threading.Lock()
        self._drain_lock = drain_lock if drain_lock is not None else threading.RLock()

    def append(self, action: Callable[[], None]) -> None:
        with self._lock:
            self._actions.append(action)

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)

    def drain(self) -> int:
        """Replay every pending action in order.

        Returns:
            Number of actions replayed
        """
        replayed = 0
        with self._drain_lock:
            while True:
                with self._lock:
                    if not self._actions:
                        return replayed
                    action = self._actions.popleft()
                try:
                    action()
                except Exception as e:
                    logger.debug(f"Deferred write failed: {e!r}")
                replayed += 1


class DeferredSink(OutputSink):
    """Sink that queues writes for a target sink until flushed.

    Several deferred sinks may share one queue; flushing any of them
    replays the whole queue in the original call order.
    """

    def __init__(self, target: OutputSink, queue: DeferredQueue | None = None) -> None:
        self._target = target
        self._queue = queue if queue is not None else DeferredQueue()

    @property
    def target(self) -> OutputSink:
        return self._target

    @property
    def queue(self) -> DeferredQueue:
        return self._queue

    def write(self, fmt: str, *args: Any) -> None:
        self._queue.append(partial(self._target.write, fmt, *args))

    def flush(self) -> None:
        replayed = self._queue.drain()
        if replayed:
            logger.debug(f"Replayed {replayed} deferred writes")
