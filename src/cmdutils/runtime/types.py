"""Process runner value types.

ProcessSpec describes what to run, ProcessResult what came back.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import StreamIOError

if TYPE_CHECKING:
    from ..applog import AppLogger

__all__ = [
    "ProcessResult",
    "ProcessSpec",
]


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Arguments are always passed to the OS as discrete tokens; no shell is
    involved.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process (None = inherit)
        env: Environment variables (None = inherit parent)
        encoding: Text encoding of the output streams (None = platform default)
        errors: Decoding error handler, as for open()
    """

    argv: Sequence[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    encoding: str | None = None
    errors: str = "strict"

    def __post_init__(self) -> None:
        if isinstance(self.argv, str):
            raise TypeError("argv must be a sequence of arguments, not a string")
        argv = tuple(str(arg) for arg in self.argv)
        if not argv:
            raise ValueError("argv must name a command")
        object.__setattr__(self, "argv", argv)

    @classmethod
    def of(cls, command: str, *args: str, **options: Any) -> ProcessSpec:
        """Build a spec from a command and its arguments."""
        return cls(argv=(command, *args), **options)

    @classmethod
    def from_command_line(cls, command_line: str, **options: Any) -> ProcessSpec:
        """Build a spec by splitting a command line into POSIX-style tokens.

        Quotes group words, but nothing else of shell syntax applies:
        pipes, redirections and variables are passed through literally.
        """
        return cls(argv=shlex.split(command_line), **options)

    @property
    def display(self) -> str:
        """Shell-quoted command line, for log messages."""
        return shlex.join(self.argv)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one finished process invocation.

    Lines keep the order of their own stream. The relative order of
    stdout and stderr lines is not recorded.

    Attributes:
        argv: Command that was run
        exit_status: Exit code (negative signal number if killed by a signal)
        stdout_lines: Lines read from stdout, without line terminators
        stderr_lines: Lines read from stderr, without line terminators
        stream_errors: Failures that cut a stream short
    """

    argv: tuple[str, ...]
    exit_status: int
    stdout_lines: tuple[str, ...] = ()
    stderr_lines: tuple[str, ...] = ()
    stream_errors: tuple[StreamIOError, ...] = field(default=(), compare=False)

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0 and not self.stream_errors

    @property
    def stdout(self) -> str:
        return "\n".join(self.stdout_lines)

    @property
    def stderr(self) -> str:
        return "\n".join(self.stderr_lines)

    def pretty_print(self, app_logger: AppLogger) -> None:
        """Print stdout lines as success lines, then stderr lines as errors.

        All stdout is printed before all stderr, whatever order the
        process wrote them in.
        """
        with app_logger.lock:
            for line in self.stdout_lines:
                app_logger.println_success("%s", line)
            for line in self.stderr_lines:
                app_logger.println_err("%s", line)
