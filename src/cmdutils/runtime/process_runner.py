"""Process runner with concurrent, deadlock-free output capture.

cmdutils runtime module

This module provides:
- Batch capture of a child's stdout and stderr as lists of lines
- Streaming of a child's output into an AppLogger, tagged with an eyecatcher
- Sync facades for callers without an event loop

Key design points:
- stdout and stderr are drained by two independent worker threads, and a
  third worker thread waits for exit. No thread ever waits on the process
  while also being responsible for reading a pipe, so a child filling one
  pipe buffer cannot stall the other.
- The three workers run inside one anyio task group: the result is built
  only after the exit code is known AND both streams reached EOF.
- A stream that fails mid-read is recorded and then discarded to EOF; the
  sibling stream and the exit wait carry on.
- Nothing is killed. A cancelled wait abandons the workers and leaves the
  child running; terminating it is the caller's call.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, TypeVar

import anyio
from anyio import to_thread

from ..applog import AppLogger
from .errors import SpawnError, StreamIOError, WaitInterruptedError
from .types import ProcessResult, ProcessSpec

__all__ = [
    "DEFAULT_LINE_FORMAT",
    "ProcessRunner",
    "StreamDrain",
    "capture_stdout",
    "pipe_to_logger",
    "run",
]

logger = logging.getLogger(__name__)

# printf format for streamed lines: (eyecatcher, line)
DEFAULT_LINE_FORMAT = "child process %s:%s"

# Read size used to throw away the rest of a failed stream
_DISCARD_CHUNK = 64 * 1024

T = TypeVar("T")


class StreamDrain:
    """Reads one child output stream line by line until EOF.

    Meant to run on its own worker thread. Each line, stripped of its
    terminator, is handed to ``on_line``. A read or decode failure, or an
    ``on_line`` that raises, stops line delivery. The failure is stored on
    ``error`` and reported, and the remaining bytes are discarded so the
    child never blocks on a full pipe.
    """

    def __init__(
        self,
        name: str,
        stream: IO[str],
        on_line: Callable[[str], None],
        app_logger: AppLogger | None = None,
    ) -> None:
        self.name = name
        self.stream = stream
        self.on_line = on_line
        self.app_logger = app_logger
        self.line_count = 0
        self.error: StreamIOError | None = None

    def __call__(self) -> None:
        try:
            for raw in self.stream:
                self.on_line(raw[:-1] if raw.endswith("\n") else raw)
                self.line_count += 1
        except Exception as e:
            self.error = StreamIOError(self.name, e)
            self._report(e)
            self._discard()
        finally:
            self._close()

    def _report(self, exc: BaseException) -> None:
        logger.warning(
            f"Stopped reading {self.name} after {self.line_count} lines: {exc}"
        )
        if self.app_logger is not None:
            with self.app_logger.lock:
                self.app_logger.println_warn(
                    "Stopped reading child %s: %s", self.name, exc
                )
                self.app_logger.print_exception_verbose(exc)

    def _discard(self) -> None:
        buffer = getattr(self.stream, "buffer", None)
        if buffer is None:
            return
        discarded = 0
        try:
            while chunk := buffer.read(_DISCARD_CHUNK):
                discarded += len(chunk)
        except (OSError, ValueError) as e:
            logger.debug(f"Discarding {self.name} ended early: {e}")
        logger.debug(f"Discarded {discarded} bytes of {self.name}")

    def _close(self) -> None:
        try:
            self.stream.close()
        except (OSError, ValueError) as e:
            logger.debug(f"Closing {self.name} failed: {e}")


@dataclass
class ProcessRunner:
    """Runs child processes and collects or streams their output.

    Every call spawns a fresh process and owns it exclusively; one runner
    can serve any number of concurrent calls.

    Example:
        runner = ProcessRunner()
        result = await runner.run(ProcessSpec.of("git", "status", "--short"))
        for line in result.stdout_lines:
            ...

        status = await runner.pipe_to_logger(
            ProcessSpec.of("make", "all"), app_logger, eyecatcher="build"
        )
    """

    line_format: str = DEFAULT_LINE_FORMAT

    async def run(self, spec: ProcessSpec) -> ProcessResult:
        """Run a process and capture both output streams.

        Args:
            spec: Process specification

        Returns:
            Exit status and the captured lines of each stream

        Raises:
            SpawnError: If the process could not be started
        """
        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        exit_status, errors = await self._execute(
            spec, stdout_lines.append, stderr_lines.append
        )
        return ProcessResult(
            argv=tuple(spec.argv),
            exit_status=exit_status,
            stdout_lines=tuple(stdout_lines),
            stderr_lines=tuple(stderr_lines),
            stream_errors=errors,
        )

    async def pipe_to_logger(
        self,
        spec: ProcessSpec,
        app_logger: AppLogger,
        eyecatcher: str = "",
    ) -> int:
        """Run a process, streaming its output into a logger as it arrives.

        stdout lines go to ``println_verbose`` and stderr lines to
        ``println_err_verbose``, each rendered with ``line_format`` so
        several children can share one logger.

        Args:
            spec: Process specification
            app_logger: Destination logger
            eyecatcher: Label identifying this child in the output

        Returns:
            The exit status

        Raises:
            SpawnError: If the process could not be started
        """
        exit_status, _ = await self._execute(
            spec,
            self._stdout_emitter(app_logger, eyecatcher),
            self._stderr_emitter(app_logger, eyecatcher),
            app_logger,
        )
        return exit_status

    async def capture_stdout(
        self,
        spec: ProcessSpec,
        app_logger: AppLogger,
        eyecatcher: str = "",
    ) -> ProcessResult:
        """Run a process, capturing stdout and streaming stderr to a logger.

        stderr lines are captured as well, so the result is complete.
        """
        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        emit_stderr = self._stderr_emitter(app_logger, eyecatcher)

        def on_stderr(line: str) -> None:
            stderr_lines.append(line)
            emit_stderr(line)

        exit_status, errors = await self._execute(
            spec, stdout_lines.append, on_stderr, app_logger
        )
        return ProcessResult(
            argv=tuple(spec.argv),
            exit_status=exit_status,
            stdout_lines=tuple(stdout_lines),
            stderr_lines=tuple(stderr_lines),
            stream_errors=errors,
        )

    def _stdout_emitter(self, app_logger: AppLogger, eyecatcher: str) -> Callable[[str], None]:
        def emit(line: str) -> None:
            app_logger.println_verbose(self.line_format, eyecatcher, line)

        return emit

    def _stderr_emitter(self, app_logger: AppLogger, eyecatcher: str) -> Callable[[str], None]:
        def emit(line: str) -> None:
            app_logger.println_err_verbose(self.line_format, eyecatcher, line)

        return emit

    async def _execute(
        self,
        spec: ProcessSpec,
        on_stdout: Callable[[str], None],
        on_stderr: Callable[[str], None],
        app_logger: AppLogger | None = None,
    ) -> tuple[int, tuple[StreamIOError, ...]]:
        """Spawn, drain both streams and wait for exit.

        Returns:
            Tuple of (exit status, stream errors)
        """
        process = self._spawn(spec)
        logger.debug(f"Started subprocess pid={process.pid} argv={spec.display}")

        stdout_drain = StreamDrain("stdout", process.stdout, on_stdout, app_logger)
        stderr_drain = StreamDrain("stderr", process.stderr, on_stderr, app_logger)
        exit_status = 0

        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._in_thread, stdout_drain)
                tg.start_soon(self._in_thread, stderr_drain)
                exit_status = await self._in_thread(process.wait)
                logger.debug(
                    f"Subprocess exited pid={process.pid} returncode={exit_status}"
                )
        except anyio.get_cancelled_exc_class():
            logger.warning(
                f"Wait for subprocess pid={process.pid} cancelled; process left running"
            )
            raise

        logger.debug(
            f"Subprocess drained pid={process.pid} "
            f"stdout_lines={stdout_drain.line_count} "
            f"stderr_lines={stderr_drain.line_count}"
        )
        errors = tuple(
            drain.error
            for drain in (stdout_drain, stderr_drain)
            if drain.error is not None
        )
        return exit_status, errors

    @staticmethod
    async def _in_thread(func: Callable[[], T]) -> T:
        return await to_thread.run_sync(func, abandon_on_cancel=True)

    def _spawn(self, spec: ProcessSpec) -> subprocess.Popen[str]:
        """Start the child with stdin closed and both outputs piped.

        Raises:
            SpawnError: If the OS refuses to start the process
        """
        try:
            return subprocess.Popen(
                list(spec.argv),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                **self._build_subprocess_kwargs(spec),
            )
        except OSError as e:
            logger.debug(f"Failed to start argv={spec.display}: {e}")
            raise SpawnError(spec.argv, e) from e

    def _build_subprocess_kwargs(self, spec: ProcessSpec) -> dict[str, Any]:
        """Build subprocess.Popen kwargs for the spec.

        Args:
            spec: Process specification

        Returns:
            Dict of kwargs for subprocess.Popen
        """
        kwargs: dict[str, Any] = {
            "text": True,
            "encoding": spec.encoding,
            "errors": spec.errors,
        }
        if spec.cwd is not None:
            kwargs["cwd"] = spec.cwd
        if spec.env is not None:
            kwargs["env"] = dict(spec.env)
        return kwargs


# Sync facades for callers that are not running an event loop


def _run_blocking(spec: ProcessSpec, func: Callable[..., Any], *args: Any) -> Any:
    try:
        return anyio.run(func, *args)
    except KeyboardInterrupt as e:
        raise WaitInterruptedError(spec.argv) from e


def _make_spec(
    command: str,
    args: Sequence[str],
    cwd: Path | None,
    env: Mapping[str, str] | None,
    encoding: str | None,
    errors: str,
) -> ProcessSpec:
    return ProcessSpec(
        argv=(command, *args), cwd=cwd, env=env, encoding=encoding, errors=errors
    )


def run(
    command: str,
    *args: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    encoding: str | None = None,
    errors: str = "strict",
) -> ProcessResult:
    """Run a command to completion and capture its output.

    Args:
        command: Executable name or path
        *args: Arguments, passed as-is without shell interpretation
        cwd: Working directory (None = inherit)
        env: Environment (None = inherit)
        encoding: Output encoding (None = platform default)
        errors: Decoding error handler

    Returns:
        The process result

    Raises:
        SpawnError: If the process could not be started
        WaitInterruptedError: If interrupted while waiting for the process
    """
    spec = _make_spec(command, args, cwd, env, encoding, errors)
    return _run_blocking(spec, ProcessRunner().run, spec)


def pipe_to_logger(
    command: str,
    args: Sequence[str],
    app_logger: AppLogger,
    eyecatcher: str = "",
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    encoding: str | None = None,
    errors: str = "strict",
) -> int:
    """Run a command, streaming its output into a logger.

    See ProcessRunner.pipe_to_logger.

    Returns:
        The exit status
    """
    spec = _make_spec(command, args, cwd, env, encoding, errors)
    return _run_blocking(spec, ProcessRunner().pipe_to_logger, spec, app_logger, eyecatcher)


def capture_stdout(
    command: str,
    args: Sequence[str],
    app_logger: AppLogger,
    eyecatcher: str = "",
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    encoding: str | None = None,
    errors: str = "strict",
) -> ProcessResult:
    """Run a command, capturing stdout and streaming stderr into a logger.

    See ProcessRunner.capture_stdout.
    """
    spec = _make_spec(command, args, cwd, env, encoding, errors)
    return _run_blocking(spec, ProcessRunner().capture_stdout, spec, app_logger, eyecatcher)
