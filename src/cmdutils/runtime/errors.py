"""Process execution errors.

cmdutils runtime module
"""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "ProcessError",
    "SpawnError",
    "StreamIOError",
    "WaitInterruptedError",
]


class ProcessError(Exception):
    """Base class for process execution errors."""
    pass


class SpawnError(ProcessError):
    """The child process could not be started.

    Attributes:
        argv: Command that failed to start
        cause: Underlying OS error
    """

    def __init__(self, argv: Sequence[str], cause: OSError) -> None:
        self.argv = tuple(argv)
        self.cause = cause
        super().__init__(f"Cannot start {self.argv[0]!r}: {cause}")


class StreamIOError(ProcessError):
    """Reading one output stream of a child failed.

    Recorded on the result; never raised out of a run.

    Attributes:
        stream_name: "stdout" or "stderr"
        cause: Underlying error
    """

    def __init__(self, stream_name: str, cause: BaseException) -> None:
        self.stream_name = stream_name
        self.cause = cause
        super().__init__(f"Error reading {stream_name}: {cause}")


class WaitInterruptedError(ProcessError):
    """Waiting for the child to exit was interrupted.

    The child is left running.

    Attributes:
        argv: Command being waited on
    """

    def __init__(self, argv: Sequence[str]) -> None:
        self.argv = tuple(argv)
        super().__init__(
            f"Interrupted while waiting for {self.argv[0]!r}; process left running"
        )
