"""External command orchestration utilities."""

from .runner import (
    CommandError,
    CommandFailedError,
    CommandNotFoundError,
    CommandRunner,
    ExecutionResult,
    FakeCommandRunner,
    format_failure,
)

__all__ = [
    "CommandError",
    "CommandFailedError",
    "CommandNotFoundError",
    "CommandRunner",
    "ExecutionResult",
    "FakeCommandRunner",
    "format_failure",
]
