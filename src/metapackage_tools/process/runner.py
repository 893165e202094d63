"""Async runner for one-shot external commands (nx, npm, git)."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .utils import sanitize_environment

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Base class for external command errors."""


class CommandNotFoundError(CommandError):
    """Raised when a command's executable cannot be located."""


@dataclass(slots=True)
class ExecutionResult:
    """Holds the outcome of an external command invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    cwd: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandFailedError(CommandError):
    """Raised when a checked command exits with a non-zero status."""

    def __init__(self, result: ExecutionResult) -> None:
        super().__init__(
            f"Command {' '.join(result.args)!r} failed with exit code {result.returncode}"
        )
        self.result = result


class CommandRunner:
    """Execute external commands asynchronously and capture their output."""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self._env = env

    @staticmethod
    def resolve_executable(name: str) -> str:
        candidate = Path(name)
        if candidate.parent != Path(".") or candidate.is_absolute():
            if candidate.exists() and candidate.is_file():
                return str(candidate)
            raise CommandNotFoundError(f"Executable not found at {candidate}")

        binary = shutil.which(name)
        if binary is None:
            raise CommandNotFoundError(f"Executable {name!r} not found on PATH")
        return binary

    async def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        check: bool = True,
    ) -> ExecutionResult:
        """Run ``args`` to completion; raise ``CommandFailedError`` on failure when ``check``."""

        if not args:
            raise CommandError("Cannot run an empty command")
        result = await self._invoke(tuple(str(arg) for arg in args), cwd=str(cwd) if cwd else None)
        if check and not result.ok:
            raise CommandFailedError(result)
        return result

    async def _invoke(self, args: tuple[str, ...], *, cwd: str | None) -> ExecutionResult:
        executable = self.resolve_executable(args[0])
        logger.debug("Running command", extra={"command": " ".join(args), "cwd": cwd})
        process = await asyncio.create_subprocess_exec(
            executable,
            *args[1:],
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=self._env if self._env is not None else sanitize_environment(),
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return ExecutionResult(
            args=args,
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr,
            cwd=cwd,
        )


Handler = Callable[[tuple[str, ...], str | None], ExecutionResult | None]


class FakeCommandRunner(CommandRunner):
    """Test double that records invocations instead of running commands.

    Responses are taken from ``handler`` first (when it returns a result),
    then from the queued ``responses``; otherwise a successful empty result.
    """

    def __init__(
        self,
        responses: Iterable[ExecutionResult] | None = None,
        *,
        handler: Handler | None = None,
    ) -> None:  # type: ignore[override]
        super().__init__()
        self._responses = list(responses or [])
        self._handler = handler
        self._invocations: list[tuple[tuple[str, ...], str | None]] = []

    async def _invoke(self, args: tuple[str, ...], *, cwd: str | None) -> ExecutionResult:  # type: ignore[override]
        self._invocations.append((args, cwd))
        if self._handler is not None:
            result = self._handler(args, cwd)
            if result is not None:
                return result
        if self._responses:
            return self._responses.pop(0)
        return ExecutionResult(args=args, returncode=0, stdout="", stderr="", cwd=cwd)

    @property
    def invocations(self) -> list[tuple[tuple[str, ...], str | None]]:
        return self._invocations

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [args for args, _cwd in self._invocations]


def serialize_result(result: ExecutionResult) -> str:
    """Serialize a command result for diagnostics output."""

    return json.dumps(
        {
            "args": list(result.args),
            "cwd": result.cwd,
            "returncode": result.returncode,
            "stdout": result.stdout,
            "stderr": result.stderr,
        }
    )


def format_failure(result: ExecutionResult) -> str:
    """Render captured output of a failed command for the operator."""

    parts = [f"$ {' '.join(result.args)} (exit {result.returncode})"]
    if result.stdout.strip():
        parts.append(result.stdout.rstrip())
    if result.stderr.strip():
        parts.append(result.stderr.rstrip())
    return "\n".join(parts)
