"""Handles for long-lived child processes with streamed, line-dispatched output."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections import deque
from pathlib import Path
from typing import Sequence

from ..process import CommandRunner
from ..process.utils import decode_line, sanitize_environment
from .observer import LineObserver

logger = logging.getLogger(__name__)

STREAM_LIMIT = 1024 * 1024
OUTPUT_TAIL = 500
KILL_TIMEOUT = 5.0
READER_DRAIN_TIMEOUT = 1.0


class ProcessExitedError(RuntimeError):
    """Raised when a process exits before printing its readiness marker."""

    def __init__(self, role: str, returncode: int | None, output: Sequence[str]) -> None:
        super().__init__(f"{role} exited with code {returncode} before becoming ready")
        self.role = role
        self.returncode = returncode
        self.output = list(output)


class ProcessHandle:
    """One live child process.

    Stdout and stderr are read by two independent tasks, each feeding its own
    ``LineObserver``; no ordering between the two streams is assumed. The last
    ``OUTPUT_TAIL`` lines are kept for failure diagnostics.
    """

    def __init__(
        self,
        role: str,
        args: Sequence[str],
        process: asyncio.subprocess.Process,
        *,
        stdout: LineObserver | None = None,
        stderr: LineObserver | None = None,
        ready: str | None = None,
        tail: int = OUTPUT_TAIL,
    ) -> None:
        loop = asyncio.get_running_loop()
        self.role = role
        self.args = tuple(args)
        self._process = process
        self._stdout = stdout or LineObserver()
        self._stderr = stderr or LineObserver()
        self._ready_marker = ready
        self._ready: asyncio.Future[str] = loop.create_future()
        self._exit: asyncio.Future[int] = loop.create_future()
        self._output: deque[str] = deque(maxlen=tail)
        self._killed = False
        self._readers: list[asyncio.Task[None]] = []
        self._monitor: asyncio.Task[None] | None = None

    @classmethod
    async def start(
        cls,
        role: str,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        stdout: LineObserver | None = None,
        stderr: LineObserver | None = None,
        ready: str | None = None,
        env: dict[str, str] | None = None,
    ) -> "ProcessHandle":
        """Spawn ``args`` and begin consuming its output line by line."""

        args = [str(arg) for arg in args]
        executable = CommandRunner.resolve_executable(args[0])
        process = await asyncio.create_subprocess_exec(
            executable,
            *args[1:],
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=env if env is not None else sanitize_environment(),
            start_new_session=os.name != "nt",
            limit=STREAM_LIMIT,
        )
        handle = cls(role, args, process, stdout=stdout, stderr=stderr, ready=ready)
        handle._begin()
        logger.debug("Started %s", role, extra={"pid": process.pid, "command": " ".join(args)})
        return handle

    def _begin(self) -> None:
        self._readers = [
            asyncio.create_task(self._read(self._process.stdout, self._stdout)),
            asyncio.create_task(self._read(self._process.stderr, self._stderr)),
        ]
        self._monitor = asyncio.create_task(self._watch_exit())

    async def _read(self, stream: asyncio.StreamReader | None, observer: LineObserver) -> None:
        if stream is None:
            return
        while True:
            raw = await stream.readline()
            if not raw:
                return
            line = decode_line(raw)
            self._output.append(line)
            if self._ready_marker and not self._ready.done() and self._ready_marker in line:
                self._ready.set_result(line)
            try:
                await observer.dispatch(line)
            except Exception as exc:
                if not self._exit.done():
                    self._exit.set_exception(exc)
                return

    async def _watch_exit(self) -> None:
        await asyncio.gather(*self._readers, return_exceptions=True)
        returncode = await self._process.wait()
        if not self._exit.done():
            self._exit.set_result(returncode)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def running(self) -> bool:
        return self._process.returncode is None

    @property
    def killed(self) -> bool:
        return self._killed

    @property
    def ready(self) -> bool:
        return self._ready_marker is None or self._ready.done()

    @property
    def output(self) -> list[str]:
        return list(self._output)

    async def wait_ready(self) -> str:
        """Suspend until the readiness marker is seen.

        Raises ``ProcessExitedError`` when the process ends first, or the
        error of a failed line action.
        """

        if self._ready_marker is None:
            return ""
        await asyncio.wait({self._ready, self._exit}, return_when=asyncio.FIRST_COMPLETED)
        if self._ready.done():
            return self._ready.result()
        returncode = self._exit.result()
        raise ProcessExitedError(self.role, returncode, self.output)

    async def wait(self) -> int:
        """Return the exit code once the process has ended and its output is drained."""

        return await asyncio.shield(self._exit)

    async def kill(self, timeout: float = KILL_TIMEOUT) -> int | None:
        """Terminate the process group, escalating to SIGKILL after ``timeout``."""

        self._killed = True
        if self._process.returncode is None:
            self._signal(force=False)
            try:
                await asyncio.wait_for(self._process.wait(), timeout)
            except asyncio.TimeoutError:
                logger.warning("%s ignored SIGTERM, killing", self.role, extra={"pid": self.pid})
                self._signal(force=True)
                await self._process.wait()

        if self._readers:
            _done, pending = await asyncio.wait(self._readers, timeout=READER_DRAIN_TIMEOUT)
            for reader in pending:
                reader.cancel()
        if self._monitor is not None:
            await asyncio.gather(self._monitor, return_exceptions=True)
        logger.debug("Killed %s", self.role, extra={"pid": self.pid, "returncode": self.returncode})
        return self._process.returncode

    def _signal(self, *, force: bool) -> None:
        try:
            if os.name != "nt":
                os.killpg(self._process.pid, signal.SIGKILL if force else signal.SIGTERM)
            elif force:
                self._process.kill()
            else:
                self._process.terminate()
        except ProcessLookupError:
            pass


__all__ = ["ProcessExitedError", "ProcessHandle"]
