"""Per-role ownership of the single live process handle."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Sequence

from .handle import ProcessHandle

logger = logging.getLogger(__name__)

HandleFactory = Callable[[], Awaitable[ProcessHandle]]


class RoleState(str, Enum):
    NOT_STARTED = "not-started"
    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"
    KILLED = "killed"


class RoleFailedError(RuntimeError):
    """Raised when a role's process exits without being asked to."""

    def __init__(self, role: str, returncode: int | None, output: Sequence[str]) -> None:
        super().__init__(f"{role} exited unexpectedly with code {returncode}")
        self.role = role
        self.returncode = returncode
        self.output = list(output)


class RoleSlot:
    """Owns at most one live process for a logical role (build-watch, docs, server).

    ``start`` and ``restart`` are serialized: a restart kills the previous
    handle before the factory spawns the next one, so two live instances
    never overlap. A role is ``RUNNING`` only once its handle reports ready.

    Exits the slot did not request are reported through ``failure``; for a
    ``one_shot`` role an exit code of zero is a normal completion.
    """

    def __init__(self, name: str, factory: HandleFactory, *, one_shot: bool = False) -> None:
        self.name = name
        self.one_shot = one_shot
        self.state = RoleState.NOT_STARTED
        self.handle: ProcessHandle | None = None
        self.generation = 0
        self._factory = factory
        self._lock = asyncio.Lock()
        self._failure: asyncio.Future[None] | None = None
        self._watchers: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def failure(self) -> asyncio.Future[None]:
        """Future that fails with the role's error once it dies unexpectedly."""

        if self._failure is None:
            self._failure = asyncio.get_running_loop().create_future()
        return self._failure

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def start(self) -> ProcessHandle:
        async with self._lock:
            return await self._replace(RoleState.STARTING)

    async def restart(self) -> ProcessHandle:
        async with self._lock:
            return await self._replace(RoleState.RESTARTING)

    async def _replace(self, state: RoleState) -> ProcessHandle:
        previous, self.handle = self.handle, None
        self.state = state
        if previous is not None:
            logger.info("Restarting %s", self.name)
            await previous.kill()

        try:
            handle = await self._factory()
        except Exception:
            self.state = RoleState.KILLED
            raise
        self.handle = handle
        self.generation += 1
        if self._closed:
            await handle.kill()
            self.state = RoleState.KILLED
            return handle

        try:
            await handle.wait_ready()
        except Exception:
            self.state = RoleState.KILLED
            raise

        self.state = RoleState.RUNNING
        watcher = asyncio.create_task(self._watch(handle))
        self._watchers.add(watcher)
        watcher.add_done_callback(self._watchers.discard)
        return handle

    async def _watch(self, handle: ProcessHandle) -> None:
        try:
            returncode = await handle.wait()
        except Exception as exc:
            error: BaseException = exc
        else:
            if handle.killed or (self.one_shot and returncode == 0):
                return
            error = RoleFailedError(self.name, returncode, handle.output)

        if handle is not self.handle:
            return
        self.state = RoleState.KILLED
        logger.error("%s failed", self.name, extra={"error": str(error)})
        if not self.failure.done():
            self.failure.set_exception(error)

    async def kill(self) -> None:
        """Kill the current handle, if any; the role stays terminal afterwards."""

        self._closed = True
        handle, self.handle = self.handle, None
        if handle is not None:
            await handle.kill()
        self.state = RoleState.KILLED
        for watcher in list(self._watchers):
            watcher.cancel()
        if self._failure is not None and self._failure.done():
            # mark retrieved; the caller reports it
            self._failure.exception()


__all__ = ["HandleFactory", "RoleFailedError", "RoleSlot", "RoleState"]
