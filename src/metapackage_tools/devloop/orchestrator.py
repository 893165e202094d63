"""Build, document, serve and watch one package of the workspace."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Sequence

from ..config import MetapackageSettings
from ..graph import GraphReader
from ..process import CommandRunner
from ..workspace import INSTALL_DIR, remove_tree
from .handle import ProcessHandle
from .observer import LineObserver
from .roles import RoleFailedError, RoleSlot

logger = logging.getLogger(__name__)

Spawner = Callable[..., Awaitable[ProcessHandle]]


class DevLoop:
    """Keeps build output, generated docs and the docs server in sync with sources.

    Startup is strictly sequential and fail-fast: unlink cached namespace
    packages, build once, build docs, start the server, then watch. Every
    build completed by the watcher restarts the docs role; the server is
    never restarted because it only serves the output directory.
    """

    def __init__(
        self,
        settings: MetapackageSettings,
        runner: CommandRunner,
        *,
        reader: GraphReader | None = None,
        echo: Callable[[str], None] = print,
        spawn: Spawner = ProcessHandle.start,
    ) -> None:
        self._settings = settings
        self._reader = reader or GraphReader(runner, settings)
        self._echo = echo
        self._spawn = spawn
        self.docs = RoleSlot("docs", self._start_docs, one_shot=True)
        self.server = RoleSlot("server", self._start_server)
        self.watch = RoleSlot("build-watch", self._start_watch, one_shot=True)
        self.rebuilds = 0

    # commands

    def build_command(self) -> list[str]:
        settings = self._settings
        return [
            *settings.command("nx"),
            "build",
            settings.build_project,
            f"--parallel={settings.build_parallel}",
            "--verbose",
        ]

    def docs_command(self) -> list[str]:
        settings = self._settings
        return [
            *settings.command("docs"),
            "-i",
            str(settings.resolve(settings.docs_input)),
            "-o",
            str(settings.resolve(settings.docs_output)),
        ]

    def server_command(self) -> list[str]:
        return self._settings.command("server")

    def watch_command(self) -> list[str]:
        settings = self._settings
        return [
            *settings.command("nx"),
            "watch",
            "-d",
            "-p",
            settings.watch_project,
            "--",
            *self.build_command(),
        ]

    # output rules

    def _echo_progress(self, line: str) -> None:
        if self._settings.unchanged_marker in line:
            return
        self._echo(line)

    def _echo_stderr(self, line: str) -> None:
        if not line.strip():
            return
        if any(ignored in line for ignored in self._settings.ignored_stderr):
            return
        self._echo(line)

    def progress_observer(self) -> LineObserver:
        """Stdout rules shared by every role: echo namespace progress and build timings."""

        docs_timing = re.compile("^" + re.escape(self._settings.docs_ready_marker))
        return (
            LineObserver()
            .on(self._settings.progress_prefix, self._echo_progress)
            .on(docs_timing, self._echo)
        )

    def stderr_observer(self) -> LineObserver:
        return LineObserver().on(lambda _line: True, self._echo_stderr)

    def watch_observer(self) -> LineObserver:
        return self.progress_observer().on(self._settings.rebuild_done_marker, self._on_rebuild)

    async def _on_rebuild(self, _line: str) -> None:
        self.rebuilds += 1
        logger.info("Rebuild finished, regenerating documentation", extra={"rebuild": self.rebuilds})
        await self.docs.restart()

    # role factories

    async def _start_docs(self) -> ProcessHandle:
        return await self._spawn(
            "docs",
            self.docs_command(),
            cwd=self._settings.workspace_root,
            stdout=self.progress_observer(),
            stderr=self.stderr_observer(),
            ready=self._settings.docs_ready_marker,
        )

    async def _start_server(self) -> ProcessHandle:
        server_ready = self._settings.server_ready_marker
        return await self._spawn(
            "server",
            self.server_command(),
            cwd=self._settings.resolve(self._settings.server_cwd),
            stdout=LineObserver().on(server_ready, self._echo),
            stderr=LineObserver().on(server_ready, self._echo),
            ready=server_ready,
        )

    async def _start_watch(self) -> ProcessHandle:
        return await self._spawn(
            "build-watch",
            self.watch_command(),
            cwd=self._settings.workspace_root,
            stdout=self.watch_observer(),
            stderr=self.stderr_observer(),
        )

    # phases

    async def unlink_local_packages(self, roots: Sequence[str] | None = None) -> int:
        """Remove installed copies of namespace packages so freshly built ones are used."""

        if roots is None:
            roots = await self._reader.list_project_roots()
        removed = 0
        for root in roots:
            target = self._settings.resolve(root) / INSTALL_DIR / self._settings.namespace
            if remove_tree(target):
                removed += 1
        logger.debug("Unlinked namespace packages", extra={"removed": removed})
        return removed

    async def build_once(self) -> None:
        """Build the package once; a failure aborts before any long-lived role starts."""

        handle = await self._spawn(
            "build",
            self.build_command(),
            cwd=self._settings.workspace_root,
            stdout=self.progress_observer(),
            stderr=self.stderr_observer(),
        )
        returncode = await handle.wait()
        if returncode != 0:
            raise RoleFailedError("build", returncode, handle.output)

    async def run(self) -> None:
        """Run until the watcher exits or a role fails; always kills remaining children."""

        try:
            await self.unlink_local_packages()

            logger.info("Build %s", self._settings.build_project)
            await self.build_once()

            logger.info("Build documentation")
            await self.docs.start()

            logger.info("Start documentation server")
            await self.server.start()

            logger.info("Start watching %s", self._settings.watch_project)
            await self.watch.start()

            await self._supervise()
        finally:
            await self.shutdown()

    async def _supervise(self) -> None:
        slots = (self.watch, self.docs, self.server)
        watch_handle = self.watch.handle
        assert watch_handle is not None
        watch_exit = asyncio.ensure_future(watch_handle.wait())
        try:
            await asyncio.wait(
                {watch_exit, *(slot.failure for slot in slots)},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            if not watch_exit.done():
                watch_exit.cancel()

        for slot in slots:
            if slot.failure.done():
                error = slot.failure.exception()
                await slot.kill()
                raise error

        returncode = watch_exit.result()
        logger.info("Watcher exited", extra={"returncode": returncode})

    async def shutdown(self) -> None:
        for slot in (self.watch, self.docs, self.server):
            await slot.kill()


__all__ = ["DevLoop"]
