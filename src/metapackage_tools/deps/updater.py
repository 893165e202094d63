"""Bulk dependency version bumps across every project of the workspace."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from ..config import MetapackageSettings
from ..graph import GraphReader, PackageManifest, load_manifest
from ..process import CommandRunner
from .models import (
    DependencyKind,
    DependencySpec,
    DependencyUpdateTask,
    UNPINNED_VERSION,
    UpdateGroup,
)

logger = logging.getLogger(__name__)

MANIFEST_FILES = ("package.json", "package-lock.json")

ManifestLoader = Callable[[str], PackageManifest]


def collect_tasks(
    roots: Iterable[str],
    specs: Sequence[DependencySpec],
    manifest_loader: ManifestLoader,
) -> list[DependencyUpdateTask]:
    """Return one task per (project, requested dependency, kind) pinned to a concrete version."""

    tasks: list[DependencyUpdateTask] = []
    for root in roots:
        manifest = manifest_loader(root)
        project = manifest.name or root
        for spec in specs:
            for kind in DependencyKind:
                pinned = _dependency_map(manifest, kind).get(spec.name)
                if not pinned or pinned == UNPINNED_VERSION:
                    continue
                tasks.append(
                    DependencyUpdateTask(
                        project=project,
                        root=root,
                        name=spec.name,
                        kind=kind,
                        previous=pinned,
                        target=spec.version,
                    )
                )
    return tasks


def _dependency_map(manifest: PackageManifest, kind: DependencyKind) -> dict[str, str]:
    if kind is DependencyKind.RUNTIME:
        return manifest.dependencies
    return manifest.dev_dependencies


def group_tasks(tasks: Iterable[DependencyUpdateTask]) -> list[UpdateGroup]:
    """Group tasks by project, then by kind, keeping first-seen order."""

    groups: dict[tuple[str, DependencyKind], UpdateGroup] = {}
    by_project: dict[str, list[tuple[str, DependencyKind]]] = {}
    for task in tasks:
        key = (task.project, task.kind)
        group = groups.get(key)
        if group is None:
            group = UpdateGroup(project=task.project, root=task.root, kind=task.kind)
            groups[key] = group
            by_project.setdefault(task.project, []).append(key)
        group.tasks.append(task)

    return [groups[key] for keys in by_project.values() for key in keys]


def describe_group(group: UpdateGroup) -> list[str]:
    """Human-readable change summary lines for one group (without the project header)."""

    lines = [f"  {group.kind.value}:"]
    lines.extend(f"    {task.name}: {task.previous} -> {task.target}" for task in group.tasks)
    return lines


def commit_message(group: UpdateGroup) -> str:
    changes = ", ".join(f"{task.name}[{task.previous}->{task.target}]" for task in group.tasks)
    return f"deps: {changes}"


def is_manifest_dirty(status_output: str) -> bool:
    """Whether ``git status -s`` output lists the manifest or its lockfile."""

    return any(name in status_output for name in MANIFEST_FILES)


class DependencyUpdater:
    """Applies dependency bumps project by project with npm, optionally committing each group."""

    def __init__(
        self,
        runner: CommandRunner,
        settings: MetapackageSettings,
        *,
        reader: GraphReader | None = None,
        manifest_loader: ManifestLoader | None = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        self._runner = runner
        self._settings = settings
        self._reader = reader or GraphReader(runner, settings)
        self._load_manifest = manifest_loader or self._default_manifest_loader
        self._echo = echo

    def _default_manifest_loader(self, root: str) -> PackageManifest:
        return load_manifest(self._settings.resolve(root) / "package.json")

    async def plan(self, specs: Sequence[DependencySpec]) -> list[UpdateGroup]:
        """Return the update groups for ``specs`` without touching anything."""

        roots = await self._reader.list_project_roots()
        tasks = collect_tasks(roots, specs, self._load_manifest)
        return group_tasks(tasks)

    async def update(
        self,
        specs: Sequence[DependencySpec],
        *,
        dry_run: bool = False,
        commit: bool = False,
    ) -> list[UpdateGroup]:
        """Print and (unless ``dry_run``) apply every update group.

        A failing group aborts the run; groups applied before it stay applied.
        """

        groups = await self.plan(specs)
        if not groups:
            logger.info("No pinned dependencies matched", extra={"specs": [str(spec) for spec in specs]})
            return []

        current_project: str | None = None
        for group in groups:
            if group.project != current_project:
                self._echo(f"[{group.project}]:")
                current_project = group.project
            self._echo("\n".join(describe_group(group)))

            if dry_run:
                continue

            await self._install(group)
            if commit:
                await self._commit(group)

        return groups

    async def _install(self, group: UpdateGroup) -> None:
        cwd = self._settings.resolve(group.root)
        npm = self._settings.command("npm")
        packages = [task.install_spec for task in group.tasks]
        flag = group.kind.save_flag

        logger.debug("Installing group", extra={"project": group.project, "kind": group.kind.value})
        await self._runner.run([*npm, "i", *packages, flag, "--no-workspaces"], cwd=cwd)
        await self._runner.run([*npm, "i", *packages, flag], cwd=cwd)

    async def _commit(self, group: UpdateGroup) -> bool:
        cwd = self._settings.resolve(group.root)
        git = self._settings.command("git")

        status = await self._runner.run([*git, "status", "-s"], cwd=cwd)
        if not is_manifest_dirty(status.stdout):
            logger.info("Nothing to commit", extra={"project": group.project})
            return False

        await self._runner.run([*git, "add", *MANIFEST_FILES], cwd=cwd)
        await self._runner.run([*git, "commit", "-m", commit_message(group)], cwd=cwd)
        return True


__all__ = [
    "DependencyUpdater",
    "collect_tasks",
    "commit_message",
    "describe_group",
    "group_tasks",
    "is_manifest_dirty",
]
