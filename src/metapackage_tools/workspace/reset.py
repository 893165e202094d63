"""Wipe and reinstall dependency trees across the workspace."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable

from ..config import MetapackageSettings
from ..process import CommandRunner

logger = logging.getLogger(__name__)

INSTALL_DIR = "node_modules"


def remove_tree(path: Path) -> bool:
    """Delete ``path`` recursively; a missing path is not an error."""

    if not path.exists() and not path.is_symlink():
        return False
    if path.is_symlink() or path.is_file():
        path.unlink()
    else:
        shutil.rmtree(path)
    return True


class WorkspaceReset:
    """Deletes every ``node_modules`` and reinstalls, unified or per project."""

    def __init__(self, runner: CommandRunner, settings: MetapackageSettings) -> None:
        self._runner = runner
        self._settings = settings

    def install_dirs(self, roots: Iterable[str]) -> list[Path]:
        dirs = [self._settings.resolve(root) / INSTALL_DIR for root in roots]
        dirs.append(self._settings.workspace_root / INSTALL_DIR)
        return dirs

    async def reset(
        self,
        roots: Iterable[str],
        *,
        metapackage: bool = False,
        quick: bool = False,
        dry_run: bool = False,
    ) -> None:
        """Run the delete phase (unless ``quick``) then reinstall.

        Any failing step propagates and aborts the remaining steps.
        """

        roots = list(roots)
        if not quick:
            for path in self.install_dirs(roots):
                if dry_run:
                    logger.info("Would remove %s", path)
                    continue
                if remove_tree(path):
                    logger.debug("Removed %s", path)

        npm = self._settings.command("npm")
        workspace_root = self._settings.workspace_root
        if metapackage:
            steps = [([*npm, "i"], workspace_root)]
        else:
            steps = [([*npm, "i", "--no-workspaces"], self._settings.resolve(root)) for root in roots]
            steps.append(([*npm, "i", "--no-workspaces"], workspace_root))

        for args, cwd in steps:
            if dry_run:
                logger.info("Would run %s in %s", " ".join(args), cwd)
                continue
            logger.info("Installing in %s", cwd)
            await self._runner.run(args, cwd=cwd)


__all__ = ["INSTALL_DIR", "WorkspaceReset", "remove_tree"]
