"""Project graph and manifest loading utilities."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..config import MetapackageSettings
from ..process import CommandRunner
from .models import PackageManifest, ProjectGraph

logger = logging.getLogger(__name__)

GRAPH_FILE_NAME = "graph.json"


class GraphReadError(RuntimeError):
    """Raised when the project graph output cannot be parsed."""


class ManifestLoadError(RuntimeError):
    """Raised when a package manifest cannot be read or validated."""


def parse_graph(document: object) -> ProjectGraph:
    """Validate the decoded ``nx graph --file`` document and return its graph."""

    if not isinstance(document, dict) or not isinstance(document.get("graph"), dict):
        raise GraphReadError("Graph output has no top-level 'graph' object")
    try:
        return ProjectGraph.model_validate(document["graph"])
    except ValidationError as exc:
        raise GraphReadError(f"Graph output has an unexpected shape: {exc}") from exc


class GraphReader:
    """Queries the build-graph tool for the workspace's projects."""

    def __init__(self, runner: CommandRunner, settings: MetapackageSettings) -> None:
        self._runner = runner
        self._settings = settings

    @property
    def graph_file(self) -> Path:
        return self._settings.workspace_root / GRAPH_FILE_NAME

    async def read_graph(self) -> ProjectGraph:
        """Run ``nx graph --file`` and return the parsed project graph.

        The temporary graph file is removed whether or not parsing succeeds.
        """

        target = self.graph_file
        args = [*self._settings.command("nx"), "graph", f"--file={target}"]
        try:
            await self._runner.run(args, cwd=self._settings.workspace_root)
            try:
                document = json.loads(target.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise GraphReadError(f"Graph tool did not write {target}") from exc
            except json.JSONDecodeError as exc:
                raise GraphReadError(f"Failed to parse graph output in {target}: {exc}") from exc
        finally:
            target.unlink(missing_ok=True)

        graph = parse_graph(document)
        logger.debug("Read project graph", extra={"projects": len(graph.nodes)})
        return graph

    async def list_project_roots(self) -> list[str]:
        """Return the root directory of every project known to the graph tool."""

        graph = await self.read_graph()
        return graph.roots()


def load_manifest(path: Path) -> PackageManifest:
    """Read and validate a ``package.json`` file."""

    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestLoadError(f"Failed to read manifest {path}: {exc}") from exc

    try:
        return PackageManifest.model_validate(document)
    except ValidationError as exc:
        raise ManifestLoadError(f"Manifest validation error in {path}: {exc}") from exc


__all__ = [
    "GRAPH_FILE_NAME",
    "GraphReadError",
    "GraphReader",
    "ManifestLoadError",
    "load_manifest",
    "parse_graph",
]
