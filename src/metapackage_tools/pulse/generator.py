"""Builds the status dashboard document from configuration plus the project graph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from ..config import MetapackageSettings
from ..graph import GraphReader, ManifestLoadError, PackageManifest, ProjectGraph, load_manifest
from .loader import load_pulse_config
from .models import PulseConfig
from .renderer import render_dependency_graph, render_document

logger = logging.getLogger(__name__)


class PulseGenerator:
    """Renders ``PULSE.md`` in full on every invocation."""

    def __init__(
        self,
        reader: GraphReader,
        settings: MetapackageSettings,
        *,
        config: PulseConfig | None = None,
        manifest_loader: Callable[[Path], PackageManifest] = load_manifest,
    ) -> None:
        self._reader = reader
        self._settings = settings
        self._config = config
        self._load_manifest = manifest_loader

    @property
    def config(self) -> PulseConfig:
        if self._config is None:
            self._config = load_pulse_config(self._settings.pulse_config_path)
        return self._config

    def _manifests(self, graph: ProjectGraph) -> dict[str, PackageManifest | None]:
        manifests: dict[str, PackageManifest | None] = {}
        for node_id, node in graph.nodes.items():
            path = self._settings.resolve(node.data.root) / "package.json"
            try:
                manifests[node_id] = self._load_manifest(path)
            except ManifestLoadError as exc:
                logger.debug("Skipping unreadable manifest", extra={"node": node_id, "error": str(exc)})
                manifests[node_id] = None
        return manifests

    async def generate(self, *, include_graph: bool = True) -> str:
        config = self.config
        dependency_graph = ""
        if include_graph:
            graph = await self._reader.read_graph()
            dependency_graph = render_dependency_graph(
                config, self._settings.namespace, graph, self._manifests(graph)
            )
        return render_document(config, dependency_graph)

    async def write(self, output: Path | None = None, *, include_graph: bool = True) -> Path:
        """Render the dashboard and overwrite ``output`` (default: the configured pulse file)."""

        target = self._settings.resolve(output or self._settings.pulse_output)
        document = await self.generate(include_graph=include_graph)
        target.write_text(document, encoding="utf-8")
        logger.info("Wrote dashboard", extra={"path": str(target)})
        return target


__all__ = ["PulseGenerator"]
