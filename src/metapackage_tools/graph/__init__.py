"""Project graph reader and manifest models."""

from .models import PackageManifest, ProjectData, ProjectDependency, ProjectGraph, ProjectNode
from .reader import GraphReadError, GraphReader, ManifestLoadError, load_manifest, parse_graph

__all__ = [
    "GraphReadError",
    "GraphReader",
    "ManifestLoadError",
    "PackageManifest",
    "ProjectData",
    "ProjectDependency",
    "ProjectGraph",
    "ProjectNode",
    "load_manifest",
    "parse_graph",
]
