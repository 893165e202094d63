"""Models for the Nx project graph and npm package manifests."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProjectData(BaseModel):
    """Project metadata as reported by the graph tool."""

    root: str = Field(..., description="Project root directory relative to the workspace.")

    @field_validator("root")
    @classmethod
    def _normalize_root(cls, value: str) -> str:
        normalized = value.strip().rstrip("/")
        return normalized or "."


class ProjectNode(BaseModel):
    """One node of the project graph."""

    name: str | None = Field(default=None, description="Project identifier.")
    type: str | None = Field(default=None, description="Project type reported by Nx (lib, app, e2e).")
    data: ProjectData


class ProjectDependency(BaseModel):
    """A directed edge between two project nodes."""

    source: str
    target: str
    type: str | None = Field(default=None, description="Edge type (static, implicit, dynamic).")


class ProjectGraph(BaseModel):
    """The ``graph`` object written by ``nx graph --file``."""

    nodes: dict[str, ProjectNode] = Field(default_factory=dict)
    dependencies: list[ProjectDependency] = Field(default_factory=list)

    @field_validator("nodes", mode="before")
    @classmethod
    def _ensure_nodes(cls, value: Any):
        return {} if value is None else value

    @field_validator("dependencies", mode="before")
    @classmethod
    def _flatten_dependencies(cls, value: Any):
        if value is None:
            return []
        if isinstance(value, dict):
            flattened: list[Any] = []
            for edges in value.values():
                flattened.extend(edges or [])
            return flattened
        return value

    def roots(self) -> list[str]:
        """Return the root directory of every project in the graph."""

        return [node.data.root for node in self.nodes.values()]


class PackageManifest(BaseModel):
    """The subset of ``package.json`` the maintenance scripts rely on."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")

    @field_validator("dependencies", "dev_dependencies", mode="before")
    @classmethod
    def _ensure_mapping(cls, value: Any):
        if value is None:
            return {}
        if isinstance(value, dict):
            return value
        raise ValueError("Dependency maps must be objects of name -> version specifier")


__all__ = [
    "PackageManifest",
    "ProjectData",
    "ProjectDependency",
    "ProjectGraph",
    "ProjectNode",
]
