"""Data models for dependency update batches."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_TARGET_VERSION = "latest"
UNPINNED_VERSION = "*"

_SPECIFIER = re.compile(r"^(.+?)(?:@(.+?))?$")


class SpecifierError(ValueError):
    """Raised when a ``name[@version]`` specifier is malformed."""


class DependencyKind(str, Enum):
    """Manifest dependency map, with the npm flag that saves into it."""

    RUNTIME = "dependencies"
    DEVELOPMENT = "devDependencies"

    @property
    def save_flag(self) -> str:
        return "--save" if self is DependencyKind.RUNTIME else "--save-dev"


@dataclass(slots=True, frozen=True)
class DependencySpec:
    name: str
    version: str = DEFAULT_TARGET_VERSION

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(slots=True)
class DependencyUpdateTask:
    """One pinned dependency of one project that should move to ``target``."""

    project: str
    root: str
    name: str
    kind: DependencyKind
    previous: str
    target: str

    @property
    def install_spec(self) -> str:
        return f"{self.name}@{self.target}"


@dataclass(slots=True)
class UpdateGroup:
    """Tasks sharing one project and one dependency kind, applied by one install."""

    project: str
    root: str
    kind: DependencyKind
    tasks: list[DependencyUpdateTask] = field(default_factory=list)


def parse_specifier(value: str) -> DependencySpec:
    """Parse ``name[@version]``; scoped names such as ``@scope/pkg@1.0.0`` are supported."""

    text = value.strip()
    match = _SPECIFIER.match(text)
    if not text or match is None:
        raise SpecifierError(f"Malformed dependency specifier {value!r}")
    name, version = match.group(1), match.group(2)
    if name.endswith("@"):
        raise SpecifierError(f"Malformed dependency specifier {value!r}: missing version after '@'")
    return DependencySpec(name=name, version=version or DEFAULT_TARGET_VERSION)


__all__ = [
    "DEFAULT_TARGET_VERSION",
    "DependencyKind",
    "DependencySpec",
    "DependencyUpdateTask",
    "SpecifierError",
    "UNPINNED_VERSION",
    "UpdateGroup",
    "parse_specifier",
]
