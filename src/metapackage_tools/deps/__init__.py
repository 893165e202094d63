"""Dependency batch updater."""

from .models import (
    DependencyKind,
    DependencySpec,
    DependencyUpdateTask,
    SpecifierError,
    UpdateGroup,
    parse_specifier,
)
from .updater import (
    DependencyUpdater,
    collect_tasks,
    commit_message,
    describe_group,
    group_tasks,
    is_manifest_dirty,
)

__all__ = [
    "DependencyKind",
    "DependencySpec",
    "DependencyUpdateTask",
    "DependencyUpdater",
    "SpecifierError",
    "UpdateGroup",
    "collect_tasks",
    "commit_message",
    "describe_group",
    "group_tasks",
    "is_manifest_dirty",
    "parse_specifier",
]
