"""Workspace-wide dependency tree maintenance."""

from .reset import INSTALL_DIR, WorkspaceReset, remove_tree

__all__ = ["INSTALL_DIR", "WorkspaceReset", "remove_tree"]
