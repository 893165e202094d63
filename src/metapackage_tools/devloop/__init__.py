"""Incremental build, documentation and serve loop for one package."""

from .handle import ProcessExitedError, ProcessHandle
from .observer import LineObserver, LineRule
from .orchestrator import DevLoop
from .roles import RoleFailedError, RoleSlot, RoleState

__all__ = [
    "DevLoop",
    "LineObserver",
    "LineRule",
    "ProcessExitedError",
    "ProcessHandle",
    "RoleFailedError",
    "RoleSlot",
    "RoleState",
]
