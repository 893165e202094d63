"""Shared bootstrap for the maintenance scripts: logging, services, error reporting."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from . import __version__
from .config import MetapackageSettings, get_settings
from .devloop import ProcessExitedError, RoleFailedError
from .graph import GraphReader
from .process import CommandFailedError, CommandRunner, format_failure


def configure_logging(level: str) -> None:
    """Configure root logging for a maintenance script."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_runner() -> CommandRunner:
    return CommandRunner()


def create_graph_reader(
    settings: MetapackageSettings | None = None,
    runner: CommandRunner | None = None,
) -> GraphReader:
    settings = settings or get_settings()
    return GraphReader(runner or create_runner(), settings)


def bootstrap(name: str) -> MetapackageSettings:
    """Load settings and configure logging for the script ``name``."""

    settings = get_settings()
    configure_logging(settings.log_level)
    logging.getLogger(name).debug(
        "Starting %s",
        name,
        extra={"version": __version__, "workspace_root": str(settings.workspace_root)},
    )
    return settings


def report_error(exc: BaseException, stream: TextIO | None = None) -> None:
    """Print a failure and any captured process output for the operator."""

    stream = stream or sys.stderr
    print(f"Error: {exc}", file=stream)
    if isinstance(exc, CommandFailedError):
        print(format_failure(exc.result), file=stream)
    elif isinstance(exc, (RoleFailedError, ProcessExitedError)) and exc.output:
        print("\n".join(exc.output), file=stream)


__all__ = [
    "bootstrap",
    "configure_logging",
    "create_graph_reader",
    "create_runner",
    "report_error",
]
