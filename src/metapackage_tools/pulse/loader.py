"""Dashboard configuration loading."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import PulseConfig


class PulseConfigError(RuntimeError):
    """Raised when the dashboard configuration cannot be loaded."""


def load_pulse_config(path: Path) -> PulseConfig:
    """Load and validate the dashboard sections from a YAML file."""

    path = Path(path)
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise PulseConfigError(f"Failed to read dashboard config {path}: {exc}") from exc
    except yaml.YAMLError as exc:  # pragma: no cover - library type
        raise PulseConfigError(f"Failed to parse YAML in {path}: {exc}") from exc

    if document is None:
        raise PulseConfigError(f"Dashboard config {path} is empty")

    try:
        return PulseConfig.model_validate(document)
    except ValidationError as exc:
        raise PulseConfigError(f"Dashboard config validation error in {path}: {exc}") from exc


__all__ = ["PulseConfigError", "load_pulse_config"]
