"""Status dashboard rendering."""

from .generator import PulseGenerator
from .loader import PulseConfigError, load_pulse_config
from .models import PulseConfig, PulseRow, PulseSection
from .renderer import render_dependency_graph, render_document, render_section

__all__ = [
    "PulseConfig",
    "PulseConfigError",
    "PulseGenerator",
    "PulseRow",
    "PulseSection",
    "load_pulse_config",
    "render_dependency_graph",
    "render_document",
    "render_section",
]
