"""Maintenance tooling for a metapackage workspace of independently published packages."""

__version__ = "0.1.0"

__all__ = ["__version__"]
