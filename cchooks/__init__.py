"""Lifecycle-driven git hook dispatcher with Claude-backed hooks."""

from ._version import __version__


__all__ = ["__version__"]
