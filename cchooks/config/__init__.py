"""Configuration for cchooks."""

from .paths import ProjectPaths, find_project_root
from .settings import BackendSettings, LoggingSettings, Settings


__all__ = [
    "BackendSettings",
    "LoggingSettings",
    "ProjectPaths",
    "Settings",
    "find_project_root",
]
