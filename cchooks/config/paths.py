"""Project-local path layout used by the dispatcher."""

from pathlib import Path
from typing import NamedTuple


CLAUDE_DIR_NAME = ".claude"
CONFIG_FILE_NAME = "hooks.json"
TOML_CONFIG_NAME = ".cchooks.toml"


class ProjectPaths(NamedTuple):
    """Resolved locations of every file the dispatcher reads or writes."""

    root: Path

    @property
    def claude_dir(self) -> Path:
        return self.root / CLAUDE_DIR_NAME

    @property
    def config_file(self) -> Path:
        return self.claude_dir / CONFIG_FILE_NAME

    @property
    def cache_dir(self) -> Path:
        return self.claude_dir / "cache"

    @property
    def templates_dir(self) -> Path:
        return self.claude_dir / "templates"

    @property
    def git_hooks_dir(self) -> Path:
        return self.root / ".git" / "hooks"

    @property
    def toml_config(self) -> Path:
        return self.root / TOML_CONFIG_NAME

    def hook_script(self, hook_id: str) -> Path:
        """Path of the git hook script for an event slot."""
        return self.git_hooks_dir / hook_id


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` looking for a directory containing ``.git``.

    Args:
        start: Directory to start from (defaults to the current directory)

    Returns:
        The repository root, or None when not inside a git work tree
    """
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None
