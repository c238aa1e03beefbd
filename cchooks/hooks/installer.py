"""Installation of generated git hook scripts.

A slot (``.git/hooks/<hook id>``) moves through ABSENT, INSTALLED, REMOVED and
RESTORED. Installing over a foreign non-empty file first copies it to
``<slot>.bak.<epoch-ms>``. Removal only deletes scripts carrying the ownership
marker and then restores the lexicographically latest backup. Backups are
never pruned here.
"""

import shutil
import stat
import sys
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import aiofiles

from cchooks.config.paths import ProjectPaths
from cchooks.core.logging import get_logger
from cchooks.exceptions import InstallationError

from .events import HookInstalled, HookRemoved
from .models import ExecutionContext, HookLifecycle


if TYPE_CHECKING:
    from .base import Hook


logger = get_logger(__name__)

OWNERSHIP_MARKER = "cchooks managed hook"
EXECUTABLE_MODE = 0o755

SlotState = Literal["absent", "installed", "foreign"]


def render_hook_script(hook_id: str, name: str, description: str) -> str:
    """Shell script that forwards the git hook to ``cchooks run``."""
    generated = datetime.now(UTC).isoformat()
    return f"""#!/bin/sh
# {OWNERSHIP_MARKER}: {hook_id}
# Name: {name}
# Description: {description}
# Generated: {generated}

if command -v cchooks >/dev/null 2>&1; then
    exec cchooks run {hook_id} "$@"
fi
exec "{sys.executable}" -m cchooks run {hook_id} "$@"
"""


def _make_executable(path: Path) -> None:
    path.chmod(EXECUTABLE_MODE)


class InstallationManager:
    """Writes, backs up, removes and restores hook scripts for one project."""

    def __init__(
        self, paths: ProjectPaths, clock: Callable[[], float] = time.time
    ):
        self.paths = paths
        self._clock = clock

    def backups(self, hook_id: str) -> list[Path]:
        """Backups for a slot, oldest first by lexicographic suffix order."""
        hooks_dir = self.paths.git_hooks_dir
        if not hooks_dir.is_dir():
            return []
        return sorted(hooks_dir.glob(f"{hook_id}.bak.*"), key=lambda p: p.name)

    def slot_state(self, hook_id: str) -> SlotState:
        path = self.paths.hook_script(hook_id)
        if not path.exists():
            return "absent"
        return "installed" if self._is_owned(path) else "foreign"

    def _is_owned(self, path: Path) -> bool:
        try:
            return OWNERSHIP_MARKER in path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return False

    def _backup(self, path: Path) -> Path:
        stamp = int(self._clock() * 1000)
        backup = path.with_name(f"{path.name}.bak.{stamp}")
        counter = 1
        while backup.exists():
            backup = path.with_name(f"{path.name}.bak.{stamp}-{counter}")
            counter += 1
        shutil.copy2(path, backup)
        return backup

    def _context(self, hook: "Hook", phase: str, path: Path) -> ExecutionContext:
        return ExecutionContext(
            event=hook.hook_id,
            args=[],
            project_root=self.paths.root,
            logger=logger.bind(hook_id=hook.hook_id),
            data={"phase": phase, "path": str(path)},
        )

    async def setup(self, hook: "Hook", dry_run: bool = False) -> bool:
        """Install the hook's script into its slot.

        Args:
            hook: Hook to install
            dry_run: Only log what would happen

        Returns:
            True when installed (or would be), False when the hook is disabled

        Raises:
            InstallationError: The script or its backup could not be written
        """
        if not hook.config.enabled:
            logger.info("hook_setup_skipped_disabled", hook_id=hook.hook_id)
            return False

        path = self.paths.hook_script(hook.hook_id)
        if dry_run:
            logger.info("hook_setup_dry_run", hook_id=hook.hook_id, path=str(path))
            return True

        backup_path: Path | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if (
                path.exists()
                and not path.is_symlink()
                and path.stat().st_size > 0
            ):
                backup_path = self._backup(path)
                logger.info(
                    "hook_backup_created",
                    hook_id=hook.hook_id,
                    backup=str(backup_path),
                )
            elif path.is_symlink():
                path.unlink()

            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(hook.generate_script())
            _make_executable(path)
        except OSError as e:
            raise InstallationError(
                f"Failed to install hook {hook.hook_id}: {e}", path=str(path)
            ) from e

        logger.info("hook_installed", hook_id=hook.hook_id, path=str(path))
        await hook.run_phase(
            HookLifecycle.AFTER_SETUP, self._context(hook, "setup", path)
        )
        await hook.events.installed.publish(
            HookInstalled(
                hook_id=hook.hook_id,
                path=str(path),
                backup_path=str(backup_path) if backup_path else None,
            )
        )
        return True

    async def remove(self, hook: "Hook", dry_run: bool = False) -> bool:
        """Remove the hook's script and restore the latest backup.

        Args:
            hook: Hook to remove
            dry_run: Only log what would happen

        Returns:
            True when the slot no longer holds this framework's script, False
            when the slot holds a script without the ownership marker

        Raises:
            InstallationError: Deleting or restoring failed
        """
        path = self.paths.hook_script(hook.hook_id)
        if dry_run:
            logger.info("hook_remove_dry_run", hook_id=hook.hook_id, path=str(path))
            return True

        if path.exists() and not self._is_owned(path):
            logger.warning(
                "hook_removal_refused",
                hook_id=hook.hook_id,
                path=str(path),
                reason="ownership marker not found",
            )
            return False

        await hook.run_phase(
            HookLifecycle.BEFORE_REMOVE, self._context(hook, "remove", path)
        )

        if not path.exists():
            logger.debug("hook_not_installed", hook_id=hook.hook_id, path=str(path))
            return True

        restored: Path | None = None
        try:
            path.unlink()
            backups = self.backups(hook.hook_id)
            if backups:
                restored = backups[-1]
                shutil.copy2(restored, path)
                _make_executable(path)
        except OSError as e:
            raise InstallationError(
                f"Failed to remove hook {hook.hook_id}: {e}", path=str(path)
            ) from e

        logger.info(
            "hook_removed",
            hook_id=hook.hook_id,
            path=str(path),
            restored_from=str(restored) if restored else None,
        )
        await hook.events.removed.publish(
            HookRemoved(
                hook_id=hook.hook_id,
                path=str(path),
                restored_from=str(restored) if restored else None,
            )
        )
        return True


def is_executable(path: Path) -> bool:
    return bool(path.stat().st_mode & stat.S_IXUSR)
