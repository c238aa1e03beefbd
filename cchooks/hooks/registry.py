"""Registry of hooks for one project.

The registry owns every hook, their enable state and dependencies, drives
batch installation and removal in dependency order, and persists hook
configuration to ``.claude/hooks.json``.
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiofiles

from cchooks.backend.client import AIBackendClient
from cchooks.config.paths import ProjectPaths
from cchooks.config.settings import Settings
from cchooks.core.logging import get_logger
from cchooks.exceptions import HookNotFoundError

from .base import BaseHook, Hook
from .events import HookExecuted, HookFailed, HookInstalled, HookRemoved
from .installer import InstallationManager
from .models import ExecutionContext, HookResult
from .pipeline import run_lifecycle


logger = get_logger(__name__)

CONFIG_VERSION = "1.0.0"


class HookRegistry:
    """Central registry for all hooks of a project."""

    def __init__(
        self,
        project_root: Path | str,
        settings: Settings | None = None,
        backend: AIBackendClient | None = None,
        installer: InstallationManager | None = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.paths = ProjectPaths(self.project_root)
        self.settings = settings or Settings()
        self.backend = backend or AIBackendClient(self.settings, self.project_root)
        self.installer = installer or InstallationManager(self.paths)
        self._hooks: dict[str, Hook] = {}
        self._dependencies: dict[str, list[str]] = {}
        self.last_results: dict[str, HookResult] = {}
        self.history: list[HookInstalled | HookRemoved] = []

    def __len__(self) -> int:
        return len(self._hooks)

    def __contains__(self, hook_id: object) -> bool:
        return hook_id in self._hooks

    # Registration

    def register_hook(
        self,
        hook_id: str,
        hook_cls: type[BaseHook],
        defaults: dict[str, Any] | None = None,
    ) -> Hook:
        """Construct and register a hook.

        Args:
            hook_id: Event slot the hook occupies (e.g. ``pre-commit``)
            hook_cls: Hook class to instantiate
            defaults: Values merged over the schema defaults

        Returns:
            The registered hook
        """
        config_class = hook_cls.config_class
        config = config_class.from_persisted(
            {**config_class().model_dump(), **(defaults or {})}, hook_id=hook_id
        )
        hook = hook_cls(
            hook_id,
            project_root=self.project_root,
            settings=self.settings,
            backend=self.backend,
            config=config,
        )
        return self.register(hook)

    def register(self, hook: Hook) -> Hook:
        """Register an already constructed hook, replacing any previous one."""
        if hook.hook_id in self._hooks:
            logger.warning(
                "hook_overwritten",
                hook_id=hook.hook_id,
                previous=type(self._hooks[hook.hook_id]).__name__,
                replacement=type(hook).__name__,
            )

        self._hooks[hook.hook_id] = hook
        if hook.depends_on or hook.hook_id not in self._dependencies:
            self._dependencies[hook.hook_id] = list(hook.depends_on)
        self._subscribe(hook)
        logger.debug("hook_registered", hook_id=hook.hook_id, name=hook.name)
        return hook

    def _subscribe(self, hook: Hook) -> None:
        hook.events.executed.subscribe(self._on_executed)
        hook.events.failed.subscribe(self._on_failed)
        hook.events.installed.subscribe(self._on_installed)
        hook.events.removed.subscribe(self._on_removed)

    def _on_executed(self, event: HookExecuted) -> None:
        self.last_results[event.hook_id] = event.result

    def _on_failed(self, event: HookFailed) -> None:
        self.last_results[event.hook_id] = event.result
        logger.warning(
            "hook_failed", hook_id=event.hook_id, error=str(event.error)
        )

    def _on_installed(self, event: HookInstalled) -> None:
        self.history.append(event)

    def _on_removed(self, event: HookRemoved) -> None:
        self.history.append(event)

    # Lookup and state

    def get_hook(self, hook_id: str) -> Hook:
        try:
            return self._hooks[hook_id]
        except KeyError:
            raise HookNotFoundError(hook_id) from None

    def list_hooks(self) -> list[Hook]:
        return list(self._hooks.values())

    def enable_hook(self, hook_id: str) -> None:
        self.get_hook(hook_id).config.enabled = True
        logger.info("hook_enabled", hook_id=hook_id)

    def disable_hook(self, hook_id: str) -> None:
        self.get_hook(hook_id).config.enabled = False
        logger.info("hook_disabled", hook_id=hook_id)

    # Dependencies

    def set_dependencies(self, hook_id: str, dependencies: list[str]) -> None:
        self._dependencies[hook_id] = list(dependencies)

    def get_dependencies(self, hook_id: str) -> list[str]:
        return list(self._dependencies.get(hook_id, []))

    def resolve_order(self, hook_ids: list[str]) -> list[str]:
        """Order hooks so that dependencies come before their dependents.

        Dependencies outside ``hook_ids`` are ignored. A dependency cycle is
        logged and broken at the edge that closes it, so every hook still
        appears exactly once.

        Args:
            hook_ids: Hooks to order, in discovery order

        Returns:
            The same hook ids in dependency order
        """
        wanted = set(hook_ids)
        visited: set[str] = set()
        temp_mark: set[str] = set()
        order: list[str] = []

        def visit(hook_id: str) -> None:
            if hook_id in visited:
                return
            temp_mark.add(hook_id)
            for dep in self._dependencies.get(hook_id, []):
                if dep not in wanted:
                    continue
                if dep in temp_mark:
                    logger.warning(
                        "hook_dependency_cycle", hook_id=hook_id, dependency=dep
                    )
                    continue
                visit(dep)
            temp_mark.discard(hook_id)
            visited.add(hook_id)
            order.append(hook_id)

        for hook_id in hook_ids:
            visit(hook_id)
        return order

    # Batch operations

    async def setup_hooks(
        self, dry_run: bool | None = None
    ) -> tuple[list[str], list[str]]:
        """Install every enabled hook in dependency order.

        Returns:
            Tuple of (succeeded hook ids, failed hook ids)
        """
        dry_run = self.settings.dry_run if dry_run is None else dry_run
        enabled = [h.hook_id for h in self._hooks.values() if h.config.enabled]
        succeeded: list[str] = []
        failed: list[str] = []

        for hook_id in self.resolve_order(enabled):
            hook = self._hooks[hook_id]
            try:
                ok = await self.installer.setup(hook, dry_run=dry_run)
            except Exception as e:
                logger.error("hook_setup_failed", hook_id=hook_id, error=str(e))
                ok = False
            (succeeded if ok else failed).append(hook_id)

        logger.info(
            "hooks_setup_complete",
            succeeded=succeeded,
            failed=failed,
            dry_run=dry_run,
        )
        if not dry_run:
            await self.save_config()
        return succeeded, failed

    async def remove_hooks(
        self, dry_run: bool | None = None
    ) -> tuple[list[str], list[str]]:
        """Remove every registered hook, dependents before their dependencies.

        Returns:
            Tuple of (succeeded hook ids, failed hook ids)
        """
        dry_run = self.settings.dry_run if dry_run is None else dry_run
        succeeded: list[str] = []
        failed: list[str] = []

        for hook_id in reversed(self.resolve_order(list(self._hooks))):
            hook = self._hooks[hook_id]
            try:
                ok = await self.installer.remove(hook, dry_run=dry_run)
            except Exception as e:
                logger.error("hook_remove_failed", hook_id=hook_id, error=str(e))
                ok = False
            (succeeded if ok else failed).append(hook_id)

        logger.info(
            "hooks_remove_complete",
            succeeded=succeeded,
            failed=failed,
            dry_run=dry_run,
        )
        if not dry_run:
            await self.save_config()
        return succeeded, failed

    async def run_hook(
        self,
        hook_id: str,
        args: list[str],
        data: dict[str, Any] | None = None,
    ) -> HookResult:
        """Run one hook for a git invocation.

        Args:
            hook_id: Hook to run
            args: Positional arguments git passed to the hook script
            data: Initial values for the context data bag (e.g. ``stdin``)

        Raises:
            HookNotFoundError: No hook is registered under ``hook_id``
        """
        hook = self.get_hook(hook_id)
        if not hook.config.enabled:
            logger.info("hook_disabled_skipping", hook_id=hook_id)
            return HookResult.skipped(f"Hook {hook_id} is disabled")

        context = ExecutionContext(
            event=hook_id,
            args=list(args),
            project_root=self.project_root,
            logger=logger.bind(hook_id=hook_id),
            data=dict(data or {}),
        )
        return await run_lifecycle(hook, context)

    # Persistence

    def config_document(self) -> dict[str, Any]:
        return {
            "version": CONFIG_VERSION,
            "timestamp": datetime.now(UTC).isoformat(),
            "hooks": {
                hook_id: hook.config.model_dump(mode="json")
                for hook_id, hook in self._hooks.items()
            },
        }

    async def save_config(self) -> Path:
        path = self.paths.config_file
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(self.config_document(), indent=2))
        logger.debug("hook_config_saved", path=str(path))
        return path

    async def load_config(self) -> bool:
        """Apply persisted configuration to the registered hooks.

        Unknown hooks and fields are ignored and invalid values fall back to
        schema defaults. This method never raises.

        Returns:
            True when a configuration document was read
        """
        path = self.paths.config_file
        if not path.exists():
            return False

        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                document = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.warning("hook_config_load_failed", path=str(path), error=str(e))
            return False

        hooks_data = document.get("hooks") if isinstance(document, dict) else None
        if not isinstance(hooks_data, dict):
            logger.warning("hook_config_malformed", path=str(path))
            return False

        version = document.get("version")
        if version != CONFIG_VERSION:
            logger.info("hook_config_version_mismatch", found=version, expected=CONFIG_VERSION)

        for hook_id, values in hooks_data.items():
            hook = self._hooks.get(hook_id)
            if hook is None:
                logger.debug("hook_config_unknown_hook", hook_id=hook_id)
                continue
            if not isinstance(values, dict):
                logger.warning("hook_config_entry_invalid", hook_id=hook_id)
                continue
            hook.config = type(hook.config).from_persisted(values, hook_id=hook_id)

        logger.debug("hook_config_loaded", path=str(path), hooks=len(hooks_data))
        return True
