"""Entry point used by the installed git hook scripts.

Git treats a non-zero exit status from a hook as "abort the operation", so
the only non-zero outcomes are a blocking result and a dispatcher that could
not find the requested hook.
"""

from pathlib import Path

from cchooks.backend.client import AIBackendClient
from cchooks.config.paths import find_project_root
from cchooks.config.settings import Settings
from cchooks.core.logging import get_logger
from cchooks.exceptions import ConfigurationError
from cchooks.hooks.implementations import BUILTIN_HOOKS
from cchooks.hooks.models import HookResult
from cchooks.hooks.registry import HookRegistry


logger = get_logger(__name__)

EXIT_PROCEED = 0
EXIT_ABORT = 1


def exit_code_for(result: HookResult) -> int:
    return EXIT_ABORT if result.should_block else EXIT_PROCEED


def load_settings(project_root: Path) -> Settings:
    """Settings for a project, falling back to defaults on a bad config file."""
    try:
        return Settings.from_config(project_root)
    except ConfigurationError as e:
        logger.error("settings_invalid_using_defaults", error=e.message)
        return Settings()


def create_registry(
    project_root: Path,
    settings: Settings | None = None,
    backend: AIBackendClient | None = None,
) -> HookRegistry:
    """Registry with every built-in hook registered under its own slot."""
    registry = HookRegistry(project_root, settings=settings, backend=backend)
    for hook_id, hook_cls in BUILTIN_HOOKS.items():
        registry.register_hook(hook_id, hook_cls)
    return registry


async def dispatch(
    hook_id: str,
    args: list[str],
    *,
    project_root: Path | None = None,
    registry: HookRegistry | None = None,
    stdin: str | None = None,
) -> int:
    """Run a hook for a git event and map its result to an exit status.

    Args:
        hook_id: Git hook name, e.g. ``pre-commit``
        args: Arguments git passed to the hook script
        project_root: Repository root, discovered from the cwd when omitted
        registry: Preconfigured registry, built from the built-ins when omitted
        stdin: Text git wrote to the hook's stdin, if any

    Returns:
        0 to let git proceed, 1 to abort
    """
    if registry is None:
        root = project_root or find_project_root()
        if root is None:
            logger.error("not_a_git_repository", cwd=str(Path.cwd()))
            return EXIT_ABORT
        registry = create_registry(root, load_settings(root))

    await registry.load_config()

    if hook_id not in registry:
        logger.error("hook_not_found", hook_id=hook_id)
        return EXIT_ABORT

    data = {"stdin": stdin} if stdin else None
    result = await registry.run_hook(hook_id, args, data=data)
    logger.debug(
        "dispatch_complete",
        hook_id=hook_id,
        status=result.status.value,
        should_block=result.should_block,
    )
    return exit_code_for(result)
