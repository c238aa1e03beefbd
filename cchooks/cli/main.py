"""Command line interface for cchooks."""

import asyncio
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cchooks._version import __version__
from cchooks.config.paths import find_project_root
from cchooks.core.logging import get_logger, setup_logging
from cchooks.exceptions import HookNotFoundError
from cchooks.hooks.installer import is_executable
from cchooks.hooks.registry import HookRegistry
from cchooks.runner import create_registry, dispatch, load_settings

from .helpers import bold, dim, error, get_rich_toolkit, success, warning


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        toolkit = get_rich_toolkit()
        toolkit.print(f"cchooks {__version__}", tag="version")
        raise typer.Exit()


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

logger = get_logger(__name__)


def _project_root(ctx: typer.Context) -> Path:
    root: Path | None = ctx.obj.get("project_root") if ctx.obj else None
    root = root or find_project_root()
    if root is None:
        get_rich_toolkit().print("Not inside a git repository.", tag="error")
        raise typer.Exit(1)
    return root


def _registry(ctx: typer.Context) -> HookRegistry:
    root = _project_root(ctx)
    return create_registry(root, load_settings(root))


@app.callback()
def app_main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        "-C",
        help="Repository root (defaults to the enclosing git work tree)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override the configured log level"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    """Claude-powered git hooks."""
    ctx.ensure_object(dict)
    root = project.resolve() if project else find_project_root()
    ctx.obj["project_root"] = root

    settings = load_settings(root) if root else None
    logging_settings = settings.logging if settings else None
    setup_logging(
        json_logs=json_logs
        or bool(logging_settings and logging_settings.format == "json"),
        log_level_name=log_level
        or (logging_settings.level if logging_settings else "WARNING"),
        log_file=logging_settings.file if logging_settings else None,
    )


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True}
)
def run(
    ctx: typer.Context,
    hook_id: str = typer.Argument(..., help="Git hook name, e.g. pre-commit"),
) -> None:
    """Run a hook. Installed git hook scripts call this with git's arguments."""
    root = _project_root(ctx)
    registry = create_registry(root, load_settings(root))

    stdin: str | None = None
    if hook_id in registry and getattr(registry.get_hook(hook_id), "reads_stdin", False):
        if not sys.stdin.isatty():
            stdin = sys.stdin.read()

    code = asyncio.run(
        dispatch(hook_id, list(ctx.args), registry=registry, stdin=stdin)
    )
    raise typer.Exit(code)


@app.command()
def install(
    ctx: typer.Context,
    hooks: list[str] | None = typer.Option(
        None, "--hook", help="Hook to enable and install (repeatable)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be installed without writing"
    ),
) -> None:
    """Enable hooks and install their git hook scripts."""
    toolkit = get_rich_toolkit()
    registry = _registry(ctx)

    async def _install() -> tuple[list[str], list[str]]:
        await registry.load_config()
        selected = hooks or [hook.hook_id for hook in registry.list_hooks()]
        for hook_id in selected:
            registry.enable_hook(hook_id)
        return await registry.setup_hooks(dry_run=dry_run)

    try:
        succeeded, failed = asyncio.run(_install())
    except HookNotFoundError as e:
        logger.error("install_unknown_hook", error=e.message)
        toolkit.print(error(e.message), tag="error")
        raise typer.Exit(1) from e

    tag = "dry-run" if dry_run else "hook"
    for hook_id in succeeded:
        toolkit.print(success(f"Installed {bold(hook_id)}"), tag=tag)
    for event in registry.history:
        backup = getattr(event, "backup_path", None)
        if backup:
            toolkit.print(f"Existing {event.hook_id} hook saved to {dim(backup)}", tag="backup")
    for hook_id in failed:
        toolkit.print(error(f"Failed to install {bold(hook_id)}"), tag="error")
    if failed:
        raise typer.Exit(1)


@app.command()
def uninstall(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be removed without deleting"
    ),
) -> None:
    """Remove installed hook scripts and restore earlier hooks from backups."""
    toolkit = get_rich_toolkit()
    registry = _registry(ctx)

    async def _uninstall() -> tuple[list[str], list[str]]:
        await registry.load_config()
        return await registry.remove_hooks(dry_run=dry_run)

    succeeded, failed = asyncio.run(_uninstall())
    for hook_id in succeeded:
        toolkit.print(f"Removed {bold(hook_id)}", tag="dry-run" if dry_run else "hook")
    for hook_id in failed:
        if registry.installer.slot_state(hook_id) == "foreign":
            toolkit.print(
                warning(f"Kept {bold(hook_id)}: not installed by cchooks"),
                tag="warning",
            )
        else:
            toolkit.print(error(f"Removal failed for {bold(hook_id)}"), tag="error")


@app.command(name="list")
def list_hooks(ctx: typer.Context) -> None:
    """Show registered hooks and their configuration."""
    registry = _registry(ctx)
    asyncio.run(registry.load_config())

    table = Table(title="Hooks", show_header=True, header_style="bold magenta")
    table.add_column("Hook", style="cyan")
    table.add_column("Name")
    table.add_column("Enabled")
    table.add_column("Blocking mode")
    table.add_column("Installed")
    for hook in registry.list_hooks():
        table.add_row(
            hook.hook_id,
            hook.name,
            success("yes") if hook.config.enabled else dim("no"),
            hook.config.blocking_mode.value,
            registry.installer.slot_state(hook.hook_id),
        )
    Console().print(table)


def _set_enabled(ctx: typer.Context, hook_id: str, enabled: bool) -> None:
    toolkit = get_rich_toolkit()
    registry = _registry(ctx)

    async def _update() -> None:
        await registry.load_config()
        if enabled:
            registry.enable_hook(hook_id)
        else:
            registry.disable_hook(hook_id)
        await registry.save_config()

    try:
        asyncio.run(_update())
    except HookNotFoundError as e:
        toolkit.print(error(e.message), tag="error")
        raise typer.Exit(1) from e
    toolkit.print(
        f"{bold(hook_id)} {'enabled' if enabled else 'disabled'}", tag="config"
    )


@app.command()
def enable(
    ctx: typer.Context,
    hook_id: str = typer.Argument(..., help="Hook to enable"),
) -> None:
    """Enable a hook in .claude/hooks.json."""
    _set_enabled(ctx, hook_id, True)


@app.command()
def disable(
    ctx: typer.Context,
    hook_id: str = typer.Argument(..., help="Hook to disable"),
) -> None:
    """Disable a hook in .claude/hooks.json."""
    _set_enabled(ctx, hook_id, False)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show backend availability and the state of each hook slot."""
    toolkit = get_rich_toolkit()
    registry = _registry(ctx)
    asyncio.run(registry.backend.probe())

    backend = registry.backend
    toolkit.print(
        f"CLI channel: {success('available') if backend.cli_available else dim('unavailable')}",
        tag="claude",
    )
    toolkit.print(
        f"API channel: {success('available') if backend.api_available else dim('unavailable')}",
        tag="claude",
    )

    for hook in registry.list_hooks():
        state = registry.installer.slot_state(hook.hook_id)
        path = registry.paths.hook_script(hook.hook_id)
        if state == "installed" and not is_executable(path):
            state = "installed (not executable)"
        backups = len(registry.installer.backups(hook.hook_id))
        suffix = dim(f" ({backups} backup(s))") if backups else ""
        toolkit.print(f"{hook.hook_id}: {state}{suffix}", tag="hook")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
