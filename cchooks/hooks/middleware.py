"""Reusable middleware and result policies shared by the built-in hooks."""

import time
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape

from cchooks.core.logging import get_logger

from .models import (
    BlockingMode,
    ExecutionContext,
    HookResult,
    HookStatus,
    Severity,
)
from .schema import HookConfig


logger = get_logger(__name__)

console = Console(stderr=True)

SEVERITY_STYLES: dict[Severity, str] = {
    Severity.CRITICAL: "bold white on red",
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.NONE: "dim",
}

STATUS_STYLES: dict[HookStatus, str] = {
    HookStatus.SUCCESS: "green",
    HookStatus.WARNING: "yellow",
    HookStatus.ERROR: "bold red",
    HookStatus.FAILURE: "bold red",
    HookStatus.SKIPPED: "dim",
}


def apply_blocking_policy(result: HookResult, config: HookConfig) -> HookResult:
    """Decide ``should_block`` from the issues and the hook's blocking mode.

    In ``block`` mode any issue at or above the configured threshold blocks
    and turns the status into ``error``. Other modes never block.

    Args:
        result: Result produced by the hook's execution
        config: The hook's configuration

    Returns:
        A result with ``should_block`` (and possibly ``status``) updated
    """
    if config.blocking_mode != BlockingMode.BLOCK:
        if result.should_block:
            return result.model_copy(update={"should_block": False})
        return result

    threshold = config.block_threshold()
    blocking = [
        issue for issue in result.issues if issue.severity.rank >= threshold.rank
    ]
    if not blocking:
        return result

    logger.info(
        "blocking_issues_found",
        count=len(blocking),
        threshold=threshold.value,
    )
    return result.model_copy(
        update={"should_block": True, "status": HookStatus.ERROR}
    )


async def record_start_time(context: ExecutionContext) -> None:
    context.data["started_at"] = time.perf_counter()


async def log_result(context: ExecutionContext) -> None:
    """Log the outcome of the invocation with its duration."""
    result = context.result
    if result is None:
        return
    started = context.data.get("started_at")
    duration_ms = (
        round((time.perf_counter() - started) * 1000, 2) if started else None
    )
    context.logger.info(
        "hook_result",
        hook_event=context.event,
        status=result.status.value,
        should_block=result.should_block,
        issues=len(result.issues),
        duration_ms=duration_ms,
    )


def make_result_reporter(name: str) -> Callable[[ExecutionContext], None]:
    """Build an AFTER_EXECUTION middleware printing the result for the user."""

    def report_result(context: ExecutionContext) -> None:
        result = context.result
        if result is None or result.status == HookStatus.SKIPPED:
            return

        style = STATUS_STYLES[result.status]
        console.print(
            f"[{style}]{escape(name)}[/{style}]: {escape(result.message)}",
            highlight=False,
        )
        for issue in result.issues:
            location = issue.file
            if location and issue.line not in ("", None):
                location = f"{location}:{issue.line}"
            prefix = escape(f"[{location}] ") if location else ""
            severity_style = SEVERITY_STYLES[issue.severity]
            console.print(
                f"  [{severity_style}]{issue.severity.value.upper()}[/{severity_style}] "
                f"{prefix}{escape(issue.description)}",
                highlight=False,
            )
        if result.should_block:
            console.print(
                "[dim]Bypass this check with --no-verify[/dim]", highlight=False
            )

    return report_result


async def log_error(context: ExecutionContext) -> None:
    error = context.error
    context.logger.error(
        "hook_error",
        hook_event=context.event,
        error=str(error) if error else "unknown error",
        error_type=type(error).__name__ if error else None,
    )
