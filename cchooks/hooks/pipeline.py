"""Middleware pipeline and the hook lifecycle state machine.

A hook invocation moves through BEFORE_EXECUTION, the ``should_run`` gate,
EXECUTION and AFTER_EXECUTION. Any exception diverts the invocation to the
ERROR phase instead, so exactly one of AFTER_EXECUTION and ERROR completes it.
AFTER_SETUP and BEFORE_REMOVE are driven separately by the installer.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from .events import HookExecuted, HookFailed
from .models import (
    CONTINUE,
    BlockingMode,
    Continue,
    Done,
    ExecutionContext,
    HookLifecycle,
    HookResult,
    MiddlewareOutcome,
)


if TYPE_CHECKING:
    from .base import Hook


logger = structlog.get_logger(__name__)

Middleware = Callable[[ExecutionContext], Awaitable[MiddlewareOutcome] | MiddlewareOutcome]


class MiddlewarePipeline:
    """Ordered middleware lists, one per lifecycle phase."""

    def __init__(self) -> None:
        self._middleware: dict[HookLifecycle, list[Middleware]] = {
            phase: [] for phase in HookLifecycle
        }

    def use(self, phase: HookLifecycle, middleware: Middleware) -> "MiddlewarePipeline":
        """Append a middleware to a phase.

        Args:
            phase: Lifecycle phase to attach to
            middleware: Callable taking the execution context

        Returns:
            The pipeline, for chaining
        """
        self._middleware[HookLifecycle(phase)].append(middleware)
        return self

    def middleware_for(self, phase: HookLifecycle) -> list[Middleware]:
        return list(self._middleware[phase])

    async def run_phase(
        self, phase: HookLifecycle, context: ExecutionContext
    ) -> Continue | Done:
        """Run a phase's middleware in registration order.

        Stops at the first middleware returning ``Done``. Exceptions propagate
        to the caller unchanged.

        Returns:
            The ``Done`` that stopped the phase, or ``CONTINUE``
        """
        for middleware in self._middleware[phase]:
            outcome = middleware(context)
            if asyncio.iscoroutine(outcome):
                outcome = await outcome
            if outcome is None or isinstance(outcome, Continue):
                continue
            if isinstance(outcome, Done):
                logger.debug(
                    "middleware_short_circuit",
                    phase=phase.value,
                    middleware=_middleware_name(middleware),
                    status=outcome.result.status.value,
                )
                return outcome
            raise TypeError(
                f"Middleware {_middleware_name(middleware)} returned {outcome!r}, "
                "expected Continue or Done"
            )
        return CONTINUE


def _middleware_name(middleware: Middleware) -> str:
    return getattr(middleware, "__qualname__", None) or repr(middleware)


def normalize_result(result: HookResult, blocking_mode: BlockingMode) -> HookResult:
    """Only ``block`` mode may return a blocking result."""
    if blocking_mode != BlockingMode.BLOCK and result.should_block:
        return result.model_copy(update={"should_block": False})
    return result


async def _run_phase(
    hook: "Hook", phase: HookLifecycle, context: ExecutionContext
) -> None:
    outcome = await hook.run_phase(phase, context)
    if isinstance(outcome, Done):
        context.result = outcome.result


async def run_lifecycle(hook: "Hook", context: ExecutionContext) -> HookResult:
    """Drive one hook invocation through its lifecycle.

    Args:
        hook: Hook to execute
        context: Fresh context for this invocation

    Returns:
        The final result, also stored on ``context.result``
    """
    log = logger.bind(hook_id=hook.hook_id, hook_event=context.event)
    blocking_mode = hook.config.blocking_mode

    try:
        await _run_phase(hook, HookLifecycle.BEFORE_EXECUTION, context)

        if context.result is None:
            if not await hook.should_run(context):
                log.info("hook_skipped")
                context.result = HookResult.skipped(
                    f"Hook {hook.name} skipped execution"
                )
            else:
                await _run_phase(hook, HookLifecycle.EXECUTION, context)
                if context.result is None:
                    context.result = HookResult.skipped(
                        f"Hook {hook.name} has no implementation"
                    )

        await _run_phase(hook, HookLifecycle.AFTER_EXECUTION, context)
    except Exception as e:
        context.error = e
        log.error("hook_execution_failed", error=str(e), exc_info=True)
        context.result = HookResult.failure(
            f"Error executing hook {hook.name}: {e}",
            should_block=blocking_mode == BlockingMode.BLOCK,
        )
        try:
            await _run_phase(hook, HookLifecycle.ERROR, context)
        except Exception as handler_error:
            log.error("error_phase_failed", error=str(handler_error))

    if context.result is None:
        log.warning("hook_result_cleared")
        context.result = HookResult.skipped(f"Hook {hook.name} produced no result")
    result = normalize_result(context.result, blocking_mode)
    context.result = result

    if context.error is not None:
        await hook.events.failed.publish(
            HookFailed(hook_id=hook.hook_id, error=context.error, result=result)
        )
    else:
        await hook.events.executed.publish(
            HookExecuted(hook_id=hook.hook_id, result=result)
        )

    log.debug(
        "hook_completed",
        status=result.status.value,
        should_block=result.should_block,
        issues=len(result.issues),
    )
    return result
