"""Compose a plain async function into a full hook."""

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from cchooks.backend.client import AIBackendClient
from cchooks.config.settings import Settings

from .base import BaseHook
from .events import HookEventChannels
from .middleware import apply_blocking_policy
from .models import Continue, Done, ExecutionContext, HookLifecycle, HookResult
from .pipeline import Middleware
from .schema import HookConfig


HookFunction = Callable[[ExecutionContext], Awaitable[HookResult | None]]


class CallableHookAdapter:
    """Wraps a function so it satisfies the :class:`~cchooks.hooks.base.Hook` interface.

    The adapter holds a plain :class:`BaseHook` for configuration, gating,
    script generation and the standard middleware, and runs the function as
    the first EXECUTION step. Nothing is subclassed.

    Example:
        async def check_todo(context):
            return HookResult.success("no TODOs")

        registry.register(CallableHookAdapter("pre-commit", check_todo, project_root=root))
    """

    def __init__(
        self,
        hook_id: str,
        func: HookFunction,
        *,
        project_root: Path | str,
        name: str | None = None,
        description: str | None = None,
        config_class: type[HookConfig] = HookConfig,
        config: HookConfig | None = None,
        settings: Settings | None = None,
        backend: AIBackendClient | None = None,
        depends_on: list[str] | None = None,
    ):
        self._func = func
        self._config_class = config_class
        self.name = name or getattr(func, "__name__", hook_id)
        self.description = (
            description if description is not None else (func.__doc__ or "").strip()
        )
        self.depends_on = list(depends_on or [])
        self._inner = BaseHook(
            hook_id,
            project_root=project_root,
            settings=settings,
            backend=backend,
            config=config or config_class(),
            name=self.name,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"CallableHookAdapter(hook_id={self.hook_id!r}, func={self.name!r})"

    @property
    def hook_id(self) -> str:
        return self._inner.hook_id

    @property
    def config(self) -> HookConfig:
        return self._inner.config

    @config.setter
    def config(self, value: HookConfig) -> None:
        self._inner.config = value

    @property
    def events(self) -> HookEventChannels:
        return self._inner.events

    def use(self, phase: HookLifecycle, middleware: Middleware) -> None:
        self._inner.use(phase, middleware)

    def configure(self, values: dict[str, Any]) -> None:
        merged = {**self.config.model_dump(), **values}
        self.config = self._config_class.from_persisted(merged, hook_id=self.hook_id)

    async def should_run(self, context: ExecutionContext) -> bool:
        return await self._inner.should_run(context)

    async def run_phase(
        self, phase: HookLifecycle, context: ExecutionContext
    ) -> Continue | Done:
        if phase == HookLifecycle.EXECUTION:
            result = await self._func(context)
            if result is not None:
                return Done(apply_blocking_policy(result, self.config))
        return await self._inner.run_phase(phase, context)

    def describe_schema(self) -> dict[str, Any]:
        return self._config_class.describe_schema()

    def generate_script(self) -> str:
        return self._inner.generate_script()
