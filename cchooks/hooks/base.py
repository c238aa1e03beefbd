"""The hook capability interface and its standard implementation."""

from pathlib import Path
from typing import Any, ClassVar, Protocol, runtime_checkable

from cchooks.backend.client import AIBackendClient
from cchooks.config.settings import Settings
from cchooks.core.logging import get_logger
from cchooks.exceptions import BackendUnavailableError, ChannelError
from cchooks.git import GitRepository
from cchooks.templates import PromptTemplates

from .events import HookEventChannels
from .installer import render_hook_script
from .middleware import (
    apply_blocking_policy,
    log_error,
    log_result,
    make_result_reporter,
    record_start_time,
)
from .models import (
    CONTINUE,
    Continue,
    Done,
    ExecutionContext,
    HookLifecycle,
    HookResult,
)
from .pipeline import Middleware, MiddlewarePipeline, run_lifecycle
from .schema import HookConfig


@runtime_checkable
class Hook(Protocol):
    """Everything the registry, installer and lifecycle runner need from a hook."""

    hook_id: str
    name: str
    description: str
    config: HookConfig
    events: HookEventChannels
    depends_on: list[str]

    def configure(self, values: dict[str, Any]) -> None:
        """Merge configuration values into the hook's config."""
        ...

    async def should_run(self, context: ExecutionContext) -> bool:
        """Gate evaluated between BEFORE_EXECUTION and EXECUTION."""
        ...

    async def run_phase(
        self, phase: HookLifecycle, context: ExecutionContext
    ) -> Continue | Done:
        """Run the middleware registered for one lifecycle phase."""
        ...

    def describe_schema(self) -> dict[str, Any]:
        """JSON schema of the hook's persisted configuration."""
        ...

    def generate_script(self) -> str:
        """Content of the git hook script installed for this hook."""
        ...


class BaseHook:
    """Standard hook built on a :class:`MiddlewarePipeline`.

    Subclasses set the class attributes, override :meth:`execute`, and may add
    middleware in :meth:`register_middleware`. The default pipeline records
    timing, applies the blocking policy to the execution result, and reports
    the outcome to the user.
    """

    hook_id: ClassVar[str] = ""
    name: ClassVar[str] = "Hook"
    description: ClassVar[str] = ""
    config_class: ClassVar[type[HookConfig]] = HookConfig
    depends_on: ClassVar[list[str]] = []
    reads_stdin: ClassVar[bool] = False

    def __init__(
        self,
        hook_id: str | None = None,
        *,
        project_root: Path | str,
        settings: Settings | None = None,
        backend: AIBackendClient | None = None,
        git: GitRepository | None = None,
        templates: PromptTemplates | None = None,
        config: HookConfig | None = None,
        name: str | None = None,
        description: str | None = None,
    ):
        if hook_id:
            self.hook_id = hook_id  # type: ignore[misc]
        if not self.hook_id:
            raise ValueError(f"{type(self).__name__} needs a hook_id")
        if name:
            self.name = name  # type: ignore[misc]
        if description is not None:
            self.description = description  # type: ignore[misc]

        self.project_root = Path(project_root)
        self.settings = settings or Settings()
        self.backend = backend
        self.git = git or GitRepository(self.project_root)
        self.templates = templates or PromptTemplates(self.project_root)
        self.config = config or self.config_class()
        self.events = HookEventChannels(self.hook_id)
        self.pipeline = MiddlewarePipeline()
        self.logger = get_logger(type(self).__module__).bind(hook_id=self.hook_id)
        self.register_middleware()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(hook_id={self.hook_id!r}, enabled={self.config.enabled})"

    def use(self, phase: HookLifecycle, middleware: Middleware) -> None:
        self.pipeline.use(phase, middleware)

    def register_middleware(self) -> None:
        """Populate the pipeline. Subclasses call ``super()`` first."""
        self.use(HookLifecycle.BEFORE_EXECUTION, record_start_time)
        self.use(HookLifecycle.EXECUTION, self._execution_middleware)
        self.use(HookLifecycle.AFTER_EXECUTION, make_result_reporter(self.name))
        self.use(HookLifecycle.AFTER_EXECUTION, log_result)
        self.use(HookLifecycle.ERROR, log_error)
        self.use(HookLifecycle.ERROR, make_result_reporter(self.name))

    async def _execution_middleware(self, context: ExecutionContext) -> Continue | Done:
        result = await self.execute(context)
        if result is None:
            return CONTINUE
        return Done(apply_blocking_policy(result, self.config))

    async def execute(self, context: ExecutionContext) -> HookResult | None:
        """Hook logic. Returning None leaves the invocation without a result."""
        return None

    # Capability interface

    def configure(self, values: dict[str, Any]) -> None:
        merged = {**self.config.model_dump(), **values}
        self.config = self.config_class.from_persisted(merged, hook_id=self.hook_id)

    async def should_run(self, context: ExecutionContext) -> bool:
        if not self.config.enabled:
            return False
        if self.settings.is_skipped(self.hook_id):
            self.logger.info("hook_skipped_by_environment")
            return False
        return True

    async def run_phase(
        self, phase: HookLifecycle, context: ExecutionContext
    ) -> Continue | Done:
        return await self.pipeline.run_phase(phase, context)

    def describe_schema(self) -> dict[str, Any]:
        return self.config_class.describe_schema()

    def generate_script(self) -> str:
        return render_hook_script(self.hook_id, self.name, self.description)

    # Helpers for subclasses

    def create_context(self, args: list[str]) -> ExecutionContext:
        return ExecutionContext(
            event=self.hook_id,
            args=list(args),
            project_root=self.project_root,
            logger=self.logger,
        )

    async def run(self, args: list[str]) -> HookResult:
        """Execute the full lifecycle for one git invocation."""
        return await run_lifecycle(self, self.create_context(args))

    async def ask_claude(
        self,
        prompt: str,
        *,
        cache: bool = True,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Send a prompt through the injected backend client.

        Raises:
            BackendError: No backend, no usable channel, or an empty answer
        """
        if self.backend is None:
            raise BackendUnavailableError("No backend client configured")
        response = await self.backend.invoke(
            prompt,
            model=self.config.model,
            max_tokens=max_tokens,
            temperature=temperature,
            cache=cache,
            prefer_cli=self.config.prefer_cli,
        )
        text = response.text.strip()
        if not text:
            raise ChannelError(response.channel, "empty response")
        return text
