"""Dual-channel Claude backend client.

One client is created per dispatcher run and shared by every hook. It
memoizes channel availability for its lifetime: each channel is probed once,
and a failed call marks that channel unavailable until the client is
discarded.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from cchooks.config.paths import ProjectPaths
from cchooks.config.settings import Settings
from cchooks.core.logging import get_logger
from cchooks.exceptions import (
    BackendUnavailableError,
    ChannelError,
    MissingCredentialError,
)

from .api_channel import APIChannel
from .cache import ResponseCache, fingerprint
from .cli_channel import CLIChannel


logger = get_logger(__name__)


class BackendResponse(BaseModel):
    """A backend payload and where it came from."""

    payload: dict[str, Any]
    channel: Literal["cli", "api", "cache"]
    cached: bool = Field(default=False)

    @property
    def text(self) -> str:
        """Text of the first content block, empty when there is none."""
        content = self.payload.get("content")
        if isinstance(content, list) and content:
            first = content[0]
            if isinstance(first, dict):
                return str(first.get("text", ""))
        return ""


class AIBackendClient:
    """Invokes Claude through the CLI channel or the API channel."""

    def __init__(
        self,
        settings: Settings,
        project_root: Path | str,
        *,
        cache: ResponseCache | None = None,
        cli_channel: CLIChannel | None = None,
        api_channel: APIChannel | None = None,
    ):
        backend = settings.backend
        self.settings = settings
        self.cache = cache or ResponseCache(
            ProjectPaths(Path(project_root)).cache_dir,
            ttl_seconds=backend.cache_ttl_seconds,
        )
        self.cli_channel = cli_channel or CLIChannel(
            binary=backend.cli_binary, timeout=backend.cli_timeout
        )
        self.api_channel = api_channel or APIChannel(
            api_key=settings.api_key,
            base_url=backend.base_url,
            api_version=backend.api_version,
            timeout=backend.api_timeout,
            probe_timeout=backend.probe_timeout,
        )
        # None means not probed yet
        self.cli_available: bool | None = None
        self.api_available: bool | None = None

    @property
    def available(self) -> bool | None:
        """Whether any channel is usable, None until probed."""
        if self.cli_available is None or self.api_available is None:
            return None
        return self.cli_available or self.api_available

    async def probe(self) -> None:
        """Probe every channel whose availability is still unknown."""
        if self.cli_available is None:
            self.cli_available = await self.cli_channel.probe()
        if self.api_available is None:
            self.api_available = await self.api_channel.probe()
        logger.debug(
            "backend_probed",
            cli_available=self.cli_available,
            api_available=self.api_available,
        )

    async def invoke(
        self,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        cache: bool = False,
        prefer_cli: bool = True,
    ) -> BackendResponse:
        """Send a prompt to Claude.

        Args:
            prompt: The single user message
            model: Model name, defaults to ``backend.default_model``
            max_tokens: Token budget, defaults to ``backend.max_tokens``
            temperature: Sampling temperature, defaults to ``backend.temperature``
            cache: Read and write the 24h response cache
            prefer_cli: Try the CLI channel before the API channel

        Returns:
            The response payload with its source channel

        Raises:
            BackendUnavailableError: No channel can be used
            MissingCredentialError: The API channel was needed but has no key
            ChannelError: The API call failed
        """
        backend = self.settings.backend
        model = model or backend.default_model
        max_tokens = max_tokens or backend.max_tokens
        temperature = backend.temperature if temperature is None else temperature

        if self.cli_available is None or self.api_available is None:
            await self.probe()

        if not self.cli_available and not self.api_available:
            raise BackendUnavailableError(
                "Neither the Claude CLI nor the Claude API is available"
            )

        cache_key: str | None = None
        if cache:
            cache_key = fingerprint(model, temperature, prompt)
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.debug("backend_cache_hit", model=model)
                return BackendResponse(payload=cached, channel="cache", cached=True)

        if prefer_cli and self.cli_available:
            try:
                payload = await self.cli_channel.call(
                    prompt, model, max_tokens, temperature
                )
            except ChannelError as e:
                logger.warning("cli_channel_failed", error=e.message)
                self.cli_available = False
            else:
                return await self._finish(payload, "cli", cache_key)

        if not self.api_channel.has_credential:
            raise MissingCredentialError()
        if not self.api_available:
            raise BackendUnavailableError("The Claude API is not available")

        try:
            payload = await self.api_channel.call(
                prompt, model, max_tokens, temperature
            )
        except ChannelError as e:
            logger.error("api_channel_failed", error=e.message)
            self.api_available = False
            raise

        return await self._finish(payload, "api", cache_key)

    async def _finish(
        self,
        payload: dict[str, Any],
        channel: Literal["cli", "api"],
        cache_key: str | None,
    ) -> BackendResponse:
        if cache_key is not None:
            await self.cache.set(cache_key, payload)
        logger.debug("backend_response", channel=channel)
        return BackendResponse(payload=payload, channel=channel)
