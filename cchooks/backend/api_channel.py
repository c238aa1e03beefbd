"""Networked channel: the Anthropic Messages API."""

from typing import Any

import httpx
import structlog

from cchooks.exceptions import ChannelError, MissingCredentialError


logger = structlog.get_logger(__name__)

CHANNEL_NAME = "api"
DEFAULT_API_VERSION = "2023-06-01"


class APIChannel:
    """Calls ``POST /v1/messages`` with a single user message."""

    name = CHANNEL_NAME

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.anthropic.com",
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 60.0,
        probe_timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the networked channel.

        Args:
            api_key: Anthropic API key, None when not configured
            base_url: API base URL
            api_version: Value of the anthropic-version header
            timeout: Seconds to wait for a messages request
            probe_timeout: Seconds to wait for the availability probe
            transport: Optional httpx transport, used to stub the network in tests
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self.probe_timeout = probe_timeout
        self._transport = transport

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-api-key": self.api_key or "",
            "anthropic-version": self.api_version,
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            transport=self._transport,
        )

    async def probe(self) -> bool:
        """Authenticated ``GET /v1/models``; no request is made without a key."""
        if not self.has_credential:
            logger.debug("api_channel_probe_skipped", reason="no_api_key")
            return False

        try:
            async with self._client(self.probe_timeout) as client:
                response = await client.get("/v1/models", headers=self._headers())
        except httpx.HTTPError as e:
            logger.debug("api_channel_probe_failed", error=str(e))
            return False

        available = response.is_success
        logger.debug(
            "api_channel_probe", status_code=response.status_code, available=available
        )
        return available

    async def call(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        """Send one messages request.

        Returns:
            The decoded JSON response

        Raises:
            MissingCredentialError: No API key is configured
            ChannelError: Transport failure or non-2xx response
        """
        if not self.has_credential:
            raise MissingCredentialError()

        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            async with self._client(self.timeout) as client:
                response = await client.post(
                    "/v1/messages", headers=self._headers(), json=payload
                )
        except httpx.HTTPError as e:
            raise ChannelError(self.name, str(e)) from e

        if not response.is_success:
            raise ChannelError(
                self.name,
                f"Claude API error ({response.status_code}): {response.text}",
                details={"status_code": response.status_code},
            )

        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise ChannelError(self.name, f"invalid JSON response: {e}") from e
        return data
