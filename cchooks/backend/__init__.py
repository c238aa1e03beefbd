"""Claude backend channels, cache and client."""

from .api_channel import APIChannel
from .cache import ResponseCache, fingerprint
from .cli_channel import CLIChannel
from .client import AIBackendClient, BackendResponse


__all__ = [
    "AIBackendClient",
    "APIChannel",
    "BackendResponse",
    "CLIChannel",
    "ResponseCache",
    "fingerprint",
]
