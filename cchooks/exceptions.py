"""Custom exceptions for the cchooks dispatcher."""

from typing import Any


class CCHooksError(Exception):
    """Base exception for cchooks errors."""

    def __init__(
        self,
        message: str,
        error_type: str = "internal_error",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}


class ConfigurationError(CCHooksError):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message, error_type="configuration_error", details=details
        )


class HookNotFoundError(CCHooksError):
    """No hook is registered under the requested id."""

    def __init__(self, hook_id: str) -> None:
        super().__init__(
            message=f"Hook '{hook_id}' not found",
            error_type="not_found_error",
            details={"hook_id": hook_id},
        )
        self.hook_id = hook_id


class InstallationError(CCHooksError):
    """Writing, removing or restoring a git hook script failed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(
            message=message,
            error_type="installation_error",
            details={"path": path} if path else None,
        )
        self.path = path


class BackendError(CCHooksError):
    """Base class for AI backend failures."""

    def __init__(
        self,
        message: str,
        error_type: str = "backend_error",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_type=error_type, details=details)


class BackendUnavailableError(BackendError):
    """Neither the CLI channel nor the API channel is available."""

    def __init__(self, message: str = "Claude backend is not available") -> None:
        super().__init__(message=message, error_type="backend_unavailable")


class ChannelError(BackendError):
    """A single backend channel call failed."""

    def __init__(
        self, channel: str, message: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            message=f"{channel} channel error: {message}",
            error_type="channel_error",
            details={"channel": channel, **(details or {})},
        )
        self.channel = channel


class MissingCredentialError(BackendError, ConfigurationError):
    """The API channel was selected but no API key is configured."""

    def __init__(self, message: str = "Anthropic API key not set") -> None:
        CCHooksError.__init__(self, message=message, error_type="missing_credential")
