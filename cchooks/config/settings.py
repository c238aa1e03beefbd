import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from cchooks.core.logging import get_logger
from cchooks.exceptions import ConfigurationError

from .paths import ProjectPaths


__all__ = ["BackendSettings", "LoggingSettings", "Settings"]

ENV_PREFIX = "CCHOOKS_"

logger = get_logger(__name__)


class BackendSettings(BaseModel):
    """Claude backend configuration shared by the CLI and API channels."""

    api_key: SecretStr | None = Field(
        default=None,
        description="Anthropic API key used by the networked channel",
    )

    base_url: str = Field(
        default="https://api.anthropic.com",
        description="Base URL of the Anthropic Messages API",
    )

    api_version: str = Field(
        default="2023-06-01",
        description="Value of the anthropic-version header",
    )

    default_model: str = Field(
        default="claude-3-haiku-20240307",
        description="Model used when a hook does not request one",
    )

    max_tokens: int = Field(
        default=2000,
        description="Default maximum number of tokens to generate",
        ge=1,
    )

    temperature: float = Field(
        default=0.7,
        description="Default sampling temperature",
        ge=0.0,
        le=1.0,
    )

    cli_binary: str = Field(
        default="claude",
        description="Name or path of the Claude CLI executable",
    )

    cli_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for a Claude CLI call",
        gt=0,
    )

    api_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for an API request",
        gt=0,
    )

    probe_timeout: float = Field(
        default=5.0,
        description="Timeout in seconds for the API availability probe",
        gt=0,
    )

    cache_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        description="Lifetime of a cached backend response",
        ge=0,
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    format: str = Field(
        default="rich",
        description="Logging output format: 'rich' for terminals, 'json' for CI log collection",
    )

    file: str | None = Field(
        default=None,
        description="Path to a JSON log file that receives a copy of every log line",
    )


class Settings(BaseSettings):
    """
    Configuration settings for the cchooks dispatcher.

    Settings are loaded from environment variables (prefixed with ``CCHOOKS_``),
    a ``.env`` file and an optional ``.cchooks.toml`` at the project root.
    Environment variables take precedence over the TOML file.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    backend: BackendSettings = Field(
        default_factory=BackendSettings,
        description="Claude backend configuration",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    anthropic_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "CCHOOKS_ANTHROPIC_API_KEY"),
        exclude=True,
        description="Fallback source for backend.api_key",
    )

    dry_run: bool = Field(
        default=False,
        description="Log installation changes without touching the filesystem",
    )

    skip_hooks: str = Field(
        default="",
        description="Comma-separated hook ids to skip at run time, or 'all'",
    )

    @property
    def api_key(self) -> str | None:
        """The effective API key, preferring the nested backend setting."""
        secret = self.backend.api_key or self.anthropic_api_key
        return secret.get_secret_value() if secret else None

    def is_skipped(self, hook_id: str) -> bool:
        """Whether the skip switch names this hook (or every hook)."""
        skipped = {item.strip() for item in self.skip_hooks.split(",") if item.strip()}
        return "all" in skipped or hook_id in skipped

    def model_dump_safe(self) -> dict[str, Any]:
        """
        Dump model data with sensitive information masked.

        Returns:
            dict: Configuration with sensitive data masked
        """
        return self.model_dump(mode="json")

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Invalid TOML syntax in {toml_path}: {e}"
            ) from e

    @classmethod
    def from_config(
        cls, project_root: Path | None = None, **kwargs: Any
    ) -> "Settings":
        """Create Settings from the environment and the project TOML file.

        Args:
            project_root: Repository root holding ``.cchooks.toml``
            **kwargs: Explicit overrides applied last

        Returns:
            Validated settings instance

        Raises:
            ConfigurationError: The TOML file is unreadable or holds invalid values
        """
        settings = cls()
        config_data: dict[str, Any] = {}

        if project_root is not None:
            toml_path = ProjectPaths(project_root).toml_config
            if toml_path.exists():
                config_data = cls.load_toml_config(toml_path)
                logger.info("config_file_loaded", path=str(toml_path))

        merged = settings.model_dump()
        for key, value in config_data.items():
            if key not in cls.model_fields:
                logger.debug("config_key_ignored", key=key)
                continue
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                for nested_key, nested_value in value.items():
                    env_key = f"{ENV_PREFIX}{key.upper()}__{nested_key.upper()}"
                    if os.getenv(env_key) is None:
                        merged[key][nested_key] = nested_value
            elif os.getenv(f"{ENV_PREFIX}{key.upper()}") is None:
                merged[key] = value

        for key, value in kwargs.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update(value)
            else:
                merged[key] = value

        merged["ANTHROPIC_API_KEY"] = settings.anthropic_api_key

        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}", details={"errors": e.errors()}
            ) from e
