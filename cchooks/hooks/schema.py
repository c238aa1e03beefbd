"""Configuration schemas for hooks.

Every hook declares its persisted configuration as a pydantic model. The
model's fields are the schema: they define what ``hooks.json`` stores for the
hook, their defaults, and how persisted values are validated on load.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cchooks.core.logging import get_logger

from .models import BlockingMode, Severity, Strictness


logger = get_logger(__name__)

# Default blocking threshold for each strictness level
STRICTNESS_THRESHOLDS: dict[Strictness, Severity] = {
    Strictness.LOW: Severity.CRITICAL,
    Strictness.MEDIUM: Severity.HIGH,
    Strictness.HIGH: Severity.MEDIUM,
}


class HookConfig(BaseModel):
    """Fields shared by every hook."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    enabled: bool = Field(default=False, description="Run this hook")
    blocking_mode: BlockingMode = Field(
        default=BlockingMode.WARN,
        description="Whether findings abort the git operation (block, warn, none)",
    )
    strictness: Strictness = Field(
        default=Strictness.MEDIUM,
        description="Review strictness, also selects the default blocking threshold",
    )
    prefer_cli: bool = Field(
        default=True,
        description="Prefer the local Claude CLI over the API when both are available",
    )
    model: str | None = Field(
        default=None,
        description="Claude model override for this hook",
    )
    block_on_severity: Severity | None = Field(
        default=None,
        description="Lowest issue severity that blocks in block mode",
    )

    def block_threshold(self) -> Severity:
        """Severity at or above which an issue blocks in ``block`` mode."""
        return self.block_on_severity or STRICTNESS_THRESHOLDS[self.strictness]

    @classmethod
    def describe_schema(cls) -> dict[str, Any]:
        """JSON schema of the persisted fields."""
        return cls.model_json_schema()

    @classmethod
    def from_persisted(
        cls, data: dict[str, Any], hook_id: str = ""
    ) -> "HookConfig":
        """Build a config from persisted values without ever raising.

        Fields that fail validation are dropped so their defaults apply.

        Args:
            data: Values loaded from ``hooks.json``
            hook_id: Hook id used in log events

        Returns:
            Validated configuration
        """
        values = dict(data)
        while True:
            try:
                return cls.model_validate(values)
            except ValidationError as e:
                bad_fields = {
                    error["loc"][0] for error in e.errors() if error["loc"]
                }
                bad_fields &= set(values)
                if not bad_fields:
                    logger.warning(
                        "hook_config_invalid", hook_id=hook_id, error=str(e)
                    )
                    return cls()
                for name in bad_fields:
                    logger.warning(
                        "hook_config_field_reset",
                        hook_id=hook_id,
                        field=name,
                        value=values.pop(name),
                    )


class MaxLength(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subject: int = Field(default=72, ge=1)
    body: int = Field(default=100, ge=1)


class PreCommitConfig(HookConfig):
    review_types: list[str] = Field(
        default_factory=lambda: ["security", "performance", "quality", "testing"],
        description="Aspects the review focuses on",
    )
    include_patterns: list[str] = Field(
        default_factory=list,
        description="Glob patterns of files to review (empty means all)",
    )
    exclude_patterns: list[str] = Field(
        default_factory=lambda: ["*.lock", "*.min.js", "dist/*", "build/*"],
        description="Glob patterns of files excluded from review",
    )
    max_diff_size: int = Field(
        default=50000, ge=1, description="Diff characters sent for review"
    )
    block_on_severity: Severity | None = Field(default=Severity.HIGH)


class PrepareCommitMsgConfig(HookConfig):
    mode: Literal["suggest", "insert"] = Field(
        default="suggest",
        description="Print a suggestion or write it into the message file",
    )
    conventional_commits: bool = Field(default=True)
    include_scope: bool = Field(default=True)
    include_breaking: bool = Field(default=True)
    message_style: Literal["concise", "detailed"] = Field(default="concise")
    max_diff_size: int = Field(default=20000, ge=1)


class CommitMsgConfig(HookConfig):
    conventional_commits: bool = Field(default=True)
    check_spelling: bool = Field(default=True)
    check_grammar: bool = Field(default=True)
    max_length: MaxLength = Field(default_factory=MaxLength)
    suggest_improvements: bool = Field(default=True)


class PrePushConfig(HookConfig):
    audit_types: list[str] = Field(
        default_factory=lambda: ["security", "credentials", "sensitive-data"],
    )
    exclude_patterns: list[str] = Field(
        default_factory=lambda: ["*.lock", "*.min.js", "dist/*", "build/*"],
    )
    max_commits: int = Field(default=10, ge=1)
    max_diff_size: int = Field(default=100000, ge=1)
    block_on_severity: Severity | None = Field(default=Severity.HIGH)
