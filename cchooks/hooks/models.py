"""Value types threaded through one hook invocation."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field


class HookLifecycle(str, Enum):
    """Phases a hook passes through."""

    BEFORE_EXECUTION = "before_execution"
    EXECUTION = "execution"
    AFTER_EXECUTION = "after_execution"
    ERROR = "error"
    AFTER_SETUP = "after_setup"
    BEFORE_REMOVE = "before_remove"


class HookStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SKIPPED = "skipped"
    FAILURE = "failure"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        return SEVERITY_RANKS[self]


SEVERITY_RANKS: dict[Severity, int] = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.NONE: 0,
}


class BlockingMode(str, Enum):
    """Whether a hook's findings may abort the git operation."""

    BLOCK = "block"
    WARN = "warn"
    NONE = "none"


class Strictness(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HookIssue(BaseModel):
    """A single finding reported by a hook."""

    model_config = ConfigDict(frozen=True)

    severity: Severity = Field(default=Severity.MEDIUM)
    description: str
    file: str = ""
    line: int | str = ""


class HookResult(BaseModel):
    """Outcome of one hook invocation.

    Results are frozen; middleware derive new results with ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    status: HookStatus
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    should_block: bool = False
    issues: tuple[HookIssue, ...] = ()

    @classmethod
    def success(cls, message: str, **kwargs: Any) -> "HookResult":
        return cls(status=HookStatus.SUCCESS, message=message, **kwargs)

    @classmethod
    def skipped(cls, message: str, **kwargs: Any) -> "HookResult":
        return cls(status=HookStatus.SKIPPED, message=message, **kwargs)

    @classmethod
    def failure(
        cls, message: str, should_block: bool = False, **kwargs: Any
    ) -> "HookResult":
        return cls(
            status=HookStatus.FAILURE,
            message=message,
            should_block=should_block,
            issues=(HookIssue(severity=Severity.HIGH, description=message),),
            **kwargs,
        )

    def max_severity(self) -> Severity:
        """Highest severity among the issues, ``NONE`` when there are none."""
        return max(
            (issue.severity for issue in self.issues),
            key=lambda severity: severity.rank,
            default=Severity.NONE,
        )


@dataclass
class ExecutionContext:
    """Mutable state scoped to exactly one hook invocation."""

    event: str
    args: list[str]
    project_root: Path
    env: dict[str, str] = field(default_factory=lambda: dict(os.environ))
    logger: Any = field(default_factory=lambda: structlog.get_logger(__name__))
    result: HookResult | None = None
    error: BaseException | None = None
    data: dict[str, Any] = field(default_factory=dict)


class Continue:
    """Middleware outcome: proceed to the next middleware."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "CONTINUE"


CONTINUE = Continue()


@dataclass(frozen=True)
class Done:
    """Middleware outcome: stop the current phase with this result."""

    result: HookResult


MiddlewareOutcome = Continue | Done | None
