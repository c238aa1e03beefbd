"""Hook framework: lifecycle models, pipeline, installer and registry."""

from .adapter import CallableHookAdapter
from .base import BaseHook, Hook
from .events import (
    EventChannel,
    HookEventChannels,
    HookExecuted,
    HookFailed,
    HookInstalled,
    HookRemoved,
)
from .installer import OWNERSHIP_MARKER, InstallationManager
from .models import (
    CONTINUE,
    BlockingMode,
    Continue,
    Done,
    ExecutionContext,
    HookIssue,
    HookLifecycle,
    HookResult,
    HookStatus,
    Severity,
    Strictness,
)
from .pipeline import MiddlewarePipeline, run_lifecycle
from .registry import HookRegistry
from .schema import HookConfig


__all__ = [
    "BaseHook",
    "BlockingMode",
    "CONTINUE",
    "CallableHookAdapter",
    "Continue",
    "Done",
    "EventChannel",
    "ExecutionContext",
    "Hook",
    "HookConfig",
    "HookEventChannels",
    "HookExecuted",
    "HookFailed",
    "HookInstalled",
    "HookIssue",
    "HookLifecycle",
    "HookRegistry",
    "HookRemoved",
    "HookResult",
    "HookStatus",
    "InstallationManager",
    "MiddlewarePipeline",
    "OWNERSHIP_MARKER",
    "Severity",
    "Strictness",
    "run_lifecycle",
]
