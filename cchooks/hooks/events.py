"""Typed event channels published by hooks.

Each hook owns one channel per event kind. Subscribers attach to a specific
channel and receive only that event type; there is no catch-all channel.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Generic, TypeVar

import structlog

from .models import HookResult


T = TypeVar("T")

Handler = Callable[[T], Awaitable[None] | None]


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class HookExecuted:
    hook_id: str
    result: HookResult
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class HookFailed:
    hook_id: str
    error: BaseException
    result: HookResult
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class HookInstalled:
    hook_id: str
    path: str
    backup_path: str | None = None
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class HookRemoved:
    hook_id: str
    path: str
    restored_from: str | None = None
    timestamp: datetime = field(default_factory=_now)


class EventChannel(Generic[T]):
    """Ordered list of handlers for a single event type.

    Handlers may be sync or async. A failing handler is logged and does not
    prevent the remaining handlers from running.
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: list[Handler[T]] = []
        self._logger = structlog.get_logger(__name__)

    def subscribe(self, handler: Handler[T]) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: Handler[T]) -> bool:
        try:
            self._handlers.remove(handler)
            return True
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._handlers)

    async def publish(self, event: T) -> None:
        """Deliver ``event`` to every subscriber in subscription order."""
        for handler in list(self._handlers):
            try:
                outcome = handler(event)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as e:
                self._logger.error(
                    "event_handler_failed",
                    channel=self.name,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                )


class HookEventChannels:
    """The typed channels a single hook publishes on."""

    def __init__(self, hook_id: str):
        self.executed: EventChannel[HookExecuted] = EventChannel(f"{hook_id}.executed")
        self.failed: EventChannel[HookFailed] = EventChannel(f"{hook_id}.failed")
        self.installed: EventChannel[HookInstalled] = EventChannel(
            f"{hook_id}.installed"
        )
        self.removed: EventChannel[HookRemoved] = EventChannel(f"{hook_id}.removed")
