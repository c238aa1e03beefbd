"""Unit tests for typed hook event channels."""

import pytest

from cchooks.hooks import EventChannel, HookEventChannels, HookResult
from cchooks.hooks.events import HookExecuted, HookInstalled


@pytest.mark.unit
class TestEventChannel:
    async def test_delivers_to_sync_and_async_handlers_in_order(self):
        channel: EventChannel[HookExecuted] = EventChannel("pre-commit.executed")
        received: list[str] = []

        def sync_handler(event: HookExecuted) -> None:
            received.append(f"sync:{event.hook_id}")

        async def async_handler(event: HookExecuted) -> None:
            received.append(f"async:{event.hook_id}")

        channel.subscribe(sync_handler)
        channel.subscribe(async_handler)

        await channel.publish(
            HookExecuted(hook_id="pre-commit", result=HookResult.success("ok"))
        )

        assert received == ["sync:pre-commit", "async:pre-commit"]

    async def test_failing_handler_does_not_stop_others(self):
        channel: EventChannel[HookInstalled] = EventChannel("x.installed")
        received: list[HookInstalled] = []

        def broken(event: HookInstalled) -> None:
            raise RuntimeError("handler bug")

        channel.subscribe(broken)
        channel.subscribe(received.append)

        await channel.publish(HookInstalled(hook_id="x", path="/tmp/x"))

        assert len(received) == 1

    def test_unsubscribe(self):
        channel: EventChannel[HookExecuted] = EventChannel("x.executed")
        handler = lambda event: None  # noqa: E731
        channel.subscribe(handler)

        assert len(channel) == 1
        assert channel.unsubscribe(handler) is True
        assert channel.unsubscribe(handler) is False
        assert len(channel) == 0

    def test_each_hook_gets_separate_channels(self):
        first = HookEventChannels("pre-commit")
        second = HookEventChannels("commit-msg")

        first.executed.subscribe(lambda event: None)

        assert len(first.executed) == 1
        assert len(second.executed) == 0
        assert len(first.failed) == 0
        assert first.installed.name == "pre-commit.installed"
