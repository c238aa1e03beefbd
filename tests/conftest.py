"""Shared test fixtures for cchooks tests.

Fixtures build real components around a temporary repository and replace
only the external edges: the Claude CLI, the Anthropic API and git itself.
"""

import os
from pathlib import Path
from typing import Any

import pytest

from cchooks.backend.cache import ResponseCache
from cchooks.backend.client import AIBackendClient
from cchooks.config.settings import Settings
from cchooks.core.logging import setup_logging
from cchooks.git import CommitInfo
from cchooks.hooks.registry import HookRegistry


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    config.option.asyncio_mode = "auto"
    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and ``.env`` out of the tests."""
    for key in list(os.environ):
        if key.startswith("CCHOOKS_") or key == "ANTHROPIC_API_KEY":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


class FakeChannel:
    """Stand-in for a backend channel that records its calls."""

    def __init__(
        self,
        name: str,
        available: bool = True,
        text: str = "ok",
        error: Exception | None = None,
        has_credential: bool = True,
    ):
        self.name = name
        self.available = available
        self.text = text
        self.error = error
        self.has_credential = has_credential
        self.calls: list[dict[str, Any]] = []
        self.probes = 0

    async def probe(self) -> bool:
        self.probes += 1
        return self.available

    async def call(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "prompt": prompt,
                "model": model,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.error is not None:
            raise self.error
        return {
            "id": f"{self.name}-{len(self.calls)}",
            "content": [{"type": "text", "text": self.text}],
        }


class FakeGit:
    """Canned answers for the git queries hooks make."""

    def __init__(
        self,
        staged_files: list[str] | None = None,
        staged_diff: str = "",
        branch: str = "main",
        commits: list[CommitInfo] | None = None,
        diff: str = "",
    ):
        self._staged_files = staged_files or []
        self._staged_diff = staged_diff
        self._branch = branch
        self._commits = commits or []
        self._diff = diff
        self.diff_calls: list[tuple[str, str]] = []

    async def staged_files(self) -> list[str]:
        return list(self._staged_files)

    async def staged_diff(self) -> str:
        return self._staged_diff

    async def current_branch(self) -> str:
        return self._branch

    async def recent_commits(self, count: int = 10) -> list[CommitInfo]:
        return self._commits[:count]

    async def commits_between(self, base: str, head: str) -> list[CommitInfo]:
        return list(self._commits)

    async def diff(self, base: str, head: str) -> str:
        self.diff_calls.append((base, head))
        return self._diff


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A directory laid out like a git work tree."""
    root = tmp_path / "repo"
    (root / ".git" / "hooks").mkdir(parents=True)
    return root


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def cli_channel() -> FakeChannel:
    return FakeChannel("cli")


@pytest.fixture
def api_channel() -> FakeChannel:
    return FakeChannel("api")


@pytest.fixture
def backend(
    settings: Settings,
    project_root: Path,
    cli_channel: FakeChannel,
    api_channel: FakeChannel,
) -> AIBackendClient:
    """Backend client wired to fake channels."""
    return AIBackendClient(
        settings,
        project_root,
        cache=ResponseCache(project_root / ".claude" / "cache"),
        cli_channel=cli_channel,  # type: ignore[arg-type]
        api_channel=api_channel,  # type: ignore[arg-type]
    )


@pytest.fixture
def offline_backend(settings: Settings, project_root: Path) -> AIBackendClient:
    """Backend client for which neither channel is available."""
    return AIBackendClient(
        settings,
        project_root,
        cli_channel=FakeChannel("cli", available=False),  # type: ignore[arg-type]
        api_channel=FakeChannel(  # type: ignore[arg-type]
            "api", available=False, has_credential=False
        ),
    )


@pytest.fixture
def registry(
    project_root: Path, settings: Settings, offline_backend: AIBackendClient
) -> HookRegistry:
    return HookRegistry(project_root, settings=settings, backend=offline_backend)



@pytest.fixture
def fake_channel() -> type[FakeChannel]:
    """Factory for extra fake channels with custom behaviour."""
    return FakeChannel


@pytest.fixture
def fake_git() -> type[FakeGit]:
    return FakeGit
