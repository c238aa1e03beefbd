"""Unit tests for the git query wrapper."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from cchooks.git import CommitInfo, GitRepository


@pytest.mark.unit
class TestGitRepository:
    """Test output parsing with git itself patched out."""

    async def test_recent_commits(self, tmp_path: Path):
        repo = GitRepository(tmp_path)
        output = "abc123|Ada Lovelace|feat: add engine\ndef456|Grace|fix: a|b\n"

        with patch.object(repo, "_run", AsyncMock(return_value=output)) as run:
            commits = await repo.recent_commits(5)

        run.assert_awaited_once_with("log", "-5", "--format=%H|%an|%s")
        assert commits == [
            CommitInfo("abc123", "Ada Lovelace", "feat: add engine"),
            CommitInfo("def456", "Grace", "fix: a|b"),
        ]

    async def test_staged_files(self, tmp_path: Path):
        repo = GitRepository(tmp_path)

        with patch.object(repo, "_run", AsyncMock(return_value="a.py\n\nb/c.py\n")):
            assert await repo.staged_files() == ["a.py", "b/c.py"]

    async def test_failures_degrade_to_empty_values(self, tmp_path: Path):
        repo = GitRepository(tmp_path)

        with patch.object(repo, "_run", AsyncMock(return_value=None)):
            assert await repo.staged_diff() == ""
            assert await repo.staged_files() == []
            assert await repo.current_branch() == ""
            assert await repo.commits_between("a", "b") == []
            assert await repo.toplevel() is None

    async def test_missing_git_binary(self, tmp_path: Path):
        repo = GitRepository(tmp_path, git_binary="definitely-not-git-xyz")

        assert await repo.current_branch() == ""
