"""Read-only git queries.

Every query degrades to an empty sentinel (``""``, ``[]`` or ``None``) when
git fails, so hooks can carry on with less context instead of crashing.
"""

import asyncio
from pathlib import Path
from typing import NamedTuple

from cchooks.core.logging import get_logger


logger = get_logger(__name__)

LOG_FIELD_SEPARATOR = "|"


class CommitInfo(NamedTuple):
    """One line of ``git log`` output."""

    sha: str
    author: str
    subject: str


class GitRepository:
    """Async wrapper around the git executable for one work tree."""

    def __init__(
        self, root: Path | str, git_binary: str = "git", timeout: float = 30.0
    ):
        self.root = Path(root)
        self.git_binary = git_binary
        self.timeout = timeout

    async def _run(self, *args: str) -> str | None:
        """Run a git command and return its stdout, or None on any failure."""
        cmd = [self.git_binary, *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self.root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("git_command_error", command=args[0], error=str(e))
            return None

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("git_command_timeout", command=args[0], timeout=self.timeout)
            return None

        if process.returncode != 0:
            logger.debug(
                "git_command_failed",
                command=args[0],
                returncode=process.returncode,
                stderr=stderr.decode(errors="replace").strip(),
            )
            return None
        return stdout.decode(errors="replace")

    async def current_branch(self) -> str:
        output = await self._run("symbolic-ref", "--short", "HEAD")
        return output.strip() if output else ""

    async def staged_diff(self) -> str:
        return await self._run("diff", "--cached") or ""

    async def staged_files(self) -> list[str]:
        output = await self._run("diff", "--cached", "--name-only")
        return _lines(output)

    async def recent_commits(self, count: int = 10) -> list[CommitInfo]:
        output = await self._run(
            "log", f"-{count}", f"--format=%H{LOG_FIELD_SEPARATOR}%an{LOG_FIELD_SEPARATOR}%s"
        )
        return _parse_log(output)

    async def commits_between(self, base: str, head: str) -> list[CommitInfo]:
        output = await self._run(
            "log",
            f"{base}..{head}",
            f"--format=%H{LOG_FIELD_SEPARATOR}%an{LOG_FIELD_SEPARATOR}%s",
        )
        return _parse_log(output)

    async def diff(self, base: str, head: str) -> str:
        return await self._run("diff", base, head) or ""

    async def changed_files(self, base: str, head: str) -> list[str]:
        output = await self._run("diff", "--name-only", base, head)
        return _lines(output)

    async def toplevel(self) -> Path | None:
        output = await self._run("rev-parse", "--show-toplevel")
        if not output or not output.strip():
            return None
        return Path(output.strip())


def _lines(output: str | None) -> list[str]:
    if not output:
        return []
    return [line.strip() for line in output.splitlines() if line.strip()]


def _parse_log(output: str | None) -> list[CommitInfo]:
    commits = []
    for line in _lines(output):
        parts = line.split(LOG_FIELD_SEPARATOR, 2)
        if len(parts) != 3:
            continue
        commits.append(CommitInfo(*parts))
    return commits
