"""prepare-commit-msg: draft a commit message from the staged changes."""

import re
from pathlib import Path

import aiofiles

from cchooks.exceptions import BackendError

from ..base import BaseHook
from ..models import (
    Done,
    ExecutionContext,
    HookIssue,
    HookLifecycle,
    HookResult,
    HookStatus,
    Severity,
)
from ..schema import PrepareCommitMsgConfig
from .checks import truncate


# Commit sources for which git already supplies a meaningful message
SKIPPED_SOURCES = frozenset({"merge", "squash", "commit", "template"})

_FEATURE_MARKERS = ("new", "function", "class", "export", "def ")
_FIX_MARKERS = ("fix", "bug", "issue")
_STYLE_MARKERS = ("style", "css", "format")


def detect_change_type(files: list[str], diff: str) -> str:
    """Guess a Conventional Commits type from paths and diff text."""
    joined = " ".join(files)
    if "test" in joined or "test(" in diff or "describe(" in diff:
        return "test"
    if "docs" in joined or any(f.endswith(".md") for f in files):
        return "docs"
    if any(marker in diff for marker in _FEATURE_MARKERS):
        return "feat"
    if any(marker in diff for marker in _FIX_MARKERS):
        return "fix"
    if any(marker in diff for marker in _STYLE_MARKERS):
        return "style"
    return "chore"


def common_scope(files: list[str]) -> str:
    """Top-level directory shared by every file, or empty."""
    if not files:
        return ""
    first = files[0].split("/")
    if len(first) < 2:
        return ""
    top = first[0]
    if all(f.startswith(f"{top}/") for f in files):
        return top
    return ""


def fallback_commit_message(
    files: list[str],
    diff: str,
    conventional_commits: bool = True,
    include_scope: bool = True,
) -> str:
    """Deterministic commit message used when Claude cannot be reached."""
    count = len(files)
    noun = "file" if count == 1 else "files"
    if not conventional_commits:
        return f"Update {count} {noun}"

    change_type = detect_change_type(files, diff)
    scope = common_scope(files) if include_scope else ""
    scope_part = f"({scope})" if scope else ""
    return f"{change_type}{scope_part}: update {count} {noun}"


def clean_message(text: str) -> str:
    """Strip code fences and surrounding whitespace from a model answer."""
    text = text.strip()
    fenced = re.match(r"^```[a-zA-Z]*\n(.*?)\n?```$", text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    return text


def _non_comment_lines(message: str) -> list[str]:
    return [
        line for line in message.splitlines() if line.strip() and not line.startswith("#")
    ]


class PrepareCommitMsgHook(BaseHook):
    hook_id = "prepare-commit-msg"
    name = "Claude Commit Message Generator"
    description = "Drafts commit messages from staged changes"
    config_class = PrepareCommitMsgConfig

    config: PrepareCommitMsgConfig

    def register_middleware(self) -> None:
        super().register_middleware()
        self.use(HookLifecycle.BEFORE_EXECUTION, self.read_message_file)
        self.use(HookLifecycle.BEFORE_EXECUTION, self.collect_staged_changes)
        self.use(HookLifecycle.AFTER_SETUP, self.create_templates)

    async def create_templates(self, context: ExecutionContext) -> None:
        await self.templates.ensure_template("commit-message")

    async def read_message_file(self, context: ExecutionContext) -> Done | None:
        if not context.args:
            return Done(
                HookResult(
                    status=HookStatus.ERROR,
                    message="No commit message file provided",
                    issues=(
                        HookIssue(
                            severity=Severity.HIGH,
                            description="No commit message file provided",
                        ),
                    ),
                )
            )

        source = context.args[1] if len(context.args) > 1 else ""
        if source in SKIPPED_SOURCES:
            return Done(
                HookResult.skipped(
                    f"Commit source '{source}' supplies its own message",
                    data={"commit_source": source},
                )
            )

        message_file = Path(context.args[0])
        if not message_file.is_absolute():
            message_file = context.project_root / message_file

        try:
            async with aiofiles.open(message_file, encoding="utf-8") as f:
                existing = await f.read()
        except FileNotFoundError:
            existing = ""

        if _non_comment_lines(existing) and self.config.mode == "suggest":
            return Done(HookResult.skipped("Commit message already provided"))

        context.data["message_file"] = message_file
        context.data["existing_message"] = existing
        return None

    async def collect_staged_changes(self, context: ExecutionContext) -> Done | None:
        files = await self.git.staged_files()
        if not files:
            return Done(HookResult.skipped("No staged changes"))
        context.data["staged_files"] = files
        context.data["diff"] = truncate(
            await self.git.staged_diff(), self.config.max_diff_size
        )
        context.data["branch"] = await self.git.current_branch()
        return None

    async def execute(self, context: ExecutionContext) -> HookResult:
        files: list[str] = context.data["staged_files"]
        diff: str = context.data["diff"]

        try:
            message = clean_message(
                await self.ask_claude(
                    await self.templates.render(
                        "commit-message",
                        message_style=self.config.message_style,
                        conventional_commits=self.config.conventional_commits,
                        include_scope=self.config.include_scope,
                        include_breaking=self.config.include_breaking,
                        branch=context.data.get("branch", ""),
                        files="\n".join(files),
                        diff=diff,
                    ),
                    max_tokens=500,
                )
            )
            source = "claude"
        except BackendError as e:
            self.logger.warning("commit_message_fallback", error=e.message)
            message = ""
            source = "rules"

        if not message:
            message = fallback_commit_message(
                files,
                diff,
                conventional_commits=self.config.conventional_commits,
                include_scope=self.config.include_scope,
            )
            source = "rules"

        if self.config.mode == "insert":
            await self._insert_message(context, message)
            summary = "Commit message generated"
        else:
            summary = f"Suggested commit message: {message}"

        return HookResult(
            status=HookStatus.SUCCESS,
            message=summary,
            data={"commit_message": message, "source": source, "mode": self.config.mode},
        )

    async def _insert_message(self, context: ExecutionContext, message: str) -> None:
        message_file: Path = context.data["message_file"]
        existing: str = context.data.get("existing_message", "")
        async with aiofiles.open(message_file, "w", encoding="utf-8") as f:
            await f.write(f"{message}\n\n{existing}" if existing else f"{message}\n")
