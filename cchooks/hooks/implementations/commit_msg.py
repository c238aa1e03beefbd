"""commit-msg: validate the commit message against project conventions."""

import re
from pathlib import Path
from typing import Any

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
from ..schema import CommitMsgConfig
from .checks import extract_json


CONVENTIONAL_PATTERN = re.compile(
    r"^(feat|fix|docs|style|refactor|perf|test|build|ci|chore|revert)"
    r"(\([a-z0-9_-]+\))?!?: .+",
    re.IGNORECASE,
)

# Messages git or tooling generate that are not held to the rules
EXEMPT_PREFIXES = ("Merge ", "Revert \"", "fixup! ", "squash! ", "amend! ")

ISSUE_SEVERITIES = {"error": Severity.HIGH, "warning": Severity.MEDIUM}


def strip_comments(message: str) -> str:
    lines = [line for line in message.splitlines() if not line.startswith("#")]
    return "\n".join(lines).strip()


def validate_commit_message(
    message: str, config: CommitMsgConfig
) -> tuple[list[HookIssue], list[str]]:
    """Rule-based validation.

    Returns:
        Tuple of (issues, suggestions)
    """
    issues: list[HookIssue] = []
    suggestions: list[str] = []

    lines = message.split("\n")
    subject = lines[0] if lines else ""
    body = "\n".join(lines[1:]).strip()
    max_subject = config.max_length.subject
    max_body = config.max_length.body

    if len(subject) > max_subject:
        issues.append(
            HookIssue(
                severity=Severity.HIGH,
                description=f"Subject line is too long ({len(subject)} chars, max {max_subject})",
                line=1,
            )
        )
        suggestions.append(f"Shorten the subject line to {max_subject} characters or less")

    if config.conventional_commits:
        if not CONVENTIONAL_PATTERN.match(subject):
            issues.append(
                HookIssue(
                    severity=Severity.HIGH,
                    description="Subject does not follow Conventional Commits format",
                    line=1,
                )
            )
            suggestions.append(
                "Use format: type(scope): description (e.g., feat(auth): add login endpoint)"
            )
    elif subject and subject[0].islower():
        # Conventional subjects begin with a lowercase type
        issues.append(
            HookIssue(
                severity=Severity.MEDIUM,
                description="Subject line should start with a capital letter",
                line=1,
            )
        )
        suggestions.append("Capitalize the first letter of the subject line")

    if subject.endswith("."):
        issues.append(
            HookIssue(
                severity=Severity.MEDIUM,
                description="Subject line should not end with a period",
                line=1,
            )
        )
        suggestions.append("Remove the period at the end of the subject line")

    if body:
        long_lines = [line for line in body.splitlines() if len(line) > max_body]
        if long_lines:
            issues.append(
                HookIssue(
                    severity=Severity.MEDIUM,
                    description=(
                        f"{len(long_lines)} line(s) in the message body exceed "
                        f"{max_body} characters"
                    ),
                )
            )
            suggestions.append(f"Wrap body text at {max_body} characters")

    return issues, suggestions


def parse_validation(data: dict[str, Any]) -> tuple[list[HookIssue], list[str]]:
    issues = []
    for item in data.get("issues") or []:
        if not isinstance(item, dict) or not item.get("message"):
            continue
        issues.append(
            HookIssue(
                severity=ISSUE_SEVERITIES.get(str(item.get("type")), Severity.LOW),
                description=str(item["message"]),
            )
        )
    suggestions = [str(s) for s in data.get("suggestions") or [] if s]
    return issues, suggestions


class CommitMsgHook(BaseHook):
    hook_id = "commit-msg"
    name = "Claude Commit Message Validator"
    description = "Validates commit message structure and content"
    config_class = CommitMsgConfig

    config: CommitMsgConfig

    def register_middleware(self) -> None:
        super().register_middleware()
        self.use(HookLifecycle.BEFORE_EXECUTION, self.read_commit_message)
        self.use(HookLifecycle.AFTER_SETUP, self.create_templates)

    async def create_templates(self, context: ExecutionContext) -> None:
        await self.templates.ensure_template("commit-message-validation")

    async def read_commit_message(self, context: ExecutionContext) -> Done | None:
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

        message_file = Path(context.args[0])
        if not message_file.is_absolute():
            message_file = context.project_root / message_file
        async with aiofiles.open(message_file, encoding="utf-8") as f:
            message = strip_comments(await f.read())

        if not message:
            return Done(HookResult.skipped("Empty commit message"))
        if message.startswith(EXEMPT_PREFIXES):
            return Done(HookResult.skipped("Generated commit message, not validated"))

        context.data["commit_message"] = message
        return None

    async def execute(self, context: ExecutionContext) -> HookResult:
        message: str = context.data["commit_message"]

        try:
            issues, suggestions = await self.validate_with_claude(message)
            source = "claude"
        except BackendError as e:
            self.logger.warning("commit_validation_fallback", error=e.message)
            issues, suggestions = validate_commit_message(message, self.config)
            source = "rules"

        if not self.config.suggest_improvements:
            suggestions = []

        return HookResult(
            status=HookStatus.WARNING if issues else HookStatus.SUCCESS,
            message=(
                "Commit message needs improvement"
                if issues
                else "Commit message looks good"
            ),
            data={"suggestions": suggestions, "source": source},
            issues=tuple(issues),
        )

    async def validate_with_claude(
        self, message: str
    ) -> tuple[list[HookIssue], list[str]]:
        prompt = await self.templates.render(
            "commit-message-validation",
            message=message,
            max_subject_length=self.config.max_length.subject,
            max_body_length=self.config.max_length.body,
            conventional_commits=self.config.conventional_commits,
            check_spelling=self.config.check_spelling,
            check_grammar=self.config.check_grammar,
        )
        answer = await self.ask_claude(prompt, temperature=0.0)
        data = extract_json(answer)
        if data is None:
            # Unparseable answers must not block a commit
            self.logger.warning("commit_validation_unparsed_response")
            return validate_commit_message(message, self.config)
        return parse_validation(data)
