"""pre-commit: review staged changes before they are committed."""

from cchooks.exceptions import BackendError

from ..base import BaseHook
from ..models import (
    Done,
    ExecutionContext,
    HookIssue,
    HookLifecycle,
    HookResult,
    HookStatus,
)
from ..schema import PreCommitConfig
from .checks import (
    extract_json,
    filter_diff,
    filter_files,
    parse_issues,
    scan_diff,
    truncate,
)


class PreCommitHook(BaseHook):
    hook_id = "pre-commit"
    name = "Claude Code Review"
    description = "Reviews staged changes with Claude before each commit"
    config_class = PreCommitConfig

    config: PreCommitConfig

    def register_middleware(self) -> None:
        super().register_middleware()
        self.use(HookLifecycle.BEFORE_EXECUTION, self.collect_staged_changes)
        self.use(HookLifecycle.AFTER_SETUP, self.create_templates)

    async def create_templates(self, context: ExecutionContext) -> None:
        await self.templates.ensure_template("code-review")

    async def collect_staged_changes(self, context: ExecutionContext) -> Done | None:
        files = filter_files(
            await self.git.staged_files(),
            self.config.include_patterns,
            self.config.exclude_patterns,
        )
        if not files:
            return Done(HookResult.skipped("No staged files to review"))

        diff = filter_diff(
            await self.git.staged_diff(),
            self.config.include_patterns,
            self.config.exclude_patterns,
        )
        context.data["staged_files"] = files
        context.data["diff"] = truncate(diff, self.config.max_diff_size)
        return None

    async def execute(self, context: ExecutionContext) -> HookResult:
        files: list[str] = context.data["staged_files"]
        diff: str = context.data["diff"]

        try:
            summary, issues = await self.review_with_claude(files, diff)
            source = "claude"
        except BackendError as e:
            self.logger.warning("code_review_fallback", error=e.message)
            issues = scan_diff(diff)
            summary = f"Rule-based review of {len(files)} staged file(s)"
            source = "rules"

        if issues:
            status = HookStatus.WARNING
            message = f"Code review found {len(issues)} issue(s)"
        else:
            status = HookStatus.SUCCESS
            message = "Code review passed"

        return HookResult(
            status=status,
            message=message,
            data={"summary": summary, "source": source, "files": files},
            issues=tuple(issues),
        )

    async def review_with_claude(
        self, files: list[str], diff: str
    ) -> tuple[str, list[HookIssue]]:
        prompt = await self.templates.render(
            "code-review",
            review_types=self.config.review_types,
            strictness=self.config.strictness.value,
            files="\n".join(files),
            diff=diff,
        )
        answer = await self.ask_claude(prompt, temperature=0.2)
        data = extract_json(answer)
        if data is None:
            self.logger.warning("code_review_unparsed_response")
            return answer, []
        return str(data.get("summary", "")), parse_issues(data.get("issues"))
