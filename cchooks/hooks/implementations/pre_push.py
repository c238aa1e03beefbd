"""pre-push: audit outgoing commits for leaked secrets and risky changes."""

from typing import NamedTuple

from cchooks.exceptions import BackendError
from cchooks.git import CommitInfo

from ..base import BaseHook
from ..models import Done, ExecutionContext, HookLifecycle, HookResult, HookStatus
from ..schema import PrePushConfig
from .checks import extract_json, filter_diff, parse_issues, scan_diff, truncate


ZERO_SHA = "0" * 40


class PushedRef(NamedTuple):
    """One line git writes to a pre-push hook's stdin."""

    local_ref: str
    local_sha: str
    remote_ref: str
    remote_sha: str

    @property
    def is_delete(self) -> bool:
        return self.local_sha == ZERO_SHA

    @property
    def is_new_branch(self) -> bool:
        return self.remote_sha == ZERO_SHA


def parse_pushed_refs(stdin: str) -> list[PushedRef]:
    refs = []
    for line in stdin.splitlines():
        parts = line.split()
        if len(parts) == 4:
            refs.append(PushedRef(*parts))
    return refs


class PrePushHook(BaseHook):
    hook_id = "pre-push"
    name = "Claude Push Audit"
    description = "Audits outgoing commits for credentials and sensitive data"
    config_class = PrePushConfig
    reads_stdin = True

    config: PrePushConfig

    def register_middleware(self) -> None:
        super().register_middleware()
        self.use(HookLifecycle.BEFORE_EXECUTION, self.collect_outgoing_changes)
        self.use(HookLifecycle.AFTER_SETUP, self.create_templates)

    async def create_templates(self, context: ExecutionContext) -> None:
        await self.templates.ensure_template("push-audit")

    async def collect_outgoing_changes(self, context: ExecutionContext) -> Done | None:
        refs = [
            ref
            for ref in parse_pushed_refs(context.data.get("stdin", ""))
            if not ref.is_delete
        ]

        commits: list[CommitInfo] = []
        diffs: list[str] = []
        for ref in refs:
            if ref.is_new_branch:
                branch_commits = await self.git.recent_commits(self.config.max_commits)
                if branch_commits:
                    oldest = branch_commits[-1].sha
                    diffs.append(await self.git.diff(f"{oldest}^", ref.local_sha))
            else:
                branch_commits = await self.git.commits_between(
                    ref.remote_sha, ref.local_sha
                )
                diffs.append(await self.git.diff(ref.remote_sha, ref.local_sha))
            commits.extend(branch_commits)

        if not refs:
            # Invoked without ref information, audit the latest commits
            commits = await self.git.recent_commits(self.config.max_commits)
            if commits:
                diffs.append(await self.git.diff(f"{commits[-1].sha}^", "HEAD"))

        if not commits:
            return Done(HookResult.skipped("No commits to push"))

        diff = filter_diff("\n".join(diffs), [], self.config.exclude_patterns)
        context.data["commits"] = commits[: self.config.max_commits]
        context.data["diff"] = truncate(diff, self.config.max_diff_size)
        context.data["branch"] = await self.git.current_branch()
        return None

    async def execute(self, context: ExecutionContext) -> HookResult:
        commits: list[CommitInfo] = context.data["commits"]
        diff: str = context.data["diff"]

        try:
            prompt = await self.templates.render(
                "push-audit",
                audit_types=self.config.audit_types,
                branch=context.data.get("branch", ""),
                commits="\n".join(f"{c.sha[:8]} {c.subject} ({c.author})" for c in commits),
                diff=diff,
            )
            data = extract_json(await self.ask_claude(prompt, temperature=0.0))
            issues = parse_issues(data.get("issues")) if data else []
            summary = str(data.get("summary", "")) if data else ""
            source = "claude"
        except BackendError as e:
            self.logger.warning("push_audit_fallback", error=e.message)
            issues = scan_diff(diff)
            summary = f"Rule-based audit of {len(commits)} commit(s)"
            source = "rules"

        return HookResult(
            status=HookStatus.WARNING if issues else HookStatus.SUCCESS,
            message=(
                f"Push audit found {len(issues)} issue(s)"
                if issues
                else f"Push audit passed for {len(commits)} commit(s)"
            ),
            data={"summary": summary, "source": source, "commits": len(commits)},
            issues=tuple(issues),
        )
