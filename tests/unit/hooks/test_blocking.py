"""Unit tests for the blocking policy and its effect on git exit codes."""

from pathlib import Path

import pytest

from cchooks.hooks import (
    BlockingMode,
    CallableHookAdapter,
    ExecutionContext,
    HookConfig,
    HookIssue,
    HookRegistry,
    HookResult,
    HookStatus,
    Severity,
    Strictness,
)
from cchooks.hooks.middleware import apply_blocking_policy
from cchooks.runner import EXIT_ABORT, EXIT_PROCEED, dispatch, exit_code_for


def result_with(*severities: Severity) -> HookResult:
    return HookResult(
        status=HookStatus.WARNING,
        message="found things",
        issues=tuple(
            HookIssue(severity=severity, description=f"{severity.value} issue")
            for severity in severities
        ),
    )


@pytest.mark.unit
class TestApplyBlockingPolicy:
    """Test how issue severities turn into should_block."""

    def test_block_mode_blocks_at_threshold(self):
        config = HookConfig(
            blocking_mode=BlockingMode.BLOCK, block_on_severity=Severity.HIGH
        )

        result = apply_blocking_policy(result_with(Severity.HIGH), config)

        assert result.should_block is True
        assert result.status == HookStatus.ERROR

    def test_block_mode_ignores_issues_below_threshold(self):
        config = HookConfig(
            blocking_mode=BlockingMode.BLOCK, block_on_severity=Severity.HIGH
        )

        result = apply_blocking_policy(
            result_with(Severity.MEDIUM, Severity.LOW), config
        )

        assert result.should_block is False
        assert result.status == HookStatus.WARNING

    def test_warn_mode_never_blocks(self):
        config = HookConfig(blocking_mode=BlockingMode.WARN)

        result = apply_blocking_policy(result_with(Severity.CRITICAL), config)

        assert result.should_block is False
        assert result.status == HookStatus.WARNING

    def test_warn_mode_clears_should_block_set_by_hook(self):
        config = HookConfig(blocking_mode=BlockingMode.WARN)
        blocking = HookResult(status=HookStatus.ERROR, should_block=True)

        assert apply_blocking_policy(blocking, config).should_block is False

    @pytest.mark.parametrize(
        ("strictness", "threshold"),
        [
            (Strictness.LOW, Severity.CRITICAL),
            (Strictness.MEDIUM, Severity.HIGH),
            (Strictness.HIGH, Severity.MEDIUM),
        ],
    )
    def test_strictness_selects_default_threshold(
        self, strictness: Strictness, threshold: Severity
    ):
        config = HookConfig(strictness=strictness)

        assert config.block_threshold() == threshold

    def test_explicit_threshold_wins_over_strictness(self):
        config = HookConfig(strictness=Strictness.LOW, block_on_severity=Severity.LOW)

        assert config.block_threshold() == Severity.LOW


@pytest.mark.unit
class TestDispatchExitCodes:
    """Test that blocking results abort git and everything else proceeds."""

    def _register(
        self, registry: HookRegistry, project_root: Path, mode: BlockingMode
    ) -> None:
        async def find_secret(context: ExecutionContext) -> HookResult:
            return result_with(Severity.HIGH)

        registry.register(
            CallableHookAdapter(
                "pre-commit",
                find_secret,
                project_root=project_root,
                config=HookConfig(
                    enabled=True,
                    blocking_mode=mode,
                    block_on_severity=Severity.HIGH,
                ),
            )
        )

    async def test_blocking_issue_aborts(
        self, registry: HookRegistry, project_root: Path
    ):
        self._register(registry, project_root, BlockingMode.BLOCK)

        code = await dispatch("pre-commit", [], registry=registry)

        assert code == EXIT_ABORT
        assert registry.last_results["pre-commit"].should_block is True

    async def test_warn_mode_proceeds(
        self, registry: HookRegistry, project_root: Path
    ):
        self._register(registry, project_root, BlockingMode.WARN)

        code = await dispatch("pre-commit", [], registry=registry)

        assert code == EXIT_PROCEED
        assert registry.last_results["pre-commit"].issues

    async def test_unknown_hook_aborts(self, registry: HookRegistry):
        assert await dispatch("post-merge", [], registry=registry) == EXIT_ABORT

    async def test_outside_repository_aborts(self, tmp_path: Path):
        assert await dispatch("pre-commit", [], project_root=None) == EXIT_ABORT

    def test_exit_code_for(self):
        assert exit_code_for(HookResult.success("ok")) == EXIT_PROCEED
        assert (
            exit_code_for(HookResult(status=HookStatus.ERROR, should_block=True))
            == EXIT_ABORT
        )
