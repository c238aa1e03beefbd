"""Unit tests for the hook registry."""

import json
from pathlib import Path

import pytest

from cchooks.exceptions import HookNotFoundError, InstallationError
from cchooks.hooks import (
    BaseHook,
    BlockingMode,
    CallableHookAdapter,
    ExecutionContext,
    HookRegistry,
    HookResult,
    HookStatus,
)
from cchooks.hooks.implementations import (
    BUILTIN_HOOKS,
    CommitMsgHook,
    PreCommitHook,
)
from cchooks.hooks.registry import CONFIG_VERSION
from cchooks.hooks.schema import CommitMsgConfig, PreCommitConfig


async def passing(context: ExecutionContext) -> HookResult:
    return HookResult.success("ok")


def adapter(hook_id: str, root: Path, **kwargs) -> CallableHookAdapter:
    return CallableHookAdapter(hook_id, passing, project_root=root, **kwargs)


@pytest.mark.unit
class TestRegistration:
    """Test hook registration and lookup."""

    def test_register_hook_builds_from_schema_defaults(self, registry: HookRegistry):
        hook = registry.register_hook("pre-commit", PreCommitHook)

        assert isinstance(hook.config, PreCommitConfig)
        assert hook.config.enabled is False
        assert hook.config.max_diff_size == 50000
        assert registry.get_hook("pre-commit") is hook
        assert "pre-commit" in registry
        assert len(registry) == 1

    def test_register_hook_merges_defaults(self, registry: HookRegistry):
        hook = registry.register_hook(
            "pre-commit",
            PreCommitHook,
            defaults={"enabled": True, "blocking_mode": "block"},
        )

        assert hook.config.enabled is True
        assert hook.config.blocking_mode == BlockingMode.BLOCK
        assert hook.config.review_types == [
            "security",
            "performance",
            "quality",
            "testing",
        ]

    def test_reregistering_replaces_and_warns(
        self, registry: HookRegistry, project_root: Path, caplog
    ):
        first = registry.register(adapter("pre-commit", project_root))
        second = registry.register(adapter("pre-commit", project_root))

        assert registry.get_hook("pre-commit") is second
        assert registry.get_hook("pre-commit") is not first
        assert len(registry) == 1
        assert "hook_overwritten" in caplog.text

    def test_get_unknown_hook_raises(self, registry: HookRegistry):
        with pytest.raises(HookNotFoundError) as exc_info:
            registry.get_hook("post-checkout")

        assert exc_info.value.hook_id == "post-checkout"

    def test_enable_and_disable(self, registry: HookRegistry):
        hook = registry.register_hook("commit-msg", CommitMsgHook)

        registry.enable_hook("commit-msg")
        assert hook.config.enabled is True

        registry.disable_hook("commit-msg")
        assert hook.config.enabled is False

    def test_builtin_hooks_cover_git_slots(self):
        assert set(BUILTIN_HOOKS) == {
            "pre-commit",
            "prepare-commit-msg",
            "commit-msg",
            "pre-push",
        }
        for hook_id, hook_cls in BUILTIN_HOOKS.items():
            assert issubclass(hook_cls, BaseHook)
            assert hook_cls.hook_id == hook_id


@pytest.mark.unit
class TestDependencyOrder:
    """Test dependency resolution for batch operations."""

    def test_dependencies_come_first(self, registry: HookRegistry):
        registry.set_dependencies("A", ["B"])
        registry.set_dependencies("B", ["C"])

        assert registry.resolve_order(["A", "B", "C"]) == ["C", "B", "A"]

    def test_independent_hooks_keep_discovery_order(self, registry: HookRegistry):
        assert registry.resolve_order(["x", "y", "z"]) == ["x", "y", "z"]

    def test_dependencies_outside_selection_are_ignored(self, registry: HookRegistry):
        registry.set_dependencies("A", ["missing"])

        assert registry.resolve_order(["A"]) == ["A"]

    def test_cycle_terminates_with_each_hook_once(self, registry: HookRegistry):
        registry.set_dependencies("A", ["B"])
        registry.set_dependencies("B", ["A"])

        order = registry.resolve_order(["A", "B"])

        assert sorted(order) == ["A", "B"]
        assert len(order) == 2

    def test_depends_on_is_registered(self, registry: HookRegistry, project_root: Path):
        registry.register(adapter("commit-msg", project_root, depends_on=["pre-commit"]))

        assert registry.get_dependencies("commit-msg") == ["pre-commit"]


@pytest.mark.unit
class TestPersistence:
    """Test saving and loading hooks.json."""

    async def test_round_trip_preserves_nested_config(
        self, registry: HookRegistry, project_root: Path, settings, offline_backend
    ):
        hook = registry.register_hook("commit-msg", CommitMsgHook)
        hook.configure(
            {
                "enabled": True,
                "max_length": {"subject": 50, "body": 80},
                "conventional_commits": False,
            }
        )
        pre_commit = registry.register_hook("pre-commit", PreCommitHook)
        pre_commit.configure({"exclude_patterns": ["vendor/*"]})

        path = await registry.save_config()

        document = json.loads(path.read_text())
        assert document["version"] == CONFIG_VERSION
        assert "timestamp" in document
        assert document["hooks"]["commit-msg"]["max_length"] == {
            "subject": 50,
            "body": 80,
        }

        fresh = HookRegistry(project_root, settings=settings, backend=offline_backend)
        fresh.register_hook("commit-msg", CommitMsgHook)
        fresh.register_hook("pre-commit", PreCommitHook)
        assert await fresh.load_config() is True

        loaded = fresh.get_hook("commit-msg").config
        assert isinstance(loaded, CommitMsgConfig)
        assert loaded.enabled is True
        assert loaded.max_length.subject == 50
        assert loaded.max_length.body == 80
        assert loaded.conventional_commits is False
        assert fresh.get_hook("pre-commit").config.exclude_patterns == ["vendor/*"]

    async def test_load_ignores_unknown_hooks_and_fields(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register_hook("pre-commit", PreCommitHook)
        config_file = project_root / ".claude" / "hooks.json"
        config_file.parent.mkdir(parents=True)
        config_file.write_text(
            json.dumps(
                {
                    "version": CONFIG_VERSION,
                    "hooks": {
                        "pre-commit": {"enabled": True, "colour": "blue"},
                        "post-merge": {"enabled": True},
                    },
                }
            )
        )

        assert await registry.load_config() is True
        assert registry.get_hook("pre-commit").config.enabled is True
        assert "post-merge" not in registry

    async def test_invalid_values_fall_back_to_defaults(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register_hook("pre-commit", PreCommitHook)
        config_file = project_root / ".claude" / "hooks.json"
        config_file.parent.mkdir(parents=True)
        config_file.write_text(
            json.dumps(
                {
                    "version": CONFIG_VERSION,
                    "hooks": {
                        "pre-commit": {
                            "enabled": True,
                            "blocking_mode": "explode",
                            "max_diff_size": -5,
                        }
                    },
                }
            )
        )

        await registry.load_config()

        config = registry.get_hook("pre-commit").config
        assert config.enabled is True
        assert config.blocking_mode == BlockingMode.WARN
        assert config.max_diff_size == 50000

    async def test_missing_or_corrupt_file_is_not_an_error(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register_hook("pre-commit", PreCommitHook)
        assert await registry.load_config() is False

        config_file = project_root / ".claude" / "hooks.json"
        config_file.parent.mkdir(parents=True)
        config_file.write_text("{not json")
        assert await registry.load_config() is False
        assert registry.get_hook("pre-commit").config.enabled is False


@pytest.mark.unit
class TestBatchOperations:
    """Test setup_hooks / remove_hooks / run_hook."""

    async def test_setup_installs_only_enabled_hooks(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register(adapter("pre-commit", project_root))
        registry.register(adapter("commit-msg", project_root))
        registry.enable_hook("commit-msg")

        succeeded, failed = await registry.setup_hooks()

        assert succeeded == ["commit-msg"]
        assert failed == []
        assert (project_root / ".git" / "hooks" / "commit-msg").exists()
        assert not (project_root / ".git" / "hooks" / "pre-commit").exists()
        assert (project_root / ".claude" / "hooks.json").exists()

    async def test_one_failure_does_not_stop_the_batch(
        self, registry: HookRegistry, project_root: Path, monkeypatch
    ):
        for hook_id in ("pre-commit", "commit-msg", "pre-push"):
            registry.register(adapter(hook_id, project_root))
            registry.enable_hook(hook_id)

        original_setup = registry.installer.setup

        async def flaky_setup(hook, dry_run=False):
            if hook.hook_id == "commit-msg":
                raise InstallationError("disk full")
            return await original_setup(hook, dry_run=dry_run)

        monkeypatch.setattr(registry.installer, "setup", flaky_setup)

        succeeded, failed = await registry.setup_hooks()

        assert succeeded == ["pre-commit", "pre-push"]
        assert failed == ["commit-msg"]

    async def test_setup_follows_dependency_order(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register(adapter("pre-push", project_root, depends_on=["pre-commit"]))
        registry.register(adapter("pre-commit", project_root))
        registry.enable_hook("pre-push")
        registry.enable_hook("pre-commit")

        succeeded, _ = await registry.setup_hooks()
        assert succeeded == ["pre-commit", "pre-push"]

        removed, _ = await registry.remove_hooks()
        assert removed == ["pre-push", "pre-commit"]

    async def test_dry_run_writes_nothing(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register(adapter("pre-commit", project_root))
        registry.enable_hook("pre-commit")

        succeeded, _ = await registry.setup_hooks(dry_run=True)

        assert succeeded == ["pre-commit"]
        assert not (project_root / ".git" / "hooks" / "pre-commit").exists()
        assert not (project_root / ".claude" / "hooks.json").exists()

    async def test_run_disabled_hook_is_skipped(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register(adapter("pre-commit", project_root))

        result = await registry.run_hook("pre-commit", [])

        assert result.status == HookStatus.SKIPPED
        assert result.message == "Hook pre-commit is disabled"

    async def test_run_records_last_result(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register(adapter("pre-commit", project_root))
        registry.enable_hook("pre-commit")

        result = await registry.run_hook("pre-commit", ["arg"])

        assert result.status == HookStatus.SUCCESS
        assert registry.last_results["pre-commit"] == result

    async def test_installed_events_reach_history(
        self, registry: HookRegistry, project_root: Path
    ):
        registry.register(adapter("pre-commit", project_root))
        registry.enable_hook("pre-commit")

        await registry.setup_hooks()
        await registry.remove_hooks()

        assert [type(event).__name__ for event in registry.history] == [
            "HookInstalled",
            "HookRemoved",
        ]
