"""Built-in hook implementations."""

from ..base import BaseHook
from .commit_msg import CommitMsgHook
from .pre_commit import PreCommitHook
from .pre_push import PrePushHook
from .prepare_commit_msg import PrepareCommitMsgHook


BUILTIN_HOOKS: dict[str, type[BaseHook]] = {
    hook.hook_id: hook
    for hook in (PreCommitHook, PrepareCommitMsgHook, CommitMsgHook, PrePushHook)
}


__all__ = [
    "BUILTIN_HOOKS",
    "CommitMsgHook",
    "PreCommitHook",
    "PrePushHook",
    "PrepareCommitMsgHook",
]
