"""
worktree status - Show WorkNode progress.
"""

from worktree.lib.config import WorkTreeConfig
from worktree.lib.steps import StepStatus
from worktree.node import WorkNode

MARKERS = {
    StepStatus.TODO: "[ ]",
    StepStatus.IN_PROGRESS: "[>]",
    StepStatus.BLOCKED: "[!]",
    StepStatus.DONE: "[x]",
    StepStatus.SUPERSEDED: "[-]",
}


def cmd_status(args, config: WorkTreeConfig) -> int:
    """Show every step with its status and the next actionable one."""
    node = WorkNode.load(args.dir, scope_separator=config.scope_separator)
    next_step = node.get_next_actionable_step(strict=config.strict_in_progress)

    print(f"WorkNode: {node.root}")
    print("=" * 60)
    print()

    if not node.state.entries:
        print("Plan Progress:  No steps defined")
        return 0

    done_count = len(node.state.list_by_status(StepStatus.DONE))
    superseded = len(node.state.list_by_status(StepStatus.SUPERSEDED))
    print(f"Plan Progress:  {done_count}/{len(node.state) - superseded} steps done")
    for entry in node.state.entries:
        arrow = "  <-- NEXT" if entry is next_step else ""
        log = f"  ({entry.progress_log})" if entry.progress_log else ""
        print(f"  {MARKERS[entry.status]} {entry.ref}: {entry.label}{log}{arrow}")

    blocked = node.state.list_by_status(StepStatus.BLOCKED)
    if blocked:
        print()
        print(f"Blocked:        {', '.join(entry.ref for entry in blocked)}")

    return 0
