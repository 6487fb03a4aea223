"""
worktree next - Print the next actionable step.
"""

from worktree.lib.config import WorkTreeConfig
from worktree.node import WorkNode


def cmd_next(args, config: WorkTreeConfig) -> int:
    node = WorkNode.load(args.dir, scope_separator=config.scope_separator)
    entry = node.get_next_actionable_step(strict=config.strict_in_progress)

    if entry is None:
        print("No actionable step.")
        return 0

    print(f"{entry.ref}: {entry.label} [{entry.status.value}]")
    plan_step = node.find_plan_step(entry.phase, entry.step)
    for detail in (plan_step.details if plan_step else None) or []:
        print(f"  - {detail}")
    if entry.progress_log:
        print(f"  Log: {entry.progress_log}")
    return 0
