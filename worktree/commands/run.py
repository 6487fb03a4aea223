"""
worktree start / complete - Move a step through its lifecycle.

start:    todo/blocked -> in-progress, creates the step log
complete: in-progress -> done, stamps the log with completed:

Both persist STATE.md atomically.
"""

from worktree.lib.config import WorkTreeConfig
from worktree.lib.steps import StepStatus, parse_step_ref
from worktree.node import WorkNode


def _target_step(args, node: WorkNode, config: WorkTreeConfig):
    """Step from --step, or the next actionable one. Returns None if nothing to do."""
    if args.step:
        phase, step = parse_step_ref(args.step)
        return node.require_state_entry(phase, step)
    return node.get_next_actionable_step(strict=config.strict_in_progress)


def cmd_start(args, config: WorkTreeConfig) -> int:
    """Start the next (or given) step."""
    node = WorkNode.load(args.dir, scope_separator=config.scope_separator)
    try:
        entry = _target_step(args, node, config)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2

    if entry is None:
        print("No actionable step.")
        return 0
    if entry.status == StepStatus.IN_PROGRESS:
        print(f"Step {entry.ref} is already in progress: {entry.label}")
        if entry.progress_log:
            print(f"  Log: {entry.progress_log}")
        return 0

    node.start_step(entry.phase, entry.step)
    node.persist_state()

    print(f"Started: {entry.ref}: {entry.label}")
    print(f"  Log: {entry.progress_log}")
    return 0


def cmd_complete(args, config: WorkTreeConfig) -> int:
    """Complete the in-progress (or given) step."""
    node = WorkNode.load(args.dir, scope_separator=config.scope_separator)
    try:
        entry = _target_step(args, node, config)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2

    if entry is None or entry.status != StepStatus.IN_PROGRESS:
        which = f"Step {entry.ref} is" if entry else "No step is"
        print(f"ERROR: {which} not in progress. Use 'worktree start' first.")
        return 1

    node.complete_step(entry.phase, entry.step)
    if args.note:
        node.add_note(entry, args.note)
    node.persist_state()

    print(f"Completed: {entry.ref}: {entry.label}")

    remaining = node.get_next_actionable_step(strict=config.strict_in_progress)
    if remaining:
        print(f"  Next: {remaining.ref}: {remaining.label}")
    else:
        print("  All steps done.")
    return 0
