"""
worktree audit - Check every WorkNode under a directory tree.

For each discovered node:
- PLAN.md and STATE.md must parse
- plan and state must agree (all disagreements are listed)
- every recorded progress log must exist under logs/
- at most one step may be in progress

Prints the parent/child tree and exits 1 if any node has problems.
"""

import asyncio
import logging
from pathlib import Path

from worktree.lib.config import WorkTreeConfig
from worktree.lib.consistency import collect_consistency_errors
from worktree.lib.discovery import WorkNodeRelation, build_work_node_relations, discover_work_nodes
from worktree.lib.errors import ParseError, ConsistencyError
from worktree.lib.layout import WorkNodeLayout
from worktree.lib.logs import resolve_log_path
from worktree.lib.planparse import read_plan
from worktree.lib.stateparse import read_state
from worktree.lib.steps import StepStatus

logger = logging.getLogger(__name__)


def audit_work_node(layout: WorkNodeLayout) -> list[str]:
    """Return every problem found in one WorkNode (empty if healthy)."""
    problems = []
    try:
        plan = read_plan(layout.plan_path)
    except (ParseError, ConsistencyError) as e:
        problems.append(f"PLAN.md: {e}")
        plan = None
    try:
        state = read_state(layout.state_path)
    except (ParseError, ConsistencyError) as e:
        problems.append(f"STATE.md: {e}")
        state = None

    if plan is None or state is None:
        return problems

    problems.extend(str(e) for e in collect_consistency_errors(plan, state))

    for entry in state.entries:
        if entry.progress_log is None:
            continue
        log_path = resolve_log_path(layout, entry.progress_log)
        if not log_path.is_file():
            problems.append(f"step {entry.ref}: progress log {entry.progress_log} does not exist")

    in_progress = state.list_by_status(StepStatus.IN_PROGRESS)
    if len(in_progress) > 1:
        refs = ", ".join(entry.ref for entry in in_progress)
        problems.append(f"more than one step is in progress: {refs}")

    return problems


def _print_tree(relation: WorkNodeRelation, by_root: dict, base: Path, problems: dict, depth: int = 0) -> None:
    root = relation.layout.root
    try:
        name = root.relative_to(base).as_posix() or "."
    except ValueError:
        name = str(root)
    marker = "FAIL" if problems[root] else "ok"
    print(f"{'  ' * depth}[{marker}] {name}")
    for problem in problems[root]:
        print(f"{'  ' * depth}    - {problem}")
    for child in relation.children:
        _print_tree(by_root[child.root], by_root, base, problems, depth + 1)


def cmd_audit(args, config: WorkTreeConfig) -> int:
    """Audit all WorkNodes under args.root."""
    base = Path(args.root).resolve()
    layouts = asyncio.run(discover_work_nodes(base, config.ignored_dirs))

    if not layouts:
        print(f"No WorkNodes found under {base}")
        return 0

    relations = build_work_node_relations(layouts)
    by_root = {relation.layout.root: relation for relation in relations}
    problems = {layout.root: audit_work_node(layout) for layout in layouts}

    print(f"WorkNodes under {base}")
    print("-" * 60)
    for relation in relations:
        if relation.parent is None:
            _print_tree(relation, by_root, base, problems)
    print()

    failing = [root for root, found in problems.items() if found]
    print(f"{len(layouts)} node(s), {len(failing)} with problems")
    if failing:
        logger.info(f"Audit found problems in {len(failing)} node(s)")
        return 1
    return 0
