"""
worktree init - Create a new WorkNode.

Creates:
- PLAN.md with the given steps
- STATE.md with one todo row per step
- logs/ (empty)
"""

import re
from pathlib import Path

from worktree.lib.config import WorkTreeConfig
from worktree.lib.consistency import ensure_consistency
from worktree.lib.fileio import atomic_write_text
from worktree.lib.layout import WorkNodeLayout
from worktree.lib.planparse import render_plan
from worktree.lib.stateparse import state_to_records, write_state
from worktree.lib.steps import PlanStep, WorkPlan, state_from_plan
from worktree.lib.validate import ValidationError, validate_before_write

STEP_ARG_RE = re.compile(r'^\s*(\d+)\.(\d+(?:\.\d+)*)\s*:\s*(.+?)\s*$')


def parse_step_arg(value: str) -> PlanStep:
    """Parse a --step value such as "1.2: Write docs"."""
    match = STEP_ARG_RE.match(value)
    if not match:
        raise ValueError(f"Invalid step '{value}' (expected 'PHASE.STEP: Label', e.g. '0.1: Write docs')")
    return PlanStep(phase=int(match.group(1)), step=match.group(2), label=match.group(3))


def cmd_init(args, config: WorkTreeConfig) -> int:
    """Create PLAN.md, STATE.md and logs/ under args.dir."""
    layout = WorkNodeLayout.for_root(args.dir)

    existing = [p.name for p in (layout.plan_path, layout.state_path) if p.exists()]
    if existing:
        print(f"ERROR: {layout.root} already has {', '.join(existing)}")
        return 2

    plan = WorkPlan()
    try:
        for value in args.step or []:
            plan.add(parse_step_arg(value))
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2

    state = state_from_plan(plan)
    ensure_consistency(plan, state)

    # Nothing is written unless STATE.md would be accepted too
    try:
        validate_before_write(state_to_records(state), "state", layout.state_path)
    except ValidationError as e:
        print(f"ERROR: {e}")
        return 2

    layout.logs_dir.mkdir(parents=True, exist_ok=True)
    atomic_write_text(layout.plan_path, render_plan(plan, title=args.title or Path(layout.root).name))
    write_state(layout.state_path, state)

    print(f"Created WorkNode at {layout.root}")
    print(f"  Steps: {len(plan)}")
    for step in plan.steps:
        print(f"  [ ] {step.ref}: {step.label}")
    return 0
