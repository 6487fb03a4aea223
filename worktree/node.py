"""
WorkNode facade.

Ties layout, PLAN/STATE parsing, consistency checks, the step lifecycle FSM
and log management together. Every load reads fresh from disk; nothing is
cached between instances.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from worktree.lib.consistency import ensure_consistency
from worktree.lib.discovery import (
    WorkNodeRelation,
    build_work_node_relations,
    discover_work_nodes,
    find_relation,
)
from worktree.lib.errors import (
    AmbiguousProgressError,
    ConsistencyError,
    NotFoundError,
    StateEntryNotFoundError,
)
from worktree.lib.layout import WorkNodeLayout, validate_layout, validate_layout_async
from worktree.lib.logs import (
    DEFAULT_SCOPE_SEPARATOR,
    append_log_note,
    create_step_log,
    resolve_log_path,
    update_log_header,
    utc_now,
)
from worktree.lib.planparse import read_plan, read_plan_async
from worktree.lib.stateparse import (
    read_state,
    read_state_async,
    update_state_entry,
    write_state,
    write_state_async,
)
from worktree.lib.steps import (
    PlanStep,
    StateRow,
    StepIdentifier,
    StepStatus,
    WorkPlan,
    WorkState,
    step_sort_key,
)
from worktree.workflow.fsm import StepFSM

logger = logging.getLogger(__name__)


class WorkNode:
    """A loaded WorkNode: layout plus parsed plan and state."""

    def __init__(
        self,
        layout: WorkNodeLayout,
        plan: WorkPlan,
        state: WorkState,
        scope_separator: str = DEFAULT_SCOPE_SEPARATOR,
    ):
        self.layout = layout
        self.plan = plan
        self.state = state
        self.scope_separator = scope_separator

    def __repr__(self) -> str:
        return f"WorkNode({str(self.layout.root)!r}, steps={len(self.plan)})"

    @property
    def root(self) -> Path:
        return self.layout.root

    # -- loading ---------------------------------------------------------

    @classmethod
    def load(cls, root: Path | str, scope_separator: str = DEFAULT_SCOPE_SEPARATOR) -> "WorkNode":
        """Validate layout, parse PLAN and STATE, check consistency.

        Raises:
            LayoutError, ParseError, ConsistencyError
        """
        layout = validate_layout(root)
        plan = read_plan(layout.plan_path)
        state = read_state(layout.state_path)
        ensure_consistency(plan, state)
        logger.debug(f"Loaded WorkNode {layout.root} ({len(plan)} steps)")
        return cls(layout, plan, state, scope_separator)

    @classmethod
    async def load_async(cls, root: Path | str, scope_separator: str = DEFAULT_SCOPE_SEPARATOR) -> "WorkNode":
        """Non-blocking form of load."""
        layout = await validate_layout_async(root)
        plan, state = await asyncio.gather(
            read_plan_async(layout.plan_path),
            read_state_async(layout.state_path),
        )
        ensure_consistency(plan, state)
        logger.debug(f"Loaded WorkNode {layout.root} ({len(plan)} steps)")
        return cls(layout, plan, state, scope_separator)

    def refresh(self) -> None:
        """Replace plan and state with what is on disk now."""
        plan = read_plan(self.layout.plan_path)
        state = read_state(self.layout.state_path)
        ensure_consistency(plan, state)
        self.plan, self.state = plan, state

    async def refresh_async(self) -> None:
        plan, state = await asyncio.gather(
            read_plan_async(self.layout.plan_path),
            read_state_async(self.layout.state_path),
        )
        ensure_consistency(plan, state)
        self.plan, self.state = plan, state

    # -- queries ---------------------------------------------------------

    def find_plan_step(self, phase: int, step: str) -> PlanStep | None:
        return self.plan.find(phase, step)

    def require_plan_step(self, phase: int, step: str) -> PlanStep:
        plan_step = self.plan.find(phase, step)
        if plan_step is None:
            raise NotFoundError(f"step {phase}.{step} is not declared in {self.layout.plan_path}")
        return plan_step

    def require_state_entry(self, phase: int, step: str) -> StateRow:
        entry = self.state.find(phase, step)
        if entry is None:
            raise StateEntryNotFoundError((phase, step))
        return entry

    def get_next_actionable_step(self, strict: bool = False) -> Optional[StateRow]:
        """Return the step to work on next, or None when nothing is actionable.

        An in-progress step always wins (first one in STATE order). Otherwise
        the earliest todo step by (phase, dotted step) order.

        Raises:
            AmbiguousProgressError: if strict and several steps are in progress
        """
        in_progress = self.state.list_by_status(StepStatus.IN_PROGRESS)
        if len(in_progress) > 1:
            if strict:
                raise AmbiguousProgressError([entry.key for entry in in_progress])
            refs = ", ".join(entry.ref for entry in in_progress)
            logger.warning(
                f"{self.layout.state_path}: several steps in progress ({refs}); using {in_progress[0].ref}"
            )
        if in_progress:
            return in_progress[0]

        todo = self.state.list_by_status(StepStatus.TODO)
        if not todo:
            return None
        return min(todo, key=step_sort_key)

    # -- mutation --------------------------------------------------------

    def update_state_entry(self, phase: int, step: str, **changes) -> StateRow:
        """Apply field changes to a row.

        A label change is checked against the plan. If the two no longer
        agree, every field of the call is rolled back.

        Raises:
            StateEntryNotFoundError, InvalidStatusError, LabelMismatchError
        """
        entry = self.require_state_entry(phase, step)
        snapshot = (entry.status, entry.progress_log, entry.label)
        row = update_state_entry(self.state, phase, step, **changes)

        if "label" in changes and row.label != snapshot[2]:
            try:
                ensure_consistency(self.plan, self.state)
            except ConsistencyError:
                row.status, row.progress_log, row.label = snapshot
                raise
        return row

    def transition_step(self, phase: int, step: str, trigger: str) -> StepStatus:
        """Run a lifecycle trigger (start, block, unblock, complete, supersede).

        Raises:
            StateEntryNotFoundError, TransitionError
        """
        row = self.require_state_entry(phase, step)
        return StepFSM(self.state, row).fire(trigger)

    def create_log_for_step(self, plan_step: PlanStep, status: StepStatus | str = StepStatus.IN_PROGRESS) -> str:
        """Create the step's log (idempotent) and record its path in the state."""
        relative = create_step_log(self.layout, plan_step, status, self.scope_separator)
        update_state_entry(self.state, plan_step.phase, plan_step.step, progress_log=relative)
        return relative

    def log_path_for(self, identifier: StepIdentifier) -> Path | None:
        entry = self.state.find(identifier.phase, identifier.step)
        if entry is None or entry.progress_log is None:
            return None
        return resolve_log_path(self.layout, entry.progress_log)

    def update_log_for_step(
        self,
        identifier: StepIdentifier,
        status: StepStatus | str | None = None,
        completed: str | None = None,
    ) -> None:
        """Update the header of the step's log, creating the log if needed.

        Raises:
            StateEntryNotFoundError, NotFoundError
        """
        entry = self.require_state_entry(identifier.phase, identifier.step)
        log_path = self.log_path_for(entry)
        if log_path is None or not log_path.exists():
            plan_step = self.require_plan_step(identifier.phase, identifier.step)
            self.create_log_for_step(plan_step, status or entry.status)
            log_path = self.log_path_for(entry)
        update_log_header(log_path, status=status, completed=completed)

    def add_note(self, identifier: StepIdentifier, note: str) -> None:
        """Append a timestamped note to the step's log."""
        log_path = self.log_path_for(identifier)
        if log_path is None:
            raise NotFoundError(f"step {identifier.ref} has no progress log yet")
        append_log_note(log_path, note)

    def start_step(self, phase: int, step: str) -> StateRow:
        """Mark a step in progress and make sure it has a log.

        Raises:
            TransitionError: if the step can't start (e.g. another step is in progress)
        """
        plan_step = self.require_plan_step(phase, step)
        self.transition_step(phase, step, "start")
        self.update_log_for_step(plan_step, status=StepStatus.IN_PROGRESS)
        return self.state.find(phase, step)

    def complete_step(self, phase: int, step: str, completed: str | None = None) -> StateRow:
        """Mark an in-progress step done and stamp its log."""
        plan_step = self.require_plan_step(phase, step)
        self.transition_step(phase, step, "complete")
        self.update_log_for_step(plan_step, status=StepStatus.DONE, completed=completed or utc_now())
        return self.state.find(phase, step)

    def persist_state(self) -> None:
        write_state(self.layout.state_path, self.state)

    async def persist_state_async(self) -> None:
        await write_state_async(self.layout.state_path, self.state)

    # -- relations -------------------------------------------------------

    async def relations(self, search_root: Path | str, ignored_dirs=None) -> WorkNodeRelation:
        """Parent and children of this node among the WorkNodes under search_root."""
        layouts = await discover_work_nodes(search_root, ignored_dirs)
        if all(layout.root != self.layout.root for layout in layouts):
            layouts.append(self.layout)
        relation = find_relation(build_work_node_relations(layouts), self.layout.root)
        return relation
