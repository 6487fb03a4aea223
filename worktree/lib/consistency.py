"""
PLAN/STATE cross-validation.

Plan and state must agree exactly: same (phase, step) keys, same labels,
no duplicates on either side.
"""

from .errors import (
    ConsistencyError,
    DuplicateStepError,
    LabelMismatchError,
    MissingStateEntryError,
    UnexpectedStateEntryError,
)
from .steps import WorkPlan, WorkState


def _index(rows, source: str, errors: list[ConsistencyError]) -> dict:
    index = {}
    for row in rows:
        if row.key in index:
            errors.append(DuplicateStepError(row.key, source))
            continue
        index[row.key] = row
    return index


def collect_consistency_errors(plan: WorkPlan, state: WorkState) -> list[ConsistencyError]:
    """Return every plan/state disagreement, in check order."""
    errors: list[ConsistencyError] = []
    plan_index = _index(plan.steps, "plan", errors)
    state_index = _index(state.entries, "state", errors)

    for key, plan_step in plan_index.items():
        entry = state_index.get(key)
        if entry is None:
            errors.append(MissingStateEntryError(key, plan_step.label))
        elif entry.label != plan_step.label:
            errors.append(LabelMismatchError(key, plan_step.label, entry.label))

    for key, entry in state_index.items():
        if key not in plan_index:
            errors.append(UnexpectedStateEntryError(key, entry.label))

    return errors


def ensure_consistency(plan: WorkPlan, state: WorkState) -> None:
    """Raise the first plan/state disagreement.

    Duplicates are reported before missing entries and label mismatches,
    which are reported before orphaned state entries.

    Raises:
        DuplicateStepError, MissingStateEntryError, LabelMismatchError,
        UnexpectedStateEntryError
    """
    errors = collect_consistency_errors(plan, state)
    if errors:
        raise errors[0]
