"""
Step identity, status and ordering.

A step is identified by (phase, step) where step is a dotted number such as
"2.3". Ordering is numeric per segment, never lexicographic.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cmp_to_key

from .errors import DuplicateStepError


class StepStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    BLOCKED = "blocked"
    DONE = "done"
    SUPERSEDED = "superseded"

    def __str__(self) -> str:
        return self.value


STATUS_VALUES = tuple(s.value for s in StepStatus)

# Steps in these states must not change meaning anymore
TERMINAL_STATUSES = frozenset({StepStatus.DONE, StepStatus.SUPERSEDED})


@dataclass
class StepIdentifier:
    phase: int
    step: str
    label: str

    @property
    def key(self) -> tuple[int, str]:
        return (self.phase, self.step)

    @property
    def ref(self) -> str:
        """Human-readable reference, e.g. "1.2"."""
        return f"{self.phase}.{self.step}"

    def step_key(self) -> str:
        return f"{self.phase}:{self.step}:{self.label}"


@dataclass
class PlanStep(StepIdentifier):
    """A step declared in PLAN.md.

    details is None when no bullets follow the declaration.
    """
    details: list[str] | None = None


@dataclass
class StateRow(StepIdentifier):
    """A row of the STATE.md table."""
    status: StepStatus = StepStatus.TODO
    progress_log: str | None = None  # Relative to node root, forward slashes


def _step_segments(step: str) -> list[int]:
    segments = []
    for part in step.split("."):
        try:
            value = int(part)
        except ValueError:
            value = 0
        segments.append(value if value >= 0 else 0)
    return segments


def compare_step_identifiers(a: StepIdentifier, b: StepIdentifier) -> int:
    """Total order over steps: phase, then dotted step numerically.

    Missing trailing segments count as 0, so "2" and "2.0" compare equal.
    Returns -1, 0 or 1.
    """
    if a.phase != b.phase:
        return -1 if a.phase < b.phase else 1

    left = _step_segments(a.step)
    right = _step_segments(b.step)
    width = max(len(left), len(right))
    left += [0] * (width - len(left))
    right += [0] * (width - len(right))

    for x, y in zip(left, right):
        if x != y:
            return -1 if x < y else 1
    return 0


step_sort_key = cmp_to_key(compare_step_identifiers)


def parse_step_ref(ref: str) -> tuple[int, str]:
    """Parse "P.S" (e.g. "1.2.3") into (1, "2.3").

    Raises:
        ValueError: if ref is not a phase followed by a dotted step number
    """
    phase, sep, step = ref.strip().partition(".")
    if not sep or not phase.isdigit() or not step:
        raise ValueError(f"Invalid step reference '{ref}' (expected PHASE.STEP, e.g. 1.2)")
    if not all(part.isdigit() for part in step.split(".")):
        raise ValueError(f"Invalid step reference '{ref}' (expected PHASE.STEP, e.g. 1.2)")
    return int(phase), step


@dataclass
class WorkPlan:
    steps: list[PlanStep] = field(default_factory=list)

    def add(self, step: PlanStep) -> None:
        if self.find(step.phase, step.step) is not None:
            raise DuplicateStepError(step.key, "plan")
        self.steps.append(step)

    def find(self, phase: int, step: str) -> PlanStep | None:
        for row in self.steps:
            if row.phase == phase and row.step == step:
                return row
        return None

    def __iter__(self):
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)


@dataclass
class WorkState:
    entries: list[StateRow] = field(default_factory=list)

    def add(self, entry: StateRow) -> None:
        if self.find(entry.phase, entry.step) is not None:
            raise DuplicateStepError(entry.key, "state")
        self.entries.append(entry)

    def find(self, phase: int, step: str) -> StateRow | None:
        for entry in self.entries:
            if entry.phase == phase and entry.step == step:
                return entry
        return None

    def list_by_status(self, status: StepStatus) -> list[StateRow]:
        return [entry for entry in self.entries if entry.status == status]

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def state_from_plan(plan: WorkPlan) -> WorkState:
    """Build a fresh state with one todo row per plan step."""
    state = WorkState()
    for step in plan.steps:
        state.add(StateRow(phase=step.phase, step=step.step, label=step.label))
    return state
