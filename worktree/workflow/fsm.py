"""Step lifecycle state machine using transitions library.

Guards status changes of a single STATE.md row:
- done and superseded are terminal
- only one step of a WorkNode may be in progress at a time

Usage:
    from worktree.workflow.fsm import StepFSM

    fsm = StepFSM(state, row)
    fsm.fire("start")     # todo -> in-progress
    fsm.fire("complete")  # in-progress -> done

The FSM writes the new status into the row; persisting STATE.md is up to
the caller.
"""

import logging
from typing import Callable

from transitions import Machine

from worktree.lib.errors import TransitionError
from worktree.lib.steps import StateRow, StepStatus, WorkState

logger = logging.getLogger(__name__)


STATES = [s.value for s in StepStatus]

# Each trigger becomes a method on the FSM
TRANSITIONS = [
    {"trigger": "start", "source": "todo", "dest": "in-progress", "conditions": "no_other_in_progress"},
    {"trigger": "start", "source": "blocked", "dest": "in-progress", "conditions": "no_other_in_progress"},

    {"trigger": "block", "source": "todo", "dest": "blocked"},
    {"trigger": "block", "source": "in-progress", "dest": "blocked"},
    {"trigger": "unblock", "source": "blocked", "dest": "todo"},

    {"trigger": "complete", "source": "in-progress", "dest": "done"},

    {"trigger": "supersede", "source": "todo", "dest": "superseded"},
    {"trigger": "supersede", "source": "in-progress", "dest": "superseded"},
    {"trigger": "supersede", "source": "blocked", "dest": "superseded"},
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


class StepFSM:
    """State machine for one step's status.

    Wraps the transitions library with WorkNode-specific logic:
    - Initial state comes from the row
    - The start guard looks at every other row of the same WorkState
    - Transitions are written back to the row and logged
    """

    def __init__(
        self,
        state: WorkState,
        row: StateRow,
        on_transition: Callable[[str, str, str], None] | None = None,
    ):
        """Initialize FSM for a row.

        Args:
            state: The WorkState the row belongs to (used by the start guard)
            row: The row whose status is driven
            on_transition: Optional callback(from_state, to_state, trigger) called after transitions
        """
        self.work_state = state
        self.row = row
        self.on_transition = on_transition

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=StepStatus(row.status).value,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def other_in_progress(self) -> list[StateRow]:
        return [
            entry for entry in self.work_state.entries
            if entry is not self.row and entry.status == StepStatus.IN_PROGRESS
        ]

    def no_other_in_progress(self, event) -> bool:
        return not self.other_in_progress()

    def on_state_change(self, event) -> None:
        """Callback after any state transition. Writes the status to the row."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        self.row.status = StepStatus(to_state)
        logger.info(f"[FSM] step {self.row.ref}: {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        """Get list of triggers available in current state."""
        return self.machine.get_triggers(self.state)

    def fire(self, trigger: str) -> StepStatus:
        """Run a trigger and return the new status.

        Raises:
            TransitionError: if the trigger is not allowed from the current
                status or its guard rejects it
        """
        if not self.can(trigger):
            raise TransitionError(
                f"cannot '{trigger}' step {self.row.ref} while it is '{self.state}'"
            )
        if not self.trigger(trigger):
            blocking = ", ".join(entry.ref for entry in self.other_in_progress())
            raise TransitionError(
                f"cannot '{trigger}' step {self.row.ref}: step {blocking} is already in progress"
            )
        return self.row.status

    def move_to(self, status: StepStatus | str) -> StepStatus:
        """Destination-based API: run whichever trigger leads to status."""
        dest = StepStatus(status).value
        trigger = TRIGGER_FOR.get((self.state, dest))
        if trigger is None:
            raise TransitionError(
                f"step {self.row.ref} cannot move from '{self.state}' to '{dest}'"
            )
        return self.fire(trigger)
