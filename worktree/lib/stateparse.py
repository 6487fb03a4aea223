"""
STATE.md table parsing, serialization and row mutation.

STATE.md is a 5-column pipe table:

    | Phase | Step | Label | Status | Progress Log |
    | ----- | ---- | ----- | ------ | ------------ |
    | 1     | 2    | Wire  | todo   | -            |

The header and separator rows are skipped on read and regenerated on write.
"""

import asyncio
import logging
import re
from pathlib import Path

from .errors import (
    DuplicateStepError,
    InvalidStatusError,
    ParseError,
    StateEntryNotFoundError,
    StateParseError,
)
from .fileio import atomic_write_text, atomic_write_text_async
from .steps import StateRow, StepStatus, STATUS_VALUES, WorkState
from .validate import validate_before_write

logger = logging.getLogger(__name__)

HEADER = "| Phase | Step | Label | Status | Progress Log |"
SEPARATOR = "| ----- | ---- | ----- | ------ | ------------ |"
SEPARATOR_RE = re.compile(r'^\|(\s*:?-+:?\s*\|)+$')
STEP_CELL_RE = re.compile(r'^\d+(?:\.\d+)*$')
NO_LOG = "-"
COLUMNS = 5

# Sentinel so update_state_entry can tell "not given" from "set to None"
_UNSET = object()


def _split_row(line: str) -> list[str]:
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|"):
        body = body[:-1]
    return [cell.strip() for cell in body.split("|")]


def parse_state(text: str) -> WorkState:
    """Parse STATE.md text into a WorkState.

    Raises:
        InvalidStatusError: on the first row with an unknown status
        StateParseError: on a row with the wrong cell count, a bad phase or
            step number, or an empty label
        DuplicateStepError: if the same (phase, step) appears twice
    """
    state = WorkState()

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line.startswith("|"):
            continue
        if line.startswith("| Phase") or line.startswith("| -----") or SEPARATOR_RE.match(line):
            continue

        cells = _split_row(line)
        if len(cells) != COLUMNS:
            raise StateParseError(f"expected {COLUMNS} columns, found {len(cells)}", line=lineno)

        phase_cell, step, label, status_cell, log_cell = cells
        try:
            phase = int(phase_cell)
        except ValueError:
            raise StateParseError(f"invalid phase '{phase_cell}'", line=lineno) from None
        if phase < 0:
            raise StateParseError(f"invalid phase '{phase_cell}'", line=lineno)
        if not STEP_CELL_RE.match(step):
            raise StateParseError(f"invalid step '{step}'", line=lineno)
        if not label:
            raise StateParseError("empty label", line=lineno)

        if status_cell not in STATUS_VALUES:
            raise InvalidStatusError(status_cell, line=lineno)

        state.add(StateRow(
            phase=phase,
            step=step,
            label=label,
            status=StepStatus(status_cell),
            progress_log=None if log_cell in ("", NO_LOG) else log_cell,
        ))

    return state


def read_state(path: Path) -> WorkState:
    """Read and parse a STATE.md file."""
    try:
        return parse_state(Path(path).read_text(encoding="utf-8"))
    except (ParseError, DuplicateStepError) as e:
        raise e.with_path(Path(path))


async def read_state_async(path: Path) -> WorkState:
    """Non-blocking form of read_state."""
    text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    try:
        return parse_state(text)
    except (ParseError, DuplicateStepError) as e:
        raise e.with_path(Path(path))


def state_to_records(state: WorkState) -> list[dict]:
    """Plain-dict view of the rows, as validated by state.schema.json."""
    return [
        {
            "phase": entry.phase,
            "step": entry.step,
            "label": entry.label,
            "status": StepStatus(entry.status).value,
            "progress_log": entry.progress_log,
        }
        for entry in state.entries
    ]


def render_state(state: WorkState) -> str:
    """Serialize a WorkState into the STATE.md table."""
    lines = [HEADER, SEPARATOR]
    for record in state_to_records(state):
        log = record["progress_log"] if record["progress_log"] is not None else NO_LOG
        lines.append(
            f"| {record['phase']} | {record['step']} | {record['label']} "
            f"| {record['status']} | {log} |"
        )
    return "\n".join(lines) + "\n"


def write_state(path: Path, state: WorkState) -> None:
    """Atomically rewrite STATE.md with the full table.

    Raises:
        ValidationError: if a row could not be read back (e.g. a '|' in a label)
    """
    validate_before_write(state_to_records(state), "state", path)
    atomic_write_text(Path(path), render_state(state))
    logger.info(f"Wrote {len(state)} state entries to {path}")


async def write_state_async(path: Path, state: WorkState) -> None:
    """Non-blocking form of write_state."""
    validate_before_write(state_to_records(state), "state", path)
    await atomic_write_text_async(Path(path), render_state(state))
    logger.info(f"Wrote {len(state)} state entries to {path}")


def update_state_entry(
    state: WorkState,
    phase: int,
    step: str,
    *,
    status: StepStatus | str = _UNSET,
    progress_log: str | None = _UNSET,
    label: str = _UNSET,
) -> StateRow:
    """Apply field changes to one row in place and return it.

    Only the given fields change. Consistency against the plan is not
    re-checked here; WorkNode.update_state_entry does that for labels.

    Raises:
        StateEntryNotFoundError: if (phase, step) has no row
        InvalidStatusError: if status is not one of the five values
    """
    entry = state.find(phase, step)
    if entry is None:
        raise StateEntryNotFoundError((phase, step))

    if status is not _UNSET:
        try:
            entry.status = StepStatus(status)
        except ValueError:
            raise InvalidStatusError(str(status)) from None
    if progress_log is not _UNSET:
        entry.progress_log = progress_log
    if label is not _UNSET:
        entry.label = label

    return entry
