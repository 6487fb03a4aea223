"""
Per-step progress logs.

Each touched step gets logs/p<phase>-s<step>.md inside its WorkNode. A log is
created once and never regenerated; afterwards only its header lines
(status:, started:, completed:) are rewritten and notes are appended.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from .errors import InvalidStatusError
from .fileio import atomic_write_text
from .layout import WorkNodeLayout
from .steps import PlanStep, StepIdentifier, StepStatus

logger = logging.getLogger(__name__)

SECTION_RE = re.compile(r'^##\s+')
STATUS_RE = re.compile(r'^status:', re.IGNORECASE)
STARTED_RE = re.compile(r'^started:', re.IGNORECASE)
COMPLETED_RE = re.compile(r'^completed:', re.IGNORECASE)

PLACEHOLDER_ITEM = "Outline the work for this step"
DEFAULT_SCOPE_SEPARATOR = "; "


def utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def log_file_name(identifier: StepIdentifier) -> str:
    return f"p{identifier.phase}-s{identifier.step}.md"


def canonical_log_path(layout: WorkNodeLayout, identifier: StepIdentifier) -> str:
    """Log path relative to the node root, always with forward slashes."""
    relative_dir = layout.logs_dir.relative_to(layout.root)
    return (relative_dir / log_file_name(identifier)).as_posix()


def resolve_log_path(layout: WorkNodeLayout, relative: str) -> Path:
    """Absolute path of a log recorded in STATE.md."""
    return layout.root.joinpath(*relative.split("/"))


def _status_value(status: StepStatus | str) -> str:
    try:
        return StepStatus(status).value
    except ValueError:
        raise InvalidStatusError(str(status)) from None


def render_step_log(
    plan_step: PlanStep,
    status: StepStatus | str,
    started: str,
    scope_separator: str = DEFAULT_SCOPE_SEPARATOR,
) -> str:
    details = plan_step.details or []
    scope = scope_separator.join(details) if details else plan_step.label
    checklist = [f"- [ ] {item}" for item in details] or [f"- [ ] {PLACEHOLDER_ITEM}"]

    lines = [
        f"# Step {plan_step.phase}.{plan_step.step}: {plan_step.label}",
        f"status: {_status_value(status)}",
        f"started: {started}",
        "",
        "## Scope",
        scope,
        "",
        "## Plan",
        *checklist,
        "",
        "## Notes",
        "",
        "## Outcomes",
    ]
    return "\n".join(lines) + "\n"


def create_step_log(
    layout: WorkNodeLayout,
    plan_step: PlanStep,
    status: StepStatus | str = StepStatus.IN_PROGRESS,
    scope_separator: str = DEFAULT_SCOPE_SEPARATOR,
) -> str:
    """Create the step's log from the template and return its relative path.

    Idempotent: an existing log is left untouched and its path returned.
    """
    relative = canonical_log_path(layout, plan_step)
    target = resolve_log_path(layout, relative)
    layout.logs_dir.mkdir(parents=True, exist_ok=True)

    if target.exists():
        logger.debug(f"Log for step {plan_step.ref} already exists: {target}")
        return relative

    atomic_write_text(target, render_step_log(plan_step, status, utc_now(), scope_separator))
    logger.info(f"Created log for step {plan_step.ref}: {relative}")
    return relative


def _line_ending(lines: list[str]) -> str:
    for line in lines:
        if line.endswith("\r\n"):
            return "\r\n"
        if line.endswith("\n"):
            return "\n"
    return "\n"


def _header_end(lines: list[str]) -> int:
    """Index of the first section heading; header fields live above it."""
    for i, line in enumerate(lines):
        if SECTION_RE.match(line):
            return i
    return len(lines)


def _find(lines: list[str], pattern: re.Pattern, end: int) -> int | None:
    for i in range(end):
        if pattern.match(lines[i]):
            return i
    return None


def _replace_line(lines: list[str], index: int, text: str) -> None:
    old = lines[index]
    ending = old[len(old.rstrip("\r\n")):]
    lines[index] = text + ending


def update_log_header(
    path: Path,
    status: StepStatus | str | None = None,
    completed: str | None = None,
) -> None:
    """Rewrite the status:/completed: header lines of a log.

    Missing lines are added: status: at the top, completed: right after
    started: (or at the top). Section content is never touched.
    """
    if status is None and completed is None:
        return

    path = Path(path)
    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    newline = _line_ending(lines)

    if status is not None:
        status_line = f"status: {_status_value(status)}"
        index = _find(lines, STATUS_RE, _header_end(lines))
        if index is not None:
            _replace_line(lines, index, status_line)
        else:
            lines.insert(0, status_line + newline)

    if completed is not None:
        completed_line = f"completed: {completed}"
        end = _header_end(lines)
        index = _find(lines, COMPLETED_RE, end)
        if index is not None:
            _replace_line(lines, index, completed_line)
        else:
            started = _find(lines, STARTED_RE, end)
            if started is not None:
                if not lines[started].endswith(("\n", "\r")):
                    lines[started] += newline
                lines.insert(started + 1, completed_line + newline)
            else:
                lines.insert(0, completed_line + newline)

    atomic_write_text(path, "".join(lines))
    logger.info(f"Updated log header {path} (status={status}, completed={completed})")


def append_log_note(path: Path, note: str, timestamp: str | None = None) -> None:
    """Append a timestamped entry to the end of the Notes section.

    Other sections keep their content and order. A Notes section is added at
    the end of the file if the log has none.
    """
    path = Path(path)
    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    newline = _line_ending(lines)
    entry = f"- {timestamp or utc_now()}: {note}{newline}"

    notes = None
    for i, line in enumerate(lines):
        if SECTION_RE.match(line) and line.strip()[2:].strip().lower() == "notes":
            notes = i
            break

    if lines and not lines[-1].endswith(("\n", "\r")):
        lines[-1] += newline

    if notes is None:
        lines.extend([newline, f"## Notes{newline}", entry])
    else:
        end = len(lines)
        for i in range(notes + 1, len(lines)):
            if SECTION_RE.match(lines[i]):
                end = i
                break
        insert_at = end
        while insert_at > notes + 1 and not lines[insert_at - 1].strip():
            insert_at -= 1
        lines.insert(insert_at, entry)
        # Keep a blank line between the notes and the next section
        if insert_at + 1 < len(lines) and SECTION_RE.match(lines[insert_at + 1]):
            lines.insert(insert_at + 1, newline)

    atomic_write_text(path, "".join(lines))
    logger.debug(f"Appended note to {path}")
