"""
WorkNode directory layout.

A WorkNode root must contain PLAN.md (file), STATE.md (file) and logs/
(directory). Validation checks all three and reports every violation.
"""

import asyncio
import os
import stat
from dataclasses import dataclass
from pathlib import Path

from .errors import LayoutError

PLAN_FILE = "PLAN.md"
STATE_FILE = "STATE.md"
LOGS_DIR = "logs"

# (attribute, expected kind, name under root)
REQUIRED_ENTRIES = [
    ("plan_path", "file", PLAN_FILE),
    ("state_path", "file", STATE_FILE),
    ("logs_dir", "directory", LOGS_DIR),
]


@dataclass(frozen=True)
class WorkNodeLayout:
    """Resolved paths of a WorkNode. Build with for_root()."""
    root: Path
    plan_path: Path
    state_path: Path
    logs_dir: Path

    @classmethod
    def for_root(cls, root: Path | str) -> "WorkNodeLayout":
        resolved = Path(root).resolve()
        return cls(
            root=resolved,
            plan_path=resolved / PLAN_FILE,
            state_path=resolved / STATE_FILE,
            logs_dir=resolved / LOGS_DIR,
        )


def _check_entry(candidate: Path, expected: str, name: str, root: Path) -> str | None:
    """Return a failure message for one required entry, or None if it is fine."""
    try:
        mode = os.stat(candidate).st_mode
    except FileNotFoundError:
        return f"{name} was not found under {root}"
    except OSError as e:
        return f"failed to stat {name}: {e.strerror or e}"

    if expected == "file" and not stat.S_ISREG(mode):
        return f"{name} exists but is not a file"
    if expected == "directory" and not stat.S_ISDIR(mode):
        return f"{name} exists but is not a directory"
    return None


def validate_layout(root: Path | str) -> WorkNodeLayout:
    """Check that root is a WorkNode and return its layout.

    Raises:
        LayoutError: listing every missing or wrong-typed entry
    """
    layout = WorkNodeLayout.for_root(root)
    failures = []
    for attr, expected, name in REQUIRED_ENTRIES:
        failure = _check_entry(getattr(layout, attr), expected, name, layout.root)
        if failure:
            failures.append(failure)

    if failures:
        raise LayoutError(layout.root, failures)
    return layout


async def validate_layout_async(root: Path | str) -> WorkNodeLayout:
    """Non-blocking form of validate_layout. The three checks run concurrently."""
    layout = WorkNodeLayout.for_root(root)
    results = await asyncio.gather(*(
        asyncio.to_thread(_check_entry, getattr(layout, attr), expected, name, layout.root)
        for attr, expected, name in REQUIRED_ENTRIES
    ))
    failures = [failure for failure in results if failure]

    if failures:
        raise LayoutError(layout.root, failures)
    return layout
