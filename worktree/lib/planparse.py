"""
PLAN.md parser.

Extracts step declarations and their detail bullets:

    - Step 1.2: Wire the parser
      - handle blank lines
      - keep source order

Everything that is not a bullet is ignored.
"""

import asyncio
import re
from pathlib import Path

from .errors import DuplicateStepError, ParseError
from .steps import PlanStep, WorkPlan

STEP_RE = re.compile(r'^\s*[-*+]\s+step\s+(\d+)\.(\d+(?:\.\d+)*)\s*:\s*(.+?)\s*$', re.IGNORECASE)
BULLET_RE = re.compile(r'^\s*[-*+]\s+(.*?)\s*$')


def parse_plan(text: str) -> WorkPlan:
    """Parse PLAN.md text into a WorkPlan.

    Raises:
        DuplicateStepError: if the same (phase, step) is declared twice
    """
    plan = WorkPlan()
    current = None

    for line in text.splitlines():
        step_match = STEP_RE.match(line)
        if step_match:
            current = PlanStep(
                phase=int(step_match.group(1)),
                step=step_match.group(2),
                label=step_match.group(3),
            )
            plan.add(current)
            continue

        if current is None:
            continue

        bullet_match = BULLET_RE.match(line)
        if bullet_match and bullet_match.group(1):
            if current.details is None:
                current.details = []
            current.details.append(bullet_match.group(1))

    return plan


def read_plan(path: Path) -> WorkPlan:
    """Read and parse a PLAN.md file."""
    try:
        return parse_plan(Path(path).read_text(encoding="utf-8"))
    except (ParseError, DuplicateStepError) as e:
        raise e.with_path(Path(path))


async def read_plan_async(path: Path) -> WorkPlan:
    """Non-blocking form of read_plan."""
    text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    try:
        return parse_plan(text)
    except (ParseError, DuplicateStepError) as e:
        raise e.with_path(Path(path))


def render_plan(plan: WorkPlan, title: str = "Plan") -> str:
    """Render a WorkPlan as PLAN.md text that parse_plan reads back."""
    lines = [f"# {title}", ""]
    for step in plan.steps:
        lines.append(f"- Step {step.phase}.{step.step}: {step.label}")
        for detail in step.details or []:
            lines.append(f"  - {detail}")
    return "\n".join(lines) + "\n"
