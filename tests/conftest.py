"""Shared fixtures: build WorkNode directories on disk."""

import pytest


PLAN_TEXT = """# Demo

- Step 1.1: Write parser
  - handle bullets
  - keep order
- Step 1.2: Write tests
- Step 2.1: Ship it
"""

STATE_TEXT = """| Phase | Step | Label | Status | Progress Log |
| ----- | ---- | ----- | ------ | ------------ |
| 1 | 1 | Write parser | todo | - |
| 1 | 2 | Write tests | todo | - |
| 2 | 1 | Ship it | todo | - |
"""


@pytest.fixture
def make_node(tmp_path):
    """Factory: make_node(name, plan=..., state=..., logs=True) -> Path."""

    def _make(name="node", plan=PLAN_TEXT, state=STATE_TEXT, logs=True):
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        if plan is not None:
            (root / "PLAN.md").write_text(plan)
        if state is not None:
            (root / "STATE.md").write_text(state)
        if logs:
            (root / "logs").mkdir(exist_ok=True)
        return root

    return _make
