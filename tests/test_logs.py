"""Tests for worktree.lib.logs module."""

import re

import pytest

from worktree.lib.layout import validate_layout
from worktree.lib.logs import (
    PLACEHOLDER_ITEM,
    append_log_note,
    canonical_log_path,
    create_step_log,
    update_log_header,
)
from worktree.lib.steps import PlanStep, StepStatus

ISO_RE = r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z"

POPULATED_LOG = """# Step 1.1: Write parser
status: in-progress
started: 2026-01-01T00:00:00Z

## Scope
handle bullets; keep order

## Plan
- [x] handle bullets
- [ ] keep order

## Notes
- 2026-01-01T01:00:00Z: status: looked fine
- second note

## Outcomes
Parser merged.
"""


class TestCanonicalLogPath:
    """Test canonical_log_path function."""

    def test_relative_forward_slash(self, make_node):
        layout = validate_layout(make_node())
        assert canonical_log_path(layout, PlanStep(phase=1, step="2.3", label="x")) == "logs/p1-s2.3.md"


class TestCreateStepLog:
    """Test create_step_log function."""

    def test_renders_template(self, make_node):
        layout = validate_layout(make_node())
        step = PlanStep(phase=1, step="1", label="Write parser", details=["handle bullets", "keep order"])

        relative = create_step_log(layout, step)

        assert relative == "logs/p1-s1.md"
        content = (layout.root / relative).read_text()
        lines = content.splitlines()
        assert lines[0] == "# Step 1.1: Write parser"
        assert lines[1] == "status: in-progress"
        assert re.fullmatch(f"started: {ISO_RE}", lines[2])
        assert "## Scope\nhandle bullets; keep order\n" in content
        assert "## Plan\n- [ ] handle bullets\n- [ ] keep order\n" in content
        assert "## Notes\n\n## Outcomes\n" in content

    def test_no_details_uses_label_and_placeholder(self, make_node):
        layout = validate_layout(make_node())
        relative = create_step_log(layout, PlanStep(phase=0, step="1", label="Write docs"), status="todo")
        content = (layout.root / relative).read_text()
        assert "status: todo\n" in content
        assert "## Scope\nWrite docs\n" in content
        assert f"## Plan\n- [ ] {PLACEHOLDER_ITEM}\n" in content

    def test_custom_scope_separator(self, make_node):
        layout = validate_layout(make_node())
        step = PlanStep(phase=1, step="1", label="A", details=["x", "y"])
        relative = create_step_log(layout, step, scope_separator=" / ")
        assert "## Scope\nx / y\n" in (layout.root / relative).read_text()

    def test_idempotent(self, make_node):
        layout = validate_layout(make_node())
        step = PlanStep(phase=1, step="1", label="Write parser")

        first = create_step_log(layout, step)
        log = layout.root / first
        log.write_text(POPULATED_LOG)

        second = create_step_log(layout, step, status=StepStatus.TODO)

        assert second == first
        assert log.read_text() == POPULATED_LOG
        assert len(list(layout.logs_dir.iterdir())) == 1

    def test_creates_logs_dir(self, make_node):
        root = make_node()
        layout = validate_layout(root)
        (root / "logs").rmdir()
        create_step_log(layout, PlanStep(phase=1, step="1", label="A"))
        assert (root / "logs" / "p1-s1.md").is_file()


class TestUpdateLogHeader:
    """Test update_log_header function."""

    def test_preserves_body(self, tmp_path):
        log = tmp_path / "p1-s1.md"
        log.write_text(POPULATED_LOG)

        update_log_header(log, status="done", completed="2026-01-02T00:00:00Z")

        expected = POPULATED_LOG.replace(
            "status: in-progress\nstarted: 2026-01-01T00:00:00Z\n",
            "status: done\nstarted: 2026-01-01T00:00:00Z\ncompleted: 2026-01-02T00:00:00Z\n",
        )
        assert log.read_text() == expected

    def test_noop_without_fields(self, tmp_path):
        log = tmp_path / "p1-s1.md"
        log.write_text(POPULATED_LOG)
        mtime = log.stat().st_mtime_ns
        update_log_header(log)
        assert log.read_text() == POPULATED_LOG
        assert log.stat().st_mtime_ns == mtime

    def test_replaces_existing_completed(self, tmp_path):
        log = tmp_path / "log.md"
        log.write_text("# H\nstatus: done\nstarted: a\ncompleted: old\n\n## Notes\n")
        update_log_header(log, completed="new")
        assert log.read_text() == "# H\nstatus: done\nstarted: a\ncompleted: new\n\n## Notes\n"

    def test_prepends_missing_status(self, tmp_path):
        log = tmp_path / "log.md"
        log.write_text("# H\nstarted: a\n\n## Notes\n")
        update_log_header(log, status=StepStatus.BLOCKED)
        assert log.read_text() == "status: blocked\n# H\nstarted: a\n\n## Notes\n"

    def test_prepends_completed_without_started(self, tmp_path):
        log = tmp_path / "log.md"
        log.write_text("# H\nstatus: done\n\n## Notes\n")
        update_log_header(log, completed="ts")
        assert log.read_text() == "completed: ts\n# H\nstatus: done\n\n## Notes\n"

    def test_ignores_status_text_in_body(self, tmp_path):
        log = tmp_path / "log.md"
        log.write_text("# H\nstarted: a\n\n## Notes\nstatus: not a header\n")
        update_log_header(log, status="done")
        assert log.read_text() == "status: done\n# H\nstarted: a\n\n## Notes\nstatus: not a header\n"

    def test_invalid_status(self, tmp_path):
        from worktree.lib.errors import InvalidStatusError

        log = tmp_path / "log.md"
        log.write_text(POPULATED_LOG)
        with pytest.raises(InvalidStatusError):
            update_log_header(log, status="finished")
        assert log.read_text() == POPULATED_LOG


class TestAppendLogNote:
    """Test append_log_note function."""

    def test_appends_to_end_of_notes(self, tmp_path):
        log = tmp_path / "log.md"
        log.write_text(POPULATED_LOG)
        append_log_note(log, "third note", timestamp="2026-01-03T00:00:00Z")
        content = log.read_text()
        assert "- second note\n- 2026-01-03T00:00:00Z: third note\n\n## Outcomes\nParser merged.\n" in content

    def test_appends_to_empty_notes(self, make_node):
        layout = validate_layout(make_node())
        relative = create_step_log(layout, PlanStep(phase=1, step="1", label="A"))
        log = layout.root / relative
        append_log_note(log, "first", timestamp="ts")
        assert "## Notes\n- ts: first\n\n## Outcomes\n" in log.read_text()

    def test_adds_notes_section_when_missing(self, tmp_path):
        log = tmp_path / "log.md"
        log.write_text("# H\nstatus: todo")
        append_log_note(log, "hello", timestamp="ts")
        assert log.read_text() == "# H\nstatus: todo\n\n## Notes\n- ts: hello\n"
