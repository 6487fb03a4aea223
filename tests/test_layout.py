"""Tests for worktree.lib.layout module."""

import asyncio

import pytest

from worktree.lib.errors import LayoutError
from worktree.lib.layout import WorkNodeLayout, validate_layout, validate_layout_async


class TestWorkNodeLayout:
    """Test WorkNodeLayout.for_root."""

    def test_paths_are_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        layout = WorkNodeLayout.for_root("node")
        assert layout.root == (tmp_path / "node").resolve()
        assert layout.plan_path == layout.root / "PLAN.md"
        assert layout.state_path == layout.root / "STATE.md"
        assert layout.logs_dir == layout.root / "logs"


class TestValidateLayout:
    """Test validate_layout and validate_layout_async."""

    @pytest.fixture(params=["sync", "async"])
    def validator(self, request):
        if request.param == "sync":
            return validate_layout
        return lambda root: asyncio.run(validate_layout_async(root))

    def test_valid_node(self, make_node, validator):
        root = make_node()
        layout = validator(root)
        assert layout.root == root.resolve()

    def test_missing_state(self, make_node, validator):
        root = make_node(state=None)
        with pytest.raises(LayoutError) as exc:
            validator(root)
        assert exc.value.failures == [f"STATE.md was not found under {root.resolve()}"]

    def test_failures_aggregate(self, make_node, validator):
        root = make_node(plan=None, logs=False)
        with pytest.raises(LayoutError) as exc:
            validator(root)
        failures = exc.value.failures
        assert len(failures) == 2
        assert any(f.startswith("PLAN.md was not found") for f in failures)
        assert any(f.startswith("logs was not found") for f in failures)
        message = str(exc.value)
        assert "PLAN.md" in message and "logs" in message

    def test_wrong_types(self, make_node, validator):
        root = make_node(plan=None, logs=False)
        (root / "PLAN.md").mkdir()
        (root / "logs").write_text("not a dir")
        with pytest.raises(LayoutError) as exc:
            validator(root)
        assert "PLAN.md exists but is not a file" in exc.value.failures
        assert "logs exists but is not a directory" in exc.value.failures

    def test_missing_root(self, tmp_path, validator):
        with pytest.raises(LayoutError) as exc:
            validator(tmp_path / "nowhere")
        assert len(exc.value.failures) == 3
