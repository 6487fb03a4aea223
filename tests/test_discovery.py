"""Tests for worktree.lib.discovery module."""

import asyncio
import logging
import os
from pathlib import Path

import pytest

from worktree.lib.discovery import (
    _list_subdirectories,
    IGNORED_DIRECTORY_NAMES,
    build_work_node_relations,
    discover_work_nodes,
    discover_work_nodes_sync,
    find_relation,
    is_ancestor,
)
from worktree.lib.layout import WorkNodeLayout


@pytest.fixture(params=["sync", "async"])
def discover(request):
    if request.param == "sync":
        return discover_work_nodes_sync
    return lambda root, ignored_dirs=None: asyncio.run(discover_work_nodes(root, ignored_dirs))


def roots(layouts):
    return [layout.root for layout in layouts]


class TestDiscoverWorkNodes:
    """Test discover_work_nodes and discover_work_nodes_sync."""

    def test_root_itself_is_included(self, make_node, discover):
        root = make_node("project")
        assert roots(discover(root)) == [root.resolve()]

    def test_nested_nodes(self, make_node, tmp_path, discover):
        make_node("project")
        make_node("project/feature/api")
        make_node("project/docs")
        (tmp_path / "project" / "feature" / "notes").mkdir()

        found = discover(tmp_path)

        base = tmp_path.resolve()
        assert roots(found) == [
            base / "project",
            base / "project" / "docs",
            base / "project" / "feature" / "api",
        ]

    def test_sorted_by_path(self, make_node, tmp_path, discover):
        for name in ["c", "a", "b"]:
            make_node(name)
        assert [r.name for r in roots(discover(tmp_path))] == ["a", "b", "c"]

    def test_incomplete_directories_skipped(self, make_node, tmp_path, discover):
        make_node("half", state=None)
        assert discover(tmp_path) == []

    def test_logs_never_descended(self, make_node, tmp_path, discover):
        make_node("project")
        make_node("project/logs/inner")
        assert roots(discover(tmp_path)) == [(tmp_path / "project").resolve()]

    @pytest.mark.parametrize("name", [".git", "node_modules", "__pycache__"])
    def test_builtin_ignored_names(self, make_node, tmp_path, discover, name):
        make_node(f"{name}/hidden")
        assert discover(tmp_path) == []

    def test_extra_ignored_dirs(self, make_node, tmp_path, discover):
        make_node("vendor/lib")
        make_node("src")
        assert [r.name for r in roots(discover(tmp_path, ["vendor"]))] == ["src"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_symlink_cycle_terminates(self, make_node, tmp_path, discover):
        root = make_node("project")
        (root / "loop").symlink_to(tmp_path, target_is_directory=True)
        assert roots(discover(tmp_path)) == [root.resolve()]

    def test_missing_root(self, tmp_path, discover):
        assert discover(tmp_path / "nowhere") == []


class TestListSubdirectories:
    """Test _list_subdirectories helper."""

    def test_unreadable_directory_logged_and_empty(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            assert _list_subdirectories(tmp_path / "missing", IGNORED_DIRECTORY_NAMES) == []
        assert "Skipping unreadable directory" in caplog.text

    def test_files_skipped(self, tmp_path):
        (tmp_path / "file.md").write_text("x")
        (tmp_path / "dir").mkdir()
        assert _list_subdirectories(tmp_path, IGNORED_DIRECTORY_NAMES) == [tmp_path / "dir"]


class TestIsAncestor:
    """Test is_ancestor function."""

    def test_strict_containment(self):
        assert is_ancestor(Path("/w/a"), Path("/w/a/b"))
        assert is_ancestor(Path("/w"), Path("/w/a/b"))

    def test_not_reflexive(self):
        assert not is_ancestor(Path("/w/a"), Path("/w/a"))

    def test_segment_boundaries(self):
        assert not is_ancestor(Path("/w/a"), Path("/w/ab"))
        assert not is_ancestor(Path("/w/a/b"), Path("/w/a"))


class TestBuildRelations:
    """Test build_work_node_relations function."""

    def layouts(self, *paths):
        return [WorkNodeLayout.for_root(p) for p in paths]

    def test_nearest_ancestor_is_parent(self, tmp_path):
        base = tmp_path.resolve()
        relations = build_work_node_relations(self.layouts(
            base / "p" / "a" / "b",
            base / "p",
            base / "p" / "a",
            base / "p" / "c",
        ))

        assert roots(r.layout for r in relations) == [
            base / "p", base / "p" / "a", base / "p" / "a" / "b", base / "p" / "c",
        ]

        top = find_relation(relations, base / "p")
        assert top.parent is None
        assert roots(top.children) == [base / "p" / "a", base / "p" / "c"]

        leaf = find_relation(relations, base / "p" / "a" / "b")
        assert leaf.parent.root == base / "p" / "a"
        assert leaf.children == []

    def test_unrelated_nodes(self, tmp_path):
        base = tmp_path.resolve()
        relations = build_work_node_relations(self.layouts(base / "x", base / "xy"))
        assert all(r.parent is None and r.children == [] for r in relations)

    def test_find_relation_missing(self, tmp_path):
        assert find_relation([], tmp_path) is None

    def test_relations_from_discovery(self, make_node, tmp_path):
        make_node("p")
        make_node("p/child")
        relations = build_work_node_relations(discover_work_nodes_sync(tmp_path))
        child = find_relation(relations, tmp_path / "p" / "child")
        assert child.parent.root == (tmp_path / "p").resolve()
