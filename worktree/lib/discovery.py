"""
WorkNode discovery and parent/child relations.

Walks a directory tree, records every directory that passes layout
validation, and keeps descending since WorkNodes can nest. Relations are
derived afterwards from path containment.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .errors import LayoutError
from .layout import WorkNodeLayout, validate_layout, validate_layout_async

logger = logging.getLogger(__name__)

# Never WorkNode roots and never searched for nested nodes
IGNORED_DIRECTORY_NAMES = frozenset({
    ".git",
    ".github",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".pytest_cache",
    "dist",
    "build",
    "coverage",
    "htmlcov",
    "logs",
})


@dataclass
class WorkNodeRelation:
    layout: WorkNodeLayout
    parent: Optional[WorkNodeLayout] = None
    children: list[WorkNodeLayout] = field(default_factory=list)


def _ignored_names(extra: Optional[Iterable[str]]) -> frozenset:
    if not extra:
        return IGNORED_DIRECTORY_NAMES
    return IGNORED_DIRECTORY_NAMES | frozenset(extra)


def _list_subdirectories(directory: Path, ignored: frozenset) -> list[Path]:
    """Child directories worth descending into. Unreadable dirs count as empty."""
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        logger.warning(f"Skipping unreadable directory {directory}: {e}")
        return []

    children = []
    for entry in entries:
        if entry.name in ignored:
            continue
        try:
            if not entry.is_dir():
                continue
        except OSError:
            continue
        children.append(directory / entry.name)
    return children


def _sorted_layouts(discovered: dict[Path, WorkNodeLayout]) -> list[WorkNodeLayout]:
    return sorted(discovered.values(), key=lambda layout: str(layout.root))


def discover_work_nodes_sync(root: Path | str, ignored_dirs: Optional[Iterable[str]] = None) -> list[WorkNodeLayout]:
    """Find every WorkNode under root (inclusive), sorted by path."""
    ignored = _ignored_names(ignored_dirs)
    discovered: dict[Path, WorkNodeLayout] = {}
    visited: set[Path] = set()
    stack = [Path(root).resolve()]

    while stack:
        directory = stack.pop()
        resolved = directory.resolve()
        if resolved in visited:
            continue
        visited.add(resolved)

        try:
            layout = validate_layout(resolved)
            discovered.setdefault(layout.root, layout)
            logger.debug(f"Found WorkNode at {layout.root}")
        except LayoutError:
            pass

        stack.extend(_list_subdirectories(resolved, ignored))

    return _sorted_layouts(discovered)


async def _scan(
    directory: Path,
    ignored: frozenset,
    discovered: dict[Path, WorkNodeLayout],
    visited: set[Path],
) -> None:
    resolved = await asyncio.to_thread(directory.resolve)
    # Checked and marked with no await in between, so siblings can't race here
    if resolved in visited:
        return
    visited.add(resolved)

    try:
        layout = await validate_layout_async(resolved)
        discovered.setdefault(layout.root, layout)
        logger.debug(f"Found WorkNode at {layout.root}")
    except LayoutError:
        pass

    children = await asyncio.to_thread(_list_subdirectories, resolved, ignored)
    await asyncio.gather(*(_scan(child, ignored, discovered, visited) for child in children))


async def discover_work_nodes(root: Path | str, ignored_dirs: Optional[Iterable[str]] = None) -> list[WorkNodeLayout]:
    """Find every WorkNode under root (inclusive), sorted by path.

    Subdirectories are scanned concurrently; the result order doesn't depend
    on completion order.
    """
    discovered: dict[Path, WorkNodeLayout] = {}
    await _scan(Path(root), _ignored_names(ignored_dirs), discovered, set())
    return _sorted_layouts(discovered)


def is_ancestor(ancestor: Path, descendant: Path) -> bool:
    """True if ancestor strictly contains descendant (by path segments)."""
    return ancestor != descendant and descendant.is_relative_to(ancestor)


def build_work_node_relations(layouts: Iterable[WorkNodeLayout]) -> list[WorkNodeRelation]:
    """Link each layout to its nearest ancestor layout.

    Returns one relation per layout, sorted by path. Layouts without an
    ancestor in the set have parent None.
    """
    relations = [
        WorkNodeRelation(layout=layout)
        for layout in sorted(layouts, key=lambda layout: str(layout.root))
    ]

    for relation in relations:
        ancestors = [
            candidate for candidate in relations
            if candidate is not relation and is_ancestor(candidate.layout.root, relation.layout.root)
        ]
        if not ancestors:
            continue
        parent = max(ancestors, key=lambda candidate: len(candidate.layout.root.parts))
        relation.parent = parent.layout
        parent.children.append(relation.layout)

    return relations


def find_relation(relations: list[WorkNodeRelation], root: Path) -> Optional[WorkNodeRelation]:
    root = Path(root).resolve()
    for relation in relations:
        if relation.layout.root == root:
            return relation
    return None
