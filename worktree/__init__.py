"""WorkTree: file-based hierarchical task plans.

A WorkNode is a directory with PLAN.md, STATE.md and logs/. Most callers only
need the names re-exported here:

- WorkNode.load(root) / await WorkNode.load_async(root)
- validate_layout(root) / await validate_layout_async(root)
- await discover_work_nodes(root) / discover_work_nodes_sync(root)
- build_work_node_relations(layouts)
"""

__version__ = "0.3.0"

from worktree.lib.consistency import ensure_consistency, collect_consistency_errors
from worktree.lib.discovery import (
    WorkNodeRelation,
    build_work_node_relations,
    discover_work_nodes,
    discover_work_nodes_sync,
)
from worktree.lib.errors import (
    AmbiguousProgressError,
    ConfigError,
    ConsistencyError,
    DuplicateStepError,
    InvalidStatusError,
    LabelMismatchError,
    LayoutError,
    MissingStateEntryError,
    NotFoundError,
    ParseError,
    StateEntryNotFoundError,
    StateParseError,
    TransitionError,
    UnexpectedStateEntryError,
    WorkTreeError,
)
from worktree.lib.layout import WorkNodeLayout, validate_layout, validate_layout_async
from worktree.lib.steps import (
    PlanStep,
    StateRow,
    StepIdentifier,
    StepStatus,
    WorkPlan,
    WorkState,
    compare_step_identifiers,
)
from worktree.node import WorkNode
