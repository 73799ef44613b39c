"""Dependency graph, cycle detection, timeline validation and cascade scheduling.

Everything in this package is pure: it works on snapshots and never touches
the database. ``taskflow.services`` loads the snapshots and persists results.
"""

from taskflow.engine.types import (
    Anchor,
    CascadeResult,
    DependencyType,
    Edge,
    Mutation,
    TaskDates,
)
from taskflow.engine.graph import DependencyGraph
from taskflow.engine.cycles import find_cycle_path, is_acyclic, would_create_cycle
from taskflow.engine.scheduler import compute_cascade, reschedule
from taskflow.engine.validator import check_constraints, validate, validate_all
from taskflow.engine.milestone import toggle_milestone

__all__ = [
    "Anchor",
    "CascadeResult",
    "DependencyType",
    "Edge",
    "Mutation",
    "TaskDates",
    "DependencyGraph",
    "find_cycle_path",
    "is_acyclic",
    "would_create_cycle",
    "compute_cascade",
    "reschedule",
    "check_constraints",
    "validate",
    "validate_all",
    "toggle_milestone",
]
