"""Per-type constraint rules.

Every dependency type reads one anchor date on the blocker and constrains one
anchor date on the dependent to be no earlier than it:

    FS  dependent.start >= blocker.due
    SS  dependent.start >= blocker.start
    FF  dependent.due   >= blocker.due
    SF  dependent.due   >= blocker.start
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from taskflow.engine.types import Anchor, DependencyType, Edge, TaskDates


@dataclass(frozen=True)
class ConstraintRule:
    blocker_anchor: Anchor
    dependent_anchor: Anchor


RULES: dict[DependencyType, ConstraintRule] = {
    DependencyType.FINISH_TO_START: ConstraintRule(Anchor.DUE, Anchor.START),
    DependencyType.START_TO_START: ConstraintRule(Anchor.START, Anchor.START),
    DependencyType.FINISH_TO_FINISH: ConstraintRule(Anchor.DUE, Anchor.DUE),
    DependencyType.START_TO_FINISH: ConstraintRule(Anchor.START, Anchor.DUE),
}

_missing = set(DependencyType) - set(RULES)
if _missing:
    raise RuntimeError(
        f"No constraint rule for dependency types: {sorted(t.value for t in _missing)}"
    )


def rule_for(dependency_type: DependencyType) -> ConstraintRule:
    return RULES[DependencyType(dependency_type)]


@dataclass(frozen=True)
class Bound:
    """Lower bound one edge imposes on one anchor of its dependent."""

    anchor: Anchor
    value: datetime
    edge: Edge


def edge_bound(edge: Edge, blocker: TaskDates, dependent: TaskDates) -> Optional[Bound]:
    """Bound imposed by ``edge`` from the blocker's current dates.

    None when the blocker's anchor date or the dependent's constrained date is
    unset: the constraint cannot be violated then.
    """
    rule = rule_for(edge.type)
    value = blocker.get(rule.blocker_anchor)
    if value is None or dependent.get(rule.dependent_anchor) is None:
        return None
    return Bound(anchor=rule.dependent_anchor, value=value, edge=edge)


def is_satisfied(edge: Edge, blocker: TaskDates, dependent: TaskDates) -> bool:
    bound = edge_bound(edge, blocker, dependent)
    if bound is None:
        return True
    return dependent.get(bound.anchor) >= bound.value


def describe_violation(edge: Edge, blocker: TaskDates) -> str:
    rule = rule_for(edge.type)
    name = blocker.title or blocker.task_id
    verb = "start" if rule.dependent_anchor is Anchor.START else "finish"
    event = "starts" if rule.blocker_anchor is Anchor.START else "finishes"
    return (
        f'Task cannot {verb} before predecessor "{name}" {event} '
        f"({DependencyType(edge.type).value} dependency)"
    )
