"""Per-task date invariants and constraint reports."""
from __future__ import annotations

from typing import Iterable, Mapping

from taskflow.engine.constraints import describe_violation, is_satisfied
from taskflow.engine.types import Edge, TaskDates
from taskflow.errors import InvalidTimelineError, MilestoneDateMismatchError


def validate(task: TaskDates) -> None:
    """Raise if ``task`` breaks start <= due or the milestone invariant."""
    start, due = task.start_date, task.due_date
    if task.is_milestone and start != due:
        raise MilestoneDateMismatchError(
            "Milestone must have startDate equal to dueDate (duration = 0)",
            task_id=task.task_id,
        )
    if start is not None and due is not None and start > due:
        raise InvalidTimelineError(
            "Start date cannot be after due date", task_id=task.task_id
        )


def validate_all(tasks: Iterable[TaskDates]) -> None:
    for task in tasks:
        validate(task)


def timeline_errors(task: TaskDates) -> list[str]:
    errors = []
    start, due = task.start_date, task.due_date
    if task.is_milestone and start is not None and due is not None and start != due:
        errors.append("Milestone must have startDate equal to dueDate (duration = 0)")
    if start is not None and due is not None and start > due:
        errors.append("Start date cannot be after due date")
    return errors


def check_constraints(
    task: TaskDates,
    incoming: Iterable[Edge],
    tasks: Mapping[str, TaskDates],
) -> dict:
    """Report every invariant and incoming constraint ``task`` violates."""
    errors = timeline_errors(task)
    for edge in incoming:
        blocker = tasks.get(edge.source)
        if blocker is None:
            continue
        if not is_satisfied(edge, blocker, task):
            errors.append(describe_violation(edge, blocker))
    return {"valid": not errors, "errors": errors}
