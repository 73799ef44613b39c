"""Status-based blocking rules for dependency edges."""
from __future__ import annotations

from typing import Iterable, Mapping

from taskflow.engine.types import DependencyType, Edge, TaskDates

TASK_STATUSES = ("todo", "in-progress", "done")

FS = DependencyType.FINISH_TO_START
SS = DependencyType.START_TO_START
FF = DependencyType.FINISH_TO_FINISH
SF = DependencyType.START_TO_FINISH

# Types whose blocker must be finished / started before the dependent may
# enter the given status.
_NEEDS_FINISHED = {"in-progress": {FS}, "done": {FS, FF}}
_NEEDS_STARTED = {"in-progress": {SS}, "done": {SF}}


def _finished(task: TaskDates) -> bool:
    return task.status == "done"


def _started(task: TaskDates) -> bool:
    return task.status != "todo"


def blocking_reason(edge: Edge, blocker: TaskDates) -> str:
    dep_type = DependencyType(edge.type)
    if dep_type is FS:
        return f"Waiting for task to be completed (current: {blocker.status})"
    if dep_type is SS:
        return f"Waiting for task to be started (current: {blocker.status})"
    if dep_type is FF:
        return f"Cannot finish until task is completed (current: {blocker.status})"
    return f"Cannot finish until task is started (current: {blocker.status})"


def is_blocking(edge: Edge, blocker: TaskDates) -> bool:
    if DependencyType(edge.type) in (FS, FF):
        return not _finished(blocker)
    return not _started(blocker)


def blocking_dependencies(
    incoming: Iterable[Edge], tasks: Mapping[str, TaskDates]
) -> list[dict]:
    """Blockers currently holding the task back, with a reason each."""
    blocking = []
    for edge in incoming:
        blocker = tasks.get(edge.source)
        if blocker is None or not is_blocking(edge, blocker):
            continue
        blocking.append(
            {
                "dependency_id": edge.id,
                "task_id": blocker.task_id,
                "title": blocker.title,
                "status": blocker.status,
                "type": DependencyType(edge.type).value,
                "reason": blocking_reason(edge, blocker),
            }
        )
    return blocking


def can_transition(
    new_status: str, incoming: Iterable[Edge], tasks: Mapping[str, TaskDates]
) -> dict:
    """Check whether a task may move to ``new_status`` given its blockers."""
    needs_finished = _NEEDS_FINISHED.get(new_status, set())
    needs_started = _NEEDS_STARTED.get(new_status, set())

    blocking = []
    for edge in incoming:
        blocker = tasks.get(edge.source)
        if blocker is None:
            continue
        dep_type = DependencyType(edge.type)
        name = blocker.title or blocker.task_id
        if dep_type in needs_finished and not _finished(blocker):
            reason = f'Task "{name}" must be completed first ({dep_type.value} dependency)'
        elif dep_type in needs_started and not _started(blocker):
            reason = f'Task "{name}" must be started first ({dep_type.value} dependency)'
        else:
            continue
        blocking.append({"dependency_id": edge.id, "task_id": blocker.task_id, "reason": reason})

    if not blocking:
        return {"allowed": True, "blocking": []}
    noun = "dependency" if len(blocking) == 1 else "dependencies"
    return {
        "allowed": False,
        "reason": f"Task is blocked by {len(blocking)} unfinished {noun}",
        "blocking": blocking,
    }
