"""Cascade scheduler: propagates a task's date change to its dependents.

The scheduler is a pure function of a graph snapshot and a task snapshot. It
never touches a store; callers persist the returned mutations.
"""
from __future__ import annotations

from collections import deque
from datetime import timedelta
from typing import Mapping, Optional

from taskflow.engine.constraints import Bound, edge_bound
from taskflow.engine.graph import DependencyGraph
from taskflow.engine.types import CascadeResult, Mutation, TaskDates
from taskflow.errors import NotFoundError
from taskflow.logging_config import get_logger

logger = get_logger(__name__)


def compute_cascade(
    graph: DependencyGraph,
    tasks: Mapping[str, TaskDates],
    task_id: str,
) -> CascadeResult:
    """Compute the date shifts needed after ``task_id``'s dates changed.

    ``tasks`` must already hold the new dates of ``task_id``. Dependents are
    settled level by level: a task is evaluated only once all of its blockers
    reachable from ``task_id`` are settled, so its bound always comes from
    their current dates. Only tasks with a blocker whose dates changed are
    evaluated; a task that did not move stops the propagation.

    A stored cycle keeps its tasks waiting on each other. When nothing else
    can be settled, the earliest discovered waiting task is settled from the
    blockers it has and recorded in ``cycle_entries``. Every task is still
    evaluated at most once.
    """
    if task_id not in tasks:
        raise NotFoundError(f"Task {task_id} not found")

    current: dict[str, TaskDates] = dict(tasks)
    result = CascadeResult(root_task_id=task_id)

    order = _reachable(graph, current, task_id)
    reachable = set(order)
    waiting = {
        node: sum(1 for e in graph.incoming_edges(node) if e.source in reachable)
        for node in order
        if node != task_id
    }

    changed = {task_id}
    touched: set[str] = set()
    settled = {task_id}
    queue = deque([task_id])

    def settle(node: str) -> None:
        settled.add(node)
        queue.append(node)
        if node not in touched:
            return
        mutation = _settle(graph, current, node)
        if mutation is not None:
            current[node] = mutation.new
            result.mutations.append(mutation)
            changed.add(node)

    while True:
        while queue:
            node = queue.popleft()
            for edge in graph.outgoing_edges(node):
                dependent = edge.target
                if dependent in settled or dependent not in waiting:
                    continue
                if node in changed:
                    touched.add(dependent)
                waiting[dependent] -= 1
                if waiting[dependent] == 0:
                    settle(dependent)

        # Its discovery parent comes earlier in ``order``, so it is settled.
        entry = next((node for node in order if node not in settled), None)
        if entry is None:
            break
        result.cycle_entries.append(entry)
        settle(entry)

    if result.cycle_entries:
        logger.warning(
            f"Cascade from {task_id} crossed a dependency cycle; settled "
            f"{', '.join(result.cycle_entries)} before all of their blockers"
        )
    logger.debug(
        f"Cascade from {task_id}: {len(order) - 1} reachable, "
        f"{result.updated} updated"
    )
    return result


def reschedule(
    graph: DependencyGraph,
    tasks: Mapping[str, TaskDates],
    changed: TaskDates,
) -> CascadeResult:
    """Apply ``changed`` to the snapshot and cascade from it."""
    snapshot = dict(tasks)
    snapshot[changed.task_id] = changed
    return compute_cascade(graph, snapshot, changed.task_id)


def _reachable(
    graph: DependencyGraph, tasks: Mapping[str, TaskDates], task_id: str
) -> list[str]:
    """``task_id`` and every task depending on it, in breadth-first order."""
    visited = {task_id}
    order = [task_id]
    queue = deque([task_id])
    while queue:
        node = queue.popleft()
        for dependent in graph.dependents(node):
            if dependent in visited or dependent not in tasks:
                continue
            visited.add(dependent)
            order.append(dependent)
            queue.append(dependent)
    return order


def _required_bounds(
    graph: DependencyGraph, tasks: Mapping[str, TaskDates], task: TaskDates
) -> list[Bound]:
    """Latest bound per anchor over every incoming edge of ``task``."""
    latest: dict = {}
    for edge in graph.incoming_edges(task.task_id):
        blocker = tasks.get(edge.source)
        if blocker is None:
            continue
        bound = edge_bound(edge, blocker, task)
        if bound is None:
            continue
        if bound.anchor not in latest or bound.value > latest[bound.anchor].value:
            latest[bound.anchor] = bound
    return list(latest.values())


def _settle(
    graph: DependencyGraph, tasks: Mapping[str, TaskDates], task_id: str
) -> Optional[Mutation]:
    task = tasks[task_id]
    delta = timedelta(0)
    binding: Optional[Bound] = None
    for bound in _required_bounds(graph, tasks, task):
        shortfall = bound.value - task.get(bound.anchor)
        if shortfall > delta:
            delta, binding = shortfall, bound
    if binding is None:
        return None

    start = task.start_date + delta if task.start_date is not None else None
    due = task.due_date + delta if task.due_date is not None else None
    if task.is_milestone:
        point = max(d for d in (start, due) if d is not None)
        start = due = point

    return Mutation(
        task_id=task_id,
        old=task,
        new=task.with_dates(start, due),
        source_task_id=binding.edge.source,
        dependency_type=binding.edge.type,
    )
