"""Timeline orchestration: validate, cascade and persist date changes."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.engine import blocking
from taskflow.engine.milestone import toggle_milestone
from taskflow.engine.scheduler import reschedule
from taskflow.engine.types import CascadeResult, DependencyType, TaskDates
from taskflow.engine.validator import check_constraints, validate, validate_all
from taskflow.errors import CascadePersistenceError, TaskBlockedError, ValidationError
from taskflow.logging_config import get_logger
from taskflow.models import Task
from taskflow.services.dependency_repository import DependencyRepository, to_edge
from taskflow.services.locks import WorkspaceLocks, workspace_locks
from taskflow.services.task_store import TaskStore, serialize_task, to_task_dates
from taskflow.utils import as_utc

logger = get_logger(__name__)

_UNSET = object()

PROGRESS_BY_STATUS = {"done": 100, "in-progress": 50}


@dataclass
class TimelineUpdate:
    """Outcome of a date change: the changed task plus the cascade it caused."""

    task: Task
    old: TaskDates
    new: TaskDates
    cascade: CascadeResult

    def to_dict(self) -> dict:
        return {
            "task_id": self.task.id,
            "task": serialize_task(self.task),
            "cascade": self.cascade.to_dict(),
        }


class TimelineService:
    """Date changes, milestone toggles and timeline reports for one session.

    Every write runs under the workspace lock and commits once: the changed
    task and all of its cascade mutations land in the same transaction.
    """

    def __init__(self, session: AsyncSession, locks: Optional[WorkspaceLocks] = None):
        self.session = session
        self.tasks = TaskStore(session)
        self.dependencies = DependencyRepository(session, self.tasks)
        self.locks = locks or workspace_locks

    async def update_timeline(
        self,
        task_id: str,
        start_date=_UNSET,
        due_date=_UNSET,
    ) -> TimelineUpdate:
        """Set new dates on a task and cascade them to its dependents.

        Omitted arguments keep the current value, None clears the date. On a
        milestone, moving one end moves the whole point.
        """
        task = await self.tasks.get_by_id(task_id)
        async with self.locks.hold(task.workspace_id):
            task = await self.tasks.get_by_id(task_id, refresh=True)
            old = to_task_dates(task)
            new = _apply_dates(old, start_date, due_date)
            validate(new)
            return await self._cascade_and_commit(task, old, new)

    async def toggle_milestone(self, task_id: str, enable: Optional[bool] = None) -> TimelineUpdate:
        task = await self.tasks.get_by_id(task_id)
        async with self.locks.hold(task.workspace_id):
            task = await self.tasks.get_by_id(task_id, refresh=True)
            old = to_task_dates(task)
            new = toggle_milestone(old, enable)
            return await self._cascade_and_commit(task, old, new)

    async def validate_timeline(self, task_id: str) -> dict:
        """Constraint report for one task against its current blockers."""
        task = await self.tasks.get_by_id(task_id)
        incoming, snapshot = await self._blockers(task_id)
        report = check_constraints(to_task_dates(task), incoming, snapshot)
        return {"task_id": task_id, **report}

    async def blocking_tasks(self, task_id: str) -> list[dict]:
        await self.tasks.get_by_id(task_id)
        incoming, snapshot = await self._blockers(task_id)
        return blocking.blocking_dependencies(incoming, snapshot)

    async def check_status_transition(self, task_id: str, new_status: str) -> None:
        """Raise TaskBlockedError if the blockers forbid ``new_status``."""
        if new_status not in blocking.TASK_STATUSES:
            raise ValidationError(f"Unknown status {new_status!r}")
        incoming, snapshot = await self._blockers(task_id)
        verdict = blocking.can_transition(new_status, incoming, snapshot)
        if not verdict["allowed"]:
            raise TaskBlockedError(verdict["reason"], blocking=verdict["blocking"])

    async def gantt_data(self, project_id: str) -> list[dict]:
        """Tasks of a project with durations and incoming dependencies."""
        tasks = await self.tasks.list_by_project(project_id)
        deps_by_task: dict[str, list[dict]] = {}
        for task in tasks:
            deps_by_task[task.id] = []
        if tasks:
            graph = await self.dependencies.load_graph(tasks[0].workspace_id)
            for task in tasks:
                deps_by_task[task.id] = [
                    {"depends_on": e.source, "type": DependencyType(e.type).value}
                    for e in graph.incoming_edges(task.id)
                ]

        return [
            {
                "id": task.id,
                "title": task.title,
                "start_date": task.start_date,
                "due_date": task.due_date,
                "duration": _duration_days(task.start_date, task.due_date),
                "status": task.status,
                "is_milestone": bool(task.is_milestone),
                "dependencies": deps_by_task[task.id],
                "progress": PROGRESS_BY_STATUS.get(task.status, 0),
            }
            for task in tasks
        ]

    async def _blockers(self, task_id: str):
        incoming = await self.dependencies.incoming_edges(task_id)
        blockers = await self.tasks.get_many([e.source_task_id for e in incoming])
        snapshot = {tid: to_task_dates(t) for tid, t in blockers.items()}
        return [to_edge(e) for e in incoming], snapshot

    async def _cascade_and_commit(self, task: Task, old: TaskDates, new: TaskDates) -> TimelineUpdate:
        snapshot = await self.tasks.load_dates(task.workspace_id)
        graph = await self.dependencies.load_graph(task.workspace_id)
        result = reschedule(graph, snapshot, new)
        validate_all(m.new for m in result.mutations)

        updated = await self._persist([new] + [m.new for m in result.mutations])
        logger.info(
            f"Timeline of {task.id} updated; cascade changed {result.updated} task(s)"
        )
        return TimelineUpdate(task=updated[0], old=old, new=new, cascade=result)

    async def _persist(self, changes: list[TaskDates]) -> list[Task]:
        """Write all changes and commit them together.

        On failure the transaction is rolled back, so nothing is committed and
        every change is reported as pending.
        """
        written: list[str] = []
        rows: list[Task] = []
        try:
            for dates in changes:
                rows.append(await self.tasks.update_dates(dates))
                written.append(dates.task_id)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            pending = [d.task_id for d in changes]
            logger.error(
                f"Cascade write failed after {len(written)} of {len(changes)} "
                f"task(s); rolled back: {e}"
            )
            raise CascadePersistenceError(
                "Failed to persist timeline cascade; no task was updated",
                committed=[],
                pending=pending,
            ) from e
        return rows


def _apply_dates(current: TaskDates, start_date, due_date) -> TaskDates:
    start = current.start_date if start_date is _UNSET else _as_datetime(start_date)
    due = current.due_date if due_date is _UNSET else _as_datetime(due_date)
    if current.is_milestone:
        if start_date is _UNSET and due_date is not _UNSET:
            start = due
        elif due_date is _UNSET and start_date is not _UNSET:
            due = start
    return replace(current, start_date=start, due_date=due)


def _as_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    raise ValidationError(f"Invalid date value: {value!r}")


def _duration_days(start_ms: Optional[int], due_ms: Optional[int]) -> int:
    if start_ms is None or due_ms is None:
        return 0
    return math.ceil((due_ms - start_ms) / (1000 * 60 * 60 * 24))
