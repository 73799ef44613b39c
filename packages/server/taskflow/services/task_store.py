"""SQLAlchemy-backed task store."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.engine.types import TaskDates
from taskflow.errors import NotFoundError
from taskflow.logging_config import get_logger
from taskflow.models import Task
from taskflow.utils import datetime_to_ms, ms_to_datetime, now_ms

logger = get_logger(__name__)


def to_task_dates(task: Task) -> TaskDates:
    """Snapshot the scheduling fields of an ORM task."""
    return TaskDates(
        task_id=task.id,
        start_date=ms_to_datetime(task.start_date),
        due_date=ms_to_datetime(task.due_date),
        is_milestone=bool(task.is_milestone),
        title=task.title,
        status=task.status,
    )


def serialize_task(task: Task) -> dict:
    """Serialize a Task model to dict."""
    return {
        "id": task.id,
        "workspace_id": task.workspace_id,
        "project_id": task.project_id,
        "title": task.title,
        "status": task.status,
        "start_date": task.start_date,
        "due_date": task.due_date,
        "is_milestone": bool(task.is_milestone),
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


class TaskStore:
    """Reads and writes task records through one session.

    Rows loaded by ``load_dates`` stay in the session's identity map, so the
    per-task writes of a cascade do not query again.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, task_id: str, refresh: bool = False) -> Task:
        task = await self.session.get(Task, task_id, populate_existing=refresh)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def get_many(self, task_ids: list[str]) -> dict[str, Task]:
        if not task_ids:
            return {}
        result = await self.session.execute(select(Task).where(Task.id.in_(task_ids)))
        return {t.id: t for t in result.scalars().all()}

    async def list_by_project(self, project_id: str) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.start_date, Task.created_at)
        )
        return list(result.scalars().all())

    async def create(
        self,
        workspace_id: str,
        project_id: str,
        title: str,
        start_date: Optional[int] = None,
        due_date: Optional[int] = None,
        is_milestone: bool = False,
        status: str = "todo",
    ) -> Task:
        now = now_ms()
        task = Task(
            id=Task.generate_id(),
            workspace_id=workspace_id,
            project_id=project_id,
            title=title,
            status=status,
            start_date=start_date,
            due_date=due_date,
            is_milestone=is_milestone,
            created_at=now,
            updated_at=now,
        )
        self.session.add(task)
        await self.session.flush()
        return task

    async def load_dates(self, workspace_id: str) -> dict[str, TaskDates]:
        """Snapshot every task of a workspace, re-read from the database."""
        result = await self.session.execute(
            select(Task)
            .where(Task.workspace_id == workspace_id)
            .execution_options(populate_existing=True)
        )
        return {t.id: to_task_dates(t) for t in result.scalars().all()}

    async def update_dates(self, dates: TaskDates) -> Task:
        """Write the dates and milestone flag of ``dates`` to its task row."""
        task = await self.get_by_id(dates.task_id)
        task.start_date = datetime_to_ms(dates.start_date)
        task.due_date = datetime_to_ms(dates.due_date)
        task.is_milestone = dates.is_milestone
        task.updated_at = now_ms()
        return task
