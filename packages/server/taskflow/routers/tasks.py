"""Task endpoints: the minimal task store surface the engine schedules."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_async_session
from taskflow.engine.types import TaskDates
from taskflow.engine.validator import validate
from taskflow.logging_config import get_logger
from taskflow.schemas import CreateTaskRequest, UpdateTaskRequest
from taskflow.services.task_store import TaskStore, serialize_task
from taskflow.services.timeline import TimelineService
from taskflow.utils import as_utc, datetime_to_ms, now_ms

logger = get_logger(__name__)
router = APIRouter()


@router.post("/tasks", status_code=201)
async def create_task(req: CreateTaskRequest, session: AsyncSession = Depends(get_async_session)):
    """Create a task."""
    start, due = as_utc(req.startDate), as_utc(req.dueDate)
    validate(TaskDates(
        task_id="new",
        start_date=start,
        due_date=due,
        is_milestone=req.isMilestone,
    ))
    task = await TaskStore(session).create(
        workspace_id=req.workspaceId,
        project_id=req.projectId,
        title=req.title,
        status=req.status,
        start_date=datetime_to_ms(start),
        due_date=datetime_to_ms(due),
        is_milestone=req.isMilestone,
    )
    await session.commit()
    logger.debug(f"Created task {task.id} in project {task.project_id}")
    return serialize_task(task)


@router.get("/tasks")
async def list_tasks(
    project_id: str = Query(..., alias="projectId"),
    session: AsyncSession = Depends(get_async_session),
):
    """List the tasks of a project."""
    tasks = await TaskStore(session).list_by_project(project_id)
    return [serialize_task(t) for t in tasks]


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, session: AsyncSession = Depends(get_async_session)):
    """Get a task by ID."""
    task = await TaskStore(session).get_by_id(task_id)
    return serialize_task(task)


@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str,
    req: UpdateTaskRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Update title or status; a status change must clear its blockers."""
    store = TaskStore(session)
    task = await store.get_by_id(task_id)
    if req.status is not None and req.status != task.status:
        await TimelineService(session).check_status_transition(task_id, req.status)
        task.status = req.status
    if req.title is not None:
        task.title = req.title
    task.updated_at = now_ms()
    await session.commit()
    return serialize_task(task)
