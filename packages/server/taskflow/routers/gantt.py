"""Gantt timeline endpoints: date changes with cascade, milestones, reports."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_async_session
from taskflow.logging_config import get_logger
from taskflow.schemas import ToggleMilestoneRequest, UpdateTimelineRequest
from taskflow.services.events import publish_event
from taskflow.services.timeline import TimelineService, TimelineUpdate

logger = get_logger(__name__)
router = APIRouter()


async def _publish_update(event_type: str, update: TimelineUpdate) -> None:
    await publish_event(event_type, {
        "workspaceId": update.task.workspace_id,
        "taskId": update.task.id,
        "mutations": [m.to_dict() for m in update.cascade.mutations],
    })


@router.post("/tasks/{task_id}/update-timeline")
async def update_task_timeline(
    task_id: str,
    req: UpdateTimelineRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Update task dates and cascade to dependent tasks."""
    changes = {}
    if "startDate" in req.model_fields_set:
        changes["start_date"] = req.startDate
    if "dueDate" in req.model_fields_set:
        changes["due_date"] = req.dueDate
    logger.debug(f"Updating timeline: task_id={task_id}, fields={sorted(changes)}")

    update = await TimelineService(session).update_timeline(task_id, **changes)
    await _publish_update("TASK_TIMELINE_UPDATED", update)
    return update.to_dict()


@router.post("/tasks/{task_id}/toggle-milestone")
async def toggle_milestone(
    task_id: str,
    req: Optional[ToggleMilestoneRequest] = None,
    session: AsyncSession = Depends(get_async_session),
):
    """Mark or unmark a task as milestone (flips it when ``enable`` is omitted)."""
    enable = req.enable if req else None
    update = await TimelineService(session).toggle_milestone(task_id, enable)
    await _publish_update("TASK_MILESTONE_TOGGLED", update)
    return update.to_dict()


@router.get("/tasks/{task_id}/validate")
async def validate_timeline(task_id: str, session: AsyncSession = Depends(get_async_session)):
    """Report date invariants and dependency constraints the task violates."""
    return await TimelineService(session).validate_timeline(task_id)


@router.get("/projects/{project_id}")
async def get_gantt_data(project_id: str, session: AsyncSession = Depends(get_async_session)):
    """Gantt chart data for a project."""
    return await TimelineService(session).gantt_data(project_id)
