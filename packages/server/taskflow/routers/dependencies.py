"""Task dependency management endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_async_session
from taskflow.engine.types import DependencyType
from taskflow.errors import NotFoundError
from taskflow.logging_config import get_logger
from taskflow.schemas import AddDependencyRequest
from taskflow.services.dependency_repository import DependencyRepository, serialize_edge
from taskflow.services.events import publish_event
from taskflow.services.locks import workspace_locks
from taskflow.services.task_store import TaskStore
from taskflow.services.timeline import TimelineService

logger = get_logger(__name__)
router = APIRouter()


async def _with_tasks(session: AsyncSession, edges, task_key: str) -> list[dict]:
    """Serialize edges with a summary of the task on the ``task_key`` end."""
    tasks = await TaskStore(session).get_many([getattr(e, task_key) for e in edges])
    out = []
    for edge in edges:
        task = tasks.get(getattr(edge, task_key))
        data = serialize_edge(edge)
        data["task"] = (
            {
                "id": task.id,
                "title": task.title,
                "status": task.status,
                "start_date": task.start_date,
                "due_date": task.due_date,
            }
            if task
            else None
        )
        out.append(data)
    return out


@router.post("/tasks/{task_id}/dependencies", status_code=201)
async def add_dependency(
    task_id: str,
    req: AddDependencyRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Add a dependency: ``source`` must be satisfied before task_id."""
    logger.debug(f"Adding dependency: task_id={task_id}, source={req.source}, type={req.type}")
    tasks = TaskStore(session)
    repo = DependencyRepository(session, tasks)
    task = await tasks.get_by_id(task_id)

    async with workspace_locks.hold(task.workspace_id):
        dep = await repo.add_edge(req.source, task_id, DependencyType(req.type))
        data = serialize_edge(dep)
        await session.commit()

    await publish_event("DEPENDENCY_ADDED", {
        "workspaceId": data["workspace_id"],
        "dependencyId": data["id"],
        "source": data["source"],
        "target": data["target"],
        "type": data["type"],
    })
    return data


@router.delete("/tasks/{task_id}/dependencies/{dep_id}")
async def remove_dependency(
    task_id: str,
    dep_id: str,
    session: AsyncSession = Depends(get_async_session),
):
    """Remove a dependency of task_id (as either end)."""
    logger.debug(f"Removing dependency: task_id={task_id}, dep_id={dep_id}")
    repo = DependencyRepository(session)
    dep = await repo.get_edge(dep_id)
    if task_id not in (dep.source_task_id, dep.target_task_id):
        raise NotFoundError(f"Dependency {dep_id} not found on task {task_id}")

    async with workspace_locks.hold(dep.workspace_id):
        dep = await repo.remove_edge(dep_id)
        data = serialize_edge(dep)
        await session.commit()

    await publish_event("DEPENDENCY_REMOVED", {
        "workspaceId": data["workspace_id"],
        "dependencyId": dep_id,
        "source": data["source"],
        "target": data["target"],
    })
    return {"status": "removed", "id": dep_id}


@router.get("/tasks/{task_id}/dependencies")
async def list_blockers(task_id: str, session: AsyncSession = Depends(get_async_session)):
    """Tasks that task_id depends on (incoming edges)."""
    await TaskStore(session).get_by_id(task_id)
    edges = await DependencyRepository(session).incoming_edges(task_id)
    return await _with_tasks(session, edges, "source_task_id")


@router.get("/tasks/{task_id}/dependents")
async def list_dependents(task_id: str, session: AsyncSession = Depends(get_async_session)):
    """Tasks that depend on task_id (outgoing edges)."""
    await TaskStore(session).get_by_id(task_id)
    edges = await DependencyRepository(session).outgoing_edges(task_id)
    return await _with_tasks(session, edges, "target_task_id")


@router.get("/tasks/{task_id}/blocking")
async def list_blocking(task_id: str, session: AsyncSession = Depends(get_async_session)):
    """Blockers whose status currently holds task_id back."""
    return await TimelineService(session).blocking_tasks(task_id)
