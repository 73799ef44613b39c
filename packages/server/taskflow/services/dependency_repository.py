"""Persistence of dependency edges, scoped to a workspace."""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.engine.graph import DependencyGraph
from taskflow.engine.types import DependencyType, Edge
from taskflow.errors import (
    CircularDependencyError,
    DuplicateDependencyError,
    NotFoundError,
    SelfDependencyError,
    ValidationError,
)
from taskflow.logging_config import get_logger
from taskflow.models import DependencyEdge
from taskflow.services.task_store import TaskStore
from taskflow.utils import now_ms

logger = get_logger(__name__)


def to_edge(row: DependencyEdge) -> Edge:
    return Edge(
        id=row.id,
        source=row.source_task_id,
        target=row.target_task_id,
        type=DependencyType(row.type),
    )


def serialize_edge(row: DependencyEdge) -> dict:
    """Serialize a DependencyEdge model to dict."""
    return {
        "id": row.id,
        "workspace_id": row.workspace_id,
        "project_id": row.project_id,
        "source": row.source_task_id,
        "target": row.target_task_id,
        "type": row.type,
        "created_at": row.created_at,
    }


class DependencyRepository:
    """Add, remove and look up dependency edges.

    Callers hold the workspace lock around ``add_edge`` and ``remove_edge``.
    """

    def __init__(self, session: AsyncSession, tasks: TaskStore | None = None):
        self.session = session
        self.tasks = tasks or TaskStore(session)

    async def load_graph(self, workspace_id: str) -> DependencyGraph:
        """Load every edge of the workspace into one adjacency snapshot."""
        result = await self.session.execute(
            select(DependencyEdge).where(DependencyEdge.workspace_id == workspace_id)
        )
        return DependencyGraph(to_edge(row) for row in result.scalars().all())

    async def get_edge(self, edge_id: str) -> DependencyEdge:
        row = await self.session.get(DependencyEdge, edge_id)
        if row is None:
            raise NotFoundError(f"Dependency {edge_id} not found")
        return row

    async def outgoing_edges(self, task_id: str) -> list[DependencyEdge]:
        """Edges where ``task_id`` is the source: its dependents."""
        result = await self.session.execute(
            select(DependencyEdge)
            .where(DependencyEdge.source_task_id == task_id)
            .order_by(DependencyEdge.created_at)
        )
        return list(result.scalars().all())

    async def incoming_edges(self, task_id: str) -> list[DependencyEdge]:
        """Edges where ``task_id`` is the target: its blockers."""
        result = await self.session.execute(
            select(DependencyEdge)
            .where(DependencyEdge.target_task_id == task_id)
            .order_by(DependencyEdge.created_at)
        )
        return list(result.scalars().all())

    async def add_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        type: DependencyType = DependencyType.FINISH_TO_START,
    ) -> DependencyEdge:
        """Validate and insert ``source -> target``.

        Fails fast, before anything is written, on a self-reference, a
        missing task, a cross-workspace or cross-project pair, a duplicate
        pair or a cycle.
        """
        if source_task_id == target_task_id:
            raise SelfDependencyError("A task cannot depend on itself")

        target = await self.tasks.get_by_id(target_task_id)
        try:
            source = await self.tasks.get_by_id(source_task_id)
        except NotFoundError:
            raise NotFoundError(f"Dependency task {source_task_id} not found")

        if source.workspace_id != target.workspace_id:
            raise ValidationError("Tasks must belong to the same workspace")
        if source.project_id != target.project_id:
            raise ValidationError("Tasks must belong to the same project")

        graph = await self.load_graph(target.workspace_id)
        try:
            graph.check_new_edge(source_task_id, target_task_id)
        except CircularDependencyError as e:
            titles = await self._titles(e.path)
            readable = [titles.get(tid, tid) for tid in e.path]
            logger.info(f"Rejected dependency {source_task_id} -> {target_task_id}: cycle")
            raise CircularDependencyError(
                "Cannot create dependency: would create a cycle: " + " → ".join(readable),
                path=e.path,
            ) from e

        row = DependencyEdge(
            id=DependencyEdge.generate_id(),
            workspace_id=target.workspace_id,
            project_id=target.project_id,
            source_task_id=source_task_id,
            target_task_id=target_task_id,
            type=DependencyType(type).value,
            created_at=now_ms(),
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateDependencyError("This dependency already exists") from e
        logger.debug(
            f"Added dependency {row.id}: {source_task_id} -{row.type}-> {target_task_id}"
        )
        return row

    async def remove_edge(self, edge_id: str) -> DependencyEdge:
        row = await self.get_edge(edge_id)
        await self.session.delete(row)
        await self.session.flush()
        logger.debug(f"Removed dependency {edge_id}")
        return row

    async def _titles(self, task_ids: list[str]) -> dict[str, str]:
        tasks = await self.tasks.get_many(list(dict.fromkeys(task_ids)))
        return {tid: t.title for tid, t in tasks.items()}
