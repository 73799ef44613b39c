"""Task and dependency edge models."""

from typing import Optional
from sqlalchemy import (
    String,
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from taskflow.models.base import Base, PrefixedIdMixin, TimestampMixin


class Task(Base, PrefixedIdMixin, TimestampMixin):
    """Task entity.

    Only the scheduling fields live here; the rest of a task record belongs to
    the surrounding task-management system.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_workspace", "workspace_id"),
        Index("idx_tasks_project", "project_id"),
    )
    _id_prefix = "task_"

    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="todo")
    # Epoch milliseconds (UTC), like every other timestamp column.
    start_date: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    due_date: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    is_milestone: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class DependencyEdge(Base, PrefixedIdMixin):
    """Dependency edge: target_task_id is constrained by source_task_id."""

    __tablename__ = "dependency_edges"
    __table_args__ = (
        Index("idx_deps_workspace", "workspace_id"),
        Index("idx_deps_source", "source_task_id"),
        Index("idx_deps_target", "target_task_id"),
        UniqueConstraint("source_task_id", "target_task_id", name="uq_dependency_edge"),
    )
    _id_prefix = "dep_"

    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source_task_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    target_task_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    # FS | SS | FF | SF
    type: Mapped[str] = mapped_column(String(2), nullable=False, default="FS")
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
