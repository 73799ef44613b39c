"""create tasks and dependency_edges

Scheduling fields of tasks plus typed dependency edges (FS/SS/FF/SF) between
tasks of one workspace. Dates are epoch milliseconds like every other
timestamp column.

Revision ID: t0001_tasks_deps
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "t0001_tasks_deps"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("workspace_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="todo"),
        sa.Column("start_date", sa.BigInteger(), nullable=True),
        sa.Column("due_date", sa.BigInteger(), nullable=True),
        sa.Column(
            "is_milestone", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
    )
    op.create_index("idx_tasks_workspace", "tasks", ["workspace_id"])
    op.create_index("idx_tasks_project", "tasks", ["project_id"])

    op.create_table(
        "dependency_edges",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("workspace_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column(
            "source_task_id",
            sa.String(64),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "target_task_id",
            sa.String(64),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(2), nullable=False, server_default="FS"),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint(
            "source_task_id", "target_task_id", name="uq_dependency_edge"
        ),
    )
    op.create_index("idx_deps_workspace", "dependency_edges", ["workspace_id"])
    op.create_index("idx_deps_source", "dependency_edges", ["source_task_id"])
    op.create_index("idx_deps_target", "dependency_edges", ["target_task_id"])


def downgrade() -> None:
    op.drop_index("idx_deps_target", table_name="dependency_edges")
    op.drop_index("idx_deps_source", table_name="dependency_edges")
    op.drop_index("idx_deps_workspace", table_name="dependency_edges")
    op.drop_table("dependency_edges")
    op.drop_index("idx_tasks_project", table_name="tasks")
    op.drop_index("idx_tasks_workspace", table_name="tasks")
    op.drop_table("tasks")
