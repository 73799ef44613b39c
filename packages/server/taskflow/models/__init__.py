"""SQLAlchemy ORM models for taskflow."""

from taskflow.models.base import (
    Base,
    TimestampMixin,
    PrefixedIdMixin,
    generate_prefixed_id,
)
from taskflow.models.task import Task, DependencyEdge

__all__ = [
    "Base",
    "TimestampMixin",
    "PrefixedIdMixin",
    "generate_prefixed_id",
    "Task",
    "DependencyEdge",
]
