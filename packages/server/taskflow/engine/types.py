"""Value types shared by the dependency engine."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from taskflow.utils import datetime_to_ms


class DependencyType(str, Enum):
    """Gantt relationship between a blocker (source) and its dependent (target)."""
    FINISH_TO_START = "FS"
    START_TO_START = "SS"
    FINISH_TO_FINISH = "FF"
    START_TO_FINISH = "SF"


class Anchor(str, Enum):
    """Which end of a task's date range a constraint refers to."""
    START = "start"
    DUE = "due"


@dataclass(frozen=True)
class TaskDates:
    """Snapshot of the scheduling fields of one task."""

    task_id: str
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    is_milestone: bool = False
    title: str = ""
    status: str = "todo"

    def get(self, anchor: Anchor) -> Optional[datetime]:
        return self.start_date if anchor is Anchor.START else self.due_date

    def with_dates(
        self, start_date: Optional[datetime], due_date: Optional[datetime]
    ) -> "TaskDates":
        return replace(self, start_date=start_date, due_date=due_date)

    def same_dates(self, other: "TaskDates") -> bool:
        return (
            self.start_date == other.start_date
            and self.due_date == other.due_date
        )


@dataclass(frozen=True)
class Edge:
    """Directed dependency edge: ``target`` is constrained by ``source``."""

    id: str
    source: str
    target: str
    type: DependencyType = DependencyType.FINISH_TO_START


@dataclass(frozen=True)
class Mutation:
    """One cascade-induced date change.

    ``source_task_id`` and ``dependency_type`` name the constraint that
    imposed the latest bound on the task.
    """

    task_id: str
    old: TaskDates
    new: TaskDates
    source_task_id: Optional[str] = None
    dependency_type: Optional[DependencyType] = None

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "old_start_date": datetime_to_ms(self.old.start_date),
            "old_due_date": datetime_to_ms(self.old.due_date),
            "new_start_date": datetime_to_ms(self.new.start_date),
            "new_due_date": datetime_to_ms(self.new.due_date),
            "source_task_id": self.source_task_id,
            "dependency_type": (
                self.dependency_type.value if self.dependency_type else None
            ),
        }


@dataclass
class CascadeResult:
    """Ordered mutations produced by one cascade run."""

    root_task_id: str
    mutations: list[Mutation] = field(default_factory=list)
    # Tasks on a stored cycle that were settled before all of their blockers.
    cycle_entries: list[str] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return len(self.mutations)

    def task_ids(self) -> list[str]:
        return [m.task_id for m in self.mutations]

    def to_dict(self) -> dict:
        return {
            "root_task_id": self.root_task_id,
            "updated": self.updated,
            "mutations": [m.to_dict() for m in self.mutations],
            "cycle_entries": list(self.cycle_entries),
        }
