"""Request models for the taskflow API."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, model_validator

DependencyTypeName = Literal["FS", "SS", "FF", "SF"]
TaskStatus = Literal["todo", "in-progress", "done"]


class CreateTaskRequest(BaseModel):
    workspaceId: str
    projectId: str
    title: str
    status: TaskStatus = "todo"
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    isMilestone: bool = False


class UpdateTaskRequest(BaseModel):
    """Non-scheduling fields; dates change through the Gantt endpoints."""
    title: Optional[str] = None
    status: Optional[TaskStatus] = None


class AddDependencyRequest(BaseModel):
    """``source`` must be satisfied before the task in the path."""
    source: str
    type: DependencyTypeName = "FS"


class UpdateTimelineRequest(BaseModel):
    """New dates; a field left out keeps its value, an explicit null clears it."""
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None

    @model_validator(mode="after")
    def require_a_date(self):
        if not self.model_fields_set & {"startDate", "dueDate"}:
            raise ValueError("Provide startDate and/or dueDate")
        return self


class ToggleMilestoneRequest(BaseModel):
    """``enable`` omitted flips the current flag."""
    enable: Optional[bool] = None
