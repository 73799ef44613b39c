"""Milestone toggle: collapse a task's date range to a single point."""
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from taskflow.engine.types import TaskDates
from taskflow.engine.validator import validate


def toggle_milestone(task: TaskDates, enable: Optional[bool] = None) -> TaskDates:
    """Return ``task`` with its milestone flag set to ``enable``.

    ``enable=None`` flips the current flag. Enabling collapses the range onto
    the start date, or onto the due date when only that one is set; disabling
    leaves the dates alone.
    """
    if enable is None:
        enable = not task.is_milestone

    if not enable:
        updated = replace(task, is_milestone=False)
    else:
        point = task.start_date if task.start_date is not None else task.due_date
        updated = replace(task, is_milestone=True, start_date=point, due_date=point)

    validate(updated)
    return updated
