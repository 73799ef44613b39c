"""Domain errors for the dependency and timeline engine.

Each error carries the HTTP status it maps to; ``main.py`` renders them with a
single exception handler so routers and services can simply raise.
"""
from typing import Optional


class TaskflowError(Exception):
    """Base class for every error the engine raises on purpose."""

    status_code: int = 400

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"detail": self.message, "type": type(self).__name__, **self.extra}


class ValidationError(TaskflowError):
    """Malformed dates, unknown dependency type or cross-scope edge."""


class NotFoundError(TaskflowError):
    status_code = 404


class CircularDependencyError(TaskflowError):
    def __init__(self, message: str, path: Optional[list[str]] = None):
        super().__init__(message, path=path or [])
        self.path = path or []


class DuplicateDependencyError(TaskflowError):
    pass


class SelfDependencyError(TaskflowError):
    pass


class InvalidTimelineError(TaskflowError):
    pass


class MilestoneDateMismatchError(TaskflowError):
    pass


class TaskBlockedError(TaskflowError):
    """A status change is blocked by unfinished dependencies."""

    def __init__(self, message: str, blocking: Optional[list[dict]] = None):
        super().__init__(message, blocking=blocking or [])
        self.blocking = blocking or []


class ConcurrentModificationError(TaskflowError):
    """Another operation holds the workspace lock."""

    status_code = 409


class CascadePersistenceError(TaskflowError):
    """Writing a cascade failed part-way.

    ``committed`` lists the task ids whose new dates are durable,
    ``pending`` the ones that were not written.
    """

    status_code = 500

    def __init__(self, message: str, committed: list[str], pending: list[str]):
        super().__init__(message, committed=committed, pending=pending)
        self.committed = committed
        self.pending = pending
