"""Per-workspace exclusive scopes for edge mutations and cascades.

Edge mutations and cascades in one workspace read and write the same graph and
task set, so they must not interleave. The local backend serializes inside
one API process; the Redis backend (WORKSPACE_LOCK_BACKEND=redis) serializes
across processes sharing the same Redis.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from redis.exceptions import LockError

from taskflow import dependencies
from taskflow.config import settings
from taskflow.errors import ConcurrentModificationError
from taskflow.logging_config import get_logger

logger = get_logger(__name__)

REDIS_LOCK_PREFIX = "taskflow:lock:workspace:"


class WorkspaceLocks:
    """Registry of workspace locks.

    Local locks are created on demand and dropped once nobody holds or waits
    for them.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @property
    def effective_timeout(self) -> float:
        return self.timeout if self.timeout is not None else settings.lock_timeout_seconds

    def is_locked(self, workspace_id: str) -> bool:
        lock = self._locks.get(workspace_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, workspace_id: str) -> AsyncIterator[None]:
        """Hold the workspace exclusively for the body of the ``async with``.

        Raises ConcurrentModificationError when the lock cannot be acquired
        within the configured timeout.
        """
        if settings.lock_backend == "redis" and dependencies.redis_client is not None:
            async with self._hold_redis(workspace_id):
                yield
            return

        lock = self._locks.setdefault(workspace_id, asyncio.Lock())
        self._users[workspace_id] = self._users.get(workspace_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.effective_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Workspace {workspace_id} lock contention: gave up")
                raise ConcurrentModificationError(
                    "Another change to this workspace is in progress, retry shortly",
                    workspace_id=workspace_id,
                )
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[workspace_id] -= 1
            if self._users[workspace_id] == 0:
                del self._users[workspace_id]
                del self._locks[workspace_id]

    @asynccontextmanager
    async def _hold_redis(self, workspace_id: str) -> AsyncIterator[None]:
        lock = dependencies.redis_client.lock(
            f"{REDIS_LOCK_PREFIX}{workspace_id}",
            timeout=settings.lock_ttl_seconds,
            blocking_timeout=self.effective_timeout,
        )
        if not await lock.acquire():
            logger.warning(f"Workspace {workspace_id} redis lock contention: gave up")
            raise ConcurrentModificationError(
                "Another change to this workspace is in progress, retry shortly",
                workspace_id=workspace_id,
            )
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                logger.error(f"Workspace {workspace_id} lock expired before release: {e}")


workspace_locks = WorkspaceLocks()
