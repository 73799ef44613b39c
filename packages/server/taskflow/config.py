"""Engine configuration, read from environment variables."""

import os
from dataclasses import dataclass, field


@dataclass
class EngineSettings:
    """Centralised engine configuration read from env vars at import time."""

    # "local" serializes per process; "redis" serializes across API processes.
    lock_backend: str = field(
        default_factory=lambda: os.getenv("WORKSPACE_LOCK_BACKEND", "local").lower()
    )

    # Seconds to wait for a workspace lock before reporting contention.
    lock_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("WORKSPACE_LOCK_TIMEOUT", "5"))
    )

    # Expiry of a Redis workspace lock, so a crashed holder cannot wedge it.
    lock_ttl_seconds: float = field(
        default_factory=lambda: float(os.getenv("WORKSPACE_LOCK_TTL", "30"))
    )

    redis_url: str = field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379")
    )

    # Redis stream that receives dependency and timeline events.
    events_stream: str = field(
        default_factory=lambda: os.getenv("EVENTS_STREAM", "taskflow:events:global")
    )

    def validate(self) -> None:
        """Raise if a setting has an unusable value."""
        if self.lock_backend not in ("local", "redis"):
            raise RuntimeError(
                f"WORKSPACE_LOCK_BACKEND must be 'local' or 'redis', got {self.lock_backend!r}"
            )
        if self.lock_timeout_seconds <= 0:
            raise RuntimeError("WORKSPACE_LOCK_TIMEOUT must be positive")
        if self.lock_ttl_seconds <= 0:
            raise RuntimeError("WORKSPACE_LOCK_TTL must be positive")


# Singleton, imported everywhere.
settings = EngineSettings()
