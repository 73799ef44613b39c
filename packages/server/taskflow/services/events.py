"""Best-effort event publication for dashboards and other listeners."""
import json

from taskflow import dependencies
from taskflow.config import settings
from taskflow.logging_config import get_logger
from taskflow.utils import now_ms

logger = get_logger(__name__)


async def publish_event(event_type: str, data: dict) -> bool:
    """Publish event to the global stream for real-time updates.

    Returns False when Redis is not connected or the write failed; callers
    never fail a request because of it.
    """
    if not dependencies.redis_client:
        return False
    try:
        logger.debug(f"Publishing Redis event: type={event_type}")
        event = {"type": event_type, **data, "timestamp": now_ms()}
        await dependencies.redis_client.xadd(
            settings.events_stream, {"data": json.dumps(event)}
        )
        return True
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} event: {e}")
        return False
