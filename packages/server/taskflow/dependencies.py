"""Shared runtime clients for the taskflow API."""
import redis.asyncio as redis

# Global Redis client (initialized in main.py lifespan)
redis_client: redis.Redis | None = None
