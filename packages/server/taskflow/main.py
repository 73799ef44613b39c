from contextlib import asynccontextmanager
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from sqlalchemy import text

from taskflow import dependencies
from taskflow.config import settings
from taskflow.errors import TaskflowError
from taskflow.logging_config import setup_logging, get_logger

logger = get_logger(__name__)
from taskflow.database import init_db_engine, close_db_engine
from taskflow.migration_check import ensure_migrations
from taskflow.routers import dependencies as dependencies_router
from taskflow.routers import gantt, tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - connect/disconnect Redis and database."""
    # Initialize logging first
    setup_logging()

    try:
        settings.validate()
        logger.info(f"Workspace lock backend: {settings.lock_backend}")
    except RuntimeError as e:
        logger.critical(f"Engine configuration error: {e}")
        raise

    # Initialize Redis with retry/reconnect settings
    dependencies.redis_client = redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
        retry_on_timeout=True,
        health_check_interval=30,
    )

    try:
        await dependencies.redis_client.ping()
        logger.info(f"Connected to Redis at {settings.redis_url}")
    except Exception as e:
        logger.warning(f"Could not connect to Redis: {e}")
        logger.warning("API will continue without event publication")
        if settings.lock_backend == "redis":
            logger.warning("Falling back to process-local workspace locks")
        await dependencies.redis_client.close()
        dependencies.redis_client = None

    # Initialize async database engine
    try:
        await init_db_engine()
        logger.info("Database engine initialized")
    except Exception as e:
        logger.critical(f"Could not initialize database engine: {e}")
        raise

    # Verify database migrations are applied
    try:
        ensure_migrations()
    except Exception as e:
        logger.critical(f"Migration check failed: {e}")
        raise

    yield

    # Close async database engine
    try:
        await close_db_engine()
        logger.info("Database engine closed")
    except Exception as e:
        logger.error(f"Error closing database engine: {e}")

    if dependencies.redis_client:
        try:
            await dependencies.redis_client.close()
            logger.info("Disconnected from Redis")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")


app = FastAPI(
    title="Taskflow API",
    version="0.1.0",
    description="Task dependencies and Gantt timeline cascade engine",
    lifespan=lifespan,
)

# CORS
# CORS_ORIGINS env var controls allowed origins.
#   "*"              → wildcard (allow any origin, credentials disabled)
#   unset / empty    → wildcard (same default behaviour)
#   "http://a,https://b" → explicit origin list (credentials enabled)
_cors_origins_env = os.getenv("CORS_ORIGINS", "*").strip() or "*"
if _cors_origins_env == "*":
    _cors_origins = ["*"]
    _cors_credentials = False
else:
    _cors_origins = [o.strip() for o in _cors_origins_env.split(",") if o.strip()]
    _cors_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaskflowError)
async def taskflow_exception_handler(request: Request, exc: TaskflowError):
    """Render domain errors with the status code they carry."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(
            f"{request.method} {request.url.path} rejected: "
            f"{type(exc).__name__}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return proper JSON response."""
    error_detail = str(exc)
    error_type = type(exc).__name__

    # Log the full traceback
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {error_type}: {error_detail}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"{error_type}: {error_detail}",
            "type": error_type,
            "path": str(request.url.path),
        },
    )


app.include_router(tasks.router, prefix="/v1", tags=["tasks"])
app.include_router(dependencies_router.router, prefix="/v1", tags=["dependencies"])
app.include_router(gantt.router, prefix="/v1/gantt", tags=["gantt"])


@app.get("/v1/status")
async def status():
    """Get API health status."""
    redis_ok = False
    if dependencies.redis_client:
        try:
            redis_ok = await dependencies.redis_client.ping()
        except Exception:
            pass

    database_ok = False
    try:
        from taskflow.database import AsyncSessionLocal

        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            database_ok = True
    except Exception:
        pass

    return {
        "status": "ok",
        "version": os.getenv("TASKFLOW_BUILD_VERSION", "dev"),
        "redis_connected": redis_ok,
        "database_connected": database_ok,
        "lock_backend": settings.lock_backend,
    }
