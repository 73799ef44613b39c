"""Apply alembic migrations at startup."""
import os
import subprocess
import sys
from pathlib import Path

from taskflow.logging_config import get_logger

logger = get_logger(__name__)

MIGRATION_TIMEOUT_SECONDS = 60


def get_alembic_dir() -> Path:
    """Directory holding alembic.ini (packages/server)."""
    return Path(__file__).parent.parent


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() != "false"


def ensure_migrations() -> bool:
    """
    Bring the schema to head with ``alembic upgrade head``.

    Runs in a subprocess because alembic's async env.py drives its own event
    loop, which cannot nest inside the FastAPI lifespan. Returns True when
    migrations ran cleanly. A failure exits the process unless
    REQUIRE_MIGRATIONS=false.
    """
    if not _env_flag("AUTO_MIGRATE"):
        logger.info("AUTO_MIGRATE=false, skipping migrations")
        return False

    alembic_dir = get_alembic_dir()
    logger.info(f"Running database migrations in {alembic_dir}")

    try:
        result = subprocess.run(
            ["alembic", "-c", "alembic.ini", "upgrade", "head"],
            cwd=alembic_dir,
            capture_output=True,
            text=True,
            timeout=MIGRATION_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Migrations timed out after {MIGRATION_TIMEOUT_SECONDS}s")
        sys.exit(1)
    except FileNotFoundError:
        logger.warning("alembic executable not found, skipping migrations")
        return False

    if result.returncode != 0:
        logger.error(f"Migration failed: {result.stderr.strip()}")
        if _env_flag("REQUIRE_MIGRATIONS"):
            sys.exit(1)
        return False

    # alembic reports progress on stderr
    for line in (result.stdout + result.stderr).splitlines():
        if line.strip():
            logger.info(f"  {line}")
    logger.info("Migrations complete")
    return True
