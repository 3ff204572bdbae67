"""
ARQ Worker Configuration

Periodic system-wide sweep of expired pending invitations. Expiry is
normally applied lazily by the API; this job catches invitations nobody
has touched since they expired.

Run with:
    arq bookcollab.worker.WorkerSettings
"""

import logging
from typing import Any
from urllib.parse import urlparse

from arq import cron
from arq.connections import RedisSettings

from .config import settings
from .database import async_session_maker
from .services.expiry_service import ExpiryService
from .utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# Upper bound on batches per run
MAX_SWEEP_BATCHES = 20


def parse_redis_url(url: str) -> RedisSettings:
    """
    Parse a Redis URL into ARQ RedisSettings.

    Format: redis://host:port/db or redis://:password@host:port/db
    """
    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        database=int(parsed.path.lstrip("/") or 0),
    )


def parse_schedule_set(value: str) -> set[int]:
    """
    Parse a comma-separated string of integers into a set.

    Examples:
        "0,15,30,45" -> {0, 15, 30, 45}
    """
    return {int(x.strip()) for x in value.split(",") if x.strip()}


# =============================================================================
# Expiry Sweep
# =============================================================================


async def sweep_expired_invites(ctx: dict[str, Any]) -> dict[str, Any]:
    """
    Expire overdue pending invitations across all books.

    Runs batches until one comes back short or MAX_SWEEP_BATCHES have run.

    Returns:
        dict with the number of invitations expired
    """
    logger.info("Running scheduled invitation expiry sweep...")

    expired = 0
    batch_size = settings.sweep_batch_size

    try:
        async with async_session_maker() as db:
            expiry = ExpiryService(db, settings)
            for _ in range(MAX_SWEEP_BATCHES):
                count = await expiry.sweep_all(limit=batch_size)
                expired += count
                if count < batch_size:
                    break

        logger.info(f"Expiry sweep complete: {expired} invitations expired")
    except Exception as e:
        logger.error(f"Error running expiry sweep: {e}", exc_info=True)

    return {
        "expired": expired,
        "run_at": utcnow().isoformat(),
    }


async def startup(ctx: dict[str, Any]) -> None:
    logger.info("ARQ worker starting up...")


async def shutdown(ctx: dict[str, Any]) -> None:
    logger.info("ARQ worker shutting down...")


# =============================================================================
# Worker Settings
# =============================================================================


class WorkerSettings:
    """ARQ worker configuration."""

    redis_settings = parse_redis_url(settings.redis_url)

    functions = [sweep_expired_invites]

    # ARQ_SWEEP_MINUTES: comma-separated minutes (default "0,15,30,45")
    cron_jobs = [
        cron(sweep_expired_invites, minute=parse_schedule_set(settings.arq_sweep_minutes), second=0),
    ]

    on_startup = startup
    on_shutdown = shutdown

    max_jobs = 10
    job_timeout = 300
    keep_result = 3600
