"""ARQ worker entrypoint."""

import logging

from arq import cron
from arq.connections import RedisSettings

from app.core.config import get_settings
from app.workers.reconcile import deactivate_expired_listings, reactivate_renewed_listings


def _redis_settings() -> RedisSettings:
    """Parse REDIS_URL into ARQ RedisSettings."""
    settings = get_settings()
    # redis://host:port/db
    url = settings.redis_url
    # Strip scheme
    rest = url.split("://", 1)[1] if "://" in url else url
    host_port, _, db = rest.partition("/")
    host, _, port = host_port.partition(":")
    return RedisSettings(
        host=host or "localhost",
        port=int(port) if port else 6379,
        database=int(db) if db else 0,
    )


async def startup(ctx: dict) -> None:
    """Called when the worker starts."""
    from app.core.database import init_db

    logging.basicConfig(level=get_settings().log_level.upper())
    await init_db()


async def shutdown(ctx: dict) -> None:
    """Called when the worker shuts down."""


class WorkerSettings:
    """ARQ worker configuration."""
    functions = [deactivate_expired_listings, reactivate_renewed_listings]
    cron_jobs = [
        # Deactivate first so a renewal on the same day is picked up afterwards
        cron(deactivate_expired_listings, hour={3}, minute={0}),
        cron(reactivate_renewed_listings, hour={3}, minute={30}),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = _redis_settings()
    max_jobs = 10
    job_timeout = 1800  # full sweeps over all listings


if __name__ == "__main__":
    from arq import run_worker
    run_worker(WorkerSettings)  # type: ignore[arg-type]
