"""Background session sweeping and graceful shutdown.

The idle sweeper is started in the application lifespan and cancelled at
shutdown, before the session store and database engine are closed.
"""
import asyncio
from typing import Optional

from intake_agent.core.session_store_base import SessionStoreBase
from intake_agent.utils.logger import get_logger
from intake_agent.utils.structured_logging import log_error

logger = get_logger(__name__)


async def sweep_idle_sessions(store: SessionStoreBase, interval_seconds: float) -> None:
    """Evict idle sessions every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await store.evict_idle()
        except Exception as e:
            log_error(logger, e, "Idle session sweep failed")
            continue
        if removed:
            logger.debug(f"Idle sweep removed {removed} session(s)")


def start_idle_sweeper(store: SessionStoreBase, interval_seconds: float) -> asyncio.Task:
    task = asyncio.create_task(sweep_idle_sessions(store, interval_seconds))
    logger.info(f"Idle session sweeper started (every {interval_seconds}s)")
    return task


async def shutdown(
    store: SessionStoreBase,
    sweeper: Optional[asyncio.Task] = None,
    engine=None,
) -> None:
    """Stop the sweeper, then release the session store and database pool.

    Each step runs even if an earlier one failed.
    """
    logger.info("Starting graceful shutdown sequence...")

    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        logger.info("Idle session sweeper stopped")

    try:
        remaining = await store.count()
        logger.info(f"Sessions still open at shutdown: {remaining}")
        await store.close()
    except Exception as e:
        log_error(logger, e, "Error closing session store")

    if engine is not None:
        engine.dispose()
        logger.info("Database connection pool disposed")

    logger.info("Graceful shutdown complete")
