"""
Worldwatch entry point.
Loads normalized feeds on a timer and keeps the dashboard state current.
"""

import asyncio
import sys

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from worldwatch.datasource import JsonDirectorySource
from worldwatch.datastore import Database
from worldwatch.orchestrator import DashboardOrchestrator
from worldwatch.scheduler import RefreshScheduler
from worldwatch.services import BaselineStore, SignalHistory, SnapshotStore
from worldwatch.settings import global_settings


async def publish_notifications(orchestrator: DashboardOrchestrator) -> None:
    """Drain the outbox; a presentation layer would render these."""
    while True:
        notification = await orchestrator.outbox.get()
        logger.debug(
            f"[Outbox] {notification.kind} at {notification.created_at.isoformat()}"
        )
        orchestrator.outbox.task_done()


async def main() -> None:
    settings = global_settings
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())
    logger.info("Starting Worldwatch...")

    database = Database(settings.database_url, echo=settings.database_echo)
    session_factory = None
    try:
        await database.init()
        session_factory = database.session_factory
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database unavailable, continuing in memory: {e}")

    orchestrator = DashboardOrchestrator(
        source=JsonDirectorySource(settings.ingest_dir),
        baselines=BaselineStore(session_factory),
        signal_history=SignalHistory(session_factory),
        snapshots=SnapshotStore(session_factory),
        settings=settings,
    )
    scheduler = RefreshScheduler(orchestrator, settings)
    publisher = asyncio.create_task(publish_notifications(orchestrator))

    try:
        logger.info("Performing initial load...")
        await orchestrator.startup()

        scheduler.start()
        logger.info("Worldwatch is running. Press Ctrl+C to stop.")
        await orchestrator.run()

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received interrupt signal, shutting down...")
    finally:
        publisher.cancel()
        if scheduler.is_running():
            scheduler.stop()

        logger.info("Closing database connections...")
        await database.close()

        logger.info("Worldwatch stopped")


if __name__ == "__main__":
    asyncio.run(main())
