"""
Refresh scheduler - timers that feed commands into the orchestrator.

Jobs never touch dashboard state themselves; each one only enqueues a
command, so refresh cycles still run one at a time inside the orchestrator.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from worldwatch.messages import CommandType
from worldwatch.orchestrator import DashboardOrchestrator
from worldwatch.settings import Settings, global_settings


class RefreshScheduler:
    """Interval timers for every live refresh and the periodic snapshot."""

    def __init__(
        self, orchestrator: DashboardOrchestrator, settings: Settings | None = None
    ):
        self.scheduler = AsyncIOScheduler()
        self.orchestrator = orchestrator
        self.settings = settings or global_settings
        self._is_running = False

    async def _enqueue(self, command_type: CommandType) -> None:
        # Coroutine job: runs on the event loop, so put_nowait is safe
        logger.debug(f"[Scheduler] Enqueue {command_type.value}")
        self.orchestrator.submit(command_type)

    def _jobs(self) -> list[tuple[str, str, CommandType, int]]:
        settings = self.settings
        return [
            ("news_refresh", "News Refresh", CommandType.REFRESH_NEWS,
             settings.feeds_refresh_minutes),
            ("markets_refresh", "Markets Refresh", CommandType.REFRESH_MARKETS,
             settings.markets_refresh_minutes),
            ("predictions_refresh", "Predictions Refresh", CommandType.REFRESH_PREDICTIONS,
             settings.predictions_refresh_minutes),
            ("seismic_refresh", "Seismic Refresh", CommandType.REFRESH_SEISMIC,
             settings.seismic_refresh_minutes),
            ("snapshot_save", "Snapshot Save", CommandType.SAVE_SNAPSHOT,
             settings.snapshot_interval_minutes),
        ]

    def register_jobs(self) -> None:
        for job_id, name, command_type, minutes in self._jobs():
            self.scheduler.add_job(
                self._enqueue,
                trigger="interval",
                minutes=minutes,
                args=[command_type],
                id=job_id,
                name=name,
                replace_existing=True,
            )
            logger.info(f"{name} job: every {minutes} min")

    def start(self) -> None:
        """Start the scheduler; must be called from inside the running event loop."""
        if self._is_running:
            logger.warning("RefreshScheduler is already running")
            return

        self.register_jobs()
        self.scheduler.start()
        self._is_running = True
        logger.info("RefreshScheduler started")

    def stop(self) -> None:
        if not self._is_running:
            logger.warning("RefreshScheduler is not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("RefreshScheduler stopped")

    def is_running(self) -> bool:
        return self._is_running
