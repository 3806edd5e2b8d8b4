"""
SnapshotStore - durable point-in-time captures for playback.
"""

from datetime import datetime, timedelta

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worldwatch.analysis.types import Snapshot
from worldwatch.clock import Clock, SystemClock
from worldwatch.datastore.repositories import SnapshotRepository, to_epoch_micros
from worldwatch.services.errors import PersistenceError
from worldwatch.services.storage import DurableStore
from worldwatch.settings import SNAPSHOT_RETENTION_DAYS


class SnapshotStore(DurableStore):
    """
    Stores snapshots keyed by their timestamp.

    Snapshots that could not be written to the database are held in memory
    and still served by get()/list() until they expire.
    """

    store_id = "Snapshot"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session_factory)
        self.clock = clock or SystemClock()
        # epoch micros -> snapshot, only for writes that missed the database
        self._memory: dict[int, Snapshot] = {}

    async def save(self, snapshot: Snapshot) -> None:
        try:
            async with self._session() as session:
                await SnapshotRepository(session).save(snapshot)
            self._recover()
        except PersistenceError as e:
            self._degrade("save", e)
            self._memory[to_epoch_micros(snapshot.timestamp)] = snapshot

        logger.info(
            f"[Snapshot] Saved {snapshot.timestamp.isoformat()}: "
            f"{len(snapshot.events)} events, {len(snapshot.market_prices)} prices, "
            f"{len(snapshot.predictions)} predictions, "
            f"{len(snapshot.hotspot_levels)} hotspots"
        )

    async def get(self, timestamp: datetime) -> Snapshot | None:
        key = to_epoch_micros(timestamp)
        try:
            async with self._session() as session:
                stored = await SnapshotRepository(session).get(timestamp)
        except PersistenceError as e:
            self._degrade("get", e)
            stored = None
        except ValidationError as e:
            logger.error(
                f"[Snapshot] Stored snapshot {timestamp.isoformat()} is unreadable: "
                f"{e.error_count()} validation errors"
            )
            stored = None
        return stored or self._memory.get(key)

    async def list(self) -> list[datetime]:
        """Timestamps of all stored snapshots, oldest first."""
        timestamps: dict[int, datetime] = {
            key: snap.timestamp for key, snap in self._memory.items()
        }
        try:
            async with self._session() as session:
                for ts in await SnapshotRepository(session).list_timestamps():
                    timestamps[to_epoch_micros(ts)] = ts
        except PersistenceError as e:
            self._degrade("list", e)
        return [timestamps[key] for key in sorted(timestamps)]

    async def clean_old(self, max_age_days: int = SNAPSHOT_RETENTION_DAYS) -> int:
        """Delete snapshots older than the retention window; returns the count."""
        cutoff = self.clock.now() - timedelta(days=max_age_days)
        cutoff_key = to_epoch_micros(cutoff)

        expired = [key for key in self._memory if key < cutoff_key]
        for key in expired:
            del self._memory[key]
        deleted = len(expired)

        try:
            async with self._session() as session:
                deleted += await SnapshotRepository(session).delete_older_than(cutoff)
        except PersistenceError as e:
            self._degrade("clean", e)

        if deleted:
            logger.info(
                f"[Snapshot] Removed {deleted} snapshots older than {max_age_days} days"
            )
        return deleted
