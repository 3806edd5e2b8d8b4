"""
Repository layer - data access for baselines, snapshots and signal history.
"""

from datetime import datetime, timedelta, timezone

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from worldwatch.analysis.types import Baseline, Signal, Snapshot, ensure_utc
from worldwatch.datastore.models import BaselineDB, SignalHistoryDB, SnapshotDB

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_micros(value: datetime) -> int:
    """Exact integer microseconds since the epoch."""
    return (ensure_utc(value) - _EPOCH) // timedelta(microseconds=1)


def from_epoch_micros(value: int) -> datetime:
    return _EPOCH + timedelta(microseconds=value)


def _naive_utc(value: datetime) -> datetime:
    # SQLite DateTime columns store naive values; keep them in UTC
    return ensure_utc(value).replace(tzinfo=None)


class BaselineRepository:
    """Baseline records keyed by metric key."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: str) -> Baseline | None:
        row = await self.session.get(BaselineDB, key)
        if row is None:
            return None
        return Baseline(
            key=row.key,
            mean=row.mean,
            m2=row.m2,
            sample_count=row.sample_count,
            last_updated=ensure_utc(row.last_updated) if row.last_updated else None,
        )

    async def upsert(self, baseline: Baseline) -> None:
        row = await self.session.get(BaselineDB, baseline.key)
        last_updated = (
            _naive_utc(baseline.last_updated) if baseline.last_updated else None
        )
        if row is None:
            self.session.add(
                BaselineDB(
                    key=baseline.key,
                    mean=baseline.mean,
                    m2=baseline.m2,
                    sample_count=baseline.sample_count,
                    last_updated=last_updated,
                )
            )
        else:
            row.mean = baseline.mean
            row.m2 = baseline.m2
            row.sample_count = baseline.sample_count
            row.last_updated = last_updated


class SnapshotRepository:
    """Snapshots keyed by capture timestamp, stored as JSON payloads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, snapshot: Snapshot) -> None:
        key = to_epoch_micros(snapshot.timestamp)
        payload = snapshot.model_dump_json()
        row = await self.session.get(SnapshotDB, key)
        if row is None:
            self.session.add(SnapshotDB(taken_at_us=key, payload=payload))
        else:
            row.payload = payload
            logger.debug(f"Overwrote snapshot at {snapshot.timestamp.isoformat()}")

    async def get(self, timestamp: datetime) -> Snapshot | None:
        row = await self.session.get(SnapshotDB, to_epoch_micros(timestamp))
        if row is None:
            return None
        return Snapshot.model_validate_json(row.payload)

    async def list_timestamps(self) -> list[datetime]:
        result = await self.session.execute(
            select(SnapshotDB.taken_at_us).order_by(SnapshotDB.taken_at_us)
        )
        return [from_epoch_micros(v) for v in result.scalars().all()]

    async def delete_older_than(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            delete(SnapshotDB).where(SnapshotDB.taken_at_us < to_epoch_micros(cutoff))
        )
        return result.rowcount or 0


class SignalHistoryRepository:
    """Append-only signal log, ordered by insertion sequence."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, signals: list[Signal]) -> None:
        for signal in signals:
            self.session.add(
                SignalHistoryDB(
                    signal_id=signal.id,
                    kind=signal.kind,
                    confidence=signal.confidence,
                    created_at=_naive_utc(signal.created_at),
                    payload=signal.model_dump_json(),
                )
            )

    async def recent(self, limit: int = 100) -> list[Signal]:
        """Newest `limit` entries, returned oldest first."""
        result = await self.session.execute(
            select(SignalHistoryDB.payload)
            .order_by(SignalHistoryDB.seq.desc())
            .limit(limit)
        )
        payloads = list(result.scalars().all())
        payloads.reverse()
        return [Signal.model_validate_json(p) for p in payloads]

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(SignalHistoryDB.seq)))
        return result.scalar_one()
