"""
SignalHistory - append-only audit log of emitted signals.
"""

from collections import deque

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worldwatch.analysis.types import Signal
from worldwatch.datastore.repositories import SignalHistoryRepository
from worldwatch.services.errors import PersistenceError
from worldwatch.services.storage import DurableStore


class SignalHistory(DurableStore):
    """
    Records every emitted signal in append order.

    No deduplication: the same situation detected on consecutive refresh
    cycles is recorded once per cycle. A bounded in-memory tail keeps recent
    entries readable while the database is unavailable.
    """

    store_id = "SignalHistory"
    MEMORY_TAIL_SIZE = 500

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        super().__init__(session_factory)
        self._tail: deque[Signal] = deque(maxlen=self.MEMORY_TAIL_SIZE)

    async def append(self, signals: list[Signal]) -> None:
        if not signals:
            return

        self._tail.extend(signals)
        try:
            async with self._session() as session:
                await SignalHistoryRepository(session).append(signals)
            self._recover()
        except PersistenceError as e:
            self._degrade(f"append {len(signals)} signals", e)
            return

        logger.debug(f"[SignalHistory] Appended {len(signals)} signals")

    async def recent(self, limit: int = 100) -> list[Signal]:
        """Newest `limit` signals, oldest first."""
        try:
            async with self._session() as session:
                return await SignalHistoryRepository(session).recent(limit)
        except PersistenceError as e:
            self._degrade("read", e)
            return list(self._tail)[-limit:] if limit > 0 else []

    async def count(self) -> int:
        try:
            async with self._session() as session:
                return await SignalHistoryRepository(session).count()
        except PersistenceError as e:
            self._degrade("count", e)
            return len(self._tail)
