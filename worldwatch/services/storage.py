"""
Best-effort persistence shared by the baseline, signal and snapshot stores.

Stores keep working from memory when the database is missing or failing:
every durable operation goes through `_session()`, which turns driver and
filesystem errors into PersistenceError for the store to log and absorb.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worldwatch.services.errors import PersistenceError

PERSISTENCE_ERRORS: tuple[type[BaseException], ...] = (SQLAlchemyError, OSError)


class DurableStore:
    """Base class for stores backed by an optional session factory."""

    store_id = "store"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory
        self._degraded = session_factory is None
        if self._degraded:
            logger.warning(f"[{self.store_id}] No database configured, running in memory")

    @property
    def degraded(self) -> bool:
        """True once persistence has failed or was never configured."""
        return self._degraded

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session that commits on success; storage errors become PersistenceError."""
        if self._session_factory is None:
            raise PersistenceError("No database configured", service_id=self.store_id)
        try:
            async with self._session_factory() as session:
                yield session
                await session.commit()
        except PERSISTENCE_ERRORS as e:
            raise PersistenceError(
                f"{type(e).__name__}: {e}", service_id=self.store_id
            ) from e

    def _degrade(self, operation: str, error: PersistenceError) -> None:
        if self._session_factory is not None:
            logger.warning(f"[{self.store_id}] {operation} fell back to memory: {error}")
        self._degraded = True

    def _recover(self) -> None:
        if self._degraded and self._session_factory is not None:
            logger.info(f"[{self.store_id}] Persistence available again")
        self._degraded = self._session_factory is None
