"""
BaselineStore - rolling per-metric baselines with best-effort persistence.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worldwatch.analysis.baseline import fold, merge
from worldwatch.analysis.types import Baseline
from worldwatch.clock import Clock, SystemClock
from worldwatch.datastore.repositories import BaselineRepository
from worldwatch.services.errors import PersistenceError
from worldwatch.services.storage import DurableStore


class BaselineStore(DurableStore):
    """
    Owns the baselines of every tracked metric.

    A key is only written back once its stored record has been read, so a
    failed read can never replace a longer history with a shorter one.
    Observations made while the record is unreadable are kept in a pending
    accumulator and merged in on the first successful read.

    Usage:
        store = BaselineStore(db.session_factory)
        baseline = await store.update("news:politics", len(items))
        result = deviation(len(items), baseline)
    """

    store_id = "Baseline"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session_factory)
        self.clock = clock or SystemClock()
        # Baselines known to include the stored record
        self._baselines: dict[str, Baseline] = {}
        # Observations folded while the stored record could not be read
        self._pending: dict[str, Baseline] = {}

    async def _load(self, key: str) -> Baseline | None:
        """
        Return the baseline for `key` including any pending observations.

        Raises:
            PersistenceError: The stored record could not be read
        """
        if key in self._baselines:
            return self._baselines[key]

        async with self._session() as session:
            stored = await BaselineRepository(session).get(key)

        pending = self._pending.pop(key, None)
        if pending is not None:
            stored = merge(stored or Baseline(key=key), pending)
            logger.info(
                f"[Baseline] {key}: merged {pending.sample_count} observations "
                f"made while storage was unreadable"
            )
        if stored is not None:
            self._baselines[key] = stored
        return stored

    async def get(self, key: str) -> Baseline | None:
        try:
            return await self._load(key)
        except PersistenceError as e:
            self._degrade(f"load '{key}'", e)
            return self._pending.get(key)

    async def update(self, key: str, observed: float) -> Baseline:
        """
        Fold an observation into the baseline for `key` and persist it.

        The updated baseline is returned even when it could not be persisted.
        """
        now = self.clock.now()
        try:
            current = await self._load(key)
        except PersistenceError as e:
            self._degrade(f"load '{key}'", e)
            pending = fold(self._pending.get(key) or Baseline(key=key), observed, at=now)
            self._pending[key] = pending
            return pending

        updated = fold(current or Baseline(key=key), observed, at=now)
        self._baselines[key] = updated

        try:
            async with self._session() as session:
                await BaselineRepository(session).upsert(updated)
            self._recover()
        except PersistenceError as e:
            self._degrade(f"update '{key}'", e)

        logger.debug(
            f"[Baseline] {key}: observed={observed} mean={updated.mean:.2f} "
            f"stddev={updated.stddev:.2f} n={updated.sample_count}"
        )
        return updated
