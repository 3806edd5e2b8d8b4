"""
Database models, SQLAlchemy 2.0 declarative mapping.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models."""

    pass


class BaselineDB(Base):
    """Rolling baseline per metric key."""

    __tablename__ = "baselines"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    mean: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    m2: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    sample_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Baseline(key={self.key}, n={self.sample_count}, mean={self.mean:.2f})>"


class SnapshotDB(Base):
    """Dashboard snapshot, keyed by capture time in epoch microseconds."""

    __tablename__ = "snapshots"

    taken_at_us: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Snapshot(taken_at_us={self.taken_at_us})>"


class SignalHistoryDB(Base):
    """Append-only log of emitted signals."""

    __tablename__ = "signal_history"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    signal_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(64), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("idx_signal_kind_created", "kind", "created_at"),)

    def __repr__(self) -> str:
        return f"<SignalHistory(seq={self.seq}, kind={self.kind})>"
