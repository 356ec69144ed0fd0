"""
Snapshot persistence for allocation runs

Writes one aggregate row plus one row per release. A failed write raises
PersistenceError; callers log it and still return the computed result.
"""

import logging

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.sql import func

from .exceptions import PersistenceError
from .models import ProcessingContext

logger = logging.getLogger(__name__)

Base = declarative_base()


class AllocationSnapshot(Base):
    """Aggregate totals of one allocation run"""

    __tablename__ = "allocation_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_name = Column(Text, nullable=True)
    mode = Column(Text, nullable=False)
    rate_policy = Column(Text, nullable=False)
    first_run = Column(Boolean, nullable=False, default=False)
    total_gross = Column(Numeric(14, 2), nullable=False)
    total_client_net = Column(Numeric(14, 2), nullable=False)
    total_fee_owed = Column(Numeric(14, 2), nullable=False)
    already_paid = Column(Numeric(14, 2), nullable=False)
    total_fee_collected = Column(Numeric(14, 2), nullable=False)
    remaining_balance = Column(Numeric(14, 2), nullable=False)
    result_json = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    rows = relationship("AllocationSnapshotRow", back_populates="snapshot", cascade="all, delete-orphan")


class AllocationSnapshotRow(Base):
    """One release of a persisted allocation run"""

    __tablename__ = "allocation_snapshot_rows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    snapshot_id = Column(Integer, ForeignKey("allocation_snapshots.id", ondelete="CASCADE"), nullable=False)
    release_date = Column(Date, nullable=False)
    installment_amount = Column(Numeric(14, 2), nullable=False)
    client_net = Column(Numeric(14, 2), nullable=False)
    fee_charged = Column(Numeric(14, 2), nullable=False)
    effective_rate = Column(Numeric(6, 4), nullable=False)
    balance_after = Column(Numeric(14, 2), nullable=False)
    status = Column(Text, nullable=False)

    snapshot = relationship("AllocationSnapshot", back_populates="rows")


class NullSnapshotStore:
    """Used when no database is configured."""

    def save(self, ctx: ProcessingContext, result: dict) -> None:
        return None


class SQLAlchemySnapshotStore:
    """Persists allocation snapshots through a SQLAlchemy session factory."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str, create_tables: bool = False) -> "SQLAlchemySnapshotStore":
        engine = create_engine(database_url, pool_pre_ping=True)
        if create_tables:
            Base.metadata.create_all(bind=engine)
        return cls(sessionmaker(autocommit=False, autoflush=False, bind=engine))

    def save(self, ctx: ProcessingContext, result: dict) -> int:
        """Write the snapshot in one transaction and return its id."""
        totals = ctx.ledger.totals
        policy = ctx.policy
        session = self._session_factory()
        try:
            snapshot = AllocationSnapshot(
                client_name=ctx.input.client_name,
                mode=policy.mode,
                rate_policy=policy.rate_policy,
                first_run=policy.first_run,
                total_gross=totals.total_gross,
                total_client_net=totals.total_client_net,
                total_fee_owed=totals.total_fee_owed,
                already_paid=totals.already_paid,
                total_fee_collected=totals.total_fee_collected,
                remaining_balance=totals.remaining_balance,
                result_json=result,
            )
            for entry in ctx.ledger.entries:
                snapshot.rows.append(
                    AllocationSnapshotRow(
                        release_date=entry.release_date,
                        installment_amount=entry.installment_amount,
                        client_net=entry.client_net,
                        fee_charged=entry.fee_charged,
                        effective_rate=entry.effective_rate,
                        balance_after=entry.balance_after,
                        status=entry.status,
                    )
                )
            session.add(snapshot)
            session.commit()
            logger.info(f"Snapshot {snapshot.id} saved with {len(ctx.ledger.entries)} rows")
            return snapshot.id
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to save allocation snapshot: {e}") from e
        finally:
            session.close()
