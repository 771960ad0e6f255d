"""
SQLAlchemy models for Sequestre persistence.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from sequestre.domain.services.units import normalize_decimal


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExactDecimal(TypeDecorator):
    """
    NUMERIC(38, 18) that round-trips exactly on every backend.

    SQLite has no exact numeric storage, so values are kept as text there.
    """

    impl = Numeric(38, 18)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(80))
        return dialect.type_descriptor(Numeric(38, 18, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return str(Decimal(value))
        return Decimal(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return normalize_decimal(Decimal(value))


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always loads as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""


class MilestoneModel(Base):
    """Milestone mirror row, one per (network, escrow, index)."""

    __tablename__ = "milestones"
    __table_args__ = (
        UniqueConstraint(
            "network",
            "escrow_id",
            "milestone_index",
            name="uq_milestones_network_escrow_index",
        ),
        Index("ix_milestones_status", "status"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    network: Mapped[str] = mapped_column(String(32), nullable=False)
    escrow_id: Mapped[str] = mapped_column(String(78), nullable=False)
    milestone_index: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(ExactDecimal, nullable=False)
    completion_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    hash: Mapped[str] = mapped_column(String(66), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    proof_data: Mapped[str | None] = mapped_column(Text)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow
    )


class StablecoinTransactionModel(Base):
    """Confirmed stablecoin transfer log row."""

    __tablename__ = "stablecoin_transactions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    tx_hash: Mapped[str] = mapped_column(
        String(66), unique=True, index=True, nullable=False
    )
    from_address: Mapped[str] = mapped_column(String(42), index=True, nullable=False)
    to_address: Mapped[str] = mapped_column(String(42), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(ExactDecimal, nullable=False)
    token: Mapped[str] = mapped_column(String(16), nullable=False)
    network: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    block_number: Mapped[int | None] = mapped_column(BigInteger)
    gas_used: Mapped[int | None] = mapped_column(BigInteger)
    effective_gas_price: Mapped[str | None] = mapped_column(String(78))
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
