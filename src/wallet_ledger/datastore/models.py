"""SQLAlchemy ORM models for the transaction store.

Categories are not stored; they are recomputed from the record on read.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from wallet_ledger.ledger.models import Direction, TransactionRecord


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ledger tables."""


class TimestampMixin:
    """Row created / updated timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class TransactionRow(TimestampMixin, Base):
    """A normalized wallet transaction, self-transfers included."""

    __tablename__ = "ledger_transactions"

    txid: Mapped[str] = mapped_column(String(128), primary_key=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    direction: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    confirmations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    block_height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    unconfirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    counterpart_address: Mapped[str | None] = mapped_column(String(256), nullable=True)
    fee: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    filtered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    @classmethod
    def values_from(cls, record: TransactionRecord) -> dict[str, object]:
        """Column values for *record*, suitable for insert or update."""
        return {
            "txid": record.txid,
            "amount": record.amount,
            "direction": record.direction.value,
            "timestamp": record.timestamp,
            "confirmations": record.confirmations,
            "block_height": record.block_height,
            "unconfirmed": record.unconfirmed,
            "memo": record.memo,
            "counterpart_address": record.counterpart_address,
            "fee": record.fee,
            "filtered": record.filtered,
        }

    def to_record(self) -> TransactionRecord:
        """Convert back to an immutable :class:`TransactionRecord`."""
        return TransactionRecord(
            txid=self.txid,
            amount=self.amount,
            direction=Direction(self.direction),
            timestamp=_as_utc(self.timestamp),
            confirmations=self.confirmations,
            block_height=self.block_height,
            unconfirmed=self.unconfirmed,
            memo=self.memo,
            counterpart_address=self.counterpart_address,
            fee=self.fee,
            filtered=self.filtered,
        )
