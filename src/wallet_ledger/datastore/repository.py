"""Transaction repository - persistence for normalized transactions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import String, func, or_, select

from wallet_ledger.datastore.models import TransactionRow
from wallet_ledger.ledger.models import Direction, TransactionFilter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy import Select

    from wallet_ledger.datastore.client import Datastore
    from wallet_ledger.ledger.models import TransactionRecord

logger = logging.getLogger(__name__)


class TransactionStore(Protocol):
    """Storage seam used by the engine and the sync cursor."""

    async def upsert_many(self, records: Iterable[TransactionRecord]) -> int: ...

    async def get(self, txid: str) -> TransactionRecord | None: ...

    async def query(
        self,
        *,
        limit: int,
        offset: int = 0,
        type: TransactionFilter | str | None = None,  # noqa: A002
        search: str = "",
        include_filtered: bool = False,
    ) -> list[TransactionRecord]: ...

    async def count(
        self,
        *,
        type: TransactionFilter | str | None = None,  # noqa: A002
        search: str = "",
        include_filtered: bool = False,
    ) -> int: ...


def _apply_filters(
    stmt: Select,
    type_filter: TransactionFilter,
    search: str,
    include_filtered: bool,
) -> Select:
    if not include_filtered:
        stmt = stmt.where(TransactionRow.filtered.is_(False))

    if type_filter is TransactionFilter.SENT:
        stmt = stmt.where(TransactionRow.direction == Direction.SENT.value)
    elif type_filter is TransactionFilter.RECEIVED:
        stmt = stmt.where(TransactionRow.direction == Direction.RECEIVED.value)
    elif type_filter is TransactionFilter.PENDING:
        stmt = stmt.where(TransactionRow.confirmations == 0)

    term = search.strip().lower()
    if term:
        columns = (TransactionRow.txid, TransactionRow.counterpart_address, TransactionRow.memo)
        stmt = stmt.where(
            or_(*(func.lower(c, type_=String).contains(term, autoescape=True) for c in columns))
        )
    return stmt


class TransactionRepository:
    """SQLAlchemy-backed :class:`TransactionStore`."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def upsert_many(self, records: Iterable[TransactionRecord]) -> int:
        """Insert new records and overwrite existing ones by txid.

        Returns:
            Number of records written.
        """
        # Last occurrence of a txid wins.
        latest = {r.txid: r for r in records}
        written = 0
        async with self._ds.session() as session:
            for record in latest.values():
                values = TransactionRow.values_from(record)
                row = await session.get(TransactionRow, record.txid)
                if row is None:
                    session.add(TransactionRow(**values))
                else:
                    for key, value in values.items():
                        setattr(row, key, value)
                written += 1
            await session.commit()
        logger.debug("Stored %d transaction(s)", written)
        return written

    async def get(self, txid: str) -> TransactionRecord | None:
        """Find a transaction by txid, self-transfers included."""
        async with self._ds.session() as session:
            row = await session.get(TransactionRow, txid)
            return row.to_record() if row else None

    async def query(
        self,
        *,
        limit: int,
        offset: int = 0,
        type: TransactionFilter | str | None = None,  # noqa: A002
        search: str = "",
        include_filtered: bool = False,
    ) -> list[TransactionRecord]:
        """List transactions newest first.

        Args:
            limit: Maximum rows to return.
            offset: Rows to skip.
            type: ``sent``, ``received``, ``pending`` or ``all``.
            search: Case-insensitive substring of txid, address or memo.
            include_filtered: Include flagged self-transfers.
        """
        stmt = _apply_filters(
            select(TransactionRow),
            TransactionFilter.parse(type),
            search,
            include_filtered,
        )
        stmt = stmt.order_by(TransactionRow.timestamp.desc(), TransactionRow.txid)
        stmt = stmt.offset(offset).limit(limit)
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return [row.to_record() for row in result.scalars().all()]

    async def count(
        self,
        *,
        type: TransactionFilter | str | None = None,  # noqa: A002
        search: str = "",
        include_filtered: bool = False,
    ) -> int:
        """Count transactions matching the same filters as :meth:`query`."""
        stmt = _apply_filters(
            select(func.count()).select_from(TransactionRow),
            TransactionFilter.parse(type),
            search,
            include_filtered,
        )
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def all(self, *, include_filtered: bool = False) -> list[TransactionRecord]:
        """Every stored transaction, newest first."""
        stmt = _apply_filters(select(TransactionRow), TransactionFilter.ALL, "", include_filtered)
        stmt = stmt.order_by(TransactionRow.timestamp.desc(), TransactionRow.txid)
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return [row.to_record() for row in result.scalars().all()]

    async def fetch_page(
        self,
        *,
        page: int,
        page_size: int,
        search: str = "",
        type: TransactionFilter | str | None = None,  # noqa: A002
    ) -> list[TransactionRecord]:
        """Zero-based page of the default (unfiltered) list view."""
        return await self.query(limit=page_size, offset=page * page_size, type=type, search=search)
