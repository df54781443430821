"""V1 transaction list endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from wallet_ledger.api.dependencies import get_engine
from wallet_ledger.api.v1.schemas import TransactionPageResponse, transaction_response
from wallet_ledger.engine.client import LedgerEngine  # noqa: TC001
from wallet_ledger.ledger.models import TransactionFilter

router = APIRouter(tags=["transaction"])


@router.get("/transactions")
async def list_transactions(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
    page: Annotated[int, Query(ge=0)] = 0,
    search: str = "",
    type: TransactionFilter = TransactionFilter.ALL,  # noqa: A002
) -> dict[str, Any]:
    """One zero-based page of the classified list, self-transfers hidden."""
    cursor = engine.new_cursor()
    await cursor.apply_filter(search, type)
    while cursor.page < page and await cursor.load_more():
        pass

    start = cursor.page * cursor.page_size if cursor.page == page else len(cursor.items)
    return TransactionPageResponse(
        items=[transaction_response(r) for r in cursor.items[start:]],
        page=page,
        page_size=cursor.page_size,
        has_more=cursor.has_more and cursor.page == page,
        search=cursor.search,
        type=cursor.type_filter.value,
    ).model_dump(mode="json")


@router.get("/transactions/{txid}")
async def get_transaction(
    txid: str,
    engine: Annotated[LedgerEngine, Depends(get_engine)],
) -> dict[str, Any]:
    """A single transaction by txid, with its category."""
    record = await engine.get_transaction(txid)
    return transaction_response(record).model_dump(mode="json")
