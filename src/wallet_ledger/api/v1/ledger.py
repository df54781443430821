"""V1 balance and refresh endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from wallet_ledger.api.dependencies import get_engine
from wallet_ledger.api.v1.schemas import (
    SufficiencyResponse,
    balance_response,
    refresh_response,
)
from wallet_ledger.engine.client import LedgerEngine  # noqa: TC001
from wallet_ledger.ledger.balance import Pool  # noqa: TC001

router = APIRouter(tags=["ledger"])


@router.post("/refresh")
async def refresh(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
) -> dict[str, Any]:
    """Pull fresh balances and transactions from the wallet core."""
    result = await engine.refresh()
    return refresh_response(result, engine.balance()).model_dump(mode="json")


@router.get("/balance")
async def get_balance(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
) -> dict[str, Any]:
    """Current multi-pool balance with derived flags."""
    return balance_response(engine.balance()).model_dump(mode="json")


@router.get("/balance/sufficient")
async def check_sufficient(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
    amount: Annotated[int, Query(ge=0)],
    pool: Pool | None = None,
) -> dict[str, Any]:
    """Whether *amount* (minor units) can be spent now, optionally from one pool."""
    return SufficiencyResponse(
        amount=amount,
        pool=pool.value if pool else None,
        sufficient=engine.is_sufficient_for(amount, pool),
    ).model_dump(mode="json")
