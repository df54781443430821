"""V1 analytics, CSV export and counterpart address endpoints."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - FastAPI needs this at runtime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from starlette.responses import Response

from wallet_ledger.analytics.export import categories_csv, monthly_csv
from wallet_ledger.api.dependencies import get_engine
from wallet_ledger.api.v1.schemas import address_response, analytics_response
from wallet_ledger.config.settings import AnalyticsPeriod  # noqa: TC001
from wallet_ledger.engine.client import LedgerEngine  # noqa: TC001

router = APIRouter(tags=["analytics"])

_CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _csv(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type=_CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/analytics")
async def get_analytics(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
    period: AnalyticsPeriod | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict[str, Any]:
    """Income/expense analytics over a named period or explicit window."""
    snapshot = await engine.analytics(period=period, start=start, end=end)
    return analytics_response(snapshot).model_dump(mode="json")


@router.get("/analytics/export/categories.csv")
async def export_categories(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
    period: AnalyticsPeriod | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Response:
    snapshot = await engine.analytics(period=period, start=start, end=end)
    return _csv(categories_csv(snapshot), "categories.csv")


@router.get("/analytics/export/monthly.csv")
async def export_monthly(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
    period: AnalyticsPeriod | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Response:
    snapshot = await engine.analytics(period=period, start=start, end=end)
    return _csv(monthly_csv(snapshot), "monthly.csv")


@router.get("/addresses/external")
async def frequent_external_addresses(
    engine: Annotated[LedgerEngine, Depends(get_engine)],
    min_transactions: Annotated[int, Query(ge=1)] = 3,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[dict[str, Any]]:
    """Most active counterpart addresses that are not the wallet's own."""
    ranked = await engine.frequent_external_addresses(
        min_transactions=min_transactions, limit=limit
    )
    return [address_response(a).model_dump(mode="json") for a in ranked]
