"""V1 API response schemas.

Thin Pydantic models defining the HTTP contract.  Endpoint code maps the
engine's immutable values onto them.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from wallet_ledger.analytics.models import (
        AnalyticsDataPoint,
        AnalyticsSnapshot,
        CategoryAnalytics,
    )
    from wallet_ledger.engine.client import RefreshResult
    from wallet_ledger.ledger.addresses import AddressActivity
    from wallet_ledger.ledger.balance import BalanceView, PoolBalance
    from wallet_ledger.ledger.models import TransactionRecord


class ErrorResponse(BaseModel):
    """Standard error body ``{"code": "...", "message": "..."}``."""

    code: str
    message: str


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------


class PoolBalanceResponse(BaseModel):
    balance: int
    unconfirmed: int
    verified: int
    unverified: int
    spendable: int
    pure_incoming: int


class BalanceResponse(BaseModel):
    """GET /api/v1/balance"""

    transparent: PoolBalanceResponse
    shielded: PoolBalanceResponse
    total: int
    unconfirmed: int
    confirmed: int
    spendable: int
    pending_change: int
    effective_spendable: int
    pure_incoming: int
    has_balance: bool
    has_unconfirmed_balance: bool
    has_incoming_unconfirmed_transparent: bool
    has_incoming_unconfirmed_shielded: bool
    transparent_percentage: float
    shielded_percentage: float
    last_updated: datetime | None = None


class SufficiencyResponse(BaseModel):
    """GET /api/v1/balance/sufficient"""

    amount: int
    pool: str | None = None
    sufficient: bool


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class CategoryResponse(BaseModel):
    type: str
    name: str
    confidence: float


class TransactionResponse(BaseModel):
    """A normalized transaction with its category."""

    txid: str
    amount: int
    direction: str
    timestamp: datetime
    confirmations: int
    block_height: int | None = None
    unconfirmed: bool
    memo: str | None = None
    counterpart_address: str | None = None
    fee: int
    filtered: bool
    category: CategoryResponse | None = None


class TransactionPageResponse(BaseModel):
    """GET /api/v1/transactions"""

    items: list[TransactionResponse]
    page: int
    page_size: int
    has_more: bool
    search: str
    type: str


class RefreshResponse(BaseModel):
    """POST /api/v1/refresh"""

    normalized: int
    skipped: int
    duplicates: int
    filtered: int
    stored: int
    chain_tip: int | None = None
    balance_updated: bool
    balance_error: str | None = None
    skip_reasons: dict[str, int]
    balance: BalanceResponse


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class DataPointResponse(BaseModel):
    key: str
    date: datetime
    income: int
    expenses: int
    net_flow: int
    transaction_count: int


class CategoryAnalyticsResponse(BaseModel):
    category_type: str
    name: str
    total_amount: int
    percentage: float
    transaction_count: int


class AnalyticsResponse(BaseModel):
    """GET /api/v1/analytics"""

    start: datetime
    end: datetime
    period: str | None = None
    total_income: int
    total_expenses: int
    net_flow: int
    average_transaction_amount: float
    total_transactions: int
    savings_rate: float
    category_breakdown: list[CategoryAnalyticsResponse]
    daily: list[DataPointResponse]
    weekly: list[DataPointResponse]
    monthly: list[DataPointResponse]
    income_growth_rate: float
    expense_growth_rate: float
    top_income_category: str
    top_expense_category: str
    balance: BalanceResponse | None = None


class AddressActivityResponse(BaseModel):
    """One entry of GET /api/v1/addresses/external"""

    address: str
    transaction_count: int
    total_amount: int
    received_count: int
    sent_count: int
    first_seen: datetime
    last_seen: datetime


# ---------------------------------------------------------------------------
# Mapping helpers
# ---------------------------------------------------------------------------


def _pool_resp(pool: PoolBalance) -> PoolBalanceResponse:
    return PoolBalanceResponse(
        balance=pool.balance,
        unconfirmed=pool.unconfirmed,
        verified=pool.verified,
        unverified=pool.unverified,
        spendable=pool.spendable,
        pure_incoming=pool.pure_incoming,
    )


def balance_response(view: BalanceView) -> BalanceResponse:
    s = view.snapshot
    return BalanceResponse(
        transparent=_pool_resp(s.transparent),
        shielded=_pool_resp(s.shielded),
        total=s.total,
        unconfirmed=s.unconfirmed,
        confirmed=s.confirmed,
        spendable=s.spendable,
        pending_change=s.pending_change,
        effective_spendable=s.effective_spendable,
        pure_incoming=s.pure_incoming,
        has_balance=view.has_balance,
        has_unconfirmed_balance=view.has_unconfirmed_balance,
        has_incoming_unconfirmed_transparent=view.has_incoming_unconfirmed_transparent,
        has_incoming_unconfirmed_shielded=view.has_incoming_unconfirmed_shielded,
        transparent_percentage=view.transparent_percentage,
        shielded_percentage=view.shielded_percentage,
        last_updated=s.last_updated,
    )


def transaction_response(record: TransactionRecord) -> TransactionResponse:
    category = None
    if record.category is not None:
        category = CategoryResponse(
            type=record.category.type.value,
            name=record.category.name,
            confidence=record.category.confidence,
        )
    return TransactionResponse(
        txid=record.txid,
        amount=record.amount,
        direction=record.direction.value,
        timestamp=record.timestamp,
        confirmations=record.confirmations,
        block_height=record.block_height,
        unconfirmed=record.unconfirmed,
        memo=record.memo,
        counterpart_address=record.counterpart_address,
        fee=record.fee,
        filtered=record.filtered,
        category=category,
    )


def refresh_response(result: RefreshResult, view: BalanceView) -> RefreshResponse:
    return RefreshResponse(
        normalized=result.normalized,
        skipped=result.skipped,
        duplicates=result.duplicates,
        filtered=result.filtered,
        stored=result.stored,
        chain_tip=result.chain_tip,
        balance_updated=result.balance_updated,
        balance_error=result.balance_error,
        skip_reasons=result.skip_reasons,
        balance=balance_response(view),
    )


def _point_resp(point: AnalyticsDataPoint) -> DataPointResponse:
    return DataPointResponse(
        key=point.key,
        date=point.date,
        income=point.income,
        expenses=point.expenses,
        net_flow=point.net_flow,
        transaction_count=point.transaction_count,
    )


def _category_resp(row: CategoryAnalytics) -> CategoryAnalyticsResponse:
    return CategoryAnalyticsResponse(
        category_type=row.category_type.value,
        name=row.name,
        total_amount=row.total_amount,
        percentage=row.percentage,
        transaction_count=row.transaction_count,
    )


def analytics_response(snapshot: AnalyticsSnapshot) -> AnalyticsResponse:
    window = snapshot.window
    return AnalyticsResponse(
        start=window.start,
        end=window.end,
        period=window.period.value if window.period else None,
        total_income=snapshot.total_income,
        total_expenses=snapshot.total_expenses,
        net_flow=snapshot.net_flow,
        average_transaction_amount=snapshot.average_transaction_amount,
        total_transactions=snapshot.total_transactions,
        savings_rate=snapshot.savings_rate,
        category_breakdown=[_category_resp(c) for c in snapshot.category_breakdown],
        daily=[_point_resp(p) for p in snapshot.daily],
        weekly=[_point_resp(p) for p in snapshot.weekly],
        monthly=[_point_resp(p) for p in snapshot.monthly],
        income_growth_rate=snapshot.income_growth_rate,
        expense_growth_rate=snapshot.expense_growth_rate,
        top_income_category=snapshot.top_income_category.value,
        top_expense_category=snapshot.top_expense_category.value,
        balance=balance_response(snapshot.balance) if snapshot.balance else None,
    )


def address_response(activity: AddressActivity) -> AddressActivityResponse:
    return AddressActivityResponse(
        address=activity.address,
        transaction_count=activity.transaction_count,
        total_amount=activity.total_amount,
        received_count=activity.received_count,
        sent_count=activity.sent_count,
        first_seen=activity.first_seen,
        last_seen=activity.last_seen,
    )
