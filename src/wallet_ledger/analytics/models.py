"""Analytics value types - windows, time-series points, category rows, snapshots."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from wallet_ledger.config.settings import AnalyticsPeriod
from wallet_ledger.errors.definitions import ErrInvalidWindow
from wallet_ledger.ledger.models import CategoryType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wallet_ledger.ledger.balance import BalanceView
    from wallet_ledger.ledger.models import TransactionRecord

# Start of an "all" window when there are no transactions yet.
EPOCH_FALLBACK = datetime(2020, 1, 1, tzinfo=UTC)

_MONTHS_BACK = {
    AnalyticsPeriod.ONE_MONTH: 1,
    AnalyticsPeriod.THREE_MONTHS: 3,
    AnalyticsPeriod.SIX_MONTHS: 6,
    AnalyticsPeriod.ONE_YEAR: 12,
}


def months_before(moment: datetime, months: int) -> datetime:
    """Same day-of-month *months* earlier, clamped to the target month's length."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


# ---------------------------------------------------------------------------
# Window
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalyticsWindow:
    """A half-open ``[start, end)`` time range.

    Attributes:
        start: Inclusive lower bound.
        end: Exclusive upper bound.
        period: The named period this window was resolved from, if any.
    """

    start: datetime
    end: datetime
    period: AnalyticsPeriod | None = None

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ErrInvalidWindow

    @classmethod
    def custom(cls, start: datetime, end: datetime) -> AnalyticsWindow:
        """Explicit window; naive datetimes are taken as UTC."""
        if start.tzinfo is None:
            start = start.replace(tzinfo=UTC)
        if end.tzinfo is None:
            end = end.replace(tzinfo=UTC)
        return cls(start=start, end=end)

    @classmethod
    def for_period(
        cls,
        period: AnalyticsPeriod | str,
        transactions: Iterable[TransactionRecord] = (),
        *,
        now: datetime | None = None,
    ) -> AnalyticsWindow:
        """Resolve a named period ending at *now*.

        The ``all`` period starts at the earliest transaction, or at
        :data:`EPOCH_FALLBACK` when there are none.
        """
        period = AnalyticsPeriod(period)
        now = now or datetime.now(UTC)
        if period is AnalyticsPeriod.ALL:
            start = min((t.timestamp for t in transactions), default=EPOCH_FALLBACK)
            if start >= now:
                start = EPOCH_FALLBACK
        else:
            start = months_before(now, _MONTHS_BACK[period])
        return cls(start=start, end=now, period=period)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "period": self.period.value if self.period else None,
        }


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalyticsDataPoint:
    """Income and expenses within one time bucket."""

    key: str
    date: datetime
    income: int = 0
    expenses: int = 0
    transaction_count: int = 0

    @property
    def net_flow(self) -> int:
        return self.income - self.expenses

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "date": self.date.isoformat(),
            "income": self.income,
            "expenses": self.expenses,
            "net_flow": self.net_flow,
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class CategoryAnalytics:
    """Totals for one category type within the window."""

    category_type: CategoryType
    total_amount: int
    percentage: float
    transactions: tuple[TransactionRecord, ...] = ()

    @property
    def name(self) -> str:
        return self.category_type.display_name

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category_type": self.category_type.value,
            "name": self.name,
            "total_amount": self.total_amount,
            "percentage": self.percentage,
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Read-only aggregate over an analytics window.

    Amounts are absolute minor units.  ``transactions`` are the windowed,
    unfiltered records with their categories attached.
    """

    window: AnalyticsWindow
    transactions: tuple[TransactionRecord, ...] = ()
    total_income: int = 0
    total_expenses: int = 0
    average_transaction_amount: float = 0.0
    savings_rate: float = 0.0
    category_breakdown: tuple[CategoryAnalytics, ...] = ()
    daily: tuple[AnalyticsDataPoint, ...] = ()
    weekly: tuple[AnalyticsDataPoint, ...] = ()
    monthly: tuple[AnalyticsDataPoint, ...] = ()
    income_growth_rate: float = 0.0
    expense_growth_rate: float = 0.0
    top_income_category: CategoryType = CategoryType.OTHER
    top_expense_category: CategoryType = CategoryType.OTHER
    balance: BalanceView | None = None
    category_totals: dict[CategoryType, int] = field(default_factory=dict)

    @property
    def net_flow(self) -> int:
        return self.total_income - self.total_expenses

    @property
    def total_transactions(self) -> int:
        return len(self.transactions)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict (transactions omitted)."""
        return {
            "window": self.window.to_dict(),
            "total_income": self.total_income,
            "total_expenses": self.total_expenses,
            "net_flow": self.net_flow,
            "average_transaction_amount": self.average_transaction_amount,
            "total_transactions": self.total_transactions,
            "savings_rate": self.savings_rate,
            "category_breakdown": [c.to_dict() for c in self.category_breakdown],
            "category_totals": {k.value: v for k, v in self.category_totals.items()},
            "daily": [p.to_dict() for p in self.daily],
            "weekly": [p.to_dict() for p in self.weekly],
            "monthly": [p.to_dict() for p in self.monthly],
            "income_growth_rate": self.income_growth_rate,
            "expense_growth_rate": self.expense_growth_rate,
            "top_income_category": self.top_income_category.value,
            "top_expense_category": self.top_expense_category.value,
            "balance": self.balance.to_dict() if self.balance else None,
        }
