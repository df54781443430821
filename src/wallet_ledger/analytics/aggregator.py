"""Analytics aggregator - totals, category breakdown and time series.

Every call recomputes from the transaction list it is given and classifies
each record afresh.  Records flagged as self-transfers never contribute.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from wallet_ledger.analytics.models import (
    AnalyticsDataPoint,
    AnalyticsSnapshot,
    AnalyticsWindow,
    CategoryAnalytics,
)
from wallet_ledger.config.settings import AnalyticsPeriod
from wallet_ledger.ledger.categorizer import Categorizer
from wallet_ledger.ledger.models import CategoryType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from wallet_ledger.ledger.balance import BalanceState
    from wallet_ledger.ledger.models import TransactionRecord
    from wallet_ledger.metrics.collector import LedgerMetrics

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Bucket keys
# ---------------------------------------------------------------------------


def daily_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def weekly_key(moment: datetime) -> str:
    """``YYYY-Www`` of the Monday that starts *moment*'s week."""
    monday = moment - timedelta(days=moment.weekday())
    week = math.ceil(monday.timetuple().tm_yday / 7)
    return f"{monday.year}-W{week:02d}"


def monthly_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def bucket(
    records: Iterable[TransactionRecord],
    key_fn: Callable[[datetime], str],
) -> list[AnalyticsDataPoint]:
    """Group *records* by *key_fn* and total each bucket.

    Buckets are ordered by their earliest transaction.
    """
    grouped: dict[str, list[TransactionRecord]] = defaultdict(list)
    for record in records:
        grouped[key_fn(record.timestamp)].append(record)

    points = []
    for key, items in grouped.items():
        income = sum(r.absolute_amount for r in items if r.is_received)
        expenses = sum(r.absolute_amount for r in items if r.is_sent)
        points.append(
            AnalyticsDataPoint(
                key=key,
                date=min(r.timestamp for r in items),
                income=income,
                expenses=expenses,
                transaction_count=len(items),
            )
        )
    points.sort(key=lambda p: p.date)
    return points


def growth_rate(first: int, last: int) -> float:
    """Percent change from *first* to *last*; 0 when *first* is 0."""
    if first <= 0:
        return 0.0
    return (last - first) / first * 100


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class AnalyticsAggregator:
    """Build :class:`AnalyticsSnapshot` values from classified transactions.

    Usage::

        aggregator = AnalyticsAggregator(categorizer)
        snapshot = aggregator.compute(records, period="3m", balance=state)
    """

    def __init__(
        self,
        categorizer: Categorizer | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._categorizer = categorizer or Categorizer()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._metrics = metrics

    def resolve_window(
        self,
        transactions: Sequence[TransactionRecord],
        *,
        period: AnalyticsPeriod | str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> AnalyticsWindow:
        """Turn a named period or explicit bounds into a window.

        Explicit bounds win over *period*.  A missing end defaults to now, and
        a missing start falls back to the period (default ``all``).
        """
        now = self._clock()
        if start is not None:
            return AnalyticsWindow.custom(start, end or now)
        visible = [t for t in transactions if not t.filtered]
        window = AnalyticsWindow.for_period(period or AnalyticsPeriod.ALL, visible, now=now)
        if end is not None:
            if end.tzinfo is None:
                end = end.replace(tzinfo=UTC)
            return AnalyticsWindow(start=window.start, end=end, period=window.period)
        return window

    def compute(
        self,
        transactions: Sequence[TransactionRecord],
        *,
        window: AnalyticsWindow | None = None,
        period: AnalyticsPeriod | str | None = None,
        balance: BalanceState | None = None,
    ) -> AnalyticsSnapshot:
        """Aggregate *transactions* over a window.

        Args:
            transactions: Normalized records, self-transfers included or not.
            window: Explicit window; resolved from *period* when omitted.
            period: Named period used when *window* is None.
            balance: Current balance state, attached as a view.

        Returns:
            A fresh :class:`AnalyticsSnapshot`.
        """
        if window is None:
            window = self.resolve_window(transactions, period=period)

        if self._metrics:
            with self._metrics.track_analytics():
                return self._compute(transactions, window, balance)
        return self._compute(transactions, window, balance)

    def _compute(
        self,
        transactions: Sequence[TransactionRecord],
        window: AnalyticsWindow,
        balance: BalanceState | None,
    ) -> AnalyticsSnapshot:
        records = [
            t.with_category(self._categorizer.classify(t))
            for t in transactions
            if not t.filtered and window.contains(t.timestamp)
        ]

        income = 0
        expenses = 0
        by_type: dict[CategoryType, list[TransactionRecord]] = defaultdict(list)
        for record in records:
            if record.is_received:
                income += record.absolute_amount
            else:
                expenses += record.absolute_amount
            assert record.category is not None
            by_type[record.category.type].append(record)

        grand_total = income + expenses
        breakdown = []
        for category_type, items in by_type.items():
            amount = sum(r.absolute_amount for r in items)
            breakdown.append(
                CategoryAnalytics(
                    category_type=category_type,
                    total_amount=amount,
                    percentage=amount / grand_total * 100 if grand_total > 0 else 0.0,
                    transactions=tuple(items),
                )
            )
        breakdown.sort(key=lambda c: c.total_amount, reverse=True)

        top_income = next(
            (c.category_type for c in breakdown if any(t.is_received for t in c.transactions)),
            CategoryType.OTHER,
        )
        top_expense = next(
            (c.category_type for c in breakdown if any(t.is_sent for t in c.transactions)),
            CategoryType.OTHER,
        )

        monthly = bucket(records, monthly_key)
        income_growth = expense_growth = 0.0
        if len(monthly) >= 2:
            income_growth = growth_rate(monthly[0].income, monthly[-1].income)
            expense_growth = growth_rate(monthly[0].expenses, monthly[-1].expenses)

        average = sum(r.absolute_amount for r in records) / len(records) if records else 0.0
        savings = (income - expenses) / income * 100 if income > 0 else 0.0

        logger.debug(
            "Analytics over %s..%s: %d transaction(s), income=%d expenses=%d",
            window.start.isoformat(),
            window.end.isoformat(),
            len(records),
            income,
            expenses,
        )

        return AnalyticsSnapshot(
            window=window,
            transactions=tuple(records),
            total_income=income,
            total_expenses=expenses,
            average_transaction_amount=average,
            savings_rate=savings,
            category_breakdown=tuple(breakdown),
            category_totals={c.category_type: c.total_amount for c in breakdown},
            daily=tuple(bucket(records, daily_key)),
            weekly=tuple(bucket(records, weekly_key)),
            monthly=tuple(monthly),
            income_growth_rate=income_growth,
            expense_growth_rate=expense_growth,
            top_income_category=top_income,
            top_expense_category=top_expense,
            balance=balance.view() if balance is not None else None,
        )
