"""CSV exports of an analytics snapshot."""

from __future__ import annotations

import csv
import io
from typing import TYPE_CHECKING

from wallet_ledger.config.settings import COIN

if TYPE_CHECKING:
    from wallet_ledger.analytics.models import AnalyticsSnapshot

CATEGORY_HEADER = ("Category", "Amount", "Percentage", "Transaction Count")
MONTHLY_HEADER = ("Date", "Income", "Expenses", "Net Flow", "Transaction Count")


def format_coins(amount: int) -> str:
    """Minor units as a fixed-point coin string, e.g. ``150000000 -> "1.50000000"``."""
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), COIN)
    return f"{sign}{whole}.{frac:08d}"


def categories_csv(snapshot: AnalyticsSnapshot) -> str:
    """Category breakdown table, largest first."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CATEGORY_HEADER)
    for row in snapshot.category_breakdown:
        writer.writerow(
            (row.name, format_coins(row.total_amount), f"{row.percentage:.2f}", row.transaction_count)
        )
    return buf.getvalue()


def monthly_csv(snapshot: AnalyticsSnapshot) -> str:
    """Monthly income/expense table in chronological order."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(MONTHLY_HEADER)
    for point in snapshot.monthly:
        writer.writerow(
            (
                point.date.strftime("%Y-%m"),
                format_coins(point.income),
                format_coins(point.expenses),
                format_coins(point.net_flow),
                point.transaction_count,
            )
        )
    return buf.getvalue()
