"""Analytics - windowed income/expense aggregation and CSV export."""

from wallet_ledger.analytics.aggregator import AnalyticsAggregator
from wallet_ledger.analytics.export import categories_csv, monthly_csv
from wallet_ledger.analytics.models import (
    AnalyticsDataPoint,
    AnalyticsSnapshot,
    AnalyticsWindow,
    CategoryAnalytics,
)

__all__ = [
    "AnalyticsAggregator",
    "AnalyticsDataPoint",
    "AnalyticsSnapshot",
    "AnalyticsWindow",
    "CategoryAnalytics",
    "categories_csv",
    "monthly_csv",
]
