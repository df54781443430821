"""Metrics collector - Prometheus counters, gauges, histograms.

Ledger metrics:
- ``ledger_skipped_records_total`` counter - malformed raw records dropped
- ``ledger_filtered_transfers_total`` counter - self-transfers flagged
- ``ledger_rejected_snapshots_total`` counter - incoherent balance snapshots
- ``ledger_oracle_failures_total`` counter - chain tip refresh failures
- ``ledger_fetch_failures_total`` counter - page fetch failures
- ``ledger_chain_tip_gauge`` / ``ledger_transactions_gauge``
- ``ledger_refresh_histogram`` / ``ledger_analytics_histogram``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "ledger"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`LedgerMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class LedgerMetrics:
    """High-level ledger engine metrics.

    Histograms track operation duration in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._skipped = self._collector.counter(
            f"{_PREFIX}_skipped_records",
            "Raw transaction records dropped during normalization",
            ("reason",),
        )
        self._filtered = self._collector.counter(
            f"{_PREFIX}_filtered_transfers",
            "Sent transactions flagged as internal self-transfers",
        )
        self._rejected = self._collector.counter(
            f"{_PREFIX}_rejected_snapshots",
            "Balance snapshots discarded as incoherent",
        )
        self._oracle_failures = self._collector.counter(
            f"{_PREFIX}_oracle_failures",
            "Chain tip refreshes that failed and reused the cached height",
        )
        self._fetch_failures = self._collector.counter(
            f"{_PREFIX}_fetch_failures",
            "Transaction page fetches that failed",
        )

        self._chain_tip = self._collector.gauge(
            f"{_PREFIX}_chain_tip_gauge",
            "Last known chain tip height",
        )
        self._transactions = self._collector.gauge(
            f"{_PREFIX}_transactions_gauge",
            "Transactions produced by the last refresh",
            ("state",),
        )

        self._refresh = self._collector.histogram(
            f"{_PREFIX}_refresh_histogram",
            "Duration of full ledger refreshes",
        )
        self._analytics = self._collector.histogram(
            f"{_PREFIX}_analytics_histogram",
            "Duration of analytics snapshot computation",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    # -- Counters --

    def inc_skipped(self, reason: str, count: int = 1) -> None:
        """Count malformed records dropped for *reason*."""
        if count:
            self._skipped.labels(reason=reason).inc(count)

    def inc_filtered(self, count: int = 1) -> None:
        if count:
            self._filtered.inc(count)

    def inc_rejected_snapshot(self) -> None:
        self._rejected.inc()

    def inc_oracle_failure(self) -> None:
        self._oracle_failures.inc()

    def inc_fetch_failure(self) -> None:
        self._fetch_failures.inc()

    # -- Gauges --

    def set_chain_tip(self, height: int) -> None:
        self._chain_tip.set(height)

    def set_transaction_counts(self, *, visible: int, filtered: int) -> None:
        """Record how many refreshed transactions are visible vs. filtered."""
        self._transactions.labels(state="visible").set(visible)
        self._transactions.labels(state="filtered").set(filtered)

    # -- Operation trackers (context managers) --

    @contextmanager
    def track_refresh(self) -> Iterator[None]:
        """Track the duration of a full refresh."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._refresh.observe(time.monotonic() - start)

    @contextmanager
    def track_analytics(self) -> Iterator[None]:
        """Track the duration of an analytics computation."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._analytics.observe(time.monotonic() - start)
