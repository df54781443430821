"""LedgerEngine - owns the ledger pipeline and its infrastructure."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from wallet_ledger.analytics.aggregator import AnalyticsAggregator
from wallet_ledger.chain.oracle import ConfirmationOracle
from wallet_ledger.errors.definitions import (
    ErrEngineNotReady,
    ErrTransactionNotFound,
    FetchFailure,
    IncoherentSnapshot,
)
from wallet_ledger.ledger.addresses import frequent_external_addresses
from wallet_ledger.ledger.balance import BalanceSnapshot, BalanceState
from wallet_ledger.ledger.categorizer import Categorizer
from wallet_ledger.ledger.normalizer import TransactionNormalizer
from wallet_ledger.ledger.self_transfer import SelfTransferFilter
from wallet_ledger.metrics.collector import LedgerMetrics
from wallet_ledger.sync.cursor import SyncCursor

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from wallet_ledger.analytics.models import AnalyticsSnapshot, AnalyticsWindow
    from wallet_ledger.chain.client import ChainTipClient
    from wallet_ledger.chain.oracle import ChainTipSource
    from wallet_ledger.config.settings import AnalyticsPeriod, AppConfig
    from wallet_ledger.datastore.client import Datastore
    from wallet_ledger.datastore.repository import TransactionRepository
    from wallet_ledger.ledger.addresses import AddressActivity
    from wallet_ledger.ledger.balance import BalanceView, Pool
    from wallet_ledger.ledger.models import TransactionFilter, TransactionRecord
    from wallet_ledger.sources import WalletCoreSource
    from wallet_ledger.sync.cursor import CursorState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshResult:
    """What one :meth:`LedgerEngine.refresh` call changed."""

    normalized: int = 0
    skipped: int = 0
    duplicates: int = 0
    filtered: int = 0
    stored: int = 0
    chain_tip: int | None = None
    balance: BalanceSnapshot = field(default_factory=BalanceSnapshot.empty)
    balance_updated: bool = False
    balance_error: str | None = None
    skip_reasons: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "normalized": self.normalized,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
            "filtered": self.filtered,
            "stored": self.stored,
            "chain_tip": self.chain_tip,
            "balance": self.balance.to_dict(),
            "balance_updated": self.balance_updated,
            "balance_error": self.balance_error,
            "skip_reasons": dict(self.skip_reasons),
        }


async def _call_source(what: str, call: Callable[[], Awaitable[Any]]) -> Any:
    try:
        return await call()
    except FetchFailure:
        raise
    except Exception as exc:
        raise FetchFailure(f"wallet core {what} failed: {exc}") from exc


class LedgerEngine:
    """Central engine wiring balance, confirmations, filtering and analytics.

    Usage::

        engine = LedgerEngine(config, source)
        await engine.initialize()
        result = await engine.refresh()
        snapshot = await engine.analytics(period="3m")
        await engine.close()
    """

    def __init__(
        self,
        config: AppConfig,
        source: WalletCoreSource | None = None,
        *,
        tip_source: ChainTipSource | None = None,
        metrics: LedgerMetrics | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            source: Wallet core to refresh from.
            tip_source: Chain tip provider; defaults to the tip client when
                ``chain.enabled`` is set, else to *source*.
            metrics: Metrics sink; created when metrics are enabled.
            clock: Wall clock for analytics windows.
        """
        self._config = config
        self._source = source
        self._tip_source = tip_source
        self._clock = clock
        self._initialized = False

        if metrics is None and config.metrics.enabled:
            metrics = LedgerMetrics()
        self._metrics = metrics

        self._datastore: Datastore | None = None
        self._repository: TransactionRepository | None = None
        self._tip_client: ChainTipClient | None = None

        self._balance = BalanceState(tolerance=config.ledger.snapshot_tolerance)
        self._oracle = ConfirmationOracle(
            refresh_interval=config.chain.tip_refresh_interval, metrics=metrics
        )
        self._normalizer = TransactionNormalizer(self._oracle, metrics=metrics)
        self._filter = SelfTransferFilter(
            threshold=config.ledger.self_transfer_threshold, metrics=metrics
        )
        self._categorizer = Categorizer(keyword_overrides=config.ledger.category_keywords)
        self._aggregator = AnalyticsAggregator(self._categorizer, clock=clock, metrics=metrics)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the datastore and connect the chain tip source.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        from wallet_ledger.datastore.client import Datastore
        from wallet_ledger.datastore.repository import TransactionRepository

        self._datastore = Datastore(self._config.db)
        await self._datastore.open()
        self._repository = TransactionRepository(self._datastore)

        tip_source = self._tip_source
        if tip_source is None and self._config.chain.enabled:
            from wallet_ledger.chain.client import ChainTipClient

            self._tip_client = ChainTipClient(self._config.chain)
            await self._tip_client.connect()
            tip_source = self._tip_client
        if tip_source is None:
            tip_source = self._source
        self._oracle = ConfirmationOracle(
            tip_source,
            refresh_interval=self._config.chain.tip_refresh_interval,
            metrics=self._metrics,
        )
        self._normalizer = TransactionNormalizer(self._oracle, metrics=self._metrics)

        self._initialized = True
        logger.info("Ledger engine initialized (db=%s)", self._config.db.engine)

    async def close(self) -> None:
        """Release connections.  Safe to call more than once."""
        if not self._initialized:
            return
        if self._tip_client is not None:
            await self._tip_client.close()
            self._tip_client = None
        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None
        self._repository = None
        self._initialized = False
        logger.info("Ledger engine closed")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def metrics(self) -> LedgerMetrics | None:
        return self._metrics

    @property
    def balance_state(self) -> BalanceState:
        return self._balance

    @property
    def oracle(self) -> ConfirmationOracle:
        return self._oracle

    @property
    def categorizer(self) -> Categorizer:
        return self._categorizer

    @property
    def self_transfer_filter(self) -> SelfTransferFilter:
        return self._filter

    @property
    def repository(self) -> TransactionRepository:
        """The transaction repository.

        Raises:
            LedgerError: If the engine is not initialized.
        """
        if self._repository is None:
            raise ErrEngineNotReady
        return self._repository

    # ------------------------------------------------------------------
    # Refresh pipeline
    # ------------------------------------------------------------------

    async def refresh(self, source: WalletCoreSource | None = None) -> RefreshResult:
        """Pull balances and transactions from the wallet core.

        An incoherent balance snapshot is discarded and reported in the
        result; the transactions are still refreshed.

        Raises:
            FetchFailure: A wallet-core call failed.
        """
        source = source or self._source
        repository = self.repository
        if source is None:
            raise FetchFailure("no wallet core source configured", status_code=503)

        if self._metrics:
            with self._metrics.track_refresh():
                return await self._refresh(source, repository)
        return await self._refresh(source, repository)

    async def _refresh(
        self,
        source: WalletCoreSource,
        repository: TransactionRepository,
    ) -> RefreshResult:
        tip = await self._oracle.current_height()

        payload = await _call_source("balance", source.get_balance_snapshot)
        balance_error = None
        try:
            self._balance.replace(self._incoming_snapshot(payload))
        except IncoherentSnapshot as exc:
            balance_error = exc.message
            if self._metrics:
                self._metrics.inc_rejected_snapshot()

        addresses = await _call_source("address list", source.get_own_addresses)
        self._filter.update_addresses(addresses)

        raws = await _call_source("transaction list", source.get_raw_transactions)
        normalized = self._normalizer.normalize_batch(raws, tip=tip)
        records = self._filter.apply_all(normalized.records)
        stored = await repository.upsert_many(records)

        filtered = sum(1 for r in records if r.filtered)
        if self._metrics:
            self._metrics.set_transaction_counts(visible=len(records) - filtered, filtered=filtered)

        logger.info(
            "Refreshed ledger: %d transaction(s), %d skipped, %d self-transfer(s), tip=%s",
            len(records),
            normalized.skipped_count,
            filtered,
            tip,
        )
        return RefreshResult(
            normalized=len(records),
            skipped=normalized.skipped_count,
            duplicates=normalized.duplicates,
            filtered=filtered,
            stored=stored,
            chain_tip=tip,
            balance=self._balance.snapshot,
            balance_updated=balance_error is None,
            balance_error=balance_error,
            skip_reasons=normalized.skip_reasons(),
        )

    def _incoming_snapshot(self, payload: Any) -> BalanceSnapshot:
        if not isinstance(payload, dict):
            raise IncoherentSnapshot(f"balance payload is not a mapping: {type(payload).__name__}")
        snapshot = BalanceSnapshot.from_dict(payload)
        if "pending_change" in payload or "pendingChange" in payload:
            return snapshot
        previous = self._balance.snapshot
        pending = previous.pending_change
        # Locally recorded change is dropped once it shows up as spendable.
        if pending and snapshot.spendable >= previous.spendable + pending:
            logger.info("Pending change of %d now spendable, clearing", pending)
            return snapshot
        return snapshot.with_pending_change(pending)

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    def balance(self) -> BalanceView:
        return self._balance.view()

    def is_sufficient_for(self, amount: int, pool: Pool | str | None = None) -> bool:
        return self._balance.is_sufficient_for(amount, pool)

    def record_pending_change(self, amount: int) -> BalanceSnapshot:
        """Note change expected back from a just-broadcast send.

        The amount is carried across refreshes whose payload omits pending
        change, and cleared by the first one whose spendable total has grown
        by at least this amount. ``record_pending_change(0)`` clears it.
        """
        snapshot = self._balance.set_pending_change(amount)
        logger.info("Recorded pending change of %d", amount)
        return snapshot

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def new_cursor(
        self,
        *,
        on_state_change: Callable[[CursorState], None] | None = None,
    ) -> SyncCursor:
        """A fresh cursor over the classified, unfiltered transaction list."""
        self.repository  # noqa: B018 - fail fast when not initialized
        return SyncCursor(
            self._fetch_page,
            page_size=self._config.sync.page_size,
            on_state_change=on_state_change,
            metrics=self._metrics,
        )

    async def _fetch_page(
        self,
        *,
        page: int,
        page_size: int,
        search: str,
        type: TransactionFilter,  # noqa: A002
    ) -> list[TransactionRecord]:
        rows = await self.repository.fetch_page(
            page=page, page_size=page_size, search=search, type=type
        )
        return self._categorizer.classify_all(rows)

    async def get_transaction(self, txid: str) -> TransactionRecord:
        """Look up one transaction with its category attached.

        Raises:
            LedgerError: If no transaction has *txid*.
        """
        record = await self.repository.get(txid)
        if record is None:
            raise ErrTransactionNotFound
        return record.with_category(self._categorizer.classify(record))

    async def frequent_external_addresses(
        self,
        *,
        min_transactions: int = 3,
        limit: int = 10,
    ) -> list[AddressActivity]:
        """Most active counterpart addresses outside the wallet."""
        records = await self.repository.all()
        return frequent_external_addresses(
            records,
            self._filter.own_addresses,
            min_transactions=min_transactions,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def analytics(
        self,
        window: AnalyticsWindow | None = None,
        *,
        period: AnalyticsPeriod | str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> AnalyticsSnapshot:
        """Aggregate stored transactions over a window.

        Args:
            window: Explicit window; wins over the other arguments.
            period: Named period, defaulting to ``ledger.default_period``.
            start: Explicit inclusive start.
            end: Explicit exclusive end.
        """
        records = await self.repository.all()
        if window is None:
            window = self._aggregator.resolve_window(
                records,
                period=period or self._config.ledger.default_period,
                start=start,
                end=end,
            )
        return self._aggregator.compute(records, window=window, balance=self._balance)

    async def health_check(self) -> dict[str, str]:
        """Component statuses: ``ok``, ``error``, ``stale`` or ``not_initialized``."""
        status = {
            "engine": "ok" if self._initialized else "not_initialized",
            "datastore": "unknown",
            "chain": "unknown",
        }
        if self._initialized:
            status["datastore"] = "ok" if self._datastore and self._datastore.is_open else "error"
            if self._oracle.cached_height is None:
                status["chain"] = "unknown"
            else:
                status["chain"] = "stale" if self._oracle.is_stale() else "ok"
        return status
