"""Confirmation oracle - cached chain tip and confirmation arithmetic.

The chain tip is refreshed from a :class:`ChainTipSource` at most once per
refresh interval.  A failed refresh keeps the last good height, so callers
are never blocked or failed by an unreachable source.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Protocol

from wallet_ledger.errors.definitions import OracleUnavailable

if TYPE_CHECKING:
    from collections.abc import Callable

    from wallet_ledger.metrics.collector import LedgerMetrics

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 30.0


class ChainTipSource(Protocol):
    """Anything that can report the current chain tip height."""

    async def get_chain_tip_height(self) -> int: ...


class ConfirmationOracle:
    """Time-cached chain tip plus confirmation counting.

    Usage::

        oracle = ConfirmationOracle(source)
        tip = await oracle.current_height()
        confs = oracle.confirmations_for(record_height, record_unconfirmed)
    """

    def __init__(
        self,
        source: ChainTipSource | None = None,
        *,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._source = source
        self._refresh_interval = refresh_interval
        self._clock = clock
        self._metrics = metrics
        self._height: int | None = None
        self._refreshed_at: float | None = None

    @property
    def cached_height(self) -> int | None:
        """Last known tip height without triggering a refresh."""
        return self._height

    def is_stale(self) -> bool:
        """Whether the next :meth:`current_height` call will hit the source."""
        if self._refreshed_at is None:
            return True
        return self._clock() - self._refreshed_at >= self._refresh_interval

    async def current_height(self) -> int | None:
        """Return the chain tip, refreshing it if the cache interval elapsed.

        Returns:
            The tip height, or None if no height has ever been obtained.
        """
        if self._source is None or not self.is_stale():
            return self._height

        # Stamp before awaiting so concurrent callers in this window reuse the cache.
        self._refreshed_at = self._clock()
        try:
            height = await self._fetch()
        except OracleUnavailable as exc:
            logger.warning("Chain tip refresh failed, keeping height %s: %s", self._height, exc)
            if self._metrics:
                self._metrics.inc_oracle_failure()
            return self._height

        self._height = height
        if self._metrics:
            self._metrics.set_chain_tip(height)
        return height

    def set_height(self, height: int) -> None:
        """Seed the cache with a known tip, e.g. from a sync status report."""
        self._height = height
        self._refreshed_at = self._clock()

    def confirmations_for(
        self,
        declared_height: int | None,
        unconfirmed: bool,
        *,
        tip: int | None = None,
    ) -> int:
        """Compute confirmations for a transaction.

        The source's unconfirmed flag is authoritative: a flagged record has
        zero confirmations whatever its height says.

        Args:
            declared_height: Block height recorded on the transaction.
            unconfirmed: The source's unconfirmed flag.
            tip: Override tip height; defaults to the cached height.

        Returns:
            ``max(0, tip - declared_height + 1)``, or 0 when unconfirmed,
            unmined, or no tip is known.
        """
        if unconfirmed:
            return 0
        if not declared_height:
            return 0
        current = self._height if tip is None else tip
        if current is None:
            return 0
        return max(0, current - declared_height + 1)

    async def _fetch(self) -> int:
        assert self._source is not None
        try:
            height = await self._source.get_chain_tip_height()
        except OracleUnavailable:
            raise
        except Exception as exc:  # noqa: BLE001
            raise OracleUnavailable(f"chain tip source error: {exc}") from exc
        if isinstance(height, bool) or not isinstance(height, int) or height <= 0:
            raise OracleUnavailable(f"chain tip source returned invalid height {height!r}")
        return height
