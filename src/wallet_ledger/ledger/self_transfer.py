"""Self-transfer filter - hides internal change-shuffling sends.

Shielded wallets routinely move small amounts between their own addresses
(auto-shielding, note consolidation).  Those sends look like real payments in
the raw feed; this filter flags them so analytics and default list views can
skip them.  Flagged records are still stored.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wallet_ledger.config.settings import COIN

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wallet_ledger.ledger.models import TransactionRecord
    from wallet_ledger.metrics.collector import LedgerMetrics

logger = logging.getLogger(__name__)


def flatten_addresses(addresses: dict[str, Any] | Iterable[str] | None) -> frozenset[str]:
    """Collapse a ``{"transparent": [...], "shielded": [...]}`` mapping to one set."""
    if not addresses:
        return frozenset()
    if isinstance(addresses, dict):
        found: set[str] = set()
        for values in addresses.values():
            if isinstance(values, str):
                found.add(values)
            elif values:
                found.update(a for a in values if isinstance(a, str))
        return frozenset(a for a in found if a)
    return frozenset(a for a in addresses if isinstance(a, str) and a)


class SelfTransferFilter:
    """Flag sent transactions that are probably internal self-transfers.

    A sent transaction is flagged when its recipient is one of the wallet's
    own addresses, it carries no memo, and its absolute amount is below the
    threshold.  Received transactions are never flagged.

    This is a heuristic.  Missed internal transfers are tolerated, and a real
    small payment without a memo sent to one of the wallet's own relabelled
    addresses will be hidden from analytics and default listings.  Check the
    stored ``filtered`` flag when auditing such payments.

    Args:
        own_addresses: The wallet's addresses, flat or grouped by pool.
        threshold: Exclusive upper bound in minor units (default 1 coin).
    """

    def __init__(
        self,
        own_addresses: dict[str, Any] | Iterable[str] | None = None,
        *,
        threshold: int = COIN,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._own = flatten_addresses(own_addresses)
        self._threshold = threshold
        self._metrics = metrics

    @property
    def own_addresses(self) -> frozenset[str]:
        return self._own

    @property
    def threshold(self) -> int:
        return self._threshold

    def update_addresses(self, own_addresses: dict[str, Any] | Iterable[str] | None) -> None:
        """Replace the own-address set, e.g. after the wallet derives a new address."""
        self._own = flatten_addresses(own_addresses)

    def is_self_transfer(self, record: TransactionRecord) -> bool:
        if not record.is_sent:
            return False
        if record.counterpart_address not in self._own:
            return False
        if record.has_memo:
            return False
        return record.absolute_amount < self._threshold

    def apply(self, record: TransactionRecord) -> TransactionRecord:
        """Return *record* with its ``filtered`` flag set accordingly."""
        flagged = self.is_self_transfer(record)
        if flagged == record.filtered:
            return record
        return record.with_filtered(flagged)

    def apply_all(self, records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        """Flag every record, keeping order."""
        result = [self.apply(r) for r in records]
        flagged = sum(1 for r in result if r.filtered)
        if flagged:
            logger.debug("Flagged %d of %d transaction(s) as self-transfers", flagged, len(result))
            if self._metrics:
                self._metrics.inc_filtered(flagged)
        return result
