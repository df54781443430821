"""Counterparty address activity - which external addresses the wallet deals with most."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from wallet_ledger.ledger.models import TransactionRecord


@dataclass
class AddressActivity:
    """Aggregated history with one external address."""

    address: str
    first_seen: datetime
    last_seen: datetime
    transaction_count: int = 0
    total_amount: int = 0
    received_count: int = 0
    sent_count: int = 0
    txids: list[str] = field(default_factory=list)

    def add(self, record: TransactionRecord) -> None:
        self.transaction_count += 1
        self.total_amount += record.absolute_amount
        if record.is_received:
            self.received_count += 1
        else:
            self.sent_count += 1
        self.first_seen = min(self.first_seen, record.timestamp)
        self.last_seen = max(self.last_seen, record.timestamp)
        self.txids.append(record.txid)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "transaction_count": self.transaction_count,
            "total_amount": self.total_amount,
            "received_count": self.received_count,
            "sent_count": self.sent_count,
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "txids": list(self.txids),
        }


def frequent_external_addresses(
    records: Iterable[TransactionRecord],
    own_addresses: frozenset[str] | set[str],
    *,
    min_transactions: int = 3,
    limit: int = 10,
) -> list[AddressActivity]:
    """Rank counterpart addresses outside the wallet by transaction count.

    Args:
        records: Transactions to scan.
        own_addresses: The wallet's addresses, which are never reported.
        min_transactions: Minimum transactions for an address to qualify.
        limit: Maximum addresses returned.

    Returns:
        Qualifying addresses, most active first.
    """
    stats: dict[str, AddressActivity] = {}
    for record in records:
        address = record.counterpart_address
        if not address or address in own_addresses:
            continue
        activity = stats.get(address)
        if activity is None:
            activity = AddressActivity(
                address=address, first_seen=record.timestamp, last_seen=record.timestamp
            )
            stats[address] = activity
        activity.add(record)

    ranked = [a for a in stats.values() if a.transaction_count >= min_transactions]
    ranked.sort(key=lambda a: (-a.transaction_count, -a.total_amount, a.address))
    return ranked[:limit]
