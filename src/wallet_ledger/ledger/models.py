"""Ledger data models - raw feed records and canonical transactions."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 - used at runtime by dataclasses
from typing import Any

# ---------------------------------------------------------------------------
# Direction
# ---------------------------------------------------------------------------


class Direction(enum.StrEnum):
    """Which way value moved relative to the wallet."""

    SENT = "sent"
    RECEIVED = "received"

    @classmethod
    def from_tag(cls, value: Any) -> Direction | None:
        """Parse a source type tag, returning None for unknown tags."""
        if not isinstance(value, str):
            return None
        tag = value.strip().lower()
        if tag in ("sent", "send", "outgoing"):
            return cls.SENT
        if tag in ("received", "receive", "incoming"):
            return cls.RECEIVED
        return None


# ---------------------------------------------------------------------------
# Raw feed record
# ---------------------------------------------------------------------------


@dataclass
class RawTransaction:
    """One transaction as emitted by the external wallet core.

    Fields are left loosely typed; :class:`TransactionNormalizer` decides
    whether the record is usable.

    Attributes:
        id: Network transaction identifier.
        amount: Signed (or unsigned plus ``direction``) minor-unit amount.
        block_height: Declared mining height, 0/None when not mined.
        unconfirmed: The source's own unconfirmed flag.
        timestamp: Wall-clock time in epoch seconds.
        memo: Optional memo text.
        counterpart_address: Recipient for sends, receiving address otherwise.
        direction: Optional explicit type tag (``sent``/``received``).
        fee: Optional fee in minor units (sends only).
    """

    id: Any = None
    amount: Any = None
    block_height: Any = 0
    unconfirmed: Any = None
    timestamp: Any = 0
    memo: Any = None
    counterpart_address: Any = None
    direction: Any = None
    fee: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawTransaction:
        """Create from a wallet-core JSON record.

        Accepts the field names of :meth:`to_dict` as well as the light-client
        list format (``txid``, ``datetime``, ``address``, ``outgoing_metadata``).
        """
        memo = data.get("memo")
        counterpart = data.get("counterpart_address", data.get("counterpartAddress"))
        outgoing = data.get("outgoing_metadata")
        if isinstance(outgoing, list) and outgoing and isinstance(outgoing[0], dict):
            counterpart = counterpart or outgoing[0].get("address")
            memo = memo or outgoing[0].get("memo")
        if counterpart is None:
            counterpart = data.get("address")
        return cls(
            id=data.get("id", data.get("txid")),
            amount=data.get("amount"),
            block_height=data.get("block_height", data.get("blockHeight", 0)),
            unconfirmed=data.get("unconfirmed", data.get("unconfirmedFlag")),
            timestamp=data.get("timestamp", data.get("timestampSeconds", data.get("datetime", 0))),
            memo=memo,
            counterpart_address=counterpart,
            direction=data.get("direction", data.get("type")),
            fee=data.get("fee"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict."""
        return dataclasses.asdict(self)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class CategoryType(enum.StrEnum):
    """Coarse purpose of a transaction."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    INVESTMENT = "investment"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _TYPE_DISPLAY[self]


_TYPE_DISPLAY = {
    CategoryType.INCOME: "Income",
    CategoryType.EXPENSE: "Expenses",
    CategoryType.TRANSFER: "Transfers",
    CategoryType.INVESTMENT: "Investments",
    CategoryType.OTHER: "Other",
}


@dataclass(frozen=True)
class CategoryAssignment:
    """A category label with the confidence of the guess.

    Attributes:
        type: Coarse category type.
        name: Category display name.
        confidence: Heuristic strength in [0, 1]; 0 means fallback.
    """

    type: CategoryType
    name: str
    confidence: float = 0.0

    @property
    def is_fallback(self) -> bool:
        """True when no rule matched and the terminal category was used."""
        return self.confidence == 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "name": self.name, "confidence": self.confidence}


# ---------------------------------------------------------------------------
# Canonical transaction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionRecord:
    """A normalized, immutable wallet transaction.

    Only ``category`` and ``filtered`` are ever added after creation, and
    each addition produces a new record.
    """

    txid: str
    amount: int
    direction: Direction
    timestamp: datetime
    confirmations: int = 0
    block_height: int | None = None
    unconfirmed: bool = False
    memo: str | None = None
    counterpart_address: str | None = None
    fee: int = 0
    category: CategoryAssignment | None = None
    filtered: bool = False

    @property
    def is_sent(self) -> bool:
        return self.direction is Direction.SENT

    @property
    def is_received(self) -> bool:
        return self.direction is Direction.RECEIVED

    @property
    def is_confirming(self) -> bool:
        """Zero confirmations, whether mempool or freshly mined."""
        return self.confirmations == 0

    @property
    def absolute_amount(self) -> int:
        return abs(self.amount)

    @property
    def has_memo(self) -> bool:
        return bool(self.memo)

    def with_category(self, category: CategoryAssignment) -> TransactionRecord:
        """Return a copy with *category* attached."""
        return dataclasses.replace(self, category=category)

    def with_filtered(self, filtered: bool) -> TransactionRecord:
        """Return a copy with the self-transfer flag set."""
        return dataclasses.replace(self, filtered=filtered)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict."""
        return {
            "txid": self.txid,
            "amount": self.amount,
            "direction": self.direction.value,
            "timestamp": self.timestamp.isoformat(),
            "confirmations": self.confirmations,
            "block_height": self.block_height,
            "unconfirmed": self.unconfirmed,
            "memo": self.memo,
            "counterpart_address": self.counterpart_address,
            "fee": self.fee,
            "category": self.category.to_dict() if self.category else None,
            "filtered": self.filtered,
        }


# ---------------------------------------------------------------------------
# List filters
# ---------------------------------------------------------------------------


class TransactionFilter(enum.StrEnum):
    """Type filter for transaction list queries."""

    ALL = "all"
    SENT = "sent"
    RECEIVED = "received"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: TransactionFilter | str | None) -> TransactionFilter:
        """Parse a filter, treating None or an empty string as ``all``."""
        if not value:
            return cls.ALL
        return cls(value.lower() if isinstance(value, str) else value)
