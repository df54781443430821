"""Transaction normalizer - raw wallet-core records to canonical transactions.

Each raw record either becomes a :class:`TransactionRecord` or a
:class:`SkippedRecord` describing why it was dropped.  A malformed record
never aborts a batch.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from wallet_ledger.errors.definitions import MalformedRecord
from wallet_ledger.ledger.models import Direction, RawTransaction, TransactionRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

    from wallet_ledger.chain.oracle import ConfirmationOracle
    from wallet_ledger.metrics.collector import LedgerMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedRecord:
    """A raw record that could not be normalized."""

    txid: str
    reason: str
    detail: str = ""


@dataclass
class NormalizationResult:
    """Outcome of normalizing a batch of raw records."""

    records: list[TransactionRecord] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)
    duplicates: int = 0

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skip_reasons(self) -> dict[str, int]:
        """Count of skipped records per reason."""
        return dict(Counter(s.reason for s in self.skipped))


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _whole(value: Any, reason: str, txid: str) -> int:
    """Coerce an integral number (int or integral float) to int."""
    if isinstance(value, bool):
        raise MalformedRecord(reason, txid=txid)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise MalformedRecord(reason, txid=txid)


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _timestamp(value: Any, txid: str) -> datetime:
    if value is None:
        value = 0
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecord("invalid-timestamp", txid=txid)
    try:
        return datetime.fromtimestamp(value, UTC)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedRecord("invalid-timestamp", txid=txid) from exc


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------


class TransactionNormalizer:
    """Turn raw wallet-core records into canonical transactions.

    Direction comes from the numeric sign of the amount; when the sign and an
    explicit type tag disagree the sign wins.  Sources that report unsigned
    magnitudes can pass ``signed_amounts=False`` so the tag decides instead.

    Confirmations are computed by the :class:`ConfirmationOracle` using each
    record's own unconfirmed flag.
    """

    def __init__(
        self,
        oracle: ConfirmationOracle,
        *,
        signed_amounts: bool = True,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._oracle = oracle
        self._signed_amounts = signed_amounts
        self._metrics = metrics

    def normalize(
        self,
        raw: RawTransaction | dict[str, Any],
        *,
        tip: int | None = None,
    ) -> TransactionRecord | SkippedRecord:
        """Normalize one record.

        Args:
            raw: The raw record or its dict form.
            tip: Chain tip to count confirmations against; defaults to the
                oracle's cached height.

        Returns:
            The canonical record, or a :class:`SkippedRecord` if malformed.
        """
        if isinstance(raw, dict):
            raw = RawTransaction.from_dict(raw)
        elif not isinstance(raw, RawTransaction):
            logger.debug("Skipping feed element of type %s", type(raw).__name__)
            return SkippedRecord(txid="", reason="not-a-mapping", detail=type(raw).__name__)
        try:
            return self._build(raw, tip)
        except MalformedRecord as exc:
            logger.debug("Skipping malformed transaction %r: %s", exc.txid, exc.message)
            return SkippedRecord(txid=exc.txid, reason=exc.message)

    def normalize_batch(
        self,
        raws: Iterable[RawTransaction | dict[str, Any]],
        *,
        tip: int | None = None,
    ) -> NormalizationResult:
        """Normalize many records, dropping malformed ones.

        A txid seen more than once keeps its latest version at the position
        of its first occurrence.
        """
        result = NormalizationResult()
        by_txid: dict[str, TransactionRecord] = {}
        for raw in raws:
            outcome = self.normalize(raw, tip=tip)
            if isinstance(outcome, SkippedRecord):
                result.skipped.append(outcome)
                continue
            if outcome.txid in by_txid:
                result.duplicates += 1
            by_txid[outcome.txid] = outcome
        result.records = list(by_txid.values())

        if result.skipped:
            reasons = result.skip_reasons()
            logger.warning(
                "Dropped %d malformed transaction(s) of %d: %s",
                result.skipped_count,
                result.skipped_count + len(result.records) + result.duplicates,
                reasons,
            )
            if self._metrics:
                for reason, count in reasons.items():
                    self._metrics.inc_skipped(reason, count)
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build(self, raw: RawTransaction, tip: int | None) -> TransactionRecord:
        txid = _text(raw.id)
        if txid is None:
            raise MalformedRecord("missing-id")
        if raw.amount is None:
            raise MalformedRecord("missing-amount", txid=txid)

        amount = _whole(raw.amount, "invalid-amount", txid)
        direction = self._direction(amount, raw.direction, txid)
        signed = -abs(amount) if direction is Direction.SENT else abs(amount)

        height = None
        if raw.block_height is not None:
            height = _whole(raw.block_height, "invalid-height", txid)
            if height < 0:
                raise MalformedRecord("invalid-height", txid=txid)
            height = height or None

        # A record without a flag is treated as unconfirmed.
        unconfirmed = True if raw.unconfirmed is None else bool(raw.unconfirmed)

        fee = 0
        if direction is Direction.SENT and raw.fee is not None:
            fee = abs(_whole(raw.fee, "invalid-fee", txid))

        return TransactionRecord(
            txid=txid,
            amount=signed,
            direction=direction,
            timestamp=_timestamp(raw.timestamp, txid),
            confirmations=self._oracle.confirmations_for(height, unconfirmed, tip=tip),
            block_height=height,
            unconfirmed=unconfirmed,
            memo=_text(raw.memo),
            counterpart_address=_text(raw.counterpart_address),
            fee=fee,
        )

    def _direction(self, amount: int, tag_value: Any, txid: str) -> Direction:
        tag = Direction.from_tag(tag_value)
        if not self._signed_amounts and tag is not None:
            return tag
        if amount > 0:
            by_sign = Direction.RECEIVED
        elif amount < 0:
            by_sign = Direction.SENT
        else:
            return tag or Direction.SENT
        if tag is not None and tag is not by_sign:
            logger.debug("Transaction %s tagged %s but amount sign says %s", txid, tag, by_sign)
        return by_sign
