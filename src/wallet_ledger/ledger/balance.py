"""Multi-pool balance state - immutable snapshots and spend eligibility.

A :class:`BalanceSnapshot` holds per-pool amounts (integer minor units) on
four axes: raw/unconfirmed, verified, unverified and spendable, plus the
pending change from a just-broadcast send.  :class:`BalanceState` owns the
current snapshot and swaps it wholesale on every refresh.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from wallet_ledger.errors.definitions import IncoherentSnapshot

logger = logging.getLogger(__name__)


class Pool(enum.StrEnum):
    """Balance sub-ledgers with independent confirmation rules."""

    TRANSPARENT = "transparent"
    SHIELDED = "shielded"


# ---------------------------------------------------------------------------
# Snapshot values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolBalance:
    """Amounts for a single pool.

    Attributes:
        balance: Raw pool balance (confirmed plus unconfirmed).
        unconfirmed: Unconfirmed value, both new incoming and returning change.
        verified: Value with sufficient confirmations.
        unverified: Value still awaiting confirmations.
        spendable: Value usable right now; may lag ``verified`` while recent
            change outputs are locked.
    """

    balance: int = 0
    unconfirmed: int = 0
    verified: int = 0
    unverified: int = 0
    spendable: int = 0

    @property
    def pure_incoming(self) -> int:
        """Unconfirmed value that is genuinely new (excludes returning change)."""
        return self.unconfirmed - self.unverified

    def problems(self, pool: Pool, tolerance: int) -> list[str]:
        """Return the consistency violations of this pool, empty if coherent."""
        found: list[str] = []
        for name in ("balance", "unconfirmed", "verified", "unverified", "spendable"):
            if getattr(self, name) < 0:
                found.append(f"{pool}.{name} is negative")
        if self.spendable > self.verified:
            found.append(f"{pool}.spendable exceeds {pool}.verified")
        if self.verified > self.balance:
            found.append(f"{pool}.verified exceeds {pool}.balance")
        if self.pure_incoming < -tolerance:
            found.append(f"{pool}.unverified exceeds {pool}.unconfirmed")
        return found


_REQUIRED_FIELDS = (
    "transparent",
    "shielded",
    "unconfirmed_transparent",
    "unconfirmed_shielded",
    "verified",
    "unverified",
    "spendable",
)

_CAMEL = {
    "unconfirmed_transparent": "unconfirmedTransparent",
    "unconfirmed_shielded": "unconfirmedShielded",
    "pending_change": "pendingChange",
}


def _lookup(data: dict[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    camel = _CAMEL.get(key)
    if camel is not None and camel in data:
        return data[camel]
    return None


def _pool_axis(data: dict[str, Any], axis: str, pool: Pool) -> int:
    nested = data.get(axis)
    if isinstance(nested, dict):
        value = nested.get(pool.value, nested.get(pool.value[0].upper()))
    else:
        value = data.get(f"{axis}_{pool.value}")
    if value is None:
        raise IncoherentSnapshot(f"partial snapshot: missing {axis}.{pool.value}")
    return _as_int(value, f"{axis}.{pool.value}")


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise IncoherentSnapshot(f"snapshot field {name} is not numeric: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise IncoherentSnapshot(f"snapshot field {name} is not whole minor units: {value!r}")
    return int(value)


@dataclass(frozen=True)
class BalanceSnapshot:
    """An atomic, immutable balance snapshot across both pools."""

    transparent: PoolBalance = PoolBalance()
    shielded: PoolBalance = PoolBalance()
    pending_change: int = 0
    last_updated: datetime | None = None

    # -- Construction --

    @classmethod
    def empty(cls) -> BalanceSnapshot:
        """A zero balance."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BalanceSnapshot:
        """Build a snapshot from the wallet core's balance payload.

        Accepts snake_case or camelCase keys, and per-pool axes either nested
        (``{"verified": {"transparent": 1, "shielded": 2}}``) or flat
        (``verified_transparent``).

        Raises:
            IncoherentSnapshot: If any required field is missing or not an
                integer amount.
        """
        for key in _REQUIRED_FIELDS[:4]:
            if _lookup(data, key) is None:
                raise IncoherentSnapshot(f"partial snapshot: missing {key}")

        pools: dict[Pool, PoolBalance] = {}
        for pool in Pool:
            pools[pool] = PoolBalance(
                balance=_as_int(_lookup(data, pool.value), pool.value),
                unconfirmed=_as_int(
                    _lookup(data, f"unconfirmed_{pool.value}"), f"unconfirmed_{pool.value}"
                ),
                verified=_pool_axis(data, "verified", pool),
                unverified=_pool_axis(data, "unverified", pool),
                spendable=_pool_axis(data, "spendable", pool),
            )

        pending = _lookup(data, "pending_change")
        snapshot = cls(
            transparent=pools[Pool.TRANSPARENT],
            shielded=pools[Pool.SHIELDED],
            pending_change=0 if pending is None else _as_int(pending, "pending_change"),
            last_updated=datetime.now(UTC),
        )

        declared_total = data.get("total")
        if declared_total is not None and _as_int(declared_total, "total") != snapshot.total:
            raise IncoherentSnapshot(
                f"declared total {declared_total} != transparent + shielded ({snapshot.total})"
            )
        return snapshot

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict including derived totals."""
        return {
            "transparent": self.transparent.balance,
            "shielded": self.shielded.balance,
            "total": self.total,
            "unconfirmed": self.unconfirmed,
            "unconfirmed_transparent": self.transparent.unconfirmed,
            "unconfirmed_shielded": self.shielded.unconfirmed,
            "verified": {p.value: self.pool(p).verified for p in Pool},
            "unverified": {p.value: self.pool(p).unverified for p in Pool},
            "spendable": {p.value: self.pool(p).spendable for p in Pool},
            "pending_change": self.pending_change,
            "effective_spendable": self.effective_spendable,
            "pure_incoming": self.pure_incoming,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    # -- Derived values --

    def pool(self, pool: Pool | str) -> PoolBalance:
        """Return the balance for *pool*."""
        return self.transparent if Pool(pool) is Pool.TRANSPARENT else self.shielded

    @property
    def total(self) -> int:
        return self.transparent.balance + self.shielded.balance

    @property
    def unconfirmed(self) -> int:
        return self.transparent.unconfirmed + self.shielded.unconfirmed

    @property
    def confirmed(self) -> int:
        return self.total - self.unconfirmed

    @property
    def verified(self) -> int:
        return self.transparent.verified + self.shielded.verified

    @property
    def unverified(self) -> int:
        return self.transparent.unverified + self.shielded.unverified

    @property
    def spendable(self) -> int:
        return self.transparent.spendable + self.shielded.spendable

    @property
    def effective_spendable(self) -> int:
        """Spendable funds plus change still on its way back from a send."""
        return self.spendable + self.pending_change

    @property
    def pure_incoming(self) -> int:
        return self.unconfirmed - self.unverified

    def problems(self, tolerance: int = 0) -> list[str]:
        """List every consistency violation in this snapshot."""
        found = self.transparent.problems(Pool.TRANSPARENT, tolerance)
        found += self.shielded.problems(Pool.SHIELDED, tolerance)
        if self.pending_change < 0:
            found.append("pending_change is negative")
        if self.pure_incoming < -tolerance:
            found.append(f"pure incoming {self.pure_incoming} is below zero")
        return found

    def with_pending_change(self, amount: int) -> BalanceSnapshot:
        """Return a copy carrying *amount* of pending change."""
        return dataclasses.replace(self, pending_change=amount)


# ---------------------------------------------------------------------------
# Read-only view for presentation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BalanceView:
    """Balance snapshot plus the derived flags a UI needs."""

    snapshot: BalanceSnapshot

    @property
    def has_balance(self) -> bool:
        return self.snapshot.total > 0

    @property
    def has_transparent_balance(self) -> bool:
        return self.snapshot.transparent.balance > 0

    @property
    def has_shielded_balance(self) -> bool:
        return self.snapshot.shielded.balance > 0

    @property
    def has_unconfirmed_balance(self) -> bool:
        return self.snapshot.unconfirmed > 0

    @property
    def has_incoming_unconfirmed_transparent(self) -> bool:
        """True when new funds (not change) are arriving in the transparent pool."""
        return self.snapshot.transparent.pure_incoming > 0

    @property
    def has_incoming_unconfirmed_shielded(self) -> bool:
        return self.snapshot.shielded.pure_incoming > 0

    @property
    def transparent_percentage(self) -> float:
        total = self.snapshot.total
        return self.snapshot.transparent.balance / total * 100 if total > 0 else 0.0

    @property
    def shielded_percentage(self) -> float:
        total = self.snapshot.total
        return self.snapshot.shielded.balance / total * 100 if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Snapshot fields plus derived flags and percentages."""
        data = self.snapshot.to_dict()
        data.update(
            has_balance=self.has_balance,
            has_transparent_balance=self.has_transparent_balance,
            has_shielded_balance=self.has_shielded_balance,
            has_unconfirmed_balance=self.has_unconfirmed_balance,
            has_incoming_unconfirmed_transparent=self.has_incoming_unconfirmed_transparent,
            has_incoming_unconfirmed_shielded=self.has_incoming_unconfirmed_shielded,
            transparent_percentage=self.transparent_percentage,
            shielded_percentage=self.shielded_percentage,
        )
        return data


# ---------------------------------------------------------------------------
# Holder
# ---------------------------------------------------------------------------


class BalanceState:
    """Owner of the current balance snapshot.

    The snapshot is only ever swapped by a single attribute assignment, so a
    reader never observes a half-updated balance.

    Usage::

        state = BalanceState()
        state.replace(BalanceSnapshot.from_dict(payload))
        if state.is_sufficient_for(amount):
            ...
    """

    def __init__(self, snapshot: BalanceSnapshot | None = None, *, tolerance: int = 1) -> None:
        self._snapshot = snapshot or BalanceSnapshot.empty()
        self._tolerance = tolerance

    @property
    def snapshot(self) -> BalanceSnapshot:
        """The current snapshot."""
        return self._snapshot

    def view(self) -> BalanceView:
        """Read-only view of the current snapshot."""
        return BalanceView(self._snapshot)

    def replace(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        """Atomically swap in *snapshot*.

        Args:
            snapshot: The new balance snapshot.

        Returns:
            The snapshot now in effect.

        Raises:
            IncoherentSnapshot: If *snapshot* fails its consistency checks.
                The previous snapshot stays in place.
        """
        problems = snapshot.problems(self._tolerance)
        if problems:
            logger.warning("Rejecting stale balance snapshot: %s", "; ".join(problems))
            raise IncoherentSnapshot("; ".join(problems))
        self._snapshot = snapshot
        return snapshot

    def set_pending_change(self, amount: int) -> BalanceSnapshot:
        """Record change expected back from a just-broadcast send."""
        return self.replace(self._snapshot.with_pending_change(amount))

    def is_sufficient_for(self, amount: int, pool: Pool | str | None = None) -> bool:
        """Check whether *amount* can be spent right now.

        Args:
            amount: Amount in minor units.
            pool: Restrict the check to one pool's spendable funds. Pending
                change is not attributed to a pool, so it only counts when
                *pool* is None.

        Returns:
            True if the relevant spendable balance covers *amount*.
        """
        snapshot = self._snapshot
        if pool is None:
            return snapshot.effective_spendable >= amount
        return snapshot.pool(pool).spendable >= amount
