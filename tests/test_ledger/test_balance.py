"""Tests for multi-pool balance snapshots and the balance state holder."""

from __future__ import annotations

import pytest

from wallet_ledger.config.settings import COIN
from wallet_ledger.errors.definitions import IncoherentSnapshot
from wallet_ledger.ledger.balance import (
    BalanceSnapshot,
    BalanceState,
    BalanceView,
    Pool,
    PoolBalance,
)


def _snapshot(
    *,
    t: PoolBalance | None = None,
    s: PoolBalance | None = None,
    pending_change: int = 0,
) -> BalanceSnapshot:
    return BalanceSnapshot(
        transparent=t or PoolBalance(balance=3, unconfirmed=1, verified=2, unverified=1, spendable=2),
        shielded=s or PoolBalance(balance=5, unconfirmed=0, verified=5, unverified=0, spendable=4),
        pending_change=pending_change,
    )


# ---------------------------------------------------------------------------
# Snapshot parsing
# ---------------------------------------------------------------------------


class TestFromDict:
    def test_nested_payload(self, balance_payload) -> None:
        snap = BalanceSnapshot.from_dict(balance_payload())
        assert snap.transparent.balance == 3 * COIN
        assert snap.shielded.balance == 5 * COIN
        assert snap.total == 8 * COIN
        assert snap.transparent.verified == 2 * COIN
        assert snap.shielded.spendable == 4 * COIN
        assert snap.last_updated is not None

    def test_flat_and_camel_case_keys(self) -> None:
        snap = BalanceSnapshot.from_dict(
            {
                "transparent": 10,
                "shielded": 20,
                "unconfirmedTransparent": 0,
                "unconfirmedShielded": 5,
                "verified_transparent": 10,
                "verified_shielded": 15,
                "unverified_transparent": 0,
                "unverified_shielded": 5,
                "spendable_transparent": 10,
                "spendable_shielded": 15,
                "pendingChange": 3,
            }
        )
        assert snap.shielded.unconfirmed == 5
        assert snap.pending_change == 3
        assert snap.effective_spendable == 28

    def test_pool_letter_keys(self, balance_payload) -> None:
        payload = balance_payload(verified={"T": 2 * COIN, "S": 5 * COIN})
        snap = BalanceSnapshot.from_dict(payload)
        assert snap.transparent.verified == 2 * COIN

    def test_missing_field_rejected(self, balance_payload) -> None:
        payload = balance_payload()
        del payload["spendable"]
        with pytest.raises(IncoherentSnapshot, match="partial snapshot"):
            BalanceSnapshot.from_dict(payload)

    def test_missing_pool_total_rejected(self, balance_payload) -> None:
        payload = balance_payload()
        del payload["shielded"]
        with pytest.raises(IncoherentSnapshot, match="shielded"):
            BalanceSnapshot.from_dict(payload)

    def test_non_numeric_rejected(self, balance_payload) -> None:
        with pytest.raises(IncoherentSnapshot, match="not numeric"):
            BalanceSnapshot.from_dict(balance_payload(transparent="lots"))

    def test_declared_total_must_match(self, balance_payload) -> None:
        with pytest.raises(IncoherentSnapshot, match="declared total"):
            BalanceSnapshot.from_dict(balance_payload(total=1))

    def test_declared_total_accepted_when_consistent(self, balance_payload) -> None:
        snap = BalanceSnapshot.from_dict(balance_payload(total=8 * COIN))
        assert snap.total == 8 * COIN

    def test_to_dict_round_trip_fields(self, balance_payload) -> None:
        data = BalanceSnapshot.from_dict(balance_payload()).to_dict()
        assert data["total"] == 8 * COIN
        assert data["verified"] == {"transparent": 2 * COIN, "shielded": 5 * COIN}
        assert data["effective_spendable"] == 6 * COIN


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


class TestDerived:
    def test_pure_incoming_excludes_change(self) -> None:
        # 4 unconfirmed, of which 3 is returning change still unverified
        pool = PoolBalance(balance=10, unconfirmed=4, verified=6, unverified=3, spendable=6)
        assert pool.pure_incoming == 1

    def test_effective_spendable_adds_pending_change(self) -> None:
        snap = _snapshot(pending_change=7)
        assert snap.spendable == 6
        assert snap.effective_spendable == 13

    def test_pool_lookup_by_name(self) -> None:
        snap = _snapshot()
        assert snap.pool("shielded") is snap.shielded
        assert snap.pool(Pool.TRANSPARENT) is snap.transparent

    def test_problems_empty_for_coherent_snapshot(self) -> None:
        assert _snapshot().problems(tolerance=1) == []


class TestBalanceView:
    def test_flags_and_percentages(self) -> None:
        view = BalanceView(_snapshot())
        assert view.has_balance is True
        assert view.has_unconfirmed_balance is True
        assert view.has_incoming_unconfirmed_transparent is False
        assert view.transparent_percentage == pytest.approx(37.5)
        assert view.shielded_percentage == pytest.approx(62.5)

    def test_incoming_flag_when_new_funds_arrive(self) -> None:
        s = PoolBalance(balance=5, unconfirmed=2, verified=3, unverified=0, spendable=3)
        view = BalanceView(_snapshot(s=s))
        assert view.has_incoming_unconfirmed_shielded is True

    def test_empty_balance_percentages_are_zero(self) -> None:
        view = BalanceView(BalanceSnapshot.empty())
        assert view.has_balance is False
        assert view.transparent_percentage == 0.0
        assert view.to_dict()["shielded_percentage"] == 0.0


# ---------------------------------------------------------------------------
# BalanceState
# ---------------------------------------------------------------------------


class TestReplace:
    def test_replace_swaps_snapshot(self) -> None:
        state = BalanceState()
        new = _snapshot()
        assert state.replace(new) is new
        assert state.snapshot is new

    def test_spendable_above_verified_rejected(self) -> None:
        state = BalanceState()
        good = state.replace(_snapshot())
        bad = _snapshot(s=PoolBalance(balance=5, unconfirmed=0, verified=3, unverified=0, spendable=4))
        with pytest.raises(IncoherentSnapshot, match="spendable exceeds"):
            state.replace(bad)
        assert state.snapshot is good

    def test_negative_pure_incoming_rejected(self) -> None:
        state = BalanceState(tolerance=1)
        stale = _snapshot(t=PoolBalance(balance=3, unconfirmed=1, verified=2, unverified=5, spendable=2))
        with pytest.raises(IncoherentSnapshot):
            state.replace(stale)
        assert state.snapshot == BalanceSnapshot.empty()

    def test_pure_incoming_within_tolerance_accepted(self) -> None:
        state = BalanceState(tolerance=1)
        snap = _snapshot(t=PoolBalance(balance=3, unconfirmed=1, verified=2, unverified=2, spendable=2))
        assert state.replace(snap) is snap

    def test_negative_amount_rejected(self) -> None:
        state = BalanceState()
        with pytest.raises(IncoherentSnapshot, match="negative"):
            state.replace(_snapshot(pending_change=-1))

    def test_set_pending_change_produces_new_snapshot(self) -> None:
        state = BalanceState(_snapshot())
        before = state.snapshot
        after = state.set_pending_change(5)
        assert after is not before
        assert before.pending_change == 0
        assert state.snapshot.pending_change == 5


class TestSufficiency:
    def test_overall_uses_effective_spendable(self) -> None:
        state = BalanceState(_snapshot(pending_change=4))
        assert state.is_sufficient_for(10) is True
        assert state.is_sufficient_for(11) is False

    def test_pool_uses_pool_spendable_only(self) -> None:
        state = BalanceState(_snapshot(pending_change=100))
        assert state.is_sufficient_for(4, Pool.SHIELDED) is True
        assert state.is_sufficient_for(5, "shielded") is False
        assert state.is_sufficient_for(2, Pool.TRANSPARENT) is True

    def test_unconfirmed_funds_never_spendable(self) -> None:
        # 1 coin arriving, nothing verified yet
        t = PoolBalance(balance=COIN, unconfirmed=COIN, verified=0, unverified=0, spendable=0)
        s = PoolBalance()
        state = BalanceState(BalanceSnapshot(transparent=t, shielded=s))
        assert state.is_sufficient_for(1) is False

    def test_zero_amount_always_sufficient(self) -> None:
        assert BalanceState().is_sufficient_for(0) is True
