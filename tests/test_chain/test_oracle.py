"""Tests for the confirmation oracle."""

from __future__ import annotations

import pytest

from wallet_ledger.chain.oracle import ConfirmationOracle
from wallet_ledger.errors.definitions import OracleUnavailable
from wallet_ledger.metrics.collector import LedgerMetrics


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class FakeTipSource:
    def __init__(self, *heights: int | Exception) -> None:
        self._heights = list(heights)
        self.calls = 0

    async def get_chain_tip_height(self) -> int:
        self.calls += 1
        value = self._heights.pop(0) if len(self._heights) > 1 else self._heights[0]
        if isinstance(value, Exception):
            raise value
        return value


# ---------------------------------------------------------------------------
# Confirmation arithmetic
# ---------------------------------------------------------------------------


class TestConfirmationsFor:
    @pytest.fixture
    def oracle(self) -> ConfirmationOracle:
        o = ConfirmationOracle()
        o.set_height(105)
        return o

    def test_mined(self, oracle: ConfirmationOracle) -> None:
        assert oracle.confirmations_for(100, False) == 6

    def test_tip_block_has_one(self, oracle: ConfirmationOracle) -> None:
        assert oracle.confirmations_for(105, False) == 1

    def test_unconfirmed_flag_wins(self, oracle: ConfirmationOracle) -> None:
        assert oracle.confirmations_for(100, True) == 0

    def test_unmined(self, oracle: ConfirmationOracle) -> None:
        assert oracle.confirmations_for(None, False) == 0
        assert oracle.confirmations_for(0, False) == 0

    def test_height_above_tip_clamped(self, oracle: ConfirmationOracle) -> None:
        assert oracle.confirmations_for(110, False) == 0

    def test_explicit_tip(self, oracle: ConfirmationOracle) -> None:
        assert oracle.confirmations_for(100, False, tip=100) == 1

    def test_no_tip_known(self) -> None:
        assert ConfirmationOracle().confirmations_for(100, False) == 0


# ---------------------------------------------------------------------------
# Tip caching
# ---------------------------------------------------------------------------


class TestCurrentHeight:
    async def test_no_source_returns_cached(self) -> None:
        oracle = ConfirmationOracle()
        assert await oracle.current_height() is None
        oracle.set_height(7)
        assert await oracle.current_height() == 7

    async def test_fetches_once_per_interval(self) -> None:
        clock = FakeClock()
        source = FakeTipSource(100, 101)
        oracle = ConfirmationOracle(source, refresh_interval=30, clock=clock)

        assert await oracle.current_height() == 100
        clock.now += 29
        assert await oracle.current_height() == 100
        assert source.calls == 1

        clock.now += 1
        assert await oracle.current_height() == 101
        assert source.calls == 2

    async def test_failure_keeps_last_height(self) -> None:
        clock = FakeClock()
        metrics = LedgerMetrics()
        source = FakeTipSource(100, OracleUnavailable("down"))
        oracle = ConfirmationOracle(source, refresh_interval=30, clock=clock, metrics=metrics)

        assert await oracle.current_height() == 100
        clock.now += 30
        assert await oracle.current_height() == 100
        assert metrics.registry.get_sample_value("ledger_oracle_failures_total") == 1.0

    async def test_failure_stamps_refresh_time(self) -> None:
        clock = FakeClock()
        source = FakeTipSource(RuntimeError("boom"))
        oracle = ConfirmationOracle(source, refresh_interval=30, clock=clock)

        assert await oracle.current_height() is None
        assert oracle.is_stale() is False
        await oracle.current_height()
        assert source.calls == 1

    @pytest.mark.parametrize("bad", [0, -5, True])
    async def test_invalid_height_is_failure(self, bad) -> None:
        oracle = ConfirmationOracle(FakeTipSource(bad))
        assert await oracle.current_height() is None

    async def test_success_sets_gauge(self) -> None:
        metrics = LedgerMetrics()
        oracle = ConfirmationOracle(FakeTipSource(321), metrics=metrics)
        await oracle.current_height()
        assert metrics.registry.get_sample_value("ledger_chain_tip_gauge") == 321.0
        assert oracle.cached_height == 321

    def test_set_height_resets_staleness(self) -> None:
        clock = FakeClock()
        oracle = ConfirmationOracle(FakeTipSource(1), clock=clock)
        assert oracle.is_stale() is True
        oracle.set_height(50)
        assert oracle.is_stale() is False
