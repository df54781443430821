"""Shared test fixtures for the wallet-ledger test suite."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from wallet_ledger.config.settings import COIN, DatabaseEngine
from wallet_ledger.ledger.models import Direction, TransactionRecord

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

OWN_T_ADDR = "t1OwnTransparentAddress000000000001"
OWN_Z_ADDR = "zs1ownshieldedaddress0000000000000000000000000000000000001"
EXTERNAL_ADDR = "t1ExternalMerchantAddress0000000042"


def _make_record(
    txid: str = "tx1",
    amount: int = COIN,
    *,
    when: datetime | None = None,
    memo: str | None = None,
    address: str | None = None,
    confirmations: int = 6,
    filtered: bool = False,
) -> TransactionRecord:
    """Build a canonical record; direction follows the amount sign."""
    return TransactionRecord(
        txid=txid,
        amount=amount,
        direction=Direction.RECEIVED if amount > 0 else Direction.SENT,
        timestamp=when or datetime(2024, 3, 15, 12, 0, tzinfo=UTC),
        confirmations=confirmations,
        block_height=100 if confirmations else None,
        unconfirmed=confirmations == 0,
        memo=memo,
        counterpart_address=address,
        filtered=filtered,
    )


def _balance_payload(**overrides: Any) -> dict[str, Any]:
    """A coherent wallet-core balance payload (3 coins transparent, 5 shielded)."""
    payload: dict[str, Any] = {
        "transparent": 3 * COIN,
        "shielded": 5 * COIN,
        "unconfirmed_transparent": COIN,
        "unconfirmed_shielded": 0,
        "verified": {"transparent": 2 * COIN, "shielded": 5 * COIN},
        "unverified": {"transparent": COIN, "shielded": 0},
        "spendable": {"transparent": 2 * COIN, "shielded": 4 * COIN},
        "pending_change": 0,
    }
    payload.update(overrides)
    return payload


def _raw_transactions() -> list[dict[str, Any]]:
    """A small raw feed: salary, purchase, self-transfer, and one malformed record."""
    return [
        {
            "id": "salary-1",
            "amount": 5 * COIN,
            "block_height": 100,
            "unconfirmed": False,
            "timestamp": int(datetime(2024, 1, 10, tzinfo=UTC).timestamp()),
            "memo": "Monthly salary",
            "counterpart_address": OWN_Z_ADDR,
        },
        {
            "id": "coffee-1",
            "amount": -COIN // 2,
            "block_height": 101,
            "unconfirmed": False,
            "timestamp": int(datetime(2024, 2, 5, tzinfo=UTC).timestamp()),
            "memo": "coffee with friends",
            "counterpart_address": EXTERNAL_ADDR,
            "fee": 10_000,
        },
        {
            "id": "shield-1",
            "amount": -COIN // 10,
            "block_height": 102,
            "unconfirmed": False,
            "timestamp": int(datetime(2024, 2, 6, tzinfo=UTC).timestamp()),
            "counterpart_address": OWN_Z_ADDR,
        },
        {"id": "broken-1", "block_height": 103},
    ]


def _own_addresses() -> dict[str, list[str]]:
    return {"transparent": [OWN_T_ADDR], "shielded": [OWN_Z_ADDR]}


@pytest.fixture
def app_config():
    """Provide a test AppConfig backed by in-memory SQLite."""
    from wallet_ledger.config.settings import AppConfig, DatabaseConfig

    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
    )


@pytest.fixture
def wallet_source():
    """A wallet-core source serving the sample feed with chain tip 105."""
    from wallet_ledger.sources import StaticWalletSource

    return StaticWalletSource(
        balance=_balance_payload(),
        transactions=_raw_transactions(),
        addresses=_own_addresses(),
        chain_tip=105,
    )


@pytest.fixture
async def datastore(app_config) -> AsyncIterator:
    """An open datastore with the ledger tables created."""
    from wallet_ledger.datastore.client import Datastore

    ds = Datastore(app_config.db)
    await ds.open()
    yield ds
    await ds.close()


@pytest.fixture
async def engine(app_config, wallet_source) -> AsyncIterator:
    """A fully initialized LedgerEngine over the sample wallet source."""
    from wallet_ledger.engine.client import LedgerEngine

    eng = LedgerEngine(app_config, wallet_source)
    await eng.initialize()
    yield eng
    await eng.close()


@pytest.fixture
def test_client(app_config, wallet_source):
    """Provide a FastAPI TestClient with the app wired to the sample source."""
    from fastapi.testclient import TestClient

    from wallet_ledger.api.app import create_app

    app = create_app(config=app_config, source=wallet_source)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def make_record():
    """Factory for canonical TransactionRecords."""
    return _make_record


@pytest.fixture
def balance_payload():
    """Factory for coherent balance payloads; keyword overrides replace fields."""
    return _balance_payload


@pytest.fixture
def raw_feed() -> list[dict[str, Any]]:
    return _raw_transactions()


@pytest.fixture
def own_addresses() -> dict[str, list[str]]:
    return _own_addresses()
