"""Error types raised by the ledger engine."""

from __future__ import annotations

from wallet_ledger.errors.definitions import (
    FetchFailure,
    IncoherentSnapshot,
    MalformedRecord,
    OracleUnavailable,
)
from wallet_ledger.errors.ledger_errors import LedgerError

__all__ = [
    "FetchFailure",
    "IncoherentSnapshot",
    "LedgerError",
    "MalformedRecord",
    "OracleUnavailable",
]
