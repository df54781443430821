"""Engine - the ledger facade owning storage, balance and the refresh pipeline."""

from wallet_ledger.engine.client import LedgerEngine, RefreshResult

__all__ = ["LedgerEngine", "RefreshResult"]
