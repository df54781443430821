"""Error taxonomy for balance, normalization, chain tip and paging failures."""

from __future__ import annotations

from wallet_ledger.errors.ledger_errors import LedgerError


class IncoherentSnapshot(LedgerError):
    """A balance snapshot failed its consistency check and was discarded."""

    def __init__(self, message: str, *, status_code: int = 409) -> None:
        super().__init__(message, status_code=status_code, code="incoherent-snapshot")


class MalformedRecord(LedgerError):
    """A single raw transaction could not be normalized.

    Attributes:
        txid: Identifier of the offending record, if it had one.
    """

    def __init__(self, message: str, *, txid: str = "", status_code: int = 422) -> None:
        super().__init__(message, status_code=status_code, code="malformed-record")
        self.txid = txid


class OracleUnavailable(LedgerError):
    """The chain tip could not be refreshed from the external source."""

    def __init__(self, message: str, *, status_code: int = 503) -> None:
        super().__init__(message, status_code=status_code, code="oracle-unavailable")


class FetchFailure(LedgerError):
    """A page fetch behind the sync cursor failed; safe to retry."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="fetch-failure")


# -- Canned instances ------------------------------------------------------

ErrEngineNotReady = LedgerError(
    "ledger engine not initialized", status_code=503, code="engine-not-ready"
)
ErrTransactionNotFound = LedgerError(
    "transaction not found", status_code=404, code="transaction-not-found"
)
ErrInvalidWindow = LedgerError(
    "analytics window start must precede end", status_code=400, code="invalid-window"
)
