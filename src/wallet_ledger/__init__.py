"""wallet-ledger - ledger-state reconciliation and classification engine."""

__version__ = "0.1.0"
