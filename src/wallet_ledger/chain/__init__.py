"""Chain - tip height client and confirmation oracle."""

from wallet_ledger.chain.client import ChainTipClient
from wallet_ledger.chain.oracle import ChainTipSource, ConfirmationOracle

__all__ = ["ChainTipClient", "ChainTipSource", "ConfirmationOracle"]
