"""Wallet-core data sources.

The cryptographic wallet core lives outside this package.  The ledger only
needs the four read calls of :class:`WalletCoreSource`.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Protocol

import yaml

logger = logging.getLogger(__name__)


class WalletCoreSource(Protocol):
    """Read interface onto the external wallet core."""

    async def get_balance_snapshot(self) -> dict[str, Any]:
        """Balances per pool in minor units (see ``BalanceSnapshot.from_dict``)."""
        ...

    async def get_raw_transactions(self) -> list[dict[str, Any]]:
        """Raw transaction records (see ``RawTransaction.from_dict``)."""
        ...

    async def get_own_addresses(self) -> dict[str, list[str]]:
        """``{"transparent": [...], "shielded": [...]}``."""
        ...

    async def get_chain_tip_height(self) -> int:
        """Best-effort current chain tip."""
        ...


class StaticWalletSource:
    """A :class:`WalletCoreSource` serving fixed data.

    Useful for exported wallet dumps and for tests.  Each call returns a deep
    copy so callers cannot mutate the stored state.
    """

    def __init__(
        self,
        *,
        balance: dict[str, Any] | None = None,
        transactions: list[dict[str, Any]] | None = None,
        addresses: dict[str, list[str]] | None = None,
        chain_tip: int | None = None,
    ) -> None:
        self.balance = balance or {}
        self.transactions = transactions or []
        self.addresses = addresses or {"transparent": [], "shielded": []}
        self.chain_tip = chain_tip

    @classmethod
    def from_file(cls, path: str | Path) -> StaticWalletSource:
        """Load a wallet dump from a YAML or JSON file.

        The file holds top-level ``balance``, ``transactions``, ``addresses``
        and ``chain_tip`` keys; any may be omitted.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file is not a mapping.
        """
        text = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            msg = f"wallet dump {path} must be a mapping"
            raise ValueError(msg)
        logger.info("Loaded wallet dump from %s", path)
        return cls(
            balance=data.get("balance"),
            transactions=data.get("transactions"),
            addresses=data.get("addresses"),
            chain_tip=data.get("chain_tip"),
        )

    async def get_balance_snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.balance)

    async def get_raw_transactions(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.transactions)

    async def get_own_addresses(self) -> dict[str, list[str]]:
        return copy.deepcopy(self.addresses)

    async def get_chain_tip_height(self) -> int:
        if self.chain_tip is None:
            msg = "wallet dump has no chain tip"
            raise LookupError(msg)
        return self.chain_tip
