"""Ledger - balance state, normalization, self-transfer filtering, categorization."""

from wallet_ledger.ledger.balance import BalanceSnapshot, BalanceState, BalanceView, Pool
from wallet_ledger.ledger.categorizer import Categorizer, CategoryDefinition
from wallet_ledger.ledger.models import (
    CategoryAssignment,
    CategoryType,
    Direction,
    RawTransaction,
    TransactionRecord,
)
from wallet_ledger.ledger.normalizer import (
    NormalizationResult,
    SkippedRecord,
    TransactionNormalizer,
)
from wallet_ledger.ledger.self_transfer import SelfTransferFilter

__all__ = [
    "BalanceSnapshot",
    "BalanceState",
    "BalanceView",
    "Categorizer",
    "CategoryAssignment",
    "CategoryDefinition",
    "CategoryType",
    "Direction",
    "NormalizationResult",
    "Pool",
    "RawTransaction",
    "SelfTransferFilter",
    "SkippedRecord",
    "TransactionNormalizer",
    "TransactionRecord",
]
