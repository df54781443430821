"""Rule-based transaction categorizer.

Every category in :data:`DEFAULT_CATEGORIES` is scored against a transaction
and the best score wins.  Scoring looks at direction, memo keywords, amount
and counterpart address length.  Classification is a pure function of the
transaction and the table, so nothing is persisted.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wallet_ledger.config.settings import COIN
from wallet_ledger.ledger.models import CategoryAssignment, CategoryType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from wallet_ledger.ledger.models import TransactionRecord

logger = logging.getLogger(__name__)

DIRECTION_WEIGHT = 0.3
TRANSFER_WEIGHT = 0.1
KEYWORD_WEIGHT = 0.4
EXCHANGE_ADDRESS_LENGTH = 30


@dataclass(frozen=True)
class CategoryDefinition:
    """One row of the category table."""

    type: CategoryType
    name: str
    description: str
    keywords: tuple[str, ...] = ()


FALLBACK_CATEGORY = "Miscellaneous"

# Order matters: ties go to the earlier row.
DEFAULT_CATEGORIES: tuple[CategoryDefinition, ...] = (
    # Income
    CategoryDefinition(
        CategoryType.INCOME,
        "Salary",
        "Regular salary payments and wages",
        ("salary", "wage", "payroll", "income", "payment", "monthly", "weekly"),
    ),
    CategoryDefinition(
        CategoryType.INCOME,
        "Gift Received",
        "Money received as gifts",
        ("gift", "birthday", "christmas", "holiday", "present", "bonus"),
    ),
    CategoryDefinition(
        CategoryType.INCOME,
        "Payment Received",
        "Payments received for services or goods",
        ("payment", "invoice", "service", "freelance", "commission", "refund"),
    ),
    CategoryDefinition(
        CategoryType.INCOME,
        "Investment Return",
        "Returns from investments, dividends, interest",
        ("dividend", "interest", "return", "profit", "yield", "staking", "reward"),
    ),
    # Expenses
    CategoryDefinition(
        CategoryType.EXPENSE,
        "Purchase",
        "General purchases and shopping",
        ("purchase", "buy", "shop", "store", "retail", "order", "product"),
    ),
    CategoryDefinition(
        CategoryType.EXPENSE,
        "Bills & Utilities",
        "Utility bills, rent, subscriptions",
        ("bill", "utility", "rent", "subscription", "electric", "water", "gas", "internet"),
    ),
    CategoryDefinition(
        CategoryType.EXPENSE,
        "Services",
        "Professional services and fees",
        ("service", "fee", "repair", "maintenance", "professional", "consultation"),
    ),
    CategoryDefinition(
        CategoryType.EXPENSE,
        "Food & Dining",
        "Restaurant meals, food delivery, groceries",
        ("food", "restaurant", "dining", "meal", "grocery", "delivery", "coffee"),
    ),
    CategoryDefinition(
        CategoryType.EXPENSE,
        "Transportation",
        "Travel, fuel, public transport",
        ("transport", "fuel", "gas", "taxi", "uber", "bus", "train", "travel"),
    ),
    # Transfers
    CategoryDefinition(
        CategoryType.TRANSFER,
        "Exchange",
        "Cryptocurrency exchange transactions",
        ("exchange", "swap", "trade", "convert", "binance", "coinbase", "kraken"),
    ),
    CategoryDefinition(
        CategoryType.TRANSFER,
        "Wallet Transfer",
        "Transfers between own wallets",
        ("transfer", "move", "wallet", "internal", "consolidate", "migrate"),
    ),
    CategoryDefinition(
        CategoryType.TRANSFER,
        "Bank Transfer",
        "Transfers to/from bank accounts",
        ("bank", "withdraw", "deposit", "fiat", "cash out", "cash in"),
    ),
    # Investments
    CategoryDefinition(
        CategoryType.INVESTMENT,
        "Trading",
        "Active trading transactions",
        ("trade", "trading", "buy", "sell", "market", "order", "position"),
    ),
    CategoryDefinition(
        CategoryType.INVESTMENT,
        "Staking",
        "Staking and delegation transactions",
        ("stake", "staking", "delegate", "validator", "node", "pool"),
    ),
    CategoryDefinition(
        CategoryType.INVESTMENT,
        "DeFi",
        "Decentralized finance transactions",
        ("defi", "liquidity", "yield", "farming", "pool", "protocol", "dex"),
    ),
    # Other
    CategoryDefinition(
        CategoryType.OTHER,
        "Donation",
        "Charitable donations and tips",
        ("donation", "charity", "tip", "support", "contribute", "help"),
    ),
    CategoryDefinition(
        CategoryType.OTHER,
        FALLBACK_CATEGORY,
        "Other uncategorized transactions",
    ),
)


def _amount_bonus(name: str, record: TransactionRecord) -> float:
    amount = record.absolute_amount
    if name == "Salary" and record.is_received and amount >= COIN:
        return 0.2
    if name == "Gift Received" and record.is_received and amount < COIN:
        return 0.1
    if name == "Purchase" and record.is_sent and amount < 10 * COIN:
        return 0.1
    return 0.0


class Categorizer:
    """Score transactions against an ordered category table.

    Usage::

        categorizer = Categorizer()
        assignment = categorizer.classify(record)
        record = record.with_category(assignment)
    """

    def __init__(
        self,
        categories: Iterable[CategoryDefinition] = DEFAULT_CATEGORIES,
        *,
        keyword_overrides: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        table = list(categories)
        if not table:
            raise ValueError("category table is empty")

        if keyword_overrides:
            by_name = {c.name: i for i, c in enumerate(table)}
            for name, keywords in keyword_overrides.items():
                if name not in by_name:
                    logger.warning("Ignoring keyword override for unknown category %r", name)
                    continue
                i = by_name[name]
                table[i] = dataclasses.replace(
                    table[i], keywords=tuple(k.lower() for k in keywords if k)
                )

        self._categories: tuple[CategoryDefinition, ...] = tuple(table)
        self._fallback = next(
            (c for c in self._categories if c.name == FALLBACK_CATEGORY), self._categories[-1]
        )

    @property
    def categories(self) -> tuple[CategoryDefinition, ...]:
        return self._categories

    def get(self, name: str) -> CategoryDefinition | None:
        """Look up a category by name."""
        return next((c for c in self._categories if c.name == name), None)

    def by_type(self, category_type: CategoryType) -> list[CategoryDefinition]:
        return [c for c in self._categories if c.type is category_type]

    def score(self, category: CategoryDefinition, record: TransactionRecord) -> float:
        """Raw (unclamped) score of *category* for *record*."""
        total = 0.0
        if category.type is CategoryType.INCOME and record.is_received:
            total += DIRECTION_WEIGHT
        elif category.type is CategoryType.EXPENSE and record.is_sent:
            total += DIRECTION_WEIGHT
        elif category.type is CategoryType.TRANSFER:
            total += TRANSFER_WEIGHT

        memo = (record.memo or "").lower()
        if memo and any(keyword in memo for keyword in category.keywords):
            total += KEYWORD_WEIGHT

        total += _amount_bonus(category.name, record)

        address = record.counterpart_address or ""
        if category.name == "Exchange" and len(address) > EXCHANGE_ADDRESS_LENGTH:
            total += 0.1
        return total

    def classify(self, record: TransactionRecord) -> CategoryAssignment:
        """Pick the best-scoring category for *record*.

        Returns:
            The winning category with its score clamped to [0, 1], or the
            fallback category with confidence 0 when nothing scores.
        """
        best = self._fallback
        best_score = 0.0
        for category in self._categories:
            value = self.score(category, record)
            if value > best_score:
                best, best_score = category, value
        return CategoryAssignment(
            type=best.type,
            name=best.name,
            confidence=min(1.0, max(0.0, best_score)),
        )

    def classify_all(self, records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        """Return copies of *records* with categories attached."""
        return [r.with_category(self.classify(r)) for r in records]
