"""Datastore - async SQLAlchemy persistence for normalized transactions."""

from wallet_ledger.datastore.client import Datastore
from wallet_ledger.datastore.repository import TransactionRepository, TransactionStore

__all__ = ["Datastore", "TransactionRepository", "TransactionStore"]
