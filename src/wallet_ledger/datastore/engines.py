"""Database engine factory for the transaction store.

- SQLite (aiosqlite driver), including ``:memory:`` for tests
- PostgreSQL (asyncpg driver) with pool sizing
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from wallet_ledger.config.settings import DatabaseConfig


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Args:
        config: Database configuration with DSN and pool settings.

    Returns:
        A configured ``AsyncEngine``.
    """
    kwargs: dict[str, Any] = {"echo": config.debug_sql}

    # Pool sizing only applies to server databases
    if not config.dsn.startswith("sqlite"):
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = max(0, config.max_open_connections - config.max_idle_connections)
        kwargs["pool_pre_ping"] = True
    elif ":memory:" in config.dsn:
        # Each new connection to :memory: would open an empty database
        kwargs["poolclass"] = StaticPool

    return create_async_engine(config.dsn, **kwargs)
