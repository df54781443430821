"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``LEDGER_``, nested via ``__``)
2. YAML config file (``config_path`` field or ``LEDGER_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minor units per whole coin (zatoshi / satoshi precision)
COIN = 100_000_000

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class AnalyticsPeriod(enum.StrEnum):
    """Named analytics windows."""

    ONE_MONTH = "1m"
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    ONE_YEAR = "1y"
    ALL = "all"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_SERVER__",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3010


class DatabaseConfig(BaseSettings):
    """Transaction store settings."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./wallet_ledger.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class ChainConfig(BaseSettings):
    """Chain tip source settings."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_CHAIN__",
        case_sensitive=False,
    )

    enabled: bool = Field(
        default=False,
        description="Poll the tip service instead of asking the wallet core for the tip",
    )
    url: str = "http://localhost:9067"
    auth_token: str = ""
    timeout: float = 10.0
    tip_refresh_interval: float = Field(
        default=30.0,
        description="Minimum seconds between chain tip refreshes",
    )


class LedgerConfig(BaseSettings):
    """Reconciliation and classification tunables."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_LEDGER__",
        case_sensitive=False,
    )

    self_transfer_threshold: int = Field(
        default=COIN,
        description="Sent amounts below this (minor units) to an own address may be self-transfers",
    )
    snapshot_tolerance: int = Field(
        default=1,
        description="Allowed negative slack (minor units) on pure incoming balance",
    )
    category_keywords: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Per-category keyword overrides keyed by category name",
    )
    default_period: AnalyticsPeriod = AnalyticsPeriod.ALL


class SyncConfig(BaseSettings):
    """Paginated transaction list settings."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_SYNC__",
        case_sensitive=False,
    )

    page_size: int = Field(default=40, ge=1, le=1000)


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``LEDGER_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    config_path: str = ""
    source_path: str = Field(
        default="",
        description="Wallet dump (YAML or JSON) served as the wallet-core source",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
