"""Configuration - pydantic-settings models with YAML overlay."""

from __future__ import annotations

from wallet_ledger.config.settings import COIN, AnalyticsPeriod, AppConfig

__all__ = ["COIN", "AnalyticsPeriod", "AppConfig"]
