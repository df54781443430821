"""Sync - paginated, filterable transaction list cursor."""

from wallet_ledger.sync.cursor import CursorState, PageFetcher, SyncCursor

__all__ = ["CursorState", "PageFetcher", "SyncCursor"]
