"""Paginated transaction list cursor.

The cursor pulls fixed-size pages from a :class:`PageFetcher` and keeps the
accumulated list.  It has three states::

    idle --load_more()/apply_filter()--> loading_page --ok--> idle
                                              |
                                              +--failure--> error --> idle

Requests made while a page is loading are dropped, not queued.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Protocol

from wallet_ledger.errors.definitions import FetchFailure
from wallet_ledger.ledger.models import TransactionFilter

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from wallet_ledger.ledger.models import TransactionRecord
    from wallet_ledger.metrics.collector import LedgerMetrics

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 40


class CursorState(enum.StrEnum):
    IDLE = "idle"
    LOADING_PAGE = "loading_page"
    ERROR = "error"


class PageFetcher(Protocol):
    """Loads one zero-based page of transactions."""

    async def __call__(
        self,
        *,
        page: int,
        page_size: int,
        search: str,
        type: TransactionFilter,  # noqa: A002
    ) -> Sequence[TransactionRecord]: ...


class SyncCursor:
    """Pagination state for a filtered transaction list.

    Usage::

        cursor = SyncCursor(repository.fetch_page, page_size=40)
        await cursor.apply_filter(search="coffee")
        while cursor.has_more:
            await cursor.load_more()

    Args:
        fetcher: Page source.
        page_size: Rows per page; a short page means the list is exhausted.
        on_state_change: Called with each new :class:`CursorState`.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_state_change: Callable[[CursorState], None] | None = None,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._fetcher = fetcher
        self._page_size = page_size
        self._on_state_change = on_state_change
        self._metrics = metrics

        self._items: list[TransactionRecord] = []
        self._page = 0
        self._started = False
        self._search = ""
        self._type = TransactionFilter.ALL
        self._has_more = True
        self._state = CursorState.IDLE
        self._last_error: FetchFailure | None = None

    # -- Read-only state --

    @property
    def items(self) -> tuple[TransactionRecord, ...]:
        return tuple(self._items)

    @property
    def page(self) -> int:
        """Index of the last page loaded."""
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def search(self) -> str:
        return self._search

    @property
    def type_filter(self) -> TransactionFilter:
        return self._type

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def is_loading(self) -> bool:
        return self._state is CursorState.LOADING_PAGE

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def last_error(self) -> FetchFailure | None:
        return self._last_error

    # -- Transitions --

    async def load_more(self) -> bool:
        """Append the next page.

        Returns:
            True if a page was loaded, False if the call was a no-op because a
            page is already loading or the list is exhausted.

        Raises:
            FetchFailure: The fetch failed; the list is unchanged.
        """
        if self.is_loading or not self._has_more:
            return False
        page = self._page + 1 if self._started else 0
        await self._load(page, replace=False)
        return True

    async def apply_filter(
        self,
        search: str | None = None,
        type: TransactionFilter | str | None = None,  # noqa: A002
    ) -> bool:
        """Reset to page 0 with new filters and load it.

        The list is cleared before the fetch starts.

        Returns:
            False if dropped because a page is already loading.

        Raises:
            FetchFailure: The first page could not be loaded.
        """
        if self.is_loading:
            return False
        self._search = (search or "").strip()
        self._type = TransactionFilter.parse(type)
        self._reset()
        await self._load(0, replace=True)
        return True

    async def reload(self) -> bool:
        """Reload from page 0 with the current filters."""
        return await self.apply_filter(self._search, self._type)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._items = []
        self._page = 0
        self._started = False
        self._has_more = True

    def _set_state(self, state: CursorState) -> None:
        self._state = state
        if self._on_state_change:
            self._on_state_change(state)

    async def _load(self, page: int, *, replace: bool) -> None:
        self._set_state(CursorState.LOADING_PAGE)
        try:
            rows = await self._fetcher(
                page=page,
                page_size=self._page_size,
                search=self._search,
                type=self._type,
            )
        except Exception as exc:
            failure = exc if isinstance(exc, FetchFailure) else FetchFailure(str(exc))
            logger.warning("Failed to load transaction page %d: %s", page, failure.message)
            if self._metrics:
                self._metrics.inc_fetch_failure()
            self._last_error = failure
            self._set_state(CursorState.ERROR)
            self._set_state(CursorState.IDLE)
            if failure is exc:
                raise
            raise failure from exc
        except BaseException:
            # Cancelled mid-fetch; leave the list as it was and allow a retry.
            logger.debug("Loading transaction page %d was cancelled", page)
            self._set_state(CursorState.IDLE)
            raise

        rows = list(rows)
        if replace:
            self._items = rows
        else:
            self._items.extend(rows)
        self._page = page
        self._started = True
        self._has_more = len(rows) == self._page_size
        self._last_error = None
        logger.debug("Loaded page %d (%d rows, has_more=%s)", page, len(rows), self._has_more)
        self._set_state(CursorState.IDLE)
