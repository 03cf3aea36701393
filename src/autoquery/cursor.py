from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from enum import Enum
from typing import Any

from .codec import ItemCodec
from .compiler import CompiledQuery
from .errors import ALL_ITEMS_PARSED, MAX_PAGINATION_REACHED, ParsingCompleteError, ValidationError
from .executor import QueryExecutor

logger = logging.getLogger(__name__)


class CursorState(Enum):
    FRESH = "fresh"
    FILLED = "filled"
    EXHAUSTED = "exhausted"
    CAPPED = "capped"


class QueryCursor[T]:
    """Pull items of one query, fetching pages as the buffer drains.

    The query is planned (index chosen and request compiled) on the first
    fetch. ``next_item`` returns items one at a time and raises
    :class:`ParsingCompleteError` once every page has been read or the page
    cap has been reached; iterating the cursor stops at the same point.

    State changes only after a page fetch succeeds, so a failed or
    interrupted fetch leaves the cursor as it was and the next pull retries.
    Page-limit, page-cap and start-key settings apply from the next fetch
    on; items already buffered are not affected. Not thread-safe.
    """

    def __init__(
        self,
        *,
        planner: Callable[[], CompiledQuery],
        executor: QueryExecutor,
        codec: ItemCodec[T],
    ) -> None:
        self._planner = planner
        self._executor = executor
        self._codec = codec

        self._compiled: CompiledQuery | None = None
        self._max_pages: int | None = None
        self._limit_per_page: int | None = None
        self._exclusive_start_key: dict[str, Any] | None = None
        self._pages_fetched = 0
        self._buffer: list[Mapping[str, Any]] = []
        self._position = 0

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        try:
            return self.next_item()
        except ParsingCompleteError:
            raise StopIteration from None

    def next_item(self) -> T:
        while self._position == len(self._buffer):
            if self._all_items_parsed():
                raise ParsingCompleteError(ALL_ITEMS_PARSED)
            if self._max_pagination_reached():
                raise ParsingCompleteError(MAX_PAGINATION_REACHED)
            self._fetch_page()

        item = self._buffer[self._position]
        # advance first so an item that fails to decode is not returned again
        self._position += 1
        return self._codec.decode(item)

    def set_max_pagination(self, max_pages: int) -> QueryCursor[T]:
        if max_pages <= 0:
            raise ValidationError("max_pages must be > 0")
        self._max_pages = max_pages
        return self

    def unset_max_pagination(self) -> QueryCursor[T]:
        self._max_pages = None
        return self

    def set_limit_per_page(self, limit: int) -> QueryCursor[T]:
        """Set ``Limit`` for each page request; it bounds evaluated items, not returned ones."""
        if limit <= 0:
            raise ValidationError("limit must be > 0")
        self._limit_per_page = limit
        return self

    def unset_limit_per_page(self) -> QueryCursor[T]:
        self._limit_per_page = None
        return self

    def set_exclusive_start_key(self, key: Mapping[str, Any] | None) -> QueryCursor[T]:
        self._exclusive_start_key = dict(key) if key else None
        return self

    @property
    def pages_fetched(self) -> int:
        return self._pages_fetched

    @property
    def last_evaluated_key(self) -> dict[str, Any] | None:
        return dict(self._exclusive_start_key) if self._exclusive_start_key else None

    @property
    def compiled(self) -> CompiledQuery | None:
        return self._compiled

    @property
    def state(self) -> CursorState:
        if self._pages_fetched == 0:
            return CursorState.FRESH
        if self._position < len(self._buffer):
            return CursorState.FILLED
        if self._all_items_parsed():
            return CursorState.EXHAUSTED
        if self._max_pagination_reached():
            return CursorState.CAPPED
        return CursorState.FILLED

    def _all_items_parsed(self) -> bool:
        return self._pages_fetched > 0 and not self._exclusive_start_key

    def _max_pagination_reached(self) -> bool:
        return self._max_pages is not None and self._pages_fetched >= self._max_pages

    def _fetch_page(self) -> None:
        compiled = self._compiled if self._compiled is not None else self._planner()
        req = compiled.to_request(
            exclusive_start_key=self._exclusive_start_key,
            limit=self._limit_per_page,
        )
        page = self._executor.execute(req)

        self._compiled = compiled
        self._exclusive_start_key = dict(page.last_evaluated_key) if page.last_evaluated_key else None
        self._pages_fetched += 1
        self._buffer = list(page.items)
        self._position = 0
        logger.debug(
            "fetched page %d of %s (items=%d, more=%s)",
            self._pages_fetched,
            compiled.table_name,
            len(self._buffer),
            self._exclusive_start_key is not None,
        )
