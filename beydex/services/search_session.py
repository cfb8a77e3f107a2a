"""
Debounced search-as-you-type.

Every keystroke starts a new debounce cycle with a fresh CancellationToken.
Starting a cycle cancels the previous token and its task. A request that
completes after being superseded checks its own token and discards its
result, so out-of-order responses never reach `results`.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from beydex.config import MIN_SEARCH_LENGTH, settings
from beydex.models.failure import KnownError
from beydex.services.wiki_client import SearchResult

logger = logging.getLogger(__name__)

Searcher = Callable[[str], Awaitable[list[SearchResult]]]


class CancellationToken:
    """One-shot cancellation flag owned by a single debounce cycle."""

    __slots__ = ("query", "_cancelled")

    def __init__(self, query: str) -> None:
        self.query = query
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class SearchSession:
    """
    Display state for one search box.

    Attributes:
        results: Results of the latest completed, non-superseded query
        error: User-facing message of the latest failed query, if any
        loading: True while a cycle is waiting or in flight
    """

    def __init__(self, searcher: Searcher, delay: float | None = None) -> None:
        self._searcher = searcher
        self._delay = settings.search_debounce if delay is None else delay
        self._token: CancellationToken | None = None
        self._task: asyncio.Task[None] | None = None

        self.results: list[SearchResult] = []
        self.error: str | None = None
        self.loading = False

    def _cancel_current(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def update(self, query: str) -> None:
        """
        React to a new input value.

        Must be called from a running event loop.
        """
        self._cancel_current()

        if len(query.strip()) < MIN_SEARCH_LENGTH:
            self.results = []
            self.error = None
            self.loading = False
            return

        token = CancellationToken(query)
        self._token = token
        self.loading = True
        self._task = asyncio.get_running_loop().create_task(self._run(token))

    async def _run(self, token: CancellationToken) -> None:
        await asyncio.sleep(self._delay)
        if token.cancelled:
            return

        try:
            results = await self._searcher(token.query)
        except KnownError as e:
            if token.cancelled:
                return
            logger.info("Search failed for %r: %s", token.query, e.detail)
            self.results = []
            self.error = e.message
            self.loading = False
            return

        if token.cancelled:
            logger.debug("Discarding stale results for %r", token.query)
            return

        self.results = results
        self.error = None
        self.loading = False

    async def wait(self) -> None:
        """Wait for the current cycle to finish (or be cancelled)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def close(self) -> None:
        """Cancel any pending or in-flight search."""
        self._cancel_current()
        self.loading = False
