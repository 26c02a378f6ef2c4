from __future__ import annotations

import asyncio
import logging
from typing import Any

from .analytics import SearchAnalytics
from .filters import SavedSearch, SearchFilters, SearchResult
from .saved_searches import SavedSearchNotFound, SavedSearchStore
from .search_gateway import SearchGateway


logger = logging.getLogger(__name__)


class SearchService:
    """Runs searches for the API and records them on the side.

    Analytics are written from a background task so a slow or failing log call
    never holds up or breaks the search that triggered it.
    """

    def __init__(
        self,
        gateway: SearchGateway,
        store: SavedSearchStore,
        analytics: SearchAnalytics,
        *,
        pending: set[asyncio.Task[Any]] | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.analytics = analytics
        self._pending: set[asyncio.Task[Any]] = pending if pending is not None else set()

    async def search(
        self,
        filters: SearchFilters,
        *,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> SearchResult:
        result = await self.gateway.search(filters)
        if user_id:
            self._log_in_background(user_id, filters, len(result.data), session_id)
        return result

    async def run_saved_search(
        self,
        search_id: str,
        *,
        session_id: str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> tuple[SavedSearch, SearchFilters, SearchResult]:
        saved = await self.store.get_saved_search(search_id)
        if saved is None:
            raise SavedSearchNotFound(search_id)
        filters = saved.filters()
        if overrides:
            # paging only; the stored criteria are not touched
            paging = {k: v for k, v in overrides.items() if v is not None}
            filters = type(filters).model_validate({**filters.model_dump(exclude_none=True), **paging})
        result = await self.search(filters, user_id=saved.user_id, session_id=session_id)
        return saved, filters, result

    def _log_in_background(self, user_id: str, filters: SearchFilters, count: int, session_id: str | None) -> None:
        task = asyncio.create_task(
            self.analytics.log_search(
                user_id,
                filters.search_type,
                filters.query or "",
                filters,
                count,
                session_id,
            )
        )
        self._pending.add(task)
        task.add_done_callback(self._on_logged)

    def _on_logged(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Search analytics task failed: %s", exc)

    async def drain(self) -> None:
        """Wait for analytics writes still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
