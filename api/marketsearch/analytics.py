from __future__ import annotations

import logging
from collections import Counter
from datetime import timedelta
from typing import Any

from .filters import SearchFilters, SearchType
from .supabase_client import SupabaseClient, eq
from .utils import isoformat_z, utcnow


logger = logging.getLogger(__name__)

SEARCH_ANALYTICS = "search_analytics"
# rows scanned when counting popular queries
POPULAR_SCAN_LIMIT = 2000


class SearchAnalytics:
    """Best-effort record of executed searches.

    Nothing here may fail a search: backend errors are logged and dropped.
    """

    def __init__(self, client: SupabaseClient, *, window_days: int = 30) -> None:
        self.client = client
        self.window_days = window_days

    async def log_search(
        self,
        user_id: str,
        search_type: SearchType | str,
        query: str,
        filters: SearchFilters | dict[str, Any] | None,
        results_count: int,
        session_id: str | None = None,
    ) -> bool:
        if isinstance(filters, SearchFilters):
            filters = filters.to_criteria()
        try:
            await self.client.rpc(
                "log_search_analytics",
                {
                    "p_user_id": user_id,
                    "p_search_type": SearchType(search_type).value,
                    "p_query": query,
                    "p_filters": filters or {},
                    "p_results_count": results_count,
                    "p_session_id": session_id,
                },
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to log search analytics: %s", exc)
            return False
        return True

    async def get_popular_searches(self, search_type: SearchType | str, limit: int = 10) -> list[dict[str, Any]]:
        since = utcnow() - timedelta(days=self.window_days)
        rows = await self.client.select(
            SEARCH_ANALYTICS,
            select="query",
            filters={
                "search_type": eq(SearchType(search_type).value),
                "query": "not.is.null",
                "created_at": f"gte.{isoformat_z(since)}",
            },
            order="created_at.desc",
            limit=POPULAR_SCAN_LIMIT,
        )
        counts: Counter[str] = Counter()
        for row in rows:
            text = (row.get("query") or "").strip()
            if text:
                counts[text] += 1
        return [{"query": q, "count": n} for q, n in counts.most_common(max(1, limit))]
