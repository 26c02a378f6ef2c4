from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from .filters import JobSearchFilters, ProfessionalSearchFilters, SearchFilters, SearchResult, SearchType
from .supabase_client import SupabaseClient


logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50

SEARCH_PROCEDURES: dict[SearchType, str] = {
    SearchType.JOBS: "search_jobs",
    SearchType.PROFESSIONALS: "search_professionals",
}

# procedure argument -> filter attribute
JOB_RPC_ARGS: tuple[tuple[str, str], ...] = (
    ("p_query", "query"),
    ("p_category", "category"),
    ("p_job_type", "job_type"),
    ("p_location", "location"),
    ("p_remote_allowed", "remote_allowed"),
    ("p_salary_min", "salary_min"),
    ("p_salary_max", "salary_max"),
    ("p_salary_type", "salary_type"),
    ("p_required_skills", "required_skills"),
    ("p_required_licenses", "required_licenses"),
    ("p_is_urgent", "is_urgent"),
    ("p_posted_within_days", "posted_within_days"),
)

PROFESSIONAL_RPC_ARGS: tuple[tuple[str, str], ...] = (
    ("p_query", "query"),
    ("p_skills", "skills"),
    ("p_location", "location"),
    ("p_hourly_rate_min", "hourly_rate_min"),
    ("p_hourly_rate_max", "hourly_rate_max"),
    ("p_availability_status", "availability_status"),
    ("p_experience_min", "experience_min"),
    ("p_rating_min", "rating_min"),
    ("p_licenses", "licenses"),
)

RPC_ARGS: dict[SearchType, tuple[tuple[str, str], ...]] = {
    SearchType.JOBS: JOB_RPC_ARGS,
    SearchType.PROFESSIONALS: PROFESSIONAL_RPC_ARGS,
}


class SearchGateway:
    """Calls the backend ranking procedures and shapes their rows into pages.

    Matching and ranking live entirely in the database; every filter field is
    sent as a named argument, with ``None`` meaning "no constraint".
    """

    def __init__(self, client: SupabaseClient, *, default_limit: int = DEFAULT_LIMIT) -> None:
        self.client = client
        self.default_limit = default_limit

    def rpc_params(self, filters: SearchFilters) -> dict[str, Any]:
        params: dict[str, Any] = {}
        for arg, attr in RPC_ARGS[filters.search_type]:
            value = getattr(filters, attr)
            if isinstance(value, Enum):
                value = value.value
            params[arg] = value
        params["p_limit"] = filters.limit or self.default_limit
        params["p_offset"] = filters.offset or 0
        return params

    async def search(self, filters: SearchFilters) -> SearchResult:
        procedure = SEARCH_PROCEDURES[filters.search_type]
        params = self.rpc_params(filters)
        logger.debug("rpc %s limit=%s offset=%s", procedure, params["p_limit"], params["p_offset"])
        rows = await self.client.rpc(procedure, params)
        if rows is not None and not isinstance(rows, list):
            rows = [rows]
        return SearchResult.from_rows(rows, params["p_limit"])

    async def search_jobs(self, filters: JobSearchFilters) -> SearchResult:
        return await self.search(filters)

    async def search_professionals(self, filters: ProfessionalSearchFilters) -> SearchResult:
        return await self.search(filters)
