from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, List, Optional

from .filters import (
    AlertFrequency,
    JobAlert,
    SavedSearch,
    SearchFilters,
    SearchType,
    decode_criteria,
)
from .supabase_client import SupabaseClient, eq
from .utils import as_utc, format_number, isoformat_z, utcnow


SAVED_SEARCHES = "saved_searches"
JOB_ALERTS = "job_alerts"

JOB_ALERT_FIELDS = (
    "*,saved_searches(name,criteria),"
    "jobs(title,company_name:profiles!jobs_hirer_id_fkey(company_name))"
)

ALERT_WINDOWS: dict[AlertFrequency, timedelta] = {
    AlertFrequency.IMMEDIATE: timedelta(0),
    AlertFrequency.DAILY: timedelta(days=1),
    AlertFrequency.WEEKLY: timedelta(days=7),
}

EDITABLE_FIELDS = {"name", "search_type", "criteria", "is_alert_enabled", "alert_frequency", "last_alert_sent"}


class SavedSearchNotFound(LookupError):
    pass


class SavedSearchStore:
    """Persistence for named filter snapshots and the alerts raised from them.

    The store only reads and writes rows. Running a saved search is the
    caller's job: decode ``criteria`` with :meth:`SavedSearch.filters` and hand
    the result to the search gateway.
    """

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def get_saved_searches(self, user_id: str) -> List[SavedSearch]:
        rows = await self.client.select(
            SAVED_SEARCHES,
            filters={"user_id": eq(user_id)},
            order="created_at.desc",
        )
        return [SavedSearch.model_validate(r) for r in rows]

    async def get_saved_search(self, search_id: str) -> Optional[SavedSearch]:
        rows = await self.client.select(SAVED_SEARCHES, filters={"id": eq(search_id)}, limit=1)
        return SavedSearch.model_validate(rows[0]) if rows else None

    async def create_saved_search(
        self,
        user_id: str,
        name: str,
        search_type: SearchType | str,
        criteria: SearchFilters | dict[str, Any],
        enable_alert: bool = False,
        alert_frequency: AlertFrequency | str = AlertFrequency.DAILY,
    ) -> SavedSearch:
        search_type = SearchType(search_type)
        filters = _coerce_criteria(search_type, criteria)
        row = await self.client.insert(
            SAVED_SEARCHES,
            {
                "user_id": user_id,
                "name": name,
                "search_type": search_type.value,
                "criteria": filters.to_criteria(),
                "is_alert_enabled": enable_alert,
                "alert_frequency": AlertFrequency(alert_frequency).value,
            },
        )
        return SavedSearch.model_validate(row)

    async def update_saved_search(self, search_id: str, updates: dict[str, Any]) -> SavedSearch:
        """Partial update; only the keys present in ``updates`` are written."""
        unknown = set(updates) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update saved search fields: {', '.join(sorted(unknown))}")
        values = dict(updates)
        if "criteria" in values:
            search_type = values.get("search_type")
            if search_type is None:
                current = await self.get_saved_search(search_id)
                if current is None:
                    raise SavedSearchNotFound(search_id)
                search_type = current.search_type
            values["criteria"] = _coerce_criteria(SearchType(search_type), values["criteria"]).to_criteria()
        elif "search_type" in values:
            raise ValueError("search_type can only change together with criteria")
        if "search_type" in values:
            values["search_type"] = SearchType(values["search_type"]).value
        if "alert_frequency" in values:
            values["alert_frequency"] = AlertFrequency(values["alert_frequency"]).value
        if isinstance(values.get("last_alert_sent"), datetime):
            values["last_alert_sent"] = isoformat_z(values["last_alert_sent"])

        rows = await self.client.update(SAVED_SEARCHES, values, filters={"id": eq(search_id)})
        if not rows:
            raise SavedSearchNotFound(search_id)
        return SavedSearch.model_validate(rows[0])

    async def delete_saved_search(self, search_id: str) -> None:
        await self.client.delete(SAVED_SEARCHES, filters={"id": eq(search_id)})

    async def mark_alert_sent(self, search_id: str, *, at: datetime | None = None) -> SavedSearch:
        return await self.update_saved_search(search_id, {"last_alert_sent": at or utcnow()})

    async def get_job_alerts(self, user_id: str) -> List[JobAlert]:
        rows = await self.client.select(
            JOB_ALERTS,
            select=JOB_ALERT_FIELDS,
            filters={"user_id": eq(user_id), "is_sent": eq(False)},
            order="created_at.desc",
        )
        return [JobAlert.model_validate(r) for r in rows]

    async def mark_job_alert_as_sent(self, alert_id: str) -> None:
        await self.client.update(
            JOB_ALERTS,
            {"is_sent": True, "sent_at": isoformat_z(utcnow())},
            filters={"id": eq(alert_id)},
        )


def _coerce_criteria(search_type: SearchType, criteria: SearchFilters | dict[str, Any]) -> SearchFilters:
    if isinstance(criteria, SearchFilters):
        if criteria.search_type is not search_type:
            # re-validate so a mismatched model is rejected the same way a bad dict is
            return decode_criteria(search_type, criteria.to_criteria())
        return criteria
    return decode_criteria(search_type, criteria)


def is_alert_due(saved: SavedSearch, now: datetime | None = None) -> bool:
    if not saved.is_alert_enabled:
        return False
    if saved.last_alert_sent is None:
        return True
    now = as_utc(now or utcnow())
    return now - as_utc(saved.last_alert_sent) >= ALERT_WINDOWS[saved.alert_frequency]


def _money_range(low: float | None, high: float | None, suffix: str = "") -> str | None:
    if low is None and high is None:
        return None
    if low is not None and high is not None:
        return f"${format_number(low)}-{format_number(high)}{suffix}"
    if low is not None:
        return f"${format_number(low)}+{suffix}"
    return f"up to ${format_number(high)}{suffix}"


def describe_criteria(search_type: SearchType | str, criteria: dict[str, Any] | SearchFilters) -> str:
    """Short one-line summary of a filter set for listings."""
    filters = criteria if isinstance(criteria, SearchFilters) else decode_criteria(search_type, criteria)
    parts: list[str] = []
    if filters.query:
        parts.append(f'"{filters.query}"')
    if filters.location:
        parts.append(f"in {filters.location}")

    if filters.search_type is SearchType.JOBS:
        if filters.category:
            parts.append(filters.category)
        skills = filters.required_skills
    else:
        skills = filters.skills
    if skills:
        more = "..." if len(skills) > 2 else ""
        parts.append(f"skills: {', '.join(skills[:2])}{more}")

    if filters.search_type is SearchType.JOBS:
        if filters.job_type:
            parts.append(filters.job_type)
        salary = _money_range(filters.salary_min, filters.salary_max)
        if salary:
            parts.append(salary)
    else:
        rate = _money_range(filters.hourly_rate_min, filters.hourly_rate_max, "/hr")
        if rate:
            parts.append(rate)
        if filters.availability_status:
            parts.append(filters.availability_status)

    return " • ".join(parts) or "All results"
