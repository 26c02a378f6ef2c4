from __future__ import annotations

import logging
import re

import httpx

from .supabase_client import SupabaseClient, SupabaseError
from .utils import unique


logger = logging.getLogger(__name__)

# wildcards and PostgREST filter syntax; kept out of the ilike pattern
_LIKE_SPECIAL = re.compile(r"[*%_,()\\]")


class Suggestions:
    """Autocomplete for the skill and location inputs of the search form."""

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def get_skill_suggestions(self, query: str, limit: int = 10) -> list[str]:
        try:
            job_rows = await self.client.select(
                "jobs", select="required_skills", filters={"required_skills": "not.is.null"}
            )
            profile_rows = await self.client.select(
                "professional_profiles", select="skills", filters={"skills": "not.is.null"}
            )
        except (SupabaseError, httpx.HTTPError) as exc:
            logger.warning("Skill suggestions unavailable: %s", exc)
            return []

        skills: list[str] = []
        for row in job_rows:
            skills.extend(row.get("required_skills") or [])
        for row in profile_rows:
            skills.extend(row.get("skills") or [])

        needle = query.lower()
        return [s for s in unique(skills) if needle in s.lower()][:limit]

    async def get_location_suggestions(self, query: str, limit: int = 10) -> list[str]:
        needle = _LIKE_SPECIAL.sub("", query).strip()
        if not needle:
            return []
        pattern = f"ilike.*{needle}*"
        try:
            job_rows = await self.client.select(
                "jobs", select="location", filters={"location": pattern}, limit=limit
            )
            profile_rows = await self.client.select(
                "profiles", select="location", filters={"location": pattern}, limit=limit
            )
        except (SupabaseError, httpx.HTTPError) as exc:
            logger.warning("Location suggestions unavailable: %s", exc)
            return []

        locations = [r["location"] for r in job_rows + profile_rows if r.get("location")]
        return unique(locations)[:limit]
