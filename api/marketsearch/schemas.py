from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, Optional

from .filters import AlertFrequency, SavedSearch, SearchResult, SearchType


class SearchPage(SearchResult):
    query: str = ""  # canonical query string for sharing/bookmarking


class SavedSearchCreate(BaseModel):
    user_id: str
    name: str = Field(min_length=1)
    search_type: SearchType
    criteria: dict[str, Any] = Field(default_factory=dict)
    enable_alert: bool = False
    alert_frequency: AlertFrequency = AlertFrequency.DAILY


class SavedSearchUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    search_type: Optional[SearchType] = None
    criteria: Optional[dict[str, Any]] = None
    is_alert_enabled: Optional[bool] = None
    alert_frequency: Optional[AlertFrequency] = None


class SavedSearchOut(SavedSearch):
    summary: str = ""


class SavedSearchRunResponse(BaseModel):
    saved_search: SavedSearchOut
    results: SearchPage


class PopularSearch(BaseModel):
    query: str
    count: int


class SuggestionsResponse(BaseModel):
    suggestions: list[str] = []
