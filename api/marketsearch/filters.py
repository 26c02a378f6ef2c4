from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class SearchType(str, Enum):
    JOBS = "jobs"
    PROFESSIONALS = "professionals"


class AlertFrequency(str, Enum):
    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"


class SalaryType(str, Enum):
    HOURLY = "hourly"
    SALARY = "salary"
    PROJECT = "project"


class InvalidCriteria(ValueError):
    """Saved criteria that do not describe a filter set for their search type."""


class SearchFilters(BaseModel):
    """Common base: every field optional, absent means unconstrained.

    Attribute names are snake_case; the camelCase aliases are the keys the web
    client writes into saved criteria, and either form is accepted.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
    )

    search_type: ClassVar[SearchType]

    query: Optional[str] = None
    location: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: Optional[int] = Field(default=None, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unconstrained(cls, value: Any) -> Any:
        # a false flag, an empty string and an empty list all mean "no constraint"
        if value is False or value == "":
            return None
        if isinstance(value, (list, tuple)):
            items = [v for v in value if v != ""]
            return items or None
        return value

    def to_criteria(self) -> dict[str, Any]:
        """JSON object stored in ``saved_searches.criteria``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True, exclude={"limit", "offset"})


class JobSearchFilters(SearchFilters):
    search_type: ClassVar[SearchType] = SearchType.JOBS

    category: Optional[str] = None
    job_type: Optional[str] = None
    remote_allowed: Optional[bool] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_type: Optional[SalaryType] = None
    required_skills: Optional[list[str]] = None
    required_licenses: Optional[list[str]] = None
    is_urgent: Optional[bool] = None
    posted_within_days: Optional[int] = None


class ProfessionalSearchFilters(SearchFilters):
    search_type: ClassVar[SearchType] = SearchType.PROFESSIONALS

    skills: Optional[list[str]] = None
    hourly_rate_min: Optional[float] = None
    hourly_rate_max: Optional[float] = None
    availability_status: Optional[str] = None
    experience_min: Optional[int] = None
    rating_min: Optional[float] = None
    licenses: Optional[list[str]] = None


FILTER_MODELS: dict[SearchType, type[SearchFilters]] = {
    SearchType.JOBS: JobSearchFilters,
    SearchType.PROFESSIONALS: ProfessionalSearchFilters,
}


def decode_criteria(search_type: SearchType | str, criteria: Any) -> SearchFilters:
    """Validate a stored criteria blob against the model for ``search_type``."""
    try:
        model = FILTER_MODELS[SearchType(search_type)]
    except ValueError as exc:
        raise InvalidCriteria(f"unknown search type {search_type!r}") from exc
    if criteria is None:
        criteria = {}
    if not isinstance(criteria, dict):
        raise InvalidCriteria(f"criteria must be an object, got {type(criteria).__name__}")
    try:
        return model.model_validate(criteria)
    except ValidationError as exc:
        raise InvalidCriteria(f"criteria do not match {search_type!s} filters: {exc}") from exc


class SavedSearch(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    name: str
    search_type: SearchType
    criteria: dict[str, Any] = Field(default_factory=dict)
    is_alert_enabled: bool = False
    alert_frequency: AlertFrequency = AlertFrequency.DAILY
    last_alert_sent: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def filters(self) -> SearchFilters:
        return decode_criteria(self.search_type, self.criteria)


class JobAlert(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    saved_search_id: str
    job_id: str
    is_sent: bool = False
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    # embedded rows, present when selected
    saved_searches: Optional[dict[str, Any]] = None
    jobs: Optional[dict[str, Any]] = None


class SearchResult(BaseModel):
    """One page of rows from a ranking procedure.

    ``total`` is the length of this page, not the size of the full match set,
    and ``has_more`` only says the page came back full.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: list[dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False

    @classmethod
    def from_rows(cls, rows: list[dict[str, Any]] | None, limit: int) -> "SearchResult":
        rows = list(rows or [])
        return cls(data=rows, total=len(rows), has_more=len(rows) == limit)
