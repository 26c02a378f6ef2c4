from __future__ import annotations

import pytest

from marketsearch.filters import (
    InvalidCriteria,
    JobSearchFilters,
    ProfessionalSearchFilters,
    SavedSearch,
    SearchResult,
    SearchType,
    decode_criteria,
)


def test_criteria_are_written_in_camel_case() -> None:
    filters = JobSearchFilters(job_type="full-time", salary_min=60000, required_skills=["OSHA 30"], is_urgent=True)
    assert filters.to_criteria() == {
        "jobType": "full-time",
        "salaryMin": 60000.0,
        "requiredSkills": ["OSHA 30"],
        "isUrgent": True,
    }


def test_decode_accepts_camel_and_snake_case() -> None:
    camel = decode_criteria("professionals", {"hourlyRateMin": 25, "availabilityStatus": "available"})
    snake = decode_criteria(SearchType.PROFESSIONALS, {"hourly_rate_min": 25, "availability_status": "available"})
    assert isinstance(camel, ProfessionalSearchFilters)
    assert camel == snake


def test_decode_none_means_no_constraints() -> None:
    assert decode_criteria("jobs", None) == JobSearchFilters()


def test_decode_rejects_fields_from_the_other_search_type() -> None:
    with pytest.raises(InvalidCriteria):
        decode_criteria("jobs", {"hourlyRateMin": 20})


def test_decode_rejects_malformed_values() -> None:
    with pytest.raises(InvalidCriteria):
        decode_criteria("jobs", {"salaryMin": "lots"})
    with pytest.raises(InvalidCriteria):
        decode_criteria("jobs", {"salaryMin": float("nan")})
    with pytest.raises(InvalidCriteria):
        decode_criteria("jobs", ["not", "an", "object"])


def test_decode_rejects_unknown_search_type() -> None:
    with pytest.raises(InvalidCriteria):
        decode_criteria("contractors", {})


def test_blank_values_normalise_to_none() -> None:
    filters = ProfessionalSearchFilters(query="", skills=["", ""], licenses=[])
    assert filters.query is None
    assert filters.skills is None
    assert filters.licenses is None


def test_saved_search_filters_decodes_its_criteria() -> None:
    saved = SavedSearch(
        id="s1",
        user_id="u1",
        name="Electricians",
        search_type="jobs",
        criteria={"category": "electrical", "remoteAllowed": True},
    )
    assert saved.filters() == JobSearchFilters(category="electrical", remote_allowed=True)


def test_search_result_serialises_has_more_in_camel_case() -> None:
    page = SearchResult.from_rows([{"id": 1}], limit=1)
    assert page.model_dump(by_alias=True) == {"data": [{"id": 1}], "total": 1, "hasMore": True}
