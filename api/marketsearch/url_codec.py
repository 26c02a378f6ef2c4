"""Translate search filters to and from flat URL query parameters.

Query strings are what the web client puts in the address bar, so a search can
be shared, bookmarked, or re-opened from a saved search. Parameter names are
fixed and independent of the attribute names on the filter models; values are
always strings and list values are comma-joined.

Decoding never raises. A parameter that cannot be read (``salary_min=abc``, an
unknown ``salary_type``) is dropped with a warning and the field stays
unconstrained.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping
from urllib.parse import parse_qsl, quote, urlencode

from pydantic import ValidationError

from .filters import (
    JobSearchFilters,
    ProfessionalSearchFilters,
    SearchFilters,
    SearchType,
)
from .utils import format_number, parse_integer, parse_number, split_csv


logger = logging.getLogger(__name__)

TEXT = "text"
FLAG = "flag"
NUMBER = "number"
INTEGER = "integer"
LIST = "list"

# (attribute, query parameter, kind)
JOB_PARAMS: tuple[tuple[str, str, str], ...] = (
    ("query", "q", TEXT),
    ("category", "category", TEXT),
    ("job_type", "type", TEXT),
    ("location", "location", TEXT),
    ("remote_allowed", "remote", FLAG),
    ("salary_min", "salary_min", NUMBER),
    ("salary_max", "salary_max", NUMBER),
    ("salary_type", "salary_type", TEXT),
    ("required_skills", "skills", LIST),
    ("required_licenses", "licenses", LIST),
    ("is_urgent", "urgent", FLAG),
    ("posted_within_days", "posted_within", INTEGER),
    ("limit", "limit", INTEGER),
    ("offset", "offset", INTEGER),
)

PROFESSIONAL_PARAMS: tuple[tuple[str, str, str], ...] = (
    ("query", "q", TEXT),
    ("skills", "skills", LIST),
    ("location", "location", TEXT),
    ("hourly_rate_min", "rate_min", NUMBER),
    ("hourly_rate_max", "rate_max", NUMBER),
    ("availability_status", "availability", TEXT),
    ("experience_min", "experience_min", INTEGER),
    ("rating_min", "rating_min", NUMBER),
    ("licenses", "licenses", LIST),
    ("limit", "limit", INTEGER),
    ("offset", "offset", INTEGER),
)

PARAM_TABLES: dict[SearchType, tuple[tuple[str, str, str], ...]] = {
    SearchType.JOBS: JOB_PARAMS,
    SearchType.PROFESSIONALS: PROFESSIONAL_PARAMS,
}


def _as_mapping(params: Mapping[str, str] | str | None) -> Mapping[str, str]:
    if params is None:
        return {}
    if isinstance(params, str):
        out: dict[str, str] = {}
        # first occurrence wins, like URLSearchParams.get
        for key, value in parse_qsl(params.lstrip("?"), keep_blank_values=True):
            out.setdefault(key, value)
        return out
    return params


def _decode_value(kind: str, param: str, raw: str) -> Any:
    if kind == FLAG:
        return True if raw == "true" else None
    if kind == LIST:
        return split_csv(raw)
    if kind == NUMBER:
        value = parse_number(raw)
    elif kind == INTEGER:
        value = parse_integer(raw)
    else:
        return raw or None
    if value is None and raw.strip():
        logger.warning("Dropping unreadable query parameter %s=%r", param, raw)
    return value


def _validate_lenient(model: type[SearchFilters], raw: dict[str, Any]) -> SearchFilters:
    while True:
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            bad = {err["loc"][0] for err in exc.errors() if err.get("loc") and err["loc"][0] in raw}
            if not bad:
                raise
            for key in bad:
                logger.warning("Dropping invalid filter value %s=%r", key, raw[key])
                raw.pop(key, None)


def build_filters_from_url(search_type: SearchType | str, params: Mapping[str, str] | str | None) -> SearchFilters:
    search_type = SearchType(search_type)
    model = JobSearchFilters if search_type is SearchType.JOBS else ProfessionalSearchFilters
    source = _as_mapping(params)
    raw: dict[str, Any] = {}
    for attr, param, kind in PARAM_TABLES[search_type]:
        value = source.get(param)
        if value is None:
            continue
        decoded = _decode_value(kind, param, value)
        if decoded is not None:
            # keyed by alias so validation errors point back at the same key
            raw[model.model_fields[attr].alias or attr] = decoded
    return _validate_lenient(model, raw)


def build_job_filters_from_url(params: Mapping[str, str] | str | None) -> JobSearchFilters:
    return build_filters_from_url(SearchType.JOBS, params)  # type: ignore[return-value]


def build_professional_filters_from_url(params: Mapping[str, str] | str | None) -> ProfessionalSearchFilters:
    return build_filters_from_url(SearchType.PROFESSIONALS, params)  # type: ignore[return-value]


def _encode_value(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return "true" if value else None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value) or None
    return str(value)


def filters_to_url_params(filters: SearchFilters) -> dict[str, str]:
    """Query parameters for ``filters``, unconstrained fields omitted."""
    params: dict[str, str] = {}
    for attr, param, _kind in PARAM_TABLES[filters.search_type]:
        encoded = _encode_value(getattr(filters, attr))
        if encoded is not None:
            params[param] = encoded
    return params


def filters_to_query_string(filters: SearchFilters) -> str:
    return urlencode(filters_to_url_params(filters), quote_via=quote, safe="")
