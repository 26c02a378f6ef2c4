from __future__ import annotations

from datetime import datetime, timedelta, timezone

import anyio
import pytest

from marketsearch.filters import (
    AlertFrequency,
    InvalidCriteria,
    JobSearchFilters,
    ProfessionalSearchFilters,
    SavedSearch,
)
from marketsearch.saved_searches import (
    SavedSearchNotFound,
    SavedSearchStore,
    describe_criteria,
    is_alert_due,
)
from marketsearch.search_gateway import SearchGateway

from conftest import FakeSupabase


def _create(store: SavedSearchStore, *args, **kwargs) -> SavedSearch:
    async def _run() -> SavedSearch:
        return await store.create_saved_search(*args, **kwargs)

    return anyio.run(_run)


def test_create_persists_camel_case_criteria(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)
    filters = JobSearchFilters(category="plumbing", salary_min=30)

    saved = _create(store, "u1", "Plumbing gigs", "jobs", filters, True)

    row = fake.tables["saved_searches"][0]
    assert row["criteria"] == {"category": "plumbing", "salaryMin": 30.0}
    assert row["is_alert_enabled"] is True
    assert row["alert_frequency"] == "daily"
    assert saved.search_type.value == "jobs"
    assert saved.filters() == filters


def test_create_rejects_criteria_for_the_wrong_type(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)
    with pytest.raises(InvalidCriteria):
        _create(store, "u1", "Bad", "jobs", {"hourlyRateMin": 10})
    with pytest.raises(InvalidCriteria):
        _create(store, "u1", "Bad", "jobs", ProfessionalSearchFilters(hourly_rate_min=10))
    assert "saved_searches" not in fake.tables


def test_saved_search_reproduces_the_same_procedure_call(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)
    gateway = SearchGateway(fake)
    filters = ProfessionalSearchFilters(query="roofer", skills=["Shingles", "Flashing"], hourly_rate_max=55, limit=25)

    async def _run() -> None:
        saved = await store.create_saved_search("u1", "Roofers", "professionals", filters)
        loaded = (await store.get_saved_searches("u1"))[0]
        await gateway.search(filters)
        await gateway.search(loaded.filters())
        assert loaded.id == saved.id

    anyio.run(_run)

    first, second = fake.rpc_calls
    assert first == second


def test_list_is_newest_first_and_per_user(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)

    async def _run() -> list[SavedSearch]:
        await store.create_saved_search("u1", "first", "jobs", {})
        await store.create_saved_search("u2", "other user", "jobs", {})
        await store.create_saved_search("u1", "second", "professionals", {})
        return await store.get_saved_searches("u1")

    names = [s.name for s in anyio.run(_run)]
    assert names == ["second", "first"]


def test_toggling_alert_twice_leaves_other_fields_alone(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)

    async def _run() -> tuple[SavedSearch, SavedSearch, SavedSearch]:
        saved = await store.create_saved_search(
            "u1", "Weekly welders", "jobs", {"category": "welding"}, True, AlertFrequency.WEEKLY
        )
        once = await store.update_saved_search(saved.id, {"is_alert_enabled": False})
        twice = await store.update_saved_search(saved.id, {"is_alert_enabled": False})
        return saved, once, twice

    saved, once, twice = anyio.run(_run)
    assert once.is_alert_enabled is False
    ignore = {"is_alert_enabled", "updated_at"}
    assert twice.model_dump(exclude=ignore) == once.model_dump(exclude=ignore) == saved.model_dump(exclude=ignore)
    assert twice.alert_frequency is AlertFrequency.WEEKLY


def test_update_writes_only_given_columns(fake: FakeSupabase) -> None:
    calls: list[dict] = []
    store = SavedSearchStore(fake)
    original_update = fake.update

    async def spy(table, values, *, filters):
        calls.append(values)
        return await original_update(table, values, filters=filters)

    fake.update = spy  # type: ignore[method-assign]

    async def _run() -> None:
        saved = await store.create_saved_search("u1", "n", "jobs", {})
        await store.update_saved_search(saved.id, {"alert_frequency": "immediate"})

    anyio.run(_run)
    assert calls == [{"alert_frequency": "immediate"}]


def test_update_validates_new_criteria_against_stored_type(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)

    async def _run(criteria: dict) -> SavedSearch:
        saved = await store.create_saved_search("u1", "n", "professionals", {})
        return await store.update_saved_search(saved.id, {"criteria": criteria})

    updated = anyio.run(_run, {"rating_min": 4})
    assert updated.criteria == {"ratingMin": 4.0}
    with pytest.raises(InvalidCriteria):
        anyio.run(_run, {"category": "electrical"})


def test_update_rejects_type_change_without_criteria(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)
    with pytest.raises(ValueError):
        anyio.run(store.update_saved_search, "x", {"search_type": "jobs"})
    with pytest.raises(ValueError):
        anyio.run(store.update_saved_search, "x", {"user_id": "someone-else"})


def test_update_missing_row_raises_not_found(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)
    with pytest.raises(SavedSearchNotFound):
        anyio.run(store.update_saved_search, "missing", {"name": "x"})


def test_delete_is_permanent(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)

    async def _run() -> tuple[list[SavedSearch], SavedSearch | None]:
        saved = await store.create_saved_search("u1", "n", "jobs", {})
        await store.delete_saved_search(saved.id)
        return await store.get_saved_searches("u1"), await store.get_saved_search(saved.id)

    remaining, fetched = anyio.run(_run)
    assert remaining == []
    assert fetched is None


def test_mark_alert_sent_stamps_last_alert_sent(fake: FakeSupabase) -> None:
    store = SavedSearchStore(fake)
    when = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    async def _run() -> SavedSearch:
        saved = await store.create_saved_search("u1", "n", "jobs", {}, True)
        return await store.mark_alert_sent(saved.id, at=when)

    updated = anyio.run(_run)
    assert fake.tables["saved_searches"][0]["last_alert_sent"] == "2026-03-01T12:00:00Z"
    assert updated.last_alert_sent == when


def test_job_alerts_unsent_only_and_mark_sent(fake: FakeSupabase) -> None:
    fake.tables["job_alerts"] = [
        {"id": "a1", "user_id": "u1", "saved_search_id": "s1", "job_id": "j1", "is_sent": False, "created_at": "2026-01-02T00:00:00+00:00"},
        {"id": "a2", "user_id": "u1", "saved_search_id": "s1", "job_id": "j2", "is_sent": True, "created_at": "2026-01-03T00:00:00+00:00"},
        {"id": "a3", "user_id": "u1", "saved_search_id": "s1", "job_id": "j3", "is_sent": False, "created_at": "2026-01-04T00:00:00+00:00"},
    ]
    store = SavedSearchStore(fake)

    async def _run() -> tuple[list[str], list[str]]:
        before = [a.id for a in await store.get_job_alerts("u1")]
        await store.mark_job_alert_as_sent("a3")
        after = [a.id for a in await store.get_job_alerts("u1")]
        return before, after

    before, after = anyio.run(_run)
    assert before == ["a3", "a1"]
    assert after == ["a1"]
    sent = next(r for r in fake.tables["job_alerts"] if r["id"] == "a3")
    assert sent["is_sent"] is True
    assert sent["sent_at"].endswith("Z")


def _saved(**kwargs) -> SavedSearch:
    base = dict(id="s", user_id="u", name="n", search_type="jobs", is_alert_enabled=True)
    base.update(kwargs)
    return SavedSearch(**base)


def test_alert_due_windows() -> None:
    now = datetime(2026, 5, 10, tzinfo=timezone.utc)
    assert is_alert_due(_saved(), now) is True
    assert is_alert_due(_saved(is_alert_enabled=False), now) is False
    assert is_alert_due(_saved(alert_frequency="immediate", last_alert_sent=now), now) is True
    assert is_alert_due(_saved(last_alert_sent=now - timedelta(hours=23)), now) is False
    assert is_alert_due(_saved(last_alert_sent=now - timedelta(days=1)), now) is True
    assert is_alert_due(_saved(alert_frequency="weekly", last_alert_sent=now - timedelta(days=6)), now) is False
    assert is_alert_due(_saved(alert_frequency="weekly", last_alert_sent=now - timedelta(days=8)), now) is True


def test_describe_criteria() -> None:
    assert describe_criteria("jobs", {}) == "All results"
    assert describe_criteria("jobs", {"query": "roof", "location": "Austin", "salaryMin": 50000, "salaryMax": 70000}) == (
        '"roof" • in Austin • $50000-70000'
    )
    assert describe_criteria(
        "professionals",
        {"skills": ["PEX", "Copper", "Gas"], "hourlyRateMin": 40, "availabilityStatus": "available"},
    ) == "skills: PEX, Copper... • $40+/hr • available"
    assert describe_criteria("professionals", {"hourlyRateMax": 60}) == "up to $60/hr"


def test_alert_due_with_naive_now_and_stored_utc_timestamp() -> None:
    saved = _saved(last_alert_sent=datetime(2026, 1, 1, tzinfo=timezone.utc))
    assert is_alert_due(saved, datetime(2026, 1, 3)) is True
    assert is_alert_due(saved, datetime(2026, 1, 1, 12)) is False


def test_alert_due_compares_across_offsets() -> None:
    plus_two = timezone(timedelta(hours=2))
    saved = _saved(last_alert_sent=datetime(2026, 1, 2, 1, 0, tzinfo=plus_two))  # 2026-01-01 23:00 UTC
    assert is_alert_due(saved, datetime(2026, 1, 2, 23, 0, tzinfo=timezone.utc)) is True
    assert is_alert_due(saved, datetime(2026, 1, 2, 22, 59)) is False
