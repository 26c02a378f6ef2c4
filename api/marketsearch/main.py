from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .analytics import SearchAnalytics
from .config import get_settings
from .filters import InvalidCriteria, SavedSearch, SearchFilters, SearchType
from .log import configure_logging
from .orchestrator import SearchService
from .saved_searches import SavedSearchNotFound, SavedSearchStore, describe_criteria
from .schemas import (
    PopularSearch,
    SavedSearchCreate,
    SavedSearchOut,
    SavedSearchRunResponse,
    SavedSearchUpdate,
    SearchPage,
    SuggestionsResponse,
)
from .search_gateway import SearchGateway
from .suggestions import Suggestions
from .supabase_client import SupabaseClient, SupabaseError, SupabaseUnavailable, get_supabase_client
from .url_codec import build_filters_from_url, filters_to_query_string


logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0", debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# analytics writes outlive the request that scheduled them
_analytics_tasks: set[asyncio.Task[Any]] = set()


@app.on_event("startup")
def _startup() -> None:
    configure_logging(settings.log_level)


@app.on_event("shutdown")
async def _shutdown() -> None:
    if _analytics_tasks:
        await asyncio.gather(*list(_analytics_tasks), return_exceptions=True)
    if get_supabase_client.cache_info().currsize:
        await get_supabase_client().aclose()
        get_supabase_client.cache_clear()


@app.exception_handler(SupabaseUnavailable)
async def _supabase_unavailable(request: Request, exc: SupabaseUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(SupabaseError)
async def _supabase_error(request: Request, exc: SupabaseError) -> JSONResponse:
    logger.error("Backend call failed on %s %s: [%s] %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=502, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(InvalidCriteria)
async def _invalid_criteria(request: Request, exc: InvalidCriteria) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(SavedSearchNotFound)
async def _not_found(request: Request, exc: SavedSearchNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "saved search not found"})


def get_client(authorization: Optional[str] = Header(default=None)) -> SupabaseClient:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    return get_supabase_client().for_user(token)


def get_store(client: SupabaseClient = Depends(get_client)) -> SavedSearchStore:
    return SavedSearchStore(client)


def get_analytics(client: SupabaseClient = Depends(get_client)) -> SearchAnalytics:
    return SearchAnalytics(client, window_days=settings.popular_search_window_days)


def get_service(
    client: SupabaseClient = Depends(get_client),
    store: SavedSearchStore = Depends(get_store),
    analytics: SearchAnalytics = Depends(get_analytics),
) -> SearchService:
    gateway = SearchGateway(client, default_limit=settings.search_default_limit)
    return SearchService(gateway, store, analytics, pending=_analytics_tasks)


def get_suggestions(client: SupabaseClient = Depends(get_client)) -> Suggestions:
    return Suggestions(client)


def _with_summary(saved: SavedSearch) -> SavedSearchOut:
    try:
        summary = describe_criteria(saved.search_type, saved.criteria)
    except InvalidCriteria:
        logger.warning("Saved search %s has unreadable criteria", saved.id)
        summary = "Invalid criteria"
    return SavedSearchOut(**saved.model_dump(), summary=summary)


def _page(filters: SearchFilters, result: Any) -> SearchPage:
    return SearchPage(**result.model_dump(), query=filters_to_query_string(filters))


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


async def _run_search(
    search_type: SearchType,
    request: Request,
    service: SearchService,
    user_id: Optional[str],
    session_id: Optional[str],
) -> SearchPage:
    filters = build_filters_from_url(search_type, request.query_params)
    effective = filters
    if filters.limit is None:
        effective = filters.model_copy(update={"limit": settings.search_page_size})
    result = await service.search(effective, user_id=user_id, session_id=session_id)
    return _page(filters, result)


@app.get("/search/jobs", response_model=SearchPage)
async def search_jobs(
    request: Request,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    service: SearchService = Depends(get_service),
) -> SearchPage:
    return await _run_search(SearchType.JOBS, request, service, user_id, session_id)


@app.get("/search/professionals", response_model=SearchPage)
async def search_professionals(
    request: Request,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    service: SearchService = Depends(get_service),
) -> SearchPage:
    return await _run_search(SearchType.PROFESSIONALS, request, service, user_id, session_id)


@app.get("/search/popular", response_model=list[PopularSearch])
async def popular_searches(
    search_type: SearchType,
    limit: int = 10,
    analytics: SearchAnalytics = Depends(get_analytics),
) -> list[PopularSearch]:
    lim = max(1, min(100, int(limit or 0) or 10))
    rows = await analytics.get_popular_searches(search_type, limit=lim)
    return [PopularSearch(**r) for r in rows]


@app.get("/saved-searches", response_model=list[SavedSearchOut])
async def list_saved_searches(user_id: str, store: SavedSearchStore = Depends(get_store)) -> list[SavedSearchOut]:
    return [_with_summary(s) for s in await store.get_saved_searches(user_id)]


@app.post("/saved-searches", response_model=SavedSearchOut, status_code=201)
async def create_saved_search(payload: SavedSearchCreate, store: SavedSearchStore = Depends(get_store)) -> SavedSearchOut:
    saved = await store.create_saved_search(
        payload.user_id,
        payload.name,
        payload.search_type,
        payload.criteria,
        enable_alert=payload.enable_alert,
        alert_frequency=payload.alert_frequency,
    )
    return _with_summary(saved)


@app.patch("/saved-searches/{search_id}", response_model=SavedSearchOut)
async def update_saved_search(
    search_id: str,
    payload: SavedSearchUpdate,
    store: SavedSearchStore = Depends(get_store),
) -> SavedSearchOut:
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="no fields to update")
    try:
        saved = await store.update_saved_search(search_id, updates)
    except ValueError as exc:
        if isinstance(exc, InvalidCriteria):
            raise
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _with_summary(saved)


@app.delete("/saved-searches/{search_id}", status_code=204)
async def delete_saved_search(search_id: str, store: SavedSearchStore = Depends(get_store)) -> Response:
    await store.delete_saved_search(search_id)
    return Response(status_code=204)


@app.post("/saved-searches/{search_id}/run", response_model=SavedSearchRunResponse)
async def run_saved_search(
    search_id: str,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: Optional[int] = Query(default=None, ge=0),
    session_id: Optional[str] = None,
    service: SearchService = Depends(get_service),
) -> SavedSearchRunResponse:
    saved, filters, result = await service.run_saved_search(
        search_id,
        session_id=session_id,
        overrides={"limit": limit, "offset": offset},
    )
    return SavedSearchRunResponse(
        saved_search=_with_summary(saved),
        results=_page(filters, result),
    )


@app.get("/job-alerts")
async def list_job_alerts(user_id: str, store: SavedSearchStore = Depends(get_store)) -> list[dict]:
    alerts = await store.get_job_alerts(user_id)
    return [a.model_dump(mode="json") for a in alerts]


@app.post("/job-alerts/{alert_id}/sent", status_code=204)
async def mark_job_alert_sent(alert_id: str, store: SavedSearchStore = Depends(get_store)) -> Response:
    await store.mark_job_alert_as_sent(alert_id)
    return Response(status_code=204)


@app.get("/suggestions/skills", response_model=SuggestionsResponse)
async def skill_suggestions(q: str, limit: int = 10, suggestions: Suggestions = Depends(get_suggestions)) -> SuggestionsResponse:
    return SuggestionsResponse(suggestions=await suggestions.get_skill_suggestions(q, limit=max(1, min(50, limit))))


@app.get("/suggestions/locations", response_model=SuggestionsResponse)
async def location_suggestions(q: str, limit: int = 10, suggestions: Suggestions = Depends(get_suggestions)) -> SuggestionsResponse:
    return SuggestionsResponse(suggestions=await suggestions.get_location_suggestions(q, limit=max(1, min(50, limit))))
