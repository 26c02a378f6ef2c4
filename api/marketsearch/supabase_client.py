from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

import httpx

from .config import get_settings


class SupabaseUnavailable(RuntimeError):
    pass


class SupabaseError(RuntimeError):
    """A PostgREST call came back with a non-2xx status."""

    def __init__(self, status_code: int, message: str, *, code: str | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details

    @classmethod
    def from_response(cls, resp: httpx.Response) -> "SupabaseError":
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            return cls(
                resp.status_code,
                str(body.get("message") or body.get("error") or resp.reason_phrase),
                code=body.get("code"),
                details=body.get("details") or body.get("hint"),
            )
        return cls(resp.status_code, resp.text or resp.reason_phrase)


class SupabaseClient:
    """Async handle onto the Supabase REST surface (tables and RPC)."""

    def __init__(
        self,
        url: str,
        key: str,
        *,
        access_token: str | None = None,
        timeout: float = 20,
        transport: httpx.AsyncBaseTransport | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.key = key
        self.access_token = access_token
        self._http = http or httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            timeout=timeout,
            transport=transport,
        )

    def for_user(self, access_token: str | None) -> "SupabaseClient":
        """Same connection pool, requests authorized as the signed-in user."""
        if not access_token:
            return self
        return SupabaseClient(self.url, self.key, access_token=access_token, http=self._http)

    def _headers(self, prefer: str | None = None) -> Dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.access_token or self.key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(self, method: str, path: str, *, prefer: str | None = None, **kwargs: Any) -> Any:
        resp = await self._http.request(method, path, headers=self._headers(prefer), **kwargs)
        if resp.is_error:
            raise SupabaseError.from_response(resp)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    async def select(
        self,
        table: str,
        *,
        select: str = "*",
        filters: Dict[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params: Dict[str, Any] = {"select": select}
        if filters:
            params.update(filters)
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = max(1, int(limit))
        data = await self._request("GET", f"/{table}", params=params)
        if data is None:
            return []
        if isinstance(data, list):
            return data
        return [data]

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", f"/{table}", json=row, prefer="return=representation")
        if isinstance(data, list):
            if not data:
                raise SupabaseError(500, f"insert into {table} returned no row")
            return data[0]
        return data

    async def update(self, table: str, values: dict[str, Any], *, filters: Dict[str, str]) -> list[dict[str, Any]]:
        data = await self._request(
            "PATCH", f"/{table}", params=filters, json=values, prefer="return=representation"
        )
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    async def delete(self, table: str, *, filters: Dict[str, str]) -> None:
        await self._request("DELETE", f"/{table}", params=filters)

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        return await self._request("POST", f"/rpc/{function}", json=params)

    async def aclose(self) -> None:
        await self._http.aclose()


@lru_cache(maxsize=1)
def get_supabase_client() -> SupabaseClient:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise SupabaseUnavailable("Supabase client not configured; set SUPABASE_URL and a key.")
    return SupabaseClient(settings.supabase_url, settings.supabase_key, timeout=settings.supabase_timeout)


def eq(value: Any) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return f"eq.{value}"
