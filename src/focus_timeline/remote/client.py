# src/focus_timeline/remote/client.py

from __future__ import annotations

"""
Remote task store client (Supabase / PostgREST over HTTPS).

One resource collection per table at <base_url>/rest/v1/<table>.
Every request carries the project key as both `apikey` and bearer token.
Any 2xx is success; anything else raises RemoteStoreError.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from ..config import Settings
from ..core.errors import RemoteStoreError
from ..core.ports import Filter, Row

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"


def _safe_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        for key in ("message", "error", "hint"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return " ".join(value.split())[:200]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:200]
    return f"HTTP {response.status_code}"


def build_timeout(settings: Settings) -> httpx.Timeout:
    """Connect timeout separate from read/write/pool."""
    read = float(settings.http_read_timeout_seconds)
    connect = float(settings.http_connect_timeout_seconds)
    return httpx.Timeout(timeout=read, connect=connect, read=read, write=read, pool=read)


class SupabaseRestClient:
    """Async RemoteTaskStore implementation on top of httpx."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: httpx.Timeout | float = 20.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        if not api_key:
            raise ValueError("api_key is required")

        self._base_url = base_url.rstrip("/") + REST_PATH
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, *, http_client: httpx.AsyncClient | None = None) -> SupabaseRestClient:
        return cls(
            settings.supabase_url,
            settings.supabase_key or "",
            timeout=build_timeout(settings),
            http_client=http_client,
        )

    def _url(self, table: str) -> str:
        return f"{self._base_url}/{table}"

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Sequence[Filter] = (),
        json_body: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = dict(self._headers)
        if extra_headers:
            headers.update(extra_headers)

        try:
            response = await self._http.request(
                method,
                self._url(table),
                params=list(params),
                json=json_body,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("Remote %s %s failed: %s", method, table, exc)
            raise RemoteStoreError(table=table, message=str(exc) or type(exc).__name__) from exc

        if response.status_code < 200 or response.status_code >= 300:
            message = _safe_error_message(response)
            logger.warning("Remote %s %s returned %d: %s", method, table, response.status_code, message)
            raise RemoteStoreError(table=table, message=message, status_code=response.status_code)

        logger.debug("Remote %s %s -> %d", method, table, response.status_code)
        return response

    @staticmethod
    def _rows(response: httpx.Response, table: str) -> list[Row]:
        if response.status_code == 204 or not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteStoreError(
                table=table,
                message="invalid JSON in successful response",
                status_code=response.status_code,
            ) from exc
        if isinstance(payload, dict):
            return [payload]
        if not isinstance(payload, list):
            raise RemoteStoreError(
                table=table,
                message="unexpected JSON payload shape",
                status_code=response.status_code,
            )
        return [r for r in payload if isinstance(r, dict)]

    # ---- RemoteTaskStore ----

    async def select(self, table: str, filters: Sequence[Filter] = ()) -> list[Row]:
        params = [("select", "*"), *filters]
        response = await self._request("GET", table, params=params)
        return self._rows(response, table)

    async def insert(self, table: str, row: Row) -> list[Row]:
        response = await self._request(
            "POST",
            table,
            json_body=row,
            extra_headers={"Prefer": "return=representation"},
        )
        return self._rows(response, table)

    async def update(self, table: str, filters: Sequence[Filter], patch: Row) -> None:
        if not filters:
            raise ValueError("update requires at least one filter")
        await self._request("PATCH", table, params=filters, json_body=patch)

    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        if not filters:
            raise ValueError("delete requires at least one filter")
        await self._request("DELETE", table, params=filters)

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()
