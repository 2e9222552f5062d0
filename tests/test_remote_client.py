# tests/test_remote_client.py

from __future__ import annotations

import json

import httpx
import pytest

from focus_timeline.core.errors import RemoteStoreError
from focus_timeline.core.ports import eq, gte
from focus_timeline.remote.client import SupabaseRestClient

BASE_URL = "https://project.supabase.co/"
KEY = "anon-key"


def _client(handler) -> tuple[SupabaseRestClient, httpx.AsyncClient]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseRestClient(BASE_URL, KEY, http_client=http), http


@pytest.mark.asyncio
async def test_select_sends_filters_and_credentials() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "tb-1"}, "junk"])

    client, _ = _client(handler)
    rows = await client.select("time_blocks", [eq("user_id", 42), gte("date", "2025-03-12")])

    assert rows == [{"id": "tb-1"}]
    [request] = seen
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/time_blocks"
    assert request.url.params.get_list("user_id") == ["eq.42"]
    assert request.url.params.get_list("date") == ["gte.2025-03-12"]
    assert request.url.params["select"] == "*"
    assert request.headers["apikey"] == KEY
    assert request.headers["authorization"] == f"Bearer {KEY}"


@pytest.mark.asyncio
async def test_insert_asks_for_representation() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json=[{**body, "id": 7}])

    client, _ = _client(handler)
    rows = await client.insert("projects_meeting", {"title": "Retro"})

    assert rows == [{"title": "Retro", "id": 7}]
    assert seen[0].method == "POST"
    assert seen[0].headers["prefer"] == "return=representation"


@pytest.mark.asyncio
async def test_update_and_delete_accept_empty_2xx() -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(204)

    client, _ = _client(handler)
    await client.update("time_blocks", [eq("id", "tb-1")], {"completed": True})
    await client.delete("time_blocks", [eq("id", "tb-1")])

    assert methods == ["PATCH", "DELETE"]


@pytest.mark.asyncio
async def test_unfiltered_update_is_refused() -> None:
    client, _ = _client(lambda request: httpx.Response(204))
    with pytest.raises(ValueError):
        await client.update("time_blocks", [], {"completed": True})
    with pytest.raises(ValueError):
        await client.delete("time_blocks", [])


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid API key"})

    client, _ = _client(handler)
    with pytest.raises(RemoteStoreError) as excinfo:
        await client.select("time_blocks")

    assert excinfo.value.status_code == 401
    assert excinfo.value.table == "time_blocks"
    assert "Invalid API key" in str(excinfo.value)


@pytest.mark.asyncio
async def test_transport_error_raises_without_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = _client(handler)
    with pytest.raises(RemoteStoreError) as excinfo:
        await client.delete("personal_todos", [eq("id", "t1")])

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open() -> None:
    client, http = _client(lambda request: httpx.Response(200, json=[]))
    await client.aclose()
    assert not http.is_closed
    await http.aclose()


def test_missing_credentials_are_rejected() -> None:
    with pytest.raises(ValueError):
        SupabaseRestClient("", KEY)
    with pytest.raises(ValueError):
        SupabaseRestClient(BASE_URL, "")
