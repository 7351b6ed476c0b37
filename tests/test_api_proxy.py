"""Tests for the httpx-backed transport."""

import json

import httpx
import pytest

from datamanager.shared.core.configuration import ApiConfig
from datamanager.shared.infrastructure.api.api_proxy import ApiProxy


def make_proxy(handler):
    config = ApiConfig(base_url="http://backend.test/api")
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=config.base_url)
    return ApiProxy(config, client=client)


@pytest.mark.asyncio
async def test_success_returns_decoded_data():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"tasks": [{"id": 1}], "total": 1})

    async with make_proxy(handler) as api:
        result = await api.tasks({"page": 2, "page_size": 30, "query": None})

    assert result.ok
    assert result.data["total"] == 1
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/tasks"
    assert dict(seen[0].url.params) == {"page": "2", "page_size": "30"}


@pytest.mark.asyncio
async def test_path_placeholders_are_filled():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": 5})

    async with make_proxy(handler) as api:
        result = await api.task({"taskID": 5, "interaction": "open"})

    assert result.data == {"id": 5}
    assert seen[0].url.path == "/api/tasks/5"
    assert dict(seen[0].url.params) == {"interaction": "open"}


@pytest.mark.asyncio
async def test_post_sends_json_body():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"reload": False})

    async with make_proxy(handler) as api:
        await api.invokeAction({"id": "next_task", "tabID": 3}, {"ordering": ["id"]})

    assert seen[0].method == "POST"
    assert json.loads(seen[0].content) == {"ordering": ["id"]}
    assert dict(seen[0].url.params) == {"id": "next_task", "tabID": "3"}


@pytest.mark.asyncio
async def test_http_error_keeps_response_body():
    def handler(request):
        return httpx.Response(404, json={"detail": "Not found"})

    async with make_proxy(handler) as api:
        result = await api.task({"taskID": 1})

    assert not result.ok
    assert result.is_not_found
    assert result.error == "HTTP 404"
    assert result.detail == "Not found"


@pytest.mark.asyncio
async def test_non_json_error_body_is_wrapped():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    async with make_proxy(handler) as api:
        result = await api.project()

    assert result.status == 502
    assert result.response == {"detail": "bad gateway"}


@pytest.mark.asyncio
async def test_transport_failure_becomes_status_zero():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_proxy(handler) as api:
        result = await api.users()

    assert not result.ok
    assert result.status == 0
    assert result.response is None
    assert "refused" in result.error


@pytest.mark.asyncio
async def test_missing_path_parameter_is_an_error_result():
    def handler(request):
        raise AssertionError("no request expected")

    async with make_proxy(handler) as api:
        result = await api.task({})

    assert result.status == 0
    assert "taskID" in result.error


@pytest.mark.asyncio
async def test_unknown_endpoint():
    def handler(request):
        raise AssertionError("no request expected")

    async with make_proxy(handler) as api:
        assert not api.has_endpoint("nope")
        with pytest.raises(AttributeError):
            api.nope
        result = await api.request("nope")

    assert result.status == 0
