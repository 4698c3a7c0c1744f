"""Tests for the httpx-backed transport.

Requests are served by ``httpx.MockTransport`` so no network is used.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from resilient_fetch import RequestFailedError, resilient_fetch
from resilient_fetch.errors import (
    FetchCancelledError,
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
)
from resilient_fetch.http.cancellation import CancellationToken
from resilient_fetch.http.transport import HttpxTransport
from resilient_fetch.options import RequestOptions

URL = "https://api.example.com/items"


def _client(handler: object) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_sends_request_options() -> None:
    """Method, params, headers and JSON body reach the wire."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"created": True})

    async with _client(handler) as client:
        transport = HttpxTransport(client)
        options = RequestOptions(
            method="post",
            params={"page": "2"},
            headers={"X-Request-Id": "abc"},
            json_body={"name": "widget"},
        )
        response = await transport(URL, options, CancellationToken().signal)

    assert response.ok
    assert response.status == 201
    assert response.status_text == "Created"
    assert await response.json() == {"created": True}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.params["page"] == "2"
    assert request.headers["X-Request-Id"] == "abc"
    assert json.loads(request.content) == {"name": "widget"}


@pytest.mark.asyncio
async def test_error_status_is_not_ok() -> None:
    async with _client(lambda request: httpx.Response(404)) as client:
        response = await HttpxTransport(client)(URL, RequestOptions(), CancellationToken().signal)
    assert not response.ok
    assert response.status_text == "Not Found"


@pytest.mark.asyncio
async def test_invalid_json_raises_value_error() -> None:
    async with _client(lambda request: httpx.Response(200, content=b"<html>")) as client:
        response = await HttpxTransport(client)(URL, RequestOptions(), CancellationToken().signal)
    with pytest.raises(ValueError):
        await response.json()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raised", "expected"),
    [
        (httpx.ConnectError("refused"), TransportConnectionError),
        (httpx.ReadTimeout("slow"), TransportTimeoutError),
        (httpx.RemoteProtocolError("bad frame"), TransportError),
    ],
)
async def test_httpx_errors_are_mapped(raised: httpx.HTTPError, expected: type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise raised

    async with _client(handler) as client:
        with pytest.raises(expected) as excinfo:
            await HttpxTransport(client)(URL, RequestOptions(), CancellationToken().signal)
    assert excinfo.value.status == 0
    assert excinfo.value.__cause__ is raised


@pytest.mark.asyncio
async def test_aborted_signal_skips_request() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200)

    token = CancellationToken()
    token.abort()
    async with _client(handler) as client:
        with pytest.raises(FetchCancelledError):
            await HttpxTransport(client)(URL, RequestOptions(), token.signal)
    assert calls == 0


@pytest.mark.asyncio
async def test_abort_interrupts_in_flight_request() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(200)

    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.01, token.abort)
    async with _client(handler) as client:
        with pytest.raises(FetchCancelledError):
            await HttpxTransport(client)(URL, RequestOptions(), token.signal)


@pytest.mark.asyncio
async def test_supplied_client_is_not_closed() -> None:
    client = _client(lambda request: httpx.Response(200))
    transport = HttpxTransport(client)
    await transport.aclose()
    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_owned_client_is_closed() -> None:
    async with HttpxTransport() as transport:
        client = transport.client
    assert client.is_closed


@pytest.mark.asyncio
async def test_end_to_end_retry_over_httpx() -> None:
    """Two 500s then a 200 through the real transport adapter."""
    statuses = iter([500, 500, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        return httpx.Response(status, json={"id": 1} if status == 200 else None)

    async with _client(handler) as client:
        call = resilient_fetch(URL, transport=HttpxTransport(client))
        result = await call.result
    assert result.data == {"id": 1}
    assert result.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_end_to_end_exhaustion_reports_reason_phrase() -> None:
    async with _client(lambda request: httpx.Response(503)) as client:
        call = resilient_fetch(
            URL, custom_options={"retry_attempts": 2}, transport=HttpxTransport(client)
        )
        with pytest.raises(RequestFailedError) as excinfo:
            await call.result
    assert excinfo.value.failure.to_dict()["error"] == {
        "status": 503,
        "message": "Service Unavailable",
    }
