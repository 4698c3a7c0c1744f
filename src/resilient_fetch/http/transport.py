"""Default transport backed by ``httpx.AsyncClient``.

Each request is raced against the call's cancellation signal so that an
abort interrupts it promptly. httpx failures are mapped onto the
:class:`~resilient_fetch.errors.TransportError` family.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Self

import httpx

from resilient_fetch.errors import (
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
)
from resilient_fetch.http.cancellation import run_cancellable
from resilient_fetch.http.types import TransportResponse

if TYPE_CHECKING:
    from types import TracebackType

    from resilient_fetch.http.cancellation import CancellationSignal
    from resilient_fetch.options import RequestOptions

__all__ = ["HttpxResponse", "HttpxTransport"]


class HttpxResponse(TransportResponse):
    """Adapts an :class:`httpx.Response` to :class:`TransportResponse`."""

    def __init__(self, response: httpx.Response) -> None:
        self.raw = response

    @property
    def ok(self) -> bool:
        return self.raw.is_success

    @property
    def status(self) -> int:
        return self.raw.status_code

    @property
    def status_text(self) -> str:
        return self.raw.reason_phrase

    @property
    def headers(self) -> Mapping[str, str]:
        return self.raw.headers

    async def json(self) -> object:
        # json.JSONDecodeError is a ValueError
        return self.raw.json()

    def __repr__(self) -> str:
        return f"<HttpxResponse [{self.status}]>"


class HttpxTransport:
    """Transport that sends requests through ``httpx.AsyncClient``.

    Parameters
    ----------
    client : httpx.AsyncClient | None, optional
        Client to send requests with. When omitted, a client is created lazily
        and closed by :meth:`aclose`. A caller-supplied client is never closed
        by the transport.

    Examples
    --------
    >>> async def main() -> None:
    ...     async with HttpxTransport() as transport:
    ...         call = resilient_fetch("https://api.example.com/data", transport=transport)
    ...         result = await call.result
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def __call__(
        self, url: str, options: RequestOptions, signal: CancellationSignal
    ) -> TransportResponse:
        """Send one request; abort it when ``signal`` fires.

        Raises
        ------
        FetchCancelledError
            If the signal is or becomes aborted before a response arrives.
        TransportTimeoutError
            If httpx reports a network timeout.
        TransportConnectionError
            If httpx cannot connect.
        TransportError
            For any other httpx transport failure.
        """
        signal.raise_if_aborted()
        request = self.client.build_request(
            options.method.upper(),
            url,
            params=dict(options.params) if options.params else None,
            headers=dict(options.headers) if options.headers else None,
            json=options.json_body,
            content=options.content,
        )
        try:
            response = await run_cancellable(self.client.send(request), signal)
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(str(exc) or "Network timeout", cause=exc) from exc
        except httpx.ConnectError as exc:
            raise TransportConnectionError(str(exc) or "Connection failed", cause=exc) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__, cause=exc) from exc
        return HttpxResponse(response)

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
