"""Resilient single-call orchestrator.

:func:`resilient_fetch` wraps one HTTP call with a timeout, bounded
immediate retries, response and error callbacks, and cooperative
cancellation. It returns at once with a task for the outcome and a
synchronous ``cancel`` handle.

The timeout clock and the retry loop run as two tasks raced with
``asyncio.wait(..., return_when=FIRST_COMPLETED)``. Whichever settles first
decides the outcome; the other is cancelled and awaited so its timer or
in-flight request is released. ``on_error`` runs only once the retry loop
has won the race, so a slow callback cannot turn its failure into a timeout.

Examples
--------
>>> async def main() -> None:
...     call = resilient_fetch(
...         "https://api.example.com/data",
...         custom_options={"timeout_ms": 2000, "retry_attempts": 3},
...     )
...     try:
...         result = await call.result
...     except RequestFailedError as exc:
...         print(exc.failure.to_dict())
...     else:
...         print(result.data)
"""

from __future__ import annotations

import asyncio
import inspect
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, NamedTuple, TypeVar

from resilient_fetch.errors import (
    AttemptError,
    CallbackError,
    FetchTimeoutError,
    HttpStatusError,
    RequestFailedError,
    ResilientFetchError,
    ResponseParseError,
    TransportError,
)
from resilient_fetch.http.cancellation import CancellationSignal, CancellationToken
from resilient_fetch.http.tenacity_retry import TenacityRetryStrategy
from resilient_fetch.http.transport import HttpxTransport
from resilient_fetch.http.types import Transport, TransportResponse
from resilient_fetch.logging import LoggerAdapter, get_correlation_id, get_logger, with_fields
from resilient_fetch.models import FetchErrorInfo, FetchFailure, FetchSuccess
from resilient_fetch.options import RequestOptions, ResilientFetchOptions

__all__ = ["ResilientFetchCall", "fetch_json", "resilient_fetch"]

T = TypeVar("T")

logger = get_logger(__name__)

OPERATION = "resilient_fetch"


class ResilientFetchCall(NamedTuple, Generic[T]):
    """Handle returned by :func:`resilient_fetch`; unpacks as ``(result, cancel)``.

    Attributes
    ----------
    result : asyncio.Task[FetchSuccess[T]]
        Resolves to :class:`FetchSuccess` or raises :class:`RequestFailedError`.
    cancel : Callable[[], None]
        Aborts the call's cancellation token. Idempotent and non-blocking.
    """

    result: asyncio.Task[FetchSuccess[T]]
    cancel: Callable[[], None]


async def _maybe_await(value: Awaitable[None] | None) -> None:
    if inspect.isawaitable(value):
        await value


def _failure(error: ResilientFetchError, attempts: int) -> RequestFailedError:
    return RequestFailedError(FetchFailure(error.to_error_info()), cause=error, attempts=attempts)


class _ResilientCall:
    """State of one call: options, token and transport."""

    def __init__(
        self,
        url: str,
        request: RequestOptions,
        options: ResilientFetchOptions,
        token: CancellationToken,
        transport: Transport | None,
    ) -> None:
        self.url = url
        self.request = request
        self.options = options
        self.signal: CancellationSignal = token.signal
        self._owned_transport = HttpxTransport() if transport is None else None
        self.transport: Transport = transport if transport is not None else self._owned_transport
        self.log: LoggerAdapter = logger
        self.strategy = TenacityRetryStrategy(
            options.retry_attempts, retry_cancelled=options.retry_cancelled
        )

    async def run(self) -> FetchSuccess[Any]:
        correlation_id = get_correlation_id() or uuid.uuid4().hex
        with with_fields(
            logger,
            correlation_id=correlation_id,
            operation=OPERATION,
            url=self.url,
            method=self.request.method.upper(),
        ) as log:
            self.log = self.strategy.log = log
            start = time.monotonic()
            loop_task = asyncio.create_task(self._retry_loop(log))
            timer_task = asyncio.create_task(self._timeout(log))
            try:
                done, _ = await asyncio.wait(
                    {loop_task, timer_task}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                for task in (loop_task, timer_task):
                    if not task.done():
                        task.cancel()
                await asyncio.gather(loop_task, timer_task, return_exceptions=True)
                if self._owned_transport is not None:
                    await self._owned_transport.aclose()
            winner = loop_task if loop_task in done else timer_task
            duration_ms = (time.monotonic() - start) * 1000
            failure = winner.exception()
            if failure is None:
                log.log_success(
                    "Request succeeded",
                    duration_ms=duration_ms,
                    attempts=self.strategy.attempts,
                )
            elif winner is loop_task and isinstance(failure, RequestFailedError):
                # Outcome is already decided; the timer no longer runs here
                await self._notify_error(failure.error, log)
            return winner.result()

    async def _timeout(self, log: LoggerAdapter) -> FetchSuccess[Any]:
        await asyncio.sleep(self.options.timeout_s)
        error = FetchTimeoutError(self.options.timeout_ms)
        log.log_failure(
            "Request timed out",
            exception=error,
            level=error.log_level,
            timeout_ms=self.options.timeout_ms,
            attempts=self.strategy.attempts,
        )
        raise _failure(error, self.strategy.attempts)

    async def _retry_loop(self, log: LoggerAdapter) -> FetchSuccess[Any]:
        try:
            return await self.strategy.run(self._attempt)
        except ResilientFetchError as exc:
            error = exc.to_error_info()
            log.log_failure(
                "Request failed",
                exception=exc,
                level=exc.log_level,
                attempts=self.strategy.attempts,
                error_status=error.status,
            )
            raise _failure(exc, self.strategy.attempts) from exc

    async def _attempt(self, attempt: int) -> FetchSuccess[Any]:
        """Run one transport attempt and classify its outcome.

        Raises
        ------
        AttemptError
            For any failure of this attempt.
        """
        self.signal.raise_if_aborted()
        response = await self._send(attempt)

        if self.options.on_response is not None:
            try:
                await _maybe_await(self.options.on_response(response))
            except Exception as exc:
                raise CallbackError(exc) from exc

        if not response.ok:
            raise HttpStatusError(response.status, response.status_text, response.headers)

        try:
            data = await response.json()
        except Exception as exc:
            raise ResponseParseError(cause=exc, response_status=response.status) from exc
        return FetchSuccess(data=data, headers=response.headers)

    async def _send(self, attempt: int) -> TransportResponse:
        self.log.debug(
            "Attempt %d/%d started",
            attempt,
            self.options.retry_attempts,
            extra={"status": "started", "attempt": attempt},
        )
        try:
            return await self.transport(self.url, self.request, self.signal)
        except AttemptError:
            raise
        except Exception as exc:
            status = getattr(exc, "status", None)
            message = str(exc) or type(exc).__name__
            if isinstance(status, int) and not isinstance(status, bool):
                raise TransportError(message, status=status, cause=exc) from exc
            raise TransportError(message, cause=exc) from exc

    async def _notify_error(self, error: FetchErrorInfo, log: LoggerAdapter) -> None:
        if self.options.on_error is None:
            return
        try:
            await _maybe_await(self.options.on_error(error))
        except Exception:
            # The call has already failed; a broken callback must not mask that
            log.exception("on_error callback raised", extra={"status": "error"})


def resilient_fetch(
    url: str,
    options: RequestOptions | Mapping[str, object] | None = None,
    custom_options: ResilientFetchOptions | Mapping[str, Any] | None = None,
    *,
    transport: Transport | None = None,
) -> ResilientFetchCall[Any]:
    """Start a resilient call and return its result task and cancel handle.

    Must be called while an event loop is running. Returns immediately; the
    request runs in the background.

    Parameters
    ----------
    url : str
        Target URL.
    options : RequestOptions | Mapping[str, object] | None, optional
        Request parameters passed through to the transport.
    custom_options : ResilientFetchOptions | Mapping[str, Any] | None, optional
        Timeout, retry and callback options. Defaults to 5000 ms and 3 attempts.
    transport : Transport | None, optional
        Transport performing each attempt. Defaults to a fresh
        :class:`HttpxTransport`, closed when the call settles.

    Returns
    -------
    ResilientFetchCall[Any]
        ``(result, cancel)``. ``result`` resolves to :class:`FetchSuccess` or
        raises :class:`RequestFailedError`. ``cancel()`` aborts in-flight and
        future attempts; the failure then flows through the retry loop.

    Raises
    ------
    ConfigurationError
        If ``custom_options`` is invalid.
    TypeError
        If ``options`` names an unknown request option.
    RuntimeError
        If no event loop is running.
    """
    loop = asyncio.get_running_loop()
    request = RequestOptions.coerce(options)
    resilience = ResilientFetchOptions.coerce(custom_options)
    token = CancellationToken()
    call = _ResilientCall(url, request, resilience, token, transport)
    task = loop.create_task(call.run())

    def cancel() -> None:
        if not token.aborted:
            logger.debug(
                "Cancellation requested",
                extra={"operation": OPERATION, "status": "cancelled", "url": url},
            )
        token.abort()

    return ResilientFetchCall(task, cancel)


async def fetch_json(
    url: str,
    options: RequestOptions | Mapping[str, object] | None = None,
    custom_options: ResilientFetchOptions | Mapping[str, Any] | None = None,
    *,
    transport: Transport | None = None,
) -> Any:
    """Run :func:`resilient_fetch` to completion and return the parsed body.

    Raises
    ------
    RequestFailedError
        If the call times out, is cancelled, or exhausts its attempts.
    """
    call = resilient_fetch(url, options, custom_options, transport=transport)
    result = await call.result
    return result.data
