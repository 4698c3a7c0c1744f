"""Type definitions for transports and retry strategies.

This module defines the protocols the orchestrator relies on: a transport
that performs one HTTP request, the response it yields, and the retry
strategy that drives sequential attempts.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from resilient_fetch.http.cancellation import CancellationSignal
    from resilient_fetch.options import RequestOptions

__all__ = ["AsyncRetryStrategy", "Transport", "TransportResponse"]

T = TypeVar("T")


@runtime_checkable
class TransportResponse(Protocol):
    """Response produced by a :class:`Transport`."""

    @property
    def ok(self) -> bool:
        """Whether ``status`` is in the success range."""
        ...

    @property
    def status(self) -> int:
        """HTTP status code."""
        ...

    @property
    def status_text(self) -> str:
        """HTTP reason phrase."""
        ...

    @property
    def headers(self) -> Mapping[str, str]:
        """Response headers."""
        ...

    async def json(self) -> object:
        """Decode the body as JSON.

        Raises
        ------
        ValueError
            If the body is not valid JSON.
        """
        ...


class Transport(Protocol):
    """Performs one HTTP request.

    Implementations must fail promptly, typically with
    :class:`~resilient_fetch.errors.FetchCancelledError`, once ``signal`` is
    aborted. Other failures should be raised as
    :class:`~resilient_fetch.errors.TransportError`; anything else raised is
    wrapped as one by the orchestrator.
    """

    async def __call__(
        self, url: str, options: RequestOptions, signal: CancellationSignal
    ) -> TransportResponse:
        """Send the request described by ``url`` and ``options``."""
        ...


class AsyncRetryStrategy(Protocol):
    """Protocol for retry strategies over async callables."""

    async def run(self, fn: Callable[[int], Awaitable[T]]) -> T:
        """Execute ``fn`` with retries per configured policy; re-raise final error.

        Parameters
        ----------
        fn : Callable[[int], Awaitable[T]]
            Coroutine function called with the 1-based attempt number.

        Returns
        -------
        T
            The result of the first successful attempt.
        """
        ...
