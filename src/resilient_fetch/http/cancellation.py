"""Cooperative cancellation primitives.

A :class:`CancellationToken` is created per call. The caller holds its
``abort`` method (exposed as ``cancel()``); the retry loop and the transport
only see the read-only :class:`CancellationSignal`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from resilient_fetch.errors import FetchCancelledError

__all__ = ["CancellationSignal", "CancellationToken", "run_cancellable"]

T = TypeVar("T")


class CancellationSignal:
    """Read-only view of a cancellation token."""

    __slots__ = ("_token",)

    def __init__(self, token: CancellationToken) -> None:
        self._token = token

    @property
    def aborted(self) -> bool:
        """Whether the owning token has been aborted."""
        return self._token.aborted

    @property
    def reason(self) -> str | None:
        """Reason given to the first ``abort()`` call, if any."""
        return self._token.reason

    async def wait(self) -> None:
        """Suspend until the token is aborted."""
        await self._token._event.wait()

    def raise_if_aborted(self) -> None:
        """Raise :class:`FetchCancelledError` if the token has been aborted.

        Raises
        ------
        FetchCancelledError
            If the token has been aborted.
        """
        if self._token.aborted:
            raise FetchCancelledError(self._token.reason)


class CancellationToken:
    """Write-once abort flag shared by one call.

    ``abort()`` is idempotent: only the first call records a reason and wakes
    waiters; later calls do nothing.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.abort()
    >>> token.abort()
    >>> token.signal.aborted
    True
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self.signal = CancellationSignal(self)

    @property
    def aborted(self) -> bool:
        """Whether ``abort()`` has been called."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason given to the first ``abort()`` call, if any."""
        return self._reason

    def abort(self, reason: str | None = None) -> None:
        """Abort the token. Calling it again has no further effect."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()


async def run_cancellable(awaitable: Awaitable[T], signal: CancellationSignal) -> T:
    """Await ``awaitable`` unless ``signal`` fires first.

    Parameters
    ----------
    awaitable : Awaitable[T]
        Work to run, typically one transport request.
    signal : CancellationSignal
        Signal that aborts the work.

    Returns
    -------
    T
        Result of ``awaitable``.

    Raises
    ------
    FetchCancelledError
        If the signal was already aborted or fires before the work completes.
        The work is cancelled and awaited before this is raised.
    """
    if signal.aborted:
        # Close a never-started coroutine so it does not warn on collection
        close = getattr(awaitable, "close", None)
        if callable(close):
            close()
        signal.raise_if_aborted()
    work = asyncio.ensure_future(awaitable)
    aborted = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({work, aborted}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        # Also reached when the caller itself is cancelled
        for task in (work, aborted):
            if not task.done():
                task.cancel()
        await asyncio.gather(work, aborted, return_exceptions=True)
    if work.cancelled():
        signal.raise_if_aborted()
        raise asyncio.CancelledError
    return work.result()
