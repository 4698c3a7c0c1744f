"""Tenacity-based retry strategy for the fetch retry loop.

This module provides TenacityRetryStrategy which implements the
AsyncRetryStrategy protocol using tenacity's AsyncRetrying. Attempts run
strictly sequentially and the next attempt starts immediately after a
failure: there is no backoff delay.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_none

from resilient_fetch.errors import AttemptError, FetchCancelledError, RetryExhaustedError
from resilient_fetch.http.types import AsyncRetryStrategy
from resilient_fetch.logging import LoggerAdapter, get_logger

if TYPE_CHECKING:
    from tenacity import RetryCallState

__all__ = ["TenacityRetryStrategy"]

T = TypeVar("T")

logger = get_logger(__name__)


def _should_retry_exception(*, retry_cancelled: bool) -> Callable[[BaseException], bool]:
    """Create predicate function for retry decision based on exception.

    Parameters
    ----------
    retry_cancelled : bool
        Whether cancellation failures are retried.

    Returns
    -------
    Callable[[BaseException], bool]
        Predicate that returns True if the exception should be retried.
    """

    def _pred(e: BaseException) -> bool:
        if not isinstance(e, AttemptError):
            return False
        if isinstance(e, FetchCancelledError):
            return retry_cancelled
        return True

    return _pred


class TenacityRetryStrategy(AsyncRetryStrategy):
    """Retry strategy implementation using tenacity.

    Parameters
    ----------
    retry_attempts : int
        Maximum number of attempts, including the first one.
    retry_cancelled : bool, optional
        Whether a :class:`FetchCancelledError` is retried. Defaults to True.
    log : LoggerAdapter | None, optional
        Logger used to report retries. Defaults to the module logger.

    Attributes
    ----------
    attempts : int
        Number of attempts started by the last :meth:`run`.
    """

    def __init__(
        self,
        retry_attempts: int,
        *,
        retry_cancelled: bool = True,
        log: LoggerAdapter | None = None,
    ) -> None:
        self.retry_attempts = retry_attempts
        self.retry_cancelled = retry_cancelled
        self.attempts = 0
        self.log = log or logger

    async def run(self, fn: Callable[[int], Awaitable[T]]) -> T:
        """Execute ``fn`` with retry logic.

        Parameters
        ----------
        fn : Callable[[int], Awaitable[T]]
            Coroutine function called with the 1-based attempt number.

        Returns
        -------
        T
            Result of the first successful attempt.

        Raises
        ------
        RetryExhaustedError
            If no attempt is allowed (``retry_attempts <= 0``); ``fn`` is never called.

        Notes
        -----
        When every attempt fails, the last attempt's exception is re-raised
        unchanged. Exceptions that are not attempt failures are never retried.
        """
        self.attempts = 0
        if self.retry_attempts <= 0:
            msg = f"No attempts allowed (retry_attempts={self.retry_attempts})"
            raise RetryExhaustedError(msg, attempts=0)
        async for attempt in self._build_retrying():
            with attempt:
                self.attempts = attempt.retry_state.attempt_number
                result = await fn(self.attempts)
        return result

    def _build_retrying(self) -> AsyncRetrying:
        """Create a configured tenacity AsyncRetrying instance.

        Returns
        -------
        AsyncRetrying
            Instance stopping after ``retry_attempts`` with no wait between attempts.
        """
        return AsyncRetrying(
            retry=retry_if_exception(_should_retry_exception(retry_cancelled=self.retry_cancelled)),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_none(),
            before_sleep=self._before_retry,
            reraise=True,
        )

    def _before_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        exc = outcome.exception() if outcome is not None else None
        self.log.debug(
            "Attempt %d/%d failed, retrying",
            retry_state.attempt_number,
            self.retry_attempts,
            extra={
                "status": "retrying",
                "attempt": retry_state.attempt_number,
                "error_type": type(exc).__name__ if exc is not None else None,
                "error_detail": str(exc) if exc is not None else None,
            },
        )
