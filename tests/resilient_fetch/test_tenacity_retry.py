"""Tests for resilient_fetch.http.tenacity_retry."""

from __future__ import annotations

import pytest

from resilient_fetch.errors import (
    FetchCancelledError,
    HttpStatusError,
    RetryExhaustedError,
    TransportError,
)
from resilient_fetch.http.tenacity_retry import TenacityRetryStrategy


class _Flaky:
    """Callable failing a fixed number of times before succeeding."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or HttpStatusError(503, "Service Unavailable")
        self.seen: list[int] = []

    async def __call__(self, attempt: int) -> str:
        self.seen.append(attempt)
        if len(self.seen) <= self.failures:
            raise self.error
        return "ok"


@pytest.mark.asyncio
async def test_returns_first_success() -> None:
    fn = _Flaky(failures=2)
    strategy = TenacityRetryStrategy(3)
    assert await strategy.run(fn) == "ok"
    assert fn.seen == [1, 2, 3]
    assert strategy.attempts == 3


@pytest.mark.asyncio
async def test_reraises_last_attempt_error() -> None:
    """Exhaustion surfaces the last attempt's exception unchanged."""
    last = TransportError("connection refused")
    fn = _Flaky(failures=10, error=last)
    strategy = TenacityRetryStrategy(4)
    with pytest.raises(TransportError) as excinfo:
        await strategy.run(fn)
    assert excinfo.value is last
    assert fn.seen == [1, 2, 3, 4]
    assert strategy.attempts == 4


@pytest.mark.asyncio
async def test_zero_attempts_never_calls_fn() -> None:
    fn = _Flaky(failures=0)
    strategy = TenacityRetryStrategy(0)
    with pytest.raises(RetryExhaustedError) as excinfo:
        await strategy.run(fn)
    assert excinfo.value.status == 0
    assert fn.seen == []
    assert strategy.attempts == 0


@pytest.mark.asyncio
async def test_non_attempt_errors_are_not_retried() -> None:
    fn = _Flaky(failures=5, error=KeyError("bug"))
    strategy = TenacityRetryStrategy(5)
    with pytest.raises(KeyError):
        await strategy.run(fn)
    assert fn.seen == [1]


@pytest.mark.asyncio
@pytest.mark.parametrize(("retry_cancelled", "expected_calls"), [(True, 3), (False, 1)])
async def test_cancelled_attempts_follow_flag(retry_cancelled: bool, expected_calls: int) -> None:
    fn = _Flaky(failures=5, error=FetchCancelledError())
    strategy = TenacityRetryStrategy(3, retry_cancelled=retry_cancelled)
    with pytest.raises(FetchCancelledError):
        await strategy.run(fn)
    assert len(fn.seen) == expected_calls


@pytest.mark.asyncio
async def test_attempts_reset_between_runs() -> None:
    strategy = TenacityRetryStrategy(3)
    await strategy.run(_Flaky(failures=2))
    await strategy.run(_Flaky(failures=0))
    assert strategy.attempts == 1


@pytest.mark.asyncio
async def test_retries_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("DEBUG", logger="resilient_fetch.http.tenacity_retry")
    await TenacityRetryStrategy(2).run(_Flaky(failures=1))
    retrying = [r for r in caplog.records if getattr(r, "status", None) == "retrying"]
    assert len(retrying) == 1
    assert retrying[0].attempt == 1
    assert retrying[0].error_type == "HttpStatusError"
