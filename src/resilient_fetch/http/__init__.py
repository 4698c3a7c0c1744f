"""Transport, cancellation and retry building blocks.

This package provides the cancellation token passed to every attempt, the
tenacity-backed retry strategy, and the default httpx transport.
"""

from __future__ import annotations

from resilient_fetch.http.cancellation import (
    CancellationSignal,
    CancellationToken,
    run_cancellable,
)
from resilient_fetch.http.tenacity_retry import TenacityRetryStrategy
from resilient_fetch.http.transport import HttpxResponse, HttpxTransport
from resilient_fetch.http.types import AsyncRetryStrategy, Transport, TransportResponse

__all__ = [
    "AsyncRetryStrategy",
    "CancellationSignal",
    "CancellationToken",
    "HttpxResponse",
    "HttpxTransport",
    "TenacityRetryStrategy",
    "Transport",
    "TransportResponse",
    "run_cancellable",
]
