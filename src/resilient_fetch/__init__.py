"""Resilient single-call HTTP helper.

Wraps one HTTP call with a timeout, bounded immediate retries, response and
error callbacks, and cooperative cancellation.

Examples
--------
>>> from resilient_fetch import resilient_fetch
>>> async def main() -> None:
...     result, cancel = resilient_fetch("https://api.example.com/data")
...     success = await result
...     print(success.data)
"""

from __future__ import annotations

from resilient_fetch.errors import (
    ConfigurationError,
    ErrorCode,
    FetchCancelledError,
    FetchTimeoutError,
    HttpStatusError,
    RequestFailedError,
    ResilientFetchError,
    ResponseParseError,
    TransportError,
)
from resilient_fetch.fetch import ResilientFetchCall, fetch_json, resilient_fetch
from resilient_fetch.http import CancellationToken, HttpxTransport, Transport, TransportResponse
from resilient_fetch.models import CallResult, FetchErrorInfo, FetchFailure, FetchSuccess
from resilient_fetch.options import RequestOptions, ResilientFetchOptions
from resilient_fetch.settings import FetchSettings, configure_logging, load_settings

__version__ = "0.1.0"

__all__ = [
    "CallResult",
    "CancellationToken",
    "ConfigurationError",
    "ErrorCode",
    "FetchCancelledError",
    "FetchErrorInfo",
    "FetchFailure",
    "FetchSettings",
    "FetchSuccess",
    "FetchTimeoutError",
    "HttpStatusError",
    "HttpxTransport",
    "RequestFailedError",
    "RequestOptions",
    "ResilientFetchCall",
    "ResilientFetchError",
    "ResilientFetchOptions",
    "ResponseParseError",
    "Transport",
    "TransportError",
    "TransportResponse",
    "configure_logging",
    "fetch_json",
    "load_settings",
    "resilient_fetch",
]
