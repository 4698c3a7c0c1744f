"""Exception hierarchy and Problem Details support.

Examples
--------
>>> from resilient_fetch.errors import ErrorCode, HttpStatusError
>>> error = HttpStatusError(503, "Service Unavailable")
>>> assert error.code == ErrorCode.HTTP_STATUS_ERROR
>>> assert error.to_problem_details()["status"] == 503
"""

from __future__ import annotations

from resilient_fetch.errors.codes import BASE_TYPE_URI, ErrorCode, get_type_uri
from resilient_fetch.errors.exceptions import (
    AttemptError,
    CallbackError,
    ConfigurationError,
    FetchCancelledError,
    FetchTimeoutError,
    HttpStatusError,
    ProblemDetails,
    RequestFailedError,
    ResilientFetchError,
    ResponseParseError,
    RetryExhaustedError,
    SettingsError,
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
)

__all__ = [
    "BASE_TYPE_URI",
    "AttemptError",
    "CallbackError",
    "ConfigurationError",
    "ErrorCode",
    "FetchCancelledError",
    "FetchTimeoutError",
    "HttpStatusError",
    "ProblemDetails",
    "RequestFailedError",
    "ResilientFetchError",
    "ResponseParseError",
    "RetryExhaustedError",
    "SettingsError",
    "TransportConnectionError",
    "TransportError",
    "TransportTimeoutError",
    "get_type_uri",
]
