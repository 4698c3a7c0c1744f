"""Error code registry and type URIs for Problem Details.

This module defines stable error codes and type URIs used in RFC 9457
Problem Details payloads produced by resilient_fetch exceptions.

Examples
--------
>>> from resilient_fetch.errors.codes import ErrorCode, get_type_uri
>>> code = ErrorCode.REQUEST_TIMEOUT
>>> type_uri = get_type_uri(code)
>>> assert type_uri == "https://resilient-fetch.dev/problems/request-timeout"
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

__all__ = [
    "BASE_TYPE_URI",
    "ErrorCode",
    "get_type_uri",
]


BASE_TYPE_URI: Final[str] = "https://resilient-fetch.dev/problems"


class ErrorCode(StrEnum):
    """Stable error codes for resilient_fetch exceptions.

    Codes follow kebab-case naming and remain stable across releases.

    Attributes
    ----------
    REQUEST_TIMEOUT
        The call did not settle before its timeout elapsed.
    REQUEST_CANCELLED
        The caller aborted the call through its cancellation handle.
    TRANSPORT_ERROR
        The transport failed before producing a response.
    TRANSPORT_TIMEOUT
        The transport reported a network-level timeout.
    TRANSPORT_CONNECTION_ERROR
        The transport could not reach the remote host.
    HTTP_STATUS_ERROR
        A response arrived with a status outside the success range.
    RESPONSE_PARSE_ERROR
        The response body could not be decoded as JSON.
    CALLBACK_ERROR
        The ``on_response`` callback raised.
    RETRY_EXHAUSTED
        No attempt was allowed or every attempt failed.
    REQUEST_FAILED
        Final failure of a call, wrapping the classified error.
    CONFIGURATION_ERROR
        Invalid call options.
    RUNTIME_ERROR
        Unclassified runtime failure.
    """

    # Call outcome
    REQUEST_TIMEOUT = "request-timeout"
    REQUEST_CANCELLED = "request-cancelled"
    REQUEST_FAILED = "request-failed"
    RETRY_EXHAUSTED = "retry-exhausted"

    # Attempt failures
    TRANSPORT_ERROR = "transport-error"
    TRANSPORT_TIMEOUT = "transport-timeout"
    TRANSPORT_CONNECTION_ERROR = "transport-connection-error"
    HTTP_STATUS_ERROR = "http-status-error"
    RESPONSE_PARSE_ERROR = "response-parse-error"
    CALLBACK_ERROR = "callback-error"

    # Configuration & Runtime
    CONFIGURATION_ERROR = "configuration-error"
    RUNTIME_ERROR = "runtime-error"

    def __str__(self) -> str:
        """Return the code value as a string.

        Returns
        -------
        str
            The error code value (e.g., "request-timeout").
        """
        return self.value


def get_type_uri(code: ErrorCode) -> str:
    """Get the RFC 9457 type URI for an error code.

    Parameters
    ----------
    code : ErrorCode
        Error code enum value.

    Returns
    -------
    str
        Complete type URI (e.g., "https://resilient-fetch.dev/problems/request-timeout").
    """
    return f"{BASE_TYPE_URI}/{code.value}"
