"""Exception hierarchy with Problem Details mapping.

Every failure the orchestrator can observe is classified into one of these
exceptions. Each carries an :class:`ErrorCode`, the numeric ``status`` that is
reported to callers in :class:`~resilient_fetch.models.FetchErrorInfo`, and a
human readable ``message``.

Attempt failures (subclasses of :class:`AttemptError`) are recovered inside the
retry loop; only :class:`RequestFailedError` escapes the returned task.

Examples
--------
>>> from resilient_fetch.errors import FetchTimeoutError
>>> error = FetchTimeoutError()
>>> error.status, error.message
(408, 'Request timed out')
>>> error.to_problem_details()["code"]
'request-timeout'
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, NotRequired, TypedDict

from resilient_fetch.errors.codes import ErrorCode, get_type_uri
from resilient_fetch.models import FetchErrorInfo

if TYPE_CHECKING:
    from resilient_fetch.models import FetchFailure

__all__ = [
    "AttemptError",
    "CallbackError",
    "ConfigurationError",
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
]

TIMEOUT_STATUS = 408
TIMEOUT_MESSAGE = "Request timed out"
CANCELLED_STATUS = 499
CANCELLED_MESSAGE = "Request cancelled"
# Network failures carry no HTTP status of their own.
NETWORK_ERROR_STATUS = 0
PARSE_ERROR_STATUS = 502
CALLBACK_ERROR_STATUS = 500


class ProblemDetails(TypedDict):
    """RFC 9457 Problem Details payload."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
    code: str
    extensions: NotRequired[dict[str, object]]


class ResilientFetchError(Exception):
    """Base exception for all resilient_fetch errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    code : ErrorCode, optional
        Stable error code. Defaults to ``ErrorCode.RUNTIME_ERROR``.
    status : int, optional
        Status reported in :class:`FetchErrorInfo`. Defaults to 500.
    log_level : int, optional
        Level used when the orchestrator logs this error. Defaults to
        ``logging.ERROR``.
    cause : BaseException | None, optional
        Underlying exception, stored as ``__cause__``.
    context : Mapping[str, object] | None, optional
        Extra fields added to Problem Details extensions.
    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.RUNTIME_ERROR,
        status: int = 500,
        log_level: int = logging.ERROR,
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.log_level = log_level
        self.context = dict(context) if context else {}
        if cause is not None:
            self.__cause__ = cause

    def to_error_info(self) -> FetchErrorInfo:
        """Return the ``{status, message}`` record reported to callers.

        Returns
        -------
        FetchErrorInfo
            Status and message of this error.
        """
        return FetchErrorInfo(status=self.status, message=self.message)

    def to_problem_details(
        self,
        instance: str | None = None,
        title: str | None = None,
    ) -> ProblemDetails:
        """Convert to RFC 9457 Problem Details JSON.

        Parameters
        ----------
        instance : str | None, optional
            URI identifying the specific occurrence, typically the request URL.
        title : str | None, optional
            Short summary. Defaults to the exception class name.

        Returns
        -------
        ProblemDetails
            Problem Details object with type, title, status, detail, code,
            instance and optional extensions.
        """
        details: ProblemDetails = {
            "type": get_type_uri(self.code),
            "title": title or self.__class__.__name__,
            "status": self.status,
            "detail": self.message,
            "instance": instance or "urn:resilient-fetch:error",
            "code": self.code.value,
        }
        if self.context:
            details["extensions"] = dict(self.context)
        return details

    def __str__(self) -> str:
        """Return formatted error string.

        Returns
        -------
        str
            Formatted error string (e.g., "FetchTimeoutError[request-timeout]: Request timed out").
        """
        base = f"{self.__class__.__name__}[{self.code.value}]: {self.message}"
        if self.__cause__:
            base += f" (caused by: {type(self.__cause__).__name__})"
        return base


class ConfigurationError(ResilientFetchError):
    """Raised when call options are invalid."""

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.CONFIGURATION_ERROR,
            status=500,
            cause=cause,
            context=context,
        )


class SettingsError(ConfigurationError):
    """Raised when environment-backed settings fail validation."""


class FetchTimeoutError(ResilientFetchError):
    """Raised by the timeout race when the call does not settle in time."""

    def __init__(self, timeout_ms: float | None = None) -> None:
        super().__init__(
            TIMEOUT_MESSAGE,
            code=ErrorCode.REQUEST_TIMEOUT,
            status=TIMEOUT_STATUS,
            log_level=logging.WARNING,
            context={"timeout_ms": timeout_ms} if timeout_ms is not None else None,
        )
        self.timeout_ms = timeout_ms


class AttemptError(ResilientFetchError):
    """Base class for failures of a single attempt.

    These are the only failures the retry loop retries.
    """


class TransportError(AttemptError):
    """The transport failed before producing a response."""

    def __init__(
        self,
        message: str,
        *,
        status: int = NETWORK_ERROR_STATUS,
        cause: BaseException | None = None,
        code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
    ) -> None:
        super().__init__(
            message or "Transport error",
            code=code,
            status=status,
            log_level=logging.WARNING,
            cause=cause,
        )


class TransportTimeoutError(TransportError):
    """The transport gave up waiting on the network."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message, cause=cause, code=ErrorCode.TRANSPORT_TIMEOUT)


class TransportConnectionError(TransportError):
    """The transport could not connect to the remote host."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message, cause=cause, code=ErrorCode.TRANSPORT_CONNECTION_ERROR)


class HttpStatusError(AttemptError):
    """A response arrived with a status outside the success range.

    Parameters
    ----------
    status : int
        HTTP status code.
    status_text : str
        Reason phrase of the response, reported as the error message.
    headers : Mapping[str, str] | None, optional
        Response headers. Defaults to None.
    """

    def __init__(
        self,
        status: int,
        status_text: str,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_text,
            code=ErrorCode.HTTP_STATUS_ERROR,
            status=status,
            log_level=logging.WARNING,
        )
        self.headers = dict(headers) if headers else {}


class ResponseParseError(AttemptError):
    """The response body could not be decoded as JSON."""

    def __init__(
        self, *, cause: BaseException | None = None, response_status: int | None = None
    ) -> None:
        super().__init__(
            "Invalid JSON response body",
            code=ErrorCode.RESPONSE_PARSE_ERROR,
            status=PARSE_ERROR_STATUS,
            log_level=logging.WARNING,
            cause=cause,
            context={"response_status": response_status} if response_status is not None else None,
        )


class CallbackError(AttemptError):
    """The ``on_response`` callback raised."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(
            f"on_response callback failed: {cause}",
            code=ErrorCode.CALLBACK_ERROR,
            status=CALLBACK_ERROR_STATUS,
            log_level=logging.WARNING,
            cause=cause,
        )


class FetchCancelledError(AttemptError):
    """An attempt observed an aborted cancellation token."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(
            reason or CANCELLED_MESSAGE,
            code=ErrorCode.REQUEST_CANCELLED,
            status=CANCELLED_STATUS,
            log_level=logging.INFO,
        )


class RetryExhaustedError(ResilientFetchError):
    """Raised when a call is not allowed any attempt.

    Parameters
    ----------
    message : str
        Human-readable error message.
    attempts : int
        Number of attempts that were allowed.
    """

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(
            message,
            code=ErrorCode.RETRY_EXHAUSTED,
            status=NETWORK_ERROR_STATUS,
            context={"attempts": attempts},
        )
        self.attempts = attempts


class RequestFailedError(ResilientFetchError):
    """Final failure of a call; the rejection value of the returned task.

    Parameters
    ----------
    failure : FetchFailure
        The settled failure record.
    cause : ResilientFetchError
        The classified error that ended the call.
    attempts : int
        Number of transport attempts that ran.

    Attributes
    ----------
    failure : FetchFailure
        The settled failure record; ``failure.to_dict()`` yields the
        ``{loading, error: {status, message}, status}`` shape.
    error : FetchErrorInfo
        Shortcut to ``failure.error``.
    """

    def __init__(self, failure: FetchFailure, *, cause: ResilientFetchError, attempts: int) -> None:
        super().__init__(
            failure.error.message,
            code=ErrorCode.REQUEST_FAILED,
            status=failure.error.status,
            log_level=cause.log_level,
            cause=cause,
            context={"attempts": attempts, "reason": cause.code.value},
        )
        self.failure = failure
        self.error = failure.error
        self.attempts = attempts
        self.reason = cause
