"""Per-call request and resilience options.

:class:`RequestOptions` is passed through to the transport untouched.
:class:`ResilientFetchOptions` drives the timeout race and the retry loop.
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any

from resilient_fetch.errors import ConfigurationError
from resilient_fetch.settings import DEFAULT_RETRY_ATTEMPTS, DEFAULT_TIMEOUT_MS

if TYPE_CHECKING:
    from resilient_fetch.http.types import TransportResponse
    from resilient_fetch.models import FetchErrorInfo
    from resilient_fetch.settings import FetchSettings

__all__ = [
    "OnError",
    "OnResponse",
    "RequestOptions",
    "ResilientFetchOptions",
]

OnResponse = Callable[["TransportResponse"], Awaitable[None] | None]
OnError = Callable[["FetchErrorInfo"], Awaitable[None] | None]


@dataclass(frozen=True)
class RequestOptions:
    """HTTP request parameters forwarded to the transport."""

    _ALLOWED_KEYS = frozenset({"method", "params", "headers", "json_body", "content"})

    method: str = "GET"
    params: Mapping[str, str] | None = None
    headers: Mapping[str, str] | None = None
    json_body: object | None = None
    content: bytes | str | None = None

    def with_overrides(self, overrides: Mapping[str, object]) -> RequestOptions:
        """Return a new options object with overrides applied.

        Parameters
        ----------
        overrides : Mapping[str, object]
            Option overrides. Keys must be in the allowed set:
            method, params, headers, json_body, content.

        Returns
        -------
        RequestOptions
            New instance with overrides merged. Returns self unchanged if
            overrides is empty.

        Raises
        ------
        TypeError
            If any key in overrides is not in the allowed set of option keys.
        """
        if not overrides:
            return self
        unexpected = set(overrides) - self._ALLOWED_KEYS
        if unexpected:
            msg = f"Unexpected request option(s): {sorted(unexpected)}"
            raise TypeError(msg)
        return replace(self, **{k: overrides[k] for k in overrides})  # type: ignore[arg-type]

    @classmethod
    def coerce(cls, value: RequestOptions | Mapping[str, object] | None) -> RequestOptions:
        """Build options from an instance, a mapping of fields, or None."""
        if isinstance(value, RequestOptions):
            return value
        return cls().with_overrides(value or {})


@dataclass(frozen=True)
class ResilientFetchOptions:
    """Resilience options for one call.

    Attributes
    ----------
    timeout_ms : float
        Milliseconds before the call settles as timed out. Must be positive and finite.
    retry_attempts : int
        Maximum sequential transport attempts. Zero fails the call at once.
    on_response : OnResponse | None
        Called with every response before it is classified. May be async.
    on_error : OnError | None
        Called once with the final error when the retry loop gives up. May be async.
    retry_cancelled : bool
        Whether an attempt that failed because of ``cancel()`` is retried.
    """

    timeout_ms: float = DEFAULT_TIMEOUT_MS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    on_response: OnResponse | None = None
    on_error: OnError | None = None
    retry_cancelled: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, (int, float)):
            msg = f"timeout_ms must be a number, got {type(self.timeout_ms).__name__}"
            raise ConfigurationError(msg)
        if not math.isfinite(self.timeout_ms) or self.timeout_ms <= 0:
            msg = f"timeout_ms must be a positive finite number, got {self.timeout_ms}"
            raise ConfigurationError(msg, context={"timeout_ms": self.timeout_ms})
        if isinstance(self.retry_attempts, bool) or not isinstance(self.retry_attempts, int):
            msg = f"retry_attempts must be an int, got {type(self.retry_attempts).__name__}"
            raise ConfigurationError(msg)
        if self.retry_attempts < 0:
            msg = f"retry_attempts must be non-negative, got {self.retry_attempts}"
            raise ConfigurationError(msg, context={"retry_attempts": self.retry_attempts})

    @property
    def timeout_s(self) -> float:
        """Timeout in seconds, as asyncio expects."""
        return self.timeout_ms / 1000.0

    @classmethod
    def from_settings(cls, settings: FetchSettings, **overrides: Any) -> ResilientFetchOptions:
        """Build options from :class:`FetchSettings` defaults plus overrides.

        Raises
        ------
        ConfigurationError
            If an override is not an option field or has an invalid value.
        """
        values: dict[str, Any] = {
            "timeout_ms": settings.timeout_ms,
            "retry_attempts": settings.retry_attempts,
            "retry_cancelled": settings.retry_cancelled,
        }
        return cls.coerce({**values, **overrides})

    @classmethod
    def coerce(
        cls, value: ResilientFetchOptions | Mapping[str, Any] | None
    ) -> ResilientFetchOptions:
        """Build options from an instance, a mapping of fields, or None.

        Raises
        ------
        ConfigurationError
            If the mapping names an unknown option.
        """
        if isinstance(value, ResilientFetchOptions):
            return value
        if not value:
            return cls()
        known = {f.name for f in fields(cls)}
        unexpected = set(value) - known
        if unexpected:
            msg = f"Unexpected resilience option(s): {sorted(unexpected)}"
            raise ConfigurationError(msg)
        return cls(**value)
