"""Settled call result records.

A call settles to exactly one of :class:`FetchSuccess` or
:class:`FetchFailure`; neither carries the other's payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

__all__ = [
    "CallResult",
    "FetchErrorInfo",
    "FetchFailure",
    "FetchSuccess",
]

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class FetchErrorInfo:
    """Classified error reported to callers and to ``on_error``.

    Attributes
    ----------
    status : int
        HTTP status, or a synthetic status for failures without a response.
    message : str
        Human-readable description.
    """

    status: int
    message: str

    def to_dict(self) -> dict[str, object]:
        """Return the ``{status, message}`` mapping."""
        return {"status": self.status, "message": self.message}


@dataclass(frozen=True, slots=True)
class FetchSuccess(Generic[T]):
    """Successful call outcome.

    Attributes
    ----------
    data : T
        Parsed JSON body.
    headers : Mapping[str, str]
        Response headers.
    """

    data: T
    headers: Mapping[str, str] = field(default_factory=dict)
    status: Literal["success"] = "success"
    loading: Literal[False] = False

    def to_dict(self) -> dict[str, object]:
        """Return the ``{loading, data, status, headers}`` mapping."""
        return {
            "loading": self.loading,
            "data": self.data,
            "status": self.status,
            "headers": dict(self.headers),
        }


@dataclass(frozen=True, slots=True)
class FetchFailure:
    """Failed call outcome."""

    error: FetchErrorInfo
    status: Literal["error"] = "error"
    loading: Literal[False] = False

    def to_dict(self) -> dict[str, object]:
        """Return the ``{loading, error, status}`` mapping."""
        return {"loading": self.loading, "error": self.error.to_dict(), "status": self.status}


CallResult = FetchSuccess[T] | FetchFailure
