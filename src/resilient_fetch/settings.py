"""Runtime settings with typed configuration and fail-fast validation.

This module provides FetchSettings (pydantic_settings.BaseSettings) holding
the process-wide defaults for resilient calls. Values load from
``RESILIENT_FETCH_*`` environment variables.

Examples
--------
>>> from resilient_fetch.settings import load_settings
>>> settings = load_settings(timeout_ms=250)
>>> settings.timeout_ms
250.0
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from resilient_fetch.errors import SettingsError
from resilient_fetch.logging import get_logger, setup_logging

__all__ = [
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_TIMEOUT_MS",
    "FetchSettings",
    "configure_logging",
    "load_settings",
]

logger = get_logger(__name__)

DEFAULT_TIMEOUT_MS = 5000.0
DEFAULT_RETRY_ATTEMPTS = 3


class FetchSettings(BaseSettings):
    """Defaults for resilient calls (``RESILIENT_FETCH_*`` namespace)."""

    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_FETCH_",
        extra="forbid",
        case_sensitive=False,
    )

    timeout_ms: float = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        allow_inf_nan=False,
        description="Milliseconds before a call settles as timed out",
    )
    retry_attempts: int = Field(
        default=DEFAULT_RETRY_ATTEMPTS,
        ge=0,
        description="Maximum number of sequential transport attempts",
    )
    retry_cancelled: bool = Field(
        default=True,
        description="Retry attempts that failed because the call was cancelled",
    )
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level is one of the standard levels.

        Returns
        -------
        str
            Validated log level (uppercase).

        Raises
        ------
        ValueError
            If log level is not valid.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level_upper = value.upper()
        if level_upper not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {sorted(valid_levels)}"
            raise ValueError(msg)
        return level_upper

    def __init__(self, **overrides: object) -> None:
        """Initialise settings with fail-fast validation."""
        try:
            super().__init__(**overrides)  # type: ignore[arg-type]  # BaseSettings.__init__ accepts Any kwargs
        except Exception as exc:
            msg = f"Configuration validation failed: {exc}"
            logger.exception(
                "Settings validation failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            raise SettingsError(
                msg,
                cause=exc,
                context={"validation_error": str(exc)},
            ) from exc


def load_settings(**overrides: object) -> FetchSettings:
    """Load :class:`FetchSettings` with optional overrides.

    Returns
    -------
    FetchSettings
        Validated settings.

    Raises
    ------
    SettingsError
        If the environment or overrides fail validation.
    """
    return FetchSettings(**overrides)


def configure_logging(settings: FetchSettings | None = None) -> FetchSettings:
    """Install JSON logging on the root logger at ``settings.log_level``.

    Parameters
    ----------
    settings : FetchSettings | None, optional
        Settings to apply. Loaded from the environment when omitted.

    Returns
    -------
    FetchSettings
        The settings that were applied.

    Raises
    ------
    SettingsError
        If settings are loaded here and fail validation.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    logger.log_success(
        "Logging configured",
        operation="settings.configure_logging",
        log_level=settings.log_level,
        timeout_ms=settings.timeout_ms,
        retry_attempts=settings.retry_attempts,
    )
    return settings
