"""Application configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_INCLUDE_DEBUG_MESSAGE = True
DEFAULT_UNHANDLED_STATUS_CODE = 400
DEFAULT_LOG_LEVEL = "INFO"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


@dataclass(frozen=True)
class ErrorHandlingSettings:
    """Runtime settings for error translation and logging."""

    include_debug_message: bool = DEFAULT_INCLUDE_DEBUG_MESSAGE
    unhandled_status_code: int = DEFAULT_UNHANDLED_STATUS_CODE
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        if not 400 <= self.unhandled_status_code <= 599:
            raise ValueError("unhandled_status_code must be a 4xx or 5xx status")

    def safe_for_logging(self) -> dict[str, str | int | bool]:
        """Return error handling settings safe for logs."""
        return {
            "include_debug_message": self.include_debug_message,
            "unhandled_status_code": self.unhandled_status_code,
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def get_error_settings() -> ErrorHandlingSettings:
    """Load error handling settings from the environment."""
    return ErrorHandlingSettings(
        include_debug_message=_get_bool_env("APIERRORS_INCLUDE_DEBUG_MESSAGE", DEFAULT_INCLUDE_DEBUG_MESSAGE),
        unhandled_status_code=_get_int_env("APIERRORS_UNHANDLED_STATUS_CODE", DEFAULT_UNHANDLED_STATUS_CODE),
        log_level=os.getenv("APIERRORS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
    )
