"""Library exceptions."""

from __future__ import annotations


class PyCalendarPricingError(Exception):
    """Base exception for the library."""

    error_type = "unknown"
    default_code: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        detail: str | None = None,
        user_message: str | None = None,
    ) -> None:
        self.detail = detail if detail is not None else message
        super().__init__(message if message is not None else (self.detail or ""))
        self.error_code = error_code if error_code is not None else self.default_code
        self.user_message = user_message


class AuthError(PyCalendarPricingError):
    """Raised when the remote store rejects the credentials."""

    error_type = "auth"
    default_code = "auth_error"


class NetworkError(PyCalendarPricingError):
    """Raised when the remote store cannot be reached."""

    error_type = "network"
    default_code = "network_error"


class StoreError(PyCalendarPricingError):
    """Raised when the remote store rejects a request or returns bad data."""

    error_type = "store"
    default_code = "store_error"


class ValidationError(PyCalendarPricingError):
    """Raised when inputs fail validation."""

    error_type = "validation"
    default_code = "validation_error"


class ConfigError(PyCalendarPricingError):
    """Raised when a store or setting is misconfigured."""

    error_type = "config"
    default_code = "config_error"
