"""
Error types raised by the Pi payments client.

Every failure surfaces as a subclass of :class:`PiError` so callers can catch
the whole family or branch on the specific kind.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .models import Payment

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "InsufficientBalanceError",
    "InvalidArgumentError",
    "PiError",
    "RemoteApiError",
    "RequestTimeout",
    "SerializationError",
    "StellarError",
    "TransportError",
]


class PiError(Exception):
    """Base class for every error raised by this package."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(PiError):
    """Raised when the supplied configuration is invalid."""


class TransportError(PiError):
    """
    The request did not produce a usable API answer.

    ``status_code`` and ``body`` are set when the server did answer (5xx, or a
    non-2xx without the Pi error envelope) and are kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.retryable = retryable


class RequestTimeout(TransportError):
    def __init__(self, message: str, *, timeout: float, retryable: bool = False) -> None:
        super().__init__(message, retryable=retryable)
        self.timeout = timeout


class RemoteApiError(PiError):
    """A structured ``{error, error_message, payment?}`` failure from the Pi API."""

    def __init__(
        self,
        error_name: str,
        error_message: str,
        *,
        payment: Optional["Payment"] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(f"Pi Network API error: {error_name} - {error_message}")
        self.error_name = error_name
        self.error_message = error_message
        self.payment = payment
        self.status_code = status_code


class AuthenticationError(PiError):
    """The access token or API key was rejected."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidArgumentError(PiError, ValueError):
    """A caller-supplied value failed a local check; nothing was sent."""


class StellarError(PiError):
    """Balance lookup, key derivation or transaction submission failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        result_codes: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.result_codes = result_codes or {}


class InsufficientBalanceError(PiError):
    def __init__(self, available: Decimal, required: Decimal) -> None:
        super().__init__(
            f"Insufficient balance: available {available}, required {required}"
        )
        self.available = available
        self.required = required


class SerializationError(PiError):
    """A response body could not be decoded into the expected shape."""
