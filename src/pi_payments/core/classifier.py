"""
Map raw HTTP outcomes onto the closed error taxonomy in :mod:`.errors`.

The functions here return errors instead of raising them and never fail
themselves: an unreadable body simply degrades to :class:`TransportError`.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import requests

from .errors import (
    AuthenticationError,
    PiError,
    RemoteApiError,
    RequestTimeout,
    TransportError,
)

__all__ = [
    "classify_response",
    "classify_transport_failure",
    "decode_body",
    "parse_error_envelope",
]

_AUTH_STATUS_CODES = {401, 403}


def decode_body(body: Optional[bytes]) -> str:
    if not body:
        return ""
    return body.decode("utf-8", errors="replace")


def parse_error_envelope(body: Optional[bytes]) -> Optional[Dict[str, Any]]:
    """
    Return the Pi error envelope ``{error, error_message, payment?}`` or ``None``.
    """
    if not body:
        return None
    try:
        decoded = json.loads(body)
    except ValueError:
        return None
    if not isinstance(decoded, dict):
        return None
    error_name = decoded.get("error")
    if not isinstance(error_name, str) or not error_name:
        return None
    return decoded


def _embedded_payment(envelope: Dict[str, Any]):
    from .models import Payment

    raw = envelope.get("payment")
    if not isinstance(raw, dict):
        return None
    try:
        return Payment.from_response(raw)
    except PiError:
        return None


def classify_response(status_code: int, body: Optional[bytes]) -> PiError:
    """Classify a non-2xx response."""
    text = decode_body(body)
    envelope = parse_error_envelope(body)
    error_name = envelope.get("error") if envelope else None
    error_message = str(envelope.get("error_message") or "") if envelope else ""

    if status_code in _AUTH_STATUS_CODES:
        detail = f"{error_name}: {error_message}" if envelope else text or "no body"
        return AuthenticationError(
            f"Authentication failed ({status_code}): {detail}",
            status_code=status_code,
        )

    if status_code >= 500:
        detail = f"{error_name}: {error_message}" if envelope else text
        return TransportError(
            f"Server responded with {status_code}: {detail}",
            status_code=status_code,
            body=text,
            retryable=True,
        )

    if envelope is not None:
        return RemoteApiError(
            error_name,
            error_message,
            payment=_embedded_payment(envelope),
            status_code=status_code,
        )

    return TransportError(
        f"Server responded with {status_code}: {text}",
        status_code=status_code,
        body=text,
        retryable=False,
    )


def classify_transport_failure(
    exc: requests.RequestException,
    *,
    timeout: float,
    idempotent: bool,
) -> TransportError:
    """
    Classify a failure raised before any response was received.

    Connection-level failures mean the request never reached the server and
    are always retryable. A read timeout may hide a processed request, so it
    is only retried for idempotent calls.
    """
    if isinstance(exc, requests.ConnectTimeout):
        return RequestTimeout(
            f"Connecting timed out after {timeout}s: {exc}",
            timeout=timeout,
            retryable=True,
        )
    if isinstance(exc, requests.Timeout):
        return RequestTimeout(
            f"Timeout occurred after {timeout}s: {exc}",
            timeout=timeout,
            retryable=idempotent,
        )
    if isinstance(exc, requests.ConnectionError):
        return TransportError(f"Connection failed: {exc}", retryable=True)
    return TransportError(f"HTTP request failed: {exc}", retryable=False)
