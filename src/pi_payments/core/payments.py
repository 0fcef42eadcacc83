"""
Pi Platform payment lifecycle: read, approve, complete and cancel.

Every operation returns the server's updated :class:`Payment`; transitions
are never computed locally.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

from .errors import InvalidArgumentError, SerializationError
from .executor import ApiRequest, Credentials, RequestExecutor
from .models import Payment, User

__all__ = [
    "approve_payment",
    "cancel_payment",
    "complete_payment",
    "get_payment",
    "get_user",
]

logger = logging.getLogger(__name__)


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{name} must not be empty")
    return value


def _payment_request(
    executor: RequestExecutor,
    method: str,
    payment_id: str,
    action: Optional[str] = None,
    body: Optional[dict] = None,
) -> ApiRequest:
    path = f"payments/{quote(payment_id, safe='')}"
    if action:
        path = f"{path}/{action}"
    return ApiRequest(
        method=method,
        url=executor.url_for(path),
        credentials=Credentials.api_key(executor.config.api_key),
        json_body=body,
    )


def _payment_from(payload: Any) -> Payment:
    if not isinstance(payload, dict):
        raise SerializationError(f"Expected a payment object, got {type(payload).__name__}")
    return Payment.from_response(payload)


def get_payment(executor: RequestExecutor, payment_id: str) -> Payment:
    payment_id = _require_text(payment_id, "payment_id")
    payload = executor.execute(_payment_request(executor, "GET", payment_id))
    return _payment_from(payload)


def approve_payment(executor: RequestExecutor, payment_id: str) -> Payment:
    """
    Mark ``payment_id`` as approved by the developer.

    A 4xx answer is surfaced as-is; re-approval is never attempted
    automatically.
    """
    payment_id = _require_text(payment_id, "payment_id")
    logger.info("Approving payment %s", payment_id)
    payload = executor.execute(_payment_request(executor, "POST", payment_id, "approve"))
    return _payment_from(payload)


def complete_payment(executor: RequestExecutor, payment_id: str, txid: str) -> Payment:
    """
    Report the blockchain transaction ``txid`` that settles ``payment_id``.

    The server must answer with a payment that is developer-completed and
    carries its transaction record.
    """
    payment_id = _require_text(payment_id, "payment_id")
    txid = _require_text(txid, "txid")
    logger.info("Completing payment %s with transaction %s", payment_id, txid)
    payload = executor.execute(
        _payment_request(executor, "POST", payment_id, "complete", {"txid": txid})
    )
    payment = _payment_from(payload)
    if not payment.status.developer_completed or payment.transaction is None:
        raise SerializationError(
            f"Completion of payment {payment_id} returned an incomplete payment: "
            f"developer_completed={payment.status.developer_completed}, "
            f"transaction={'present' if payment.transaction else 'missing'}"
        )
    return payment


def cancel_payment(executor: RequestExecutor, payment_id: str) -> Payment:
    payment_id = _require_text(payment_id, "payment_id")
    logger.info("Cancelling payment %s", payment_id)
    payload = executor.execute(_payment_request(executor, "POST", payment_id, "cancel"))
    return _payment_from(payload)


def get_user(executor: RequestExecutor, access_token: str) -> User:
    """Resolve the Pi user behind ``access_token`` (``GET /me``)."""
    access_token = _require_text(access_token, "access_token")
    payload = executor.execute(
        ApiRequest(
            method="GET",
            url=executor.url_for("me"),
            credentials=Credentials.bearer(access_token),
        )
    )
    if not isinstance(payload, dict):
        raise SerializationError(f"Expected a user object, got {type(payload).__name__}")
    return User.from_response(payload)
