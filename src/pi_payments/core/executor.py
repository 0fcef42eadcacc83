"""
Single choke point for every outbound HTTP call.

The executor injects credentials, applies the configured timeout and user
agent, decodes JSON and retries transient failures with bounded exponential
backoff. Only failures where the server demonstrably did not act (connection
level) or answered 5xx are retried; anything else surfaces on first sight.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .classifier import classify_response, classify_transport_failure
from .config import ClientConfig
from .errors import PiError, SerializationError

__all__ = [
    "ApiRequest",
    "AuthScheme",
    "Credentials",
    "RequestExecutor",
]

logger = logging.getLogger(__name__)

_IDEMPOTENT_METHODS = {"GET", "HEAD", "OPTIONS"}


class AuthScheme(Enum):
    BEARER = "Bearer"
    KEY = "Key"
    NONE = "none"


@dataclass(frozen=True)
class Credentials:
    """
    Which credential a request is sent with.

    Built through :meth:`bearer`, :meth:`api_key` or :meth:`anonymous` so the
    scheme and the secret always travel together.
    """

    scheme: AuthScheme
    secret: Optional[str] = None

    def __post_init__(self) -> None:
        if self.scheme is AuthScheme.NONE:
            if self.secret is not None:
                raise ValueError("Anonymous credentials cannot carry a secret")
        elif not self.secret:
            raise ValueError(f"{self.scheme.value} credentials require a non-empty secret")

    def __repr__(self) -> str:
        return f"Credentials(scheme={self.scheme.name})"

    @classmethod
    def bearer(cls, token: str) -> "Credentials":
        return cls(AuthScheme.BEARER, token)

    @classmethod
    def api_key(cls, key: str) -> "Credentials":
        return cls(AuthScheme.KEY, key)

    @classmethod
    def anonymous(cls) -> "Credentials":
        return cls(AuthScheme.NONE)

    def authorization_header(self) -> Optional[str]:
        if self.scheme is AuthScheme.BEARER:
            return f"Bearer {self.secret}"
        if self.scheme is AuthScheme.KEY:
            return f"Key {self.secret}"
        return None


@dataclass(frozen=True)
class ApiRequest:
    method: str
    url: str
    credentials: Credentials
    json_body: Optional[Mapping[str, Any]] = None
    form_body: Optional[Mapping[str, str]] = None
    retry: bool = True

    def __post_init__(self) -> None:
        if self.json_body is not None and self.form_body is not None:
            raise ValueError("A request carries either a JSON body or a form body, not both")

    @property
    def idempotent(self) -> bool:
        return self.method.upper() in _IDEMPOTENT_METHODS


class RequestExecutor:
    """
    Send :class:`ApiRequest` objects on behalf of one client.

    ``session`` owns the connection pool and may be shared across threads;
    ``sleep`` is the backoff primitive and exists so tests can observe delays.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        self._sleep = sleep or time.sleep

    def url_for(self, path: str) -> str:
        """Absolute Pi Platform URL for ``path``."""
        return f"{self.config.base_url}/{path.lstrip('/')}"

    def execute(self, request: ApiRequest) -> Any:
        policy = self.config.retry_policy
        max_attempts = policy.max_attempts if request.retry else 1
        attempt = 0
        while True:
            try:
                return self._send_once(request)
            except PiError as exc:
                if not exc.retryable:
                    raise
                attempt += 1
                if attempt >= max_attempts:
                    logger.warning(
                        "%s %s failed after %d attempt(s): %s",
                        request.method,
                        request.url,
                        attempt,
                        exc,
                    )
                    raise
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Retriable error on attempt %d/%d for %s %s: %s - sleeping %.2fs",
                    attempt,
                    max_attempts,
                    request.method,
                    request.url,
                    exc,
                    delay,
                )
                self._sleep(delay)

    def _headers(self, request: ApiRequest) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }
        authorization = request.credentials.authorization_header()
        if authorization is not None:
            headers["Authorization"] = authorization
        return headers

    def _send_once(self, request: ApiRequest) -> Any:
        logger.debug("Sending %s %s", request.method, request.url)
        try:
            response = self.session.request(
                request.method,
                request.url,
                headers=self._headers(request),
                json=request.json_body,
                data=request.form_body,
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            raise classify_transport_failure(
                exc,
                timeout=self.config.timeout,
                idempotent=request.idempotent,
            ) from exc

        if not 200 <= response.status_code < 300:
            raise classify_response(response.status_code, response.content)

        return _decode_json(response, request)


def _decode_json(response: requests.Response, request: ApiRequest) -> Any:
    try:
        return response.json(parse_float=Decimal)
    except ValueError as exc:
        raise SerializationError(
            f"Failed to parse JSON from {request.method} {request.url}: {response.text[:200]}"
        ) from exc
