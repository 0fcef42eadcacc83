"""Shared test fixtures: a scripted requests session and client builders."""

import json
from typing import Any, Dict, List, Optional

import pytest
from requests import Response
from stellar_sdk import Keypair

from pi_payments.core.client import PiClient
from pi_payments.core.config import ClientConfig, RetryPolicy
from pi_payments.core.executor import RequestExecutor

API_KEY = "test-api-key"
BASE_URL = "https://api.example.test/v2"


def make_response(
    status_code: int = 200,
    payload: Any = None,
    *,
    body: Optional[bytes] = None,
) -> Response:
    response = Response()
    response.status_code = status_code
    if body is None:
        body = b"" if payload is None else json.dumps(payload).encode("utf-8")
    response._content = body
    response.encoding = "utf-8"
    response.headers["Content-Type"] = "application/json"
    return response


class FakeSession:
    """
    Stands in for ``requests.Session``.

    Replays ``outcomes`` in order (responses are returned, exceptions raised)
    and records every call.
    """

    def __init__(self, outcomes: Optional[List[Any]] = None) -> None:
        self.outcomes: List[Any] = list(outcomes or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def queue(self, *outcomes: Any) -> "FakeSession":
        self.outcomes.extend(outcomes)
        return self

    def request(self, method: str, url: str, **kwargs: Any) -> Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.outcomes:
            raise AssertionError(f"Unexpected request: {method} {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig.create(
        API_KEY,
        base_url=BASE_URL,
        timeout=5.0,
        retry_policy=RetryPolicy(
            max_attempts=3, initial_delay=0.1, max_delay=1.0, backoff_multiplier=2.0
        ),
    )


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def executor(config, session, sleep) -> RequestExecutor:
    return RequestExecutor(config, session=session, sleep=sleep)


@pytest.fixture
def client(config, session, sleep) -> PiClient:
    return PiClient(config, session=session, sleep=sleep)


@pytest.fixture
def source_keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture
def destination() -> str:
    return Keypair.random().public_key


def payment_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "identifier": "pay_123",
        "user_uid": "user_456",
        "amount": 3.14,
        "memo": "Order #42",
        "metadata": {"order_id": 42, "items": ["tea"]},
        "from_address": "GAPP",
        "to_address": "GUSER",
        "direction": "user_to_app",
        "network": "Pi Testnet",
        "created_at": "2024-05-01T12:00:00.000Z",
        "status": {
            "developer_approved": False,
            "transaction_verified": False,
            "developer_completed": False,
            "cancelled": False,
            "user_cancelled": False,
        },
        "transaction": None,
    }
    payload.update(overrides)
    return payload


def account_payload(account_id: str, balance: Optional[str] = "100.5000000", sequence: str = "1234"):
    balances = [
        {
            "balance": "12.0000000",
            "asset_type": "credit_alphanum4",
            "asset_code": "USD",
            "asset_issuer": "GISSUER",
        }
    ]
    if balance is not None:
        balances.append({"balance": balance, "asset_type": "native"})
    return {
        "id": account_id,
        "account_id": account_id,
        "sequence": sequence,
        "balances": balances,
    }
