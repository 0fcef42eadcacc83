from decimal import Decimal

import pytest
import requests

from conftest import API_KEY, BASE_URL, FakeSession, RecordingSleep, make_response
from pi_payments.core.config import RetryPolicy
from pi_payments.core.errors import (
    RemoteApiError,
    RequestTimeout,
    SerializationError,
    TransportError,
)
from pi_payments.core.executor import ApiRequest, AuthScheme, Credentials, RequestExecutor


def _get(url=f"{BASE_URL}/payments/p1", credentials=None, **kwargs):
    return ApiRequest(
        method="GET",
        url=url,
        credentials=credentials or Credentials.api_key(API_KEY),
        **kwargs,
    )


def test_api_key_header(executor, session):
    session.queue(make_response(200, {"ok": True}))
    assert executor.execute(_get()) == {"ok": True}

    call = session.calls[0]
    assert call["headers"]["Authorization"] == f"Key {API_KEY}"
    assert call["headers"]["User-Agent"] == executor.config.user_agent
    assert call["timeout"] == 5.0


def test_bearer_header(executor, session):
    session.queue(make_response(200, {"uid": "u"}))
    executor.execute(_get(f"{BASE_URL}/me", Credentials.bearer("user-token")))
    assert session.calls[0]["headers"]["Authorization"] == "Bearer user-token"


def test_anonymous_has_no_authorization(executor, session):
    session.queue(make_response(200, {}))
    executor.execute(_get("https://horizon.test/accounts/G", Credentials.anonymous()))
    assert "Authorization" not in session.calls[0]["headers"]


def test_credentials_require_secret():
    with pytest.raises(ValueError):
        Credentials.api_key("")
    with pytest.raises(ValueError):
        Credentials(AuthScheme.NONE, "leak")
    assert "user-token" not in repr(Credentials.bearer("user-token"))


def test_url_for(executor):
    assert executor.url_for("/payments/abc") == f"{BASE_URL}/payments/abc"


def test_json_and_form_bodies_are_exclusive():
    with pytest.raises(ValueError):
        ApiRequest(
            "POST", BASE_URL, Credentials.anonymous(), json_body={"a": 1}, form_body={"b": "2"}
        )


def test_floats_decode_as_decimal(executor, session):
    session.queue(make_response(200, body=b'{"amount": 0.1}'))
    result = executor.execute(_get())
    assert result["amount"] == Decimal("0.1")
    assert isinstance(result["amount"], Decimal)


@pytest.mark.parametrize("max_attempts", [1, 2, 3, 5])
def test_persistent_5xx_exhausts_exactly_max_attempts(config, max_attempts):
    policy = RetryPolicy(max_attempts=max_attempts, initial_delay=0.1, max_delay=1.0)
    session = FakeSession([make_response(503, body=b"busy") for _ in range(max_attempts)])
    sleep = RecordingSleep()
    executor = RequestExecutor(
        config.with_overrides(retry_policy=policy), session=session, sleep=sleep
    )

    with pytest.raises(TransportError) as excinfo:
        executor.execute(_get())

    assert excinfo.value.status_code == 503
    assert len(session.calls) == max_attempts
    assert len(sleep.delays) == max_attempts - 1


def test_backoff_delays_grow_and_cap(config):
    policy = RetryPolicy(max_attempts=5, initial_delay=0.1, max_delay=0.5, backoff_multiplier=2.0)
    session = FakeSession([make_response(500) for _ in range(5)])
    sleep = RecordingSleep()
    executor = RequestExecutor(
        config.with_overrides(retry_policy=policy), session=session, sleep=sleep
    )

    with pytest.raises(TransportError):
        executor.execute(_get())

    assert sleep.delays == pytest.approx([0.2, 0.4, 0.5, 0.5])


def test_long_retry_run_keeps_the_delay_capped(config):
    policy = RetryPolicy(max_attempts=400, initial_delay=0.1, max_delay=1.0, backoff_multiplier=10.0)
    session = FakeSession([make_response(503, body=b"busy") for _ in range(400)])
    sleep = RecordingSleep()
    executor = RequestExecutor(
        config.with_overrides(retry_policy=policy), session=session, sleep=sleep
    )

    with pytest.raises(TransportError) as excinfo:
        executor.execute(_get())

    assert excinfo.value.status_code == 503
    assert len(session.calls) == 400
    assert len(sleep.delays) == 399
    assert max(sleep.delays) == 1.0


def test_retry_then_success_resends_same_request(executor, session, sleep):
    session.queue(requests.ConnectionError("refused"), make_response(200, {"ok": True}))
    request = ApiRequest(
        "POST", f"{BASE_URL}/payments/p1/complete", Credentials.api_key(API_KEY), json_body={"txid": "t"}
    )

    assert executor.execute(request) == {"ok": True}
    assert len(session.calls) == 2
    assert session.calls[0] == session.calls[1]
    assert sleep.delays == [pytest.approx(0.2)]


def test_4xx_is_not_retried(executor, session, sleep):
    session.queue(
        make_response(409, {"error": "already_completed", "error_message": "done"}),
    )
    with pytest.raises(RemoteApiError):
        executor.execute(_get())
    assert len(session.calls) == 1
    assert sleep.delays == []


def test_read_timeout_on_post_is_not_retried(executor, session):
    session.queue(requests.ReadTimeout("slow"))
    request = ApiRequest("POST", f"{BASE_URL}/payments/p1/approve", Credentials.api_key(API_KEY))
    with pytest.raises(RequestTimeout):
        executor.execute(request)
    assert len(session.calls) == 1


def test_read_timeout_on_get_is_retried(executor, session):
    session.queue(requests.ReadTimeout("slow"), make_response(200, {"ok": True}))
    assert executor.execute(_get()) == {"ok": True}
    assert len(session.calls) == 2


def test_retry_disabled(executor, session):
    session.queue(make_response(502))
    with pytest.raises(TransportError):
        executor.execute(_get(retry=False))
    assert len(session.calls) == 1


def test_malformed_json_is_serialization_error(executor, session, sleep):
    session.queue(make_response(200, body=b"<html>oops</html>"))
    with pytest.raises(SerializationError):
        executor.execute(_get())
    assert len(session.calls) == 1
    assert sleep.delays == []
