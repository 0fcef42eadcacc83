from decimal import Decimal

import pytest
import requests
from stellar_sdk import TransactionEnvelope as SignedEnvelope

from conftest import account_payload, make_response
from pi_payments.core.errors import (
    InsufficientBalanceError,
    InvalidArgumentError,
    StellarError,
    TransportError,
)
from pi_payments.core.networks import (
    Network,
    default_base_fee,
    endpoint_for,
    signing_domain_for,
)
from pi_payments.core.transactions import (
    FEE_BUFFER,
    build_envelope,
    from_stroops,
    sign_envelope,
    to_stroops,
)

SUBMIT_SUCCESS = {
    "hash": "3389e9f0f1a65f19736cacf544c2e825313e8447f569233bb8db39aa607c8889",
    "ledger": 7654321,
    "envelope_xdr": "AAAAAgAAAAA=",
    "result_xdr": "AAAAAAAAAGQAAAAAAAAAAQAAAAAAAAABAAAAAAAAAAA=",
    "result_meta_xdr": "AAAAAwAAAAA=",
}


def _queue_happy_path(session, account_id, balance="100.0000000", sequence="1000"):
    session.queue(
        make_response(200, account_payload(account_id, balance, sequence)),
        make_response(200, account_payload(account_id, balance, sequence)),
        make_response(200, SUBMIT_SUCCESS),
    )


def test_send_builds_signs_and_submits(client, session, source_keypair, destination):
    account_id = source_keypair.public_key
    _queue_happy_path(session, account_id)

    result = client.send(
        Network.PI_TESTNET,
        source_keypair.secret,
        destination,
        Decimal("1.5"),
        memo="order-42",
    )

    assert result.hash == SUBMIT_SUCCESS["hash"]
    assert result.ledger == 7654321
    assert result.result_meta_xdr == SUBMIT_SUCCESS["result_meta_xdr"]
    assert len(session.calls) == 3

    submit = session.calls[2]
    assert submit["method"] == "POST"
    assert submit["url"] == f"{endpoint_for(Network.PI_TESTNET)}/transactions"
    assert submit["json"] is None

    envelope = SignedEnvelope.from_xdr(
        submit["data"]["tx"], signing_domain_for(Network.PI_TESTNET)
    )
    transaction = envelope.transaction
    assert transaction.source.account_id == account_id
    assert transaction.sequence == 1001
    assert transaction.fee == default_base_fee(Network.PI_TESTNET)
    assert transaction.memo.memo_text == b"order-42"
    assert len(transaction.operations) == 1
    operation = transaction.operations[0]
    assert operation.destination.account_id == destination
    assert operation.asset.is_native()
    assert Decimal(operation.amount) == Decimal("1.5")
    assert len(envelope.signatures) == 1


def test_caller_fee_overrides_default(client, session, source_keypair, destination):
    _queue_happy_path(session, source_keypair.public_key)

    client.send(Network.STELLAR_TESTNET, source_keypair.secret, destination, "2", fee=250)

    xdr = session.calls[2]["data"]["tx"]
    envelope = SignedEnvelope.from_xdr(xdr, signing_domain_for(Network.STELLAR_TESTNET))
    assert envelope.transaction.fee == 250


def test_insufficient_balance_stops_before_submission(client, session, source_keypair, destination):
    account_id = source_keypair.public_key
    session.queue(make_response(200, account_payload(account_id, "5.0000000")))

    with pytest.raises(InsufficientBalanceError) as excinfo:
        client.send(Network.PI_TESTNET, source_keypair.secret, destination, Decimal("10.0"))

    assert excinfo.value.available == Decimal("5")
    assert excinfo.value.required >= Decimal("10")
    assert excinfo.value.required == (
        Decimal("10.0") + from_stroops(default_base_fee(Network.PI_TESTNET)) + FEE_BUFFER
    )
    assert len(session.calls) == 1
    assert not any(call["url"].endswith("/transactions") for call in session.calls)


def test_balance_must_cover_fee_buffer(client, session, source_keypair, destination):
    session.queue(make_response(200, account_payload(source_keypair.public_key, "10.0000000")))
    with pytest.raises(InsufficientBalanceError):
        client.send(Network.PI_TESTNET, source_keypair.secret, destination, Decimal("10"))


def test_balance_must_cover_the_network_fee(client, session, source_keypair, destination):
    session.queue(make_response(200, account_payload(source_keypair.public_key, "10.0500000")))

    with pytest.raises(InsufficientBalanceError) as excinfo:
        client.send(Network.PI_MAINNET, source_keypair.secret, destination, Decimal("10"))

    assert excinfo.value.required == Decimal("10.11")
    assert len(session.calls) == 1


def test_caller_fee_is_part_of_the_balance_check(client, session, source_keypair, destination):
    account_id = source_keypair.public_key
    _queue_happy_path(session, account_id, balance="10.0500000")

    client.send(Network.PI_MAINNET, source_keypair.secret, destination, Decimal("10"), fee=100)

    assert len(session.calls) == 3


def test_rejected_submission_credentials_are_stellar_error(client, session, source_keypair, destination):
    account_id = source_keypair.public_key
    session.queue(
        make_response(200, account_payload(account_id)),
        make_response(200, account_payload(account_id)),
        make_response(401, {"status": 401, "title": "Unauthorized"}),
    )

    with pytest.raises(StellarError) as excinfo:
        client.send(Network.PI_TESTNET, source_keypair.secret, destination, "1")

    assert excinfo.value.status_code == 401
    submissions = [call for call in session.calls if call["url"].endswith("/transactions")]
    assert len(submissions) == 1


@pytest.mark.parametrize(
    "answer",
    [
        make_response(200, body=b"<html>accepted</html>"),
        make_response(200, {"hash": "abc"}),
    ],
)
def test_unreadable_submission_answer_is_stellar_error(
    client, session, sleep, source_keypair, destination, answer
):
    account_id = source_keypair.public_key
    session.queue(
        make_response(200, account_payload(account_id)),
        make_response(200, account_payload(account_id)),
        answer,
    )

    with pytest.raises(StellarError) as excinfo:
        client.send(Network.PI_TESTNET, source_keypair.secret, destination, "1")

    assert "accepted" in str(excinfo.value)
    submissions = [call for call in session.calls if call["url"].endswith("/transactions")]
    assert len(submissions) == 1
    assert sleep.delays == []


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1"), "0", "-0.5", -3])
def test_non_positive_amount_is_rejected_without_calls(client, session, source_keypair, destination, amount):
    with pytest.raises(InvalidArgumentError):
        client.send(Network.PI_TESTNET, source_keypair.secret, destination, amount)
    assert session.calls == []


@pytest.mark.parametrize(
    "secret, dest, amount, memo",
    [
        ("", "DEST", "1", None),
        ("SECRET", "", "1", None),
        ("SECRET", "DEST", "0.00000001", None),
        ("SECRET", "DEST", 1.5, None),
        ("SECRET", "DEST", "abc", None),
        ("SECRET", "GBAD", "1", None),
        ("SECRET", "DEST", "1", "x" * 29),
    ],
)
def test_local_preconditions(client, session, source_keypair, destination, secret, dest, amount, memo):
    secret = source_keypair.secret if secret == "SECRET" else secret
    dest = destination if dest == "DEST" else dest
    with pytest.raises(InvalidArgumentError):
        client.send(Network.PI_TESTNET, secret, dest, amount, memo=memo)
    assert session.calls == []


def test_submission_rejection_is_stellar_error(client, session, source_keypair, destination):
    account_id = source_keypair.public_key
    session.queue(
        make_response(200, account_payload(account_id)),
        make_response(200, account_payload(account_id)),
        make_response(
            400,
            {
                "type": "https://stellar.org/horizon-errors/transaction_failed",
                "title": "Transaction Failed",
                "status": 400,
                "extras": {"result_codes": {"transaction": "tx_bad_seq"}},
            },
        ),
    )

    with pytest.raises(StellarError) as excinfo:
        client.send(Network.PI_TESTNET, source_keypair.secret, destination, "1")

    assert excinfo.value.status_code == 400
    assert excinfo.value.result_codes == {"transaction": "tx_bad_seq"}
    assert len(session.calls) == 3


@pytest.mark.parametrize(
    "failure",
    [make_response(504, body=b"gateway timeout"), requests.ConnectionError("reset")],
)
def test_ambiguous_submission_is_never_retried(client, session, sleep, source_keypair, destination, failure):
    account_id = source_keypair.public_key
    session.queue(
        make_response(200, account_payload(account_id)),
        make_response(200, account_payload(account_id)),
        failure,
    )

    with pytest.raises(TransportError):
        client.send(Network.PI_TESTNET, source_keypair.secret, destination, "1")

    submissions = [call for call in session.calls if call["url"].endswith("/transactions")]
    assert len(submissions) == 1
    assert sleep.delays == []


def test_stroop_conversion():
    assert to_stroops(Decimal("1")) == 10_000_000
    assert to_stroops("0.0000001") == 1
    assert to_stroops(Decimal("100.5000000")) == 1_005_000_000
    assert from_stroops(1_005_000_000) == Decimal("100.5")
    with pytest.raises(InvalidArgumentError):
        to_stroops("0.00000001")


def test_sign_envelope_rejects_wrong_secret(source_keypair, destination):
    envelope = build_envelope(
        Network.PI_MAINNET,
        source_account_id=source_keypair.public_key,
        source_sequence=1,
        destination=destination,
        amount="1",
    )
    assert envelope.fee == default_base_fee(Network.PI_MAINNET)
    assert envelope.network_passphrase == "Pi Network"
    assert envelope.amount == Decimal("1")
    with pytest.raises(StellarError):
        sign_envelope(envelope, "SNOTAVALIDSEED")
