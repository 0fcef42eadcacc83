"""
Build, sign and submit native-asset payments.

:func:`send_native` moves value only after every local precondition holds and
the source account can cover the amount, the fee and :data:`FEE_BUFFER`. The final
submission is sent exactly once: a signed transaction that may already have
landed is never resubmitted.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from stellar_sdk import Account, Asset, Keypair, StrKey, TransactionBuilder

from .accounts import derive_account_id, get_balance, load_sequence
from .errors import (
    InsufficientBalanceError,
    InvalidArgumentError,
    PiError,
    SerializationError,
    StellarError,
    TransportError,
)
from .executor import ApiRequest, Credentials, RequestExecutor
from .models import TransactionResult
from .networks import Network, default_base_fee, endpoint_for, signing_domain_for

__all__ = [
    "FEE_BUFFER",
    "STROOPS_PER_UNIT",
    "TransactionEnvelope",
    "build_envelope",
    "from_stroops",
    "send_native",
    "sign_envelope",
    "submit_transaction",
    "to_stroops",
]

logger = logging.getLogger(__name__)

STROOPS_PER_UNIT = 10_000_000
# Extra headroom required on top of amount + fee.
FEE_BUFFER = Decimal("0.01")
MAX_TEXT_MEMO_BYTES = 28
TRANSACTION_TIMEOUT_SECONDS = 180
_MAX_STROOPS = 2**63 - 1


def _coerce_amount(amount: Decimal | str | int) -> Decimal:
    if isinstance(amount, float):
        raise InvalidArgumentError("Amounts must be Decimal, str or int, not float")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidArgumentError(f"Amount '{amount}' is not a decimal number") from exc
    if not value.is_finite():
        raise InvalidArgumentError(f"Amount '{amount}' is not finite")
    return value


def to_stroops(amount: Decimal | str | int) -> int:
    """Convert a unit amount to stroops, refusing anything finer than 7 decimals."""
    value = _coerce_amount(amount)
    scaled = value * STROOPS_PER_UNIT
    integral = scaled.to_integral_value()
    if integral != scaled:
        raise InvalidArgumentError(
            f"Amount {value} cannot be represented with 7 decimal places"
        )
    stroops = int(integral)
    if stroops > _MAX_STROOPS:
        raise InvalidArgumentError(f"Amount {value} exceeds the largest transferable amount")
    return stroops


def from_stroops(stroops: int) -> Decimal:
    return Decimal(stroops).scaleb(-7)


@dataclass(frozen=True)
class TransactionEnvelope:
    """
    Everything needed to sign one native payment.

    ``source_sequence`` is the account's current sequence; the signed
    transaction carries ``source_sequence + 1``.
    """

    source_account_id: str
    source_sequence: int
    fee: int
    destination: str
    amount_stroops: int
    memo: Optional[str]
    network_passphrase: str

    @property
    def amount(self) -> Decimal:
        return from_stroops(self.amount_stroops)


def build_envelope(
    network: Network,
    *,
    source_account_id: str,
    source_sequence: int,
    destination: str,
    amount: Decimal | str | int,
    memo: Optional[str] = None,
    fee: Optional[int] = None,
) -> TransactionEnvelope:
    if fee is not None and fee <= 0:
        raise InvalidArgumentError("Fee must be a positive number of stroops")
    return TransactionEnvelope(
        source_account_id=source_account_id,
        source_sequence=source_sequence,
        fee=default_base_fee(network) if fee is None else fee,
        destination=destination,
        amount_stroops=to_stroops(amount),
        memo=memo,
        network_passphrase=signing_domain_for(network),
    )


def sign_envelope(envelope: TransactionEnvelope, secret: str) -> str:
    """Sign ``envelope`` with ``secret`` and return the base64 XDR to submit."""
    try:
        keypair = Keypair.from_secret(secret)
        builder = TransactionBuilder(
            source_account=Account(envelope.source_account_id, envelope.source_sequence),
            network_passphrase=envelope.network_passphrase,
            base_fee=envelope.fee,
        )
        builder.append_payment_op(
            destination=envelope.destination,
            asset=Asset.native(),
            amount=format(envelope.amount, "f"),
        )
        if envelope.memo:
            builder.add_text_memo(envelope.memo)
        transaction = builder.set_timeout(TRANSACTION_TIMEOUT_SECONDS).build()
        transaction.sign(keypair)
        return transaction.to_xdr()
    except ValueError as exc:
        raise StellarError(f"Failed to build the payment transaction: {exc}") from exc


def _horizon_problem(body: Optional[str]) -> Dict[str, Any]:
    if not body:
        return {}
    try:
        decoded = json.loads(body)
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


def submit_transaction(
    executor: RequestExecutor,
    network: Network,
    envelope_xdr: str,
) -> TransactionResult:
    """
    POST a signed envelope to Horizon once.

    A Horizon rejection becomes :class:`StellarError` with its result codes,
    as does any other failure once Horizon has answered. A connection failure
    or 5xx is re-raised unchanged: the transaction may or may not have been
    applied and must be checked before sending again.
    """
    request = ApiRequest(
        method="POST",
        url=f"{endpoint_for(network)}/transactions",
        credentials=Credentials.anonymous(),
        form_body={"tx": envelope_xdr},
        retry=False,
    )
    try:
        result = TransactionResult.from_response(executor.execute(request))
    except TransportError as exc:
        if exc.status_code is None or exc.status_code >= 500:
            logger.warning(
                "Submission to %s ended ambiguously, the transaction may have landed: %s",
                network.value,
                exc,
            )
            raise
        problem = _horizon_problem(exc.body)
        extras = problem.get("extras") or {}
        result_codes = extras.get("result_codes") if isinstance(extras, dict) else None
        title = problem.get("title") or "Transaction submission failed"
        raise StellarError(
            f"{title} ({exc.status_code}): {result_codes or problem.get('detail') or exc.body}",
            status_code=exc.status_code,
            result_codes=result_codes if isinstance(result_codes, dict) else None,
        ) from exc
    except SerializationError as exc:
        # Only a 2xx answer reaches decoding, so the transaction may have landed.
        logger.warning(
            "Submission to %s was accepted but the answer is unreadable: %s", network.value, exc
        )
        raise StellarError(
            f"Horizon accepted the transaction but its response could not be read: {exc}"
        ) from exc
    except PiError as exc:
        raise StellarError(
            f"Transaction submission failed: {exc}",
            status_code=getattr(exc, "status_code", None),
        ) from exc
    return result


def send_native(
    executor: RequestExecutor,
    network: Network,
    source_secret: str,
    destination: str,
    amount: Decimal | str | int,
    *,
    memo: Optional[str] = None,
    fee: Optional[int] = None,
) -> TransactionResult:
    """
    Transfer ``amount`` of the native asset from ``source_secret`` to ``destination``.

    Raises:
        InvalidArgumentError: a local precondition failed; nothing was sent.
        InsufficientBalanceError: the balance does not cover
            ``amount`` plus the network fee and :data:`FEE_BUFFER`; nothing was
            submitted.
        StellarError: account lookup, signing or submission failed.
        TransportError: the submission's outcome is unknown.
    """
    if not source_secret or not source_secret.strip():
        raise InvalidArgumentError("source secret must not be empty")
    if not destination or not destination.strip():
        raise InvalidArgumentError("destination must not be empty")
    value = _coerce_amount(amount)
    if value <= 0:
        raise InvalidArgumentError(f"Amount must be greater than zero, got {value}")
    to_stroops(value)
    if not StrKey.is_valid_ed25519_public_key(destination):
        raise InvalidArgumentError(f"'{destination}' is not a valid destination account id")
    if memo is not None and len(memo.encode("utf-8")) > MAX_TEXT_MEMO_BYTES:
        raise InvalidArgumentError(f"Memo must be at most {MAX_TEXT_MEMO_BYTES} bytes")
    if fee is not None and fee <= 0:
        raise InvalidArgumentError("Fee must be a positive number of stroops")

    source_account_id = derive_account_id(source_secret)

    available = get_balance(executor, network, source_account_id)
    effective_fee = default_base_fee(network) if fee is None else fee
    required = value + from_stroops(effective_fee) + FEE_BUFFER
    if available < required:
        raise InsufficientBalanceError(available=available, required=required)

    sequence = load_sequence(executor, network, source_account_id)
    envelope = build_envelope(
        network,
        source_account_id=source_account_id,
        source_sequence=sequence,
        destination=destination,
        amount=value,
        memo=memo,
        fee=effective_fee,
    )
    envelope_xdr = sign_envelope(envelope, source_secret)

    logger.info(
        "Submitting payment of %s from %s to %s on %s",
        envelope.amount,
        source_account_id,
        destination,
        network.value,
    )
    result = submit_transaction(executor, network, envelope_xdr)
    logger.info("Transaction %s included in ledger %d", result.hash, result.ledger)
    return result
