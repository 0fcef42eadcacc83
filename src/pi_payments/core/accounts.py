"""
Account lookups against a network's Horizon endpoint.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict
from urllib.parse import quote

from stellar_sdk import Keypair, StrKey

from .errors import InvalidArgumentError, PiError, SerializationError, StellarError
from .executor import ApiRequest, Credentials, RequestExecutor
from .models import parse_amount
from .networks import Network, endpoint_for

__all__ = [
    "derive_account_id",
    "fetch_account",
    "get_balance",
    "is_secret_seed",
    "load_sequence",
    "native_balance",
    "resolve_account_id",
]

_SECRET_PREFIX = "S"


def is_secret_seed(value: str) -> bool:
    return value.startswith(_SECRET_PREFIX)


def derive_account_id(secret: str) -> str:
    """Public account id (``G...``) for a secret seed; purely local."""
    try:
        return Keypair.from_secret(secret).public_key
    except ValueError as exc:
        raise StellarError(f"Cannot derive an account id from the secret seed: {exc}") from exc


def resolve_account_id(account_or_secret: str) -> str:
    value = (account_or_secret or "").strip()
    if not value:
        raise InvalidArgumentError("account id or secret seed must not be empty")
    if is_secret_seed(value):
        return derive_account_id(value)
    if not StrKey.is_valid_ed25519_public_key(value):
        raise InvalidArgumentError(f"'{value}' is not a valid account id")
    return value


def fetch_account(executor: RequestExecutor, network: Network, account_id: str) -> Dict[str, Any]:
    """
    Return Horizon's account document for ``account_id``.

    Any failure, a missing account included, is reported as
    :class:`StellarError` chained to the underlying cause.
    """
    url = f"{endpoint_for(network)}/accounts/{quote(account_id, safe='')}"
    try:
        payload = executor.execute(
            ApiRequest(method="GET", url=url, credentials=Credentials.anonymous())
        )
    except PiError as exc:
        status_code = getattr(exc, "status_code", None)
        if status_code == 404:
            raise StellarError(
                f"Account {account_id} does not exist on {network.value}",
                status_code=404,
            ) from exc
        raise StellarError(
            f"Failed to load account {account_id} on {network.value}: {exc}",
            status_code=status_code,
        ) from exc
    if not isinstance(payload, dict):
        raise StellarError(f"Unexpected account document for {account_id}: {payload!r}")
    return payload


def native_balance(account: Dict[str, Any]) -> Decimal:
    """
    Native balance listed in an account document.

    An account without a native entry holds exactly zero.
    """
    balances = account.get("balances")
    if balances is None:
        return Decimal("0")
    if not isinstance(balances, list):
        raise StellarError(f"Account balances are not a list: {balances!r}")
    for entry in balances:
        if isinstance(entry, dict) and entry.get("asset_type") == "native":
            try:
                return parse_amount(entry.get("balance"), "balance")
            except SerializationError as exc:
                raise StellarError(f"Cannot parse native balance: {exc}") from exc
    return Decimal("0")


def get_balance(executor: RequestExecutor, network: Network, account_or_secret: str) -> Decimal:
    account_id = resolve_account_id(account_or_secret)
    return native_balance(fetch_account(executor, network, account_id))


def load_sequence(executor: RequestExecutor, network: Network, account_id: str) -> int:
    """Current sequence number of ``account_id``; the next transaction uses this plus one."""
    account = fetch_account(executor, network, account_id)
    raw = account.get("sequence")
    try:
        sequence = int(raw)
    except (TypeError, ValueError) as exc:
        raise StellarError(f"Cannot parse sequence number {raw!r} of {account_id}") from exc
    if sequence < 0:
        raise StellarError(f"Negative sequence number {sequence} for {account_id}")
    return sequence
