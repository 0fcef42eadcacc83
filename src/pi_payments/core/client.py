"""
Client object bundling one configuration with one connection pool.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Optional

import requests

from .accounts import get_balance
from .config import ClientConfig
from .executor import RequestExecutor
from .models import Payment, TransactionResult, User
from .networks import Network
from .payments import (
    approve_payment,
    cancel_payment,
    complete_payment,
    get_payment,
    get_user,
)
from .transactions import send_native

__all__ = ["PiClient"]


class PiClient:
    """
    Thin convenience wrapper around the payment and ledger operations.

    Safe to share between threads: the configuration is frozen and the
    ``requests.Session`` pool handles concurrent connections. Construct one
    per credential set; there is no process-wide default instance.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config
        self._owns_session = session is None
        self.executor = RequestExecutor(config, session=session, sleep=sleep)

    @property
    def session(self) -> requests.Session:
        return self.executor.session

    def close(self) -> None:
        if self._owns_session:
            self.executor.session.close()

    def __enter__(self) -> "PiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def me(self, access_token: str) -> User:
        return get_user(self.executor, access_token)

    def get_payment(self, payment_id: str) -> Payment:
        return get_payment(self.executor, payment_id)

    def approve_payment(self, payment_id: str) -> Payment:
        return approve_payment(self.executor, payment_id)

    def complete_payment(self, payment_id: str, txid: str) -> Payment:
        return complete_payment(self.executor, payment_id, txid)

    def cancel_payment(self, payment_id: str) -> Payment:
        return cancel_payment(self.executor, payment_id)

    def balance(self, network: Network | str, account_or_secret: str) -> Decimal:
        """
        Native balance of an account id or of the account behind a secret seed.
        """
        return get_balance(self.executor, Network.parse(network), account_or_secret)

    def send(
        self,
        network: Network | str,
        source_secret: str,
        destination: str,
        amount: Decimal | str | int,
        *,
        memo: Optional[str] = None,
        fee: Optional[int] = None,
    ) -> TransactionResult:
        return send_native(
            self.executor,
            Network.parse(network),
            source_secret,
            destination,
            amount,
            memo=memo,
            fee=fee,
        )
