"""
Command-line interface for exercising the Pi payment APIs.
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Iterable, Sequence, Tuple

from .api import create_client, load_client_config
from .core.client import PiClient
from .core.errors import ConfigError, InsufficientBalanceError, PiError, RemoteApiError
from .core.models import Payment
from .core.networks import Network

SECRET_ENV_KEY = "PI_WALLET_SECRET"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def _network(value: str) -> Network:
    try:
        return Network.parse(value)
    except PiError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pi-payments",
        description="Drive the Pi Network payment lifecycle and native transfers",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing PI_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    me = commands.add_parser("me", help="Resolve the user behind an access token")
    me.add_argument("access_token")

    payment = commands.add_parser("payment", help="Read or advance a payment")
    actions = payment.add_subparsers(dest="action", required=True)
    for action in ("get", "approve", "cancel"):
        sub = actions.add_parser(action, help=f"{action.capitalize()} a payment")
        sub.add_argument("payment_id")
    complete = actions.add_parser("complete", help="Complete a payment with its txid")
    complete.add_argument("payment_id")
    complete.add_argument("txid")

    balance = commands.add_parser("balance", help="Show the native balance of an account")
    balance.add_argument("account", help="Account id (G...) or secret seed (S...)")
    balance.add_argument("--network", type=_network, default=Network.PI_TESTNET)

    send = commands.add_parser("send", help="Send a native payment")
    send.add_argument("--to", dest="destination", required=True)
    send.add_argument("--amount", required=True, help="Amount in units, e.g. 1.5")
    send.add_argument("--memo")
    send.add_argument("--fee", type=int, help="Base fee in stroops (network default otherwise)")
    send.add_argument("--network", type=_network, default=Network.PI_TESTNET)
    send.add_argument(
        "--secret",
        help=f"Source secret seed (default: ${SECRET_ENV_KEY})",
    )
    return parser


def _log_payment(verb: str, payment: Payment) -> None:
    status = payment.status
    logging.info(
        "%s payment %s: amount=%s approved=%s verified=%s completed=%s cancelled=%s txid=%s",
        verb,
        payment.identifier,
        payment.amount,
        status.developer_approved,
        status.transaction_verified,
        status.developer_completed,
        status.cancelled,
        payment.transaction.txid if payment.transaction else None,
    )
    logging.debug("Payment payload: %s", payment.to_json())


def _dispatch(client: PiClient, args: argparse.Namespace) -> int:
    if args.command == "me":
        user = client.me(args.access_token)
        logging.info("Access token belongs to %s (uid %s)", user.username, user.uid)
        return 0

    if args.command == "payment":
        if args.action == "get":
            _log_payment("Fetched", client.get_payment(args.payment_id))
        elif args.action == "approve":
            _log_payment("Approved", client.approve_payment(args.payment_id))
        elif args.action == "cancel":
            _log_payment("Cancelled", client.cancel_payment(args.payment_id))
        else:
            _log_payment("Completed", client.complete_payment(args.payment_id, args.txid))
        return 0

    if args.command == "balance":
        amount = client.balance(args.network, args.account)
        logging.info("Native balance on %s: %s", args.network.value, amount)
        return 0

    secret = args.secret or os.environ.get(SECRET_ENV_KEY)
    if not secret:
        logging.error("Provide --secret or set %s", SECRET_ENV_KEY)
        return 1
    result = client.send(
        args.network,
        secret,
        args.destination,
        args.amount,
        memo=args.memo,
        fee=args.fee,
    )
    logging.info(
        "Payment submitted on %s. Transaction hash: %s (ledger %d)",
        args.network.value,
        result.hash,
        result.ledger,
    )
    return 0


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    try:
        config = load_client_config(env_file=args.env_file, overrides=overrides)
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    with create_client(config=config) as client:
        try:
            return _dispatch(client, args)
        except InsufficientBalanceError as exc:
            logging.error(
                "Insufficient balance: available %s, required %s",
                exc.available,
                exc.required,
            )
        except RemoteApiError as exc:
            logging.error("Pi API rejected the request: %s (%s)", exc.error_name, exc.error_message)
        except PiError as exc:
            logging.error("%s failed: %s", args.command, exc)
    return 1
