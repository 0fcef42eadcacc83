"""
Minimal script that uses the public API to pay out Pi and complete the payment.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from decimal import Decimal, InvalidOperation

from pi_payments import (
    ConfigError,
    InsufficientBalanceError,
    Network,
    PiError,
    create_client,
    load_client_config,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send Pi and report it on a payment")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing PI_* settings",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    parser.add_argument("--payment-id", required=True, help="Payment to complete")
    parser.add_argument("--to", dest="destination", required=True, help="Recipient account id")
    parser.add_argument("--amount", required=True, help="Amount in Pi (e.g. 0.5)")
    parser.add_argument("--memo", help="Optional text memo (at most 28 bytes)")
    parser.add_argument(
        "--network",
        default=Network.PI_TESTNET.value,
        help="pi_mainnet, pi_testnet or stellar_testnet (default: pi_testnet)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    secret = os.environ.get("PI_WALLET_SECRET")
    if not secret:
        logging.error("PI_WALLET_SECRET must be set")
        return 1

    try:
        amount = Decimal(args.amount)
        config = load_client_config(env_file=args.env_file)
    except (ConfigError, InvalidOperation) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    with create_client(config=config) as client:
        try:
            payment = client.get_payment(args.payment_id)
            if not payment.status.developer_approved:
                payment = client.approve_payment(payment.identifier)
            result = client.send(
                args.network,
                secret,
                args.destination,
                amount,
                memo=args.memo or payment.identifier[:28],
            )
        except InsufficientBalanceError as exc:
            logging.error("Not enough Pi: have %s, need %s", exc.available, exc.required)
            return 1
        except PiError as exc:
            logging.error("Payment failed: %s", exc)
            return 1

        logging.info("Transaction %s landed in ledger %d", result.hash, result.ledger)

        try:
            completed = client.complete_payment(payment.identifier, result.hash)
        except PiError as exc:
            logging.error(
                "Transaction %s was sent but completion failed, retry completion: %s",
                result.hash,
                exc,
            )
            return 1

    logging.info("Payment %s completed", completed.identifier)
    return 0


if __name__ == "__main__":
    sys.exit(main())
