"""
Static registry of the ledgers the client can transact on.

Adding a network means adding a row to ``_REGISTRY``; nothing else changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from .errors import InvalidArgumentError

__all__ = [
    "Network",
    "NetworkSpec",
    "default_base_fee",
    "endpoint_for",
    "signing_domain_for",
]


class Network(str, Enum):
    PI_MAINNET = "pi_mainnet"
    PI_TESTNET = "pi_testnet"
    STELLAR_TESTNET = "stellar_testnet"

    @classmethod
    def parse(cls, value: "Network | str") -> "Network":
        if isinstance(value, Network):
            return value
        normalized = value.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise InvalidArgumentError(
                f"Unknown network '{value}', expected one of: {choices}"
            ) from exc


@dataclass(frozen=True)
class NetworkSpec:
    endpoint: str
    passphrase: str
    base_fee: int  # stroops per operation


_REGISTRY: Dict[Network, NetworkSpec] = {
    Network.PI_MAINNET: NetworkSpec(
        endpoint="https://api.mainnet.minepi.com",
        passphrase="Pi Network",
        base_fee=1_000_000,
    ),
    Network.PI_TESTNET: NetworkSpec(
        endpoint="https://api.testnet.minepi.com",
        passphrase="Pi Testnet",
        base_fee=1_000_000,
    ),
    Network.STELLAR_TESTNET: NetworkSpec(
        endpoint="https://horizon-testnet.stellar.org",
        passphrase="Test SDF Network ; September 2015",
        base_fee=100,
    ),
}


def endpoint_for(network: Network) -> str:
    """Horizon base URL for ``network``, without a trailing slash."""
    return _REGISTRY[network].endpoint


def signing_domain_for(network: Network) -> str:
    """Passphrase mixed into every signature made for ``network``."""
    return _REGISTRY[network].passphrase


def default_base_fee(network: Network) -> int:
    return _REGISTRY[network].base_fee
