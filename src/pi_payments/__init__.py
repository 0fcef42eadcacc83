"""
Public facade for the Pi payments client.

The module re-exports the most useful pieces so integrators can
``from pi_payments import ...`` without navigating the package.
"""

from ._version import __version__
from .api import create_client, send_payment
from .core import (
    AuthenticationError,
    ClientConfig,
    ClientEnvironment,
    ClientParameters,
    ConfigError,
    InsufficientBalanceError,
    InvalidArgumentError,
    Network,
    Payment,
    PaymentStatus,
    PiClient,
    PiError,
    RemoteApiError,
    RequestTimeout,
    RetryPolicy,
    SerializationError,
    StellarError,
    TransactionRecord,
    TransactionResult,
    TransportError,
    User,
    build_environment,
    derive_account_id,
    endpoint_for,
    load_client_config,
    load_env_file,
    signing_domain_for,
)

__all__ = (
    "AuthenticationError",
    "ClientConfig",
    "ClientEnvironment",
    "ClientParameters",
    "ConfigError",
    "InsufficientBalanceError",
    "InvalidArgumentError",
    "Network",
    "Payment",
    "PaymentStatus",
    "PiClient",
    "PiError",
    "RemoteApiError",
    "RequestTimeout",
    "RetryPolicy",
    "SerializationError",
    "StellarError",
    "TransactionRecord",
    "TransactionResult",
    "TransportError",
    "User",
    "__version__",
    "build_environment",
    "create_client",
    "derive_account_id",
    "endpoint_for",
    "load_client_config",
    "load_env_file",
    "send_payment",
    "signing_domain_for",
)
