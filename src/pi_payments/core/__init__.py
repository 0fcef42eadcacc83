"""
Core primitives that implement the Pi payment lifecycle and native transfers.
"""

from .accounts import derive_account_id, get_balance, load_sequence
from .client import PiClient
from .config import (
    ClientConfig,
    ClientParameters,
    ConfigError,
    RetryPolicy,
    load_client_config,
)
from .environment import ClientEnvironment, build_environment, load_env_file
from .errors import (
    AuthenticationError,
    InsufficientBalanceError,
    InvalidArgumentError,
    PiError,
    RemoteApiError,
    RequestTimeout,
    SerializationError,
    StellarError,
    TransportError,
)
from .executor import ApiRequest, AuthScheme, Credentials, RequestExecutor
from .models import Payment, PaymentStatus, TransactionRecord, TransactionResult, User
from .networks import Network, default_base_fee, endpoint_for, signing_domain_for
from .payments import (
    approve_payment,
    cancel_payment,
    complete_payment,
    get_payment,
    get_user,
)
from .transactions import (
    FEE_BUFFER,
    TransactionEnvelope,
    from_stroops,
    send_native,
    to_stroops,
)

__all__ = [
    "ApiRequest",
    "AuthScheme",
    "AuthenticationError",
    "ClientConfig",
    "ClientEnvironment",
    "ClientParameters",
    "ConfigError",
    "Credentials",
    "FEE_BUFFER",
    "InsufficientBalanceError",
    "InvalidArgumentError",
    "Network",
    "Payment",
    "PaymentStatus",
    "PiClient",
    "PiError",
    "RemoteApiError",
    "RequestExecutor",
    "RequestTimeout",
    "RetryPolicy",
    "SerializationError",
    "StellarError",
    "TransactionEnvelope",
    "TransactionRecord",
    "TransactionResult",
    "TransportError",
    "User",
    "approve_payment",
    "build_environment",
    "cancel_payment",
    "complete_payment",
    "default_base_fee",
    "derive_account_id",
    "endpoint_for",
    "from_stroops",
    "get_balance",
    "get_payment",
    "get_user",
    "load_client_config",
    "load_env_file",
    "load_sequence",
    "send_native",
    "signing_domain_for",
    "to_stroops",
]
