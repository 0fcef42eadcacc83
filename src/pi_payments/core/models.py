"""
Value objects decoded from Pi Platform and Horizon responses.

Instances are only ever built from what a server returned; the client never
fabricates a :class:`Payment` from caller input.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from .errors import SerializationError

__all__ = [
    "Payment",
    "PaymentStatus",
    "TransactionRecord",
    "TransactionResult",
    "User",
    "parse_amount",
]


def parse_amount(value: Any, field_name: str = "amount") -> Decimal:
    """Decode a server-side amount without passing through a binary float."""
    if isinstance(value, bool) or value is None:
        raise SerializationError(f"Field '{field_name}' is not a number: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise SerializationError(
            f"Field '{field_name}' is not a decimal number: {value!r}"
        ) from exc
    if not amount.is_finite():
        raise SerializationError(f"Field '{field_name}' is not finite: {value!r}")
    if amount < 0:
        raise SerializationError(f"Field '{field_name}' is negative: {value!r}")
    return amount


def _require(payload: Mapping[str, Any], key: str) -> Any:
    try:
        return payload[key]
    except KeyError as exc:
        raise SerializationError(f"Response is missing field '{key}'") from exc


def _as_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SerializationError(f"Expected {what} to be an object, got {type(value).__name__}")
    return value


def _json_safe(value: Any) -> Any:
    """
    Replace ``Decimal`` values with JSON numbers.

    Integral amounts become ``int``; others become ``float`` when that is
    exact, and a string otherwise so that no precision is lost silently.
    """
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        as_float = float(value)
        if Decimal(repr(as_float)) == value:
            return as_float
        return format(value, "f")
    if isinstance(value, Mapping):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


@dataclass(frozen=True)
class PaymentStatus:
    developer_approved: bool
    transaction_verified: bool
    developer_completed: bool
    cancelled: bool
    user_cancelled: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "PaymentStatus":
        payload = _as_mapping(payload, "payment status")
        return cls(
            developer_approved=bool(_require(payload, "developer_approved")),
            transaction_verified=bool(_require(payload, "transaction_verified")),
            developer_completed=bool(_require(payload, "developer_completed")),
            cancelled=bool(_require(payload, "cancelled")),
            user_cancelled=bool(payload.get("user_cancelled", False)),
            raw=dict(payload),
        )

    def to_dict(self) -> Dict[str, Any]:
        # Optional flags are only written back when the server sent them or they are set.
        encoded = dict(self.raw)
        encoded.update(
            {
                "developer_approved": self.developer_approved,
                "transaction_verified": self.transaction_verified,
                "developer_completed": self.developer_completed,
                "cancelled": self.cancelled,
            }
        )
        if self.user_cancelled or "user_cancelled" in self.raw:
            encoded["user_cancelled"] = self.user_cancelled
        return encoded


@dataclass(frozen=True)
class TransactionRecord:
    txid: str
    verified: bool
    link: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "TransactionRecord":
        payload = _as_mapping(payload, "payment transaction")
        return cls(
            txid=str(_require(payload, "txid")),
            verified=bool(payload.get("verified", False)),
            link=payload.get("_link"),
            raw=dict(payload),
        )

    def to_dict(self) -> Dict[str, Any]:
        encoded = dict(self.raw)
        encoded.update({"txid": self.txid, "verified": self.verified})
        if self.link is not None or "_link" in self.raw:
            encoded["_link"] = self.link
        return encoded


@dataclass(frozen=True)
class Payment:
    identifier: str
    user_uid: Optional[str]
    amount: Decimal
    memo: Optional[str]
    metadata: Any
    from_address: Optional[str]
    to_address: Optional[str]
    direction: Optional[str]
    network: Optional[str]
    created_at: Optional[str]
    status: PaymentStatus
    transaction: Optional[TransactionRecord]
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "Payment":
        payload = _as_mapping(payload, "payment")
        transaction = payload.get("transaction")
        return cls(
            identifier=str(_require(payload, "identifier")),
            user_uid=payload.get("user_uid"),
            amount=parse_amount(_require(payload, "amount")),
            memo=payload.get("memo"),
            metadata=payload.get("metadata"),
            from_address=payload.get("from_address"),
            to_address=payload.get("to_address"),
            direction=payload.get("direction"),
            network=payload.get("network"),
            created_at=payload.get("created_at"),
            status=PaymentStatus.from_response(_require(payload, "status")),
            transaction=(
                TransactionRecord.from_response(transaction)
                if transaction is not None
                else None
            ),
            raw=dict(payload),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Re-encode in the server's shape; unknown server fields are carried over."""
        encoded = dict(self.raw)
        encoded.update(
            {
                "identifier": self.identifier,
                "user_uid": self.user_uid,
                "amount": self.amount,
                "memo": self.memo,
                "metadata": self.metadata,
                "from_address": self.from_address,
                "to_address": self.to_address,
                "direction": self.direction,
                "network": self.network,
                "created_at": self.created_at,
                "status": self.status.to_dict(),
                "transaction": (
                    self.transaction.to_dict() if self.transaction is not None else None
                ),
            }
        )
        return encoded

    def to_json(self) -> str:
        return json.dumps(_json_safe(self.to_dict()))

    @property
    def is_completed(self) -> bool:
        return self.status.developer_completed


@dataclass(frozen=True)
class User:
    uid: str
    username: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "User":
        payload = _as_mapping(payload, "user")
        return cls(
            uid=str(_require(payload, "uid")),
            username=payload.get("username"),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class TransactionResult:
    hash: str
    ledger: int
    envelope_xdr: str
    result_xdr: str
    result_meta_xdr: str

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "TransactionResult":
        payload = _as_mapping(payload, "transaction result")
        try:
            ledger = int(_require(payload, "ledger"))
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Field 'ledger' is not an integer: {payload.get('ledger')!r}"
            ) from exc
        return cls(
            hash=str(_require(payload, "hash")),
            ledger=ledger,
            envelope_xdr=str(_require(payload, "envelope_xdr")),
            result_xdr=str(_require(payload, "result_xdr")),
            result_meta_xdr=str(_require(payload, "result_meta_xdr")),
        )
