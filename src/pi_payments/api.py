"""
Public, high-level helpers for building a Pi client and moving Pi.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional

import requests

from .core.client import PiClient
from .core.config import ClientConfig, ClientParameters, load_client_config
from .core.models import TransactionResult
from .core.networks import Network

__all__ = ["create_client", "load_client_config", "send_payment"]


def _resolve_config(
    config: Optional[ClientConfig],
    *,
    env_file: Optional[str],
    overrides: Optional[Mapping[str, str]],
    base: Optional[Mapping[str, str]],
    parameters: Optional[ClientParameters],
    api_key: Optional[str],
    base_url: Optional[str],
    timeout_seconds: Optional[float | str],
) -> ClientConfig:
    if config is not None:
        extras = (overrides, base, parameters, api_key, base_url, timeout_seconds)
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built ClientConfig or individual parameters, not both."
            )
        return config
    return load_client_config(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        api_key=api_key,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )


def create_client(
    *,
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float | str] = None,
) -> PiClient:
    """
    Construct a :class:`PiClient`.

    Callers either supply a ready-made :class:`ClientConfig` or let the helper
    assemble one from environment data and keyword overrides.
    """
    cfg = _resolve_config(
        config,
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        api_key=api_key,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )
    return PiClient(cfg, session=session)


def send_payment(
    network: Network | str,
    source_secret: str,
    destination: str,
    amount: Decimal | str | int,
    *,
    memo: Optional[str] = None,
    fee: Optional[int] = None,
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float | str] = None,
) -> TransactionResult:
    """
    One-shot native transfer using a short-lived client.
    """
    client = create_client(
        config=config,
        session=session,
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        api_key=api_key,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )
    with client:
        return client.send(network, source_secret, destination, amount, memo=memo, fee=fee)
