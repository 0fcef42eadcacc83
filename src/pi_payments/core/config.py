"""
Configuration objects and helpers for the Pi client.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from .._version import __version__
from .environment import build_environment
from .errors import ConfigError

__all__ = [
    "ClientConfig",
    "ClientParameters",
    "ConfigError",
    "RetryPolicy",
    "load_client_config",
]

DEFAULT_BASE_URL = "https://api.minepi.com/v2"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = f"pi-payments-python/{__version__}"

_PARAMETER_TO_ENV_KEY = {
    "api_key": "PI_API_KEY",
    "base_url": "PI_BASE_URL",
    "timeout_seconds": "PI_TIMEOUT_SECONDS",
    "max_attempts": "PI_RETRY_MAX_ATTEMPTS",
    "initial_delay_seconds": "PI_RETRY_INITIAL_DELAY_SECONDS",
    "max_delay_seconds": "PI_RETRY_MAX_DELAY_SECONDS",
    "backoff_multiplier": "PI_RETRY_BACKOFF_MULTIPLIER",
    "user_agent": "PI_USER_AGENT",
}


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff.

    ``max_attempts`` counts every send, the first one included.
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigError("Retry max_attempts must be at least 1")
        if self.backoff_multiplier < 1.0:
            raise ConfigError("Retry backoff_multiplier must be at least 1.0")
        if self.initial_delay < 0:
            raise ConfigError("Retry initial_delay must not be negative")
        if self.initial_delay > self.max_delay:
            raise ConfigError("Retry initial_delay must not exceed max_delay")

    def delay_for(self, attempt: int) -> float:
        """``min(max_delay, initial_delay * backoff_multiplier ** attempt)`` without overflow."""
        delay = self.initial_delay
        for _ in range(attempt):
            if not delay or delay >= self.max_delay:
                break
            delay *= self.backoff_multiplier
        return min(self.max_delay, delay)

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        return cls(max_attempts=1)


@dataclass(frozen=True)
class ClientConfig:
    api_key: str = field(repr=False)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ConfigError("API key cannot be empty")
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"Base URL must be an http(s) URL, got '{self.base_url}'")
        if self.timeout <= 0:
            raise ConfigError("Timeout must be greater than zero")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def create(
        cls,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        user_agent: Optional[str] = None,
    ) -> "ClientConfig":
        return cls(
            api_key=api_key,
            base_url=base_url or DEFAULT_BASE_URL,
            timeout=DEFAULT_TIMEOUT_SECONDS if timeout is None else timeout,
            retry_policy=retry_policy or RetryPolicy(),
            user_agent=user_agent or DEFAULT_USER_AGENT,
        )

    def with_overrides(self, **changes: Any) -> "ClientConfig":
        """Return a copy with ``changes`` applied; ``self`` is left untouched."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Optional[str]]) -> "ClientConfig":
        def lookup(key: str) -> Optional[str]:
            value = values.get(key)
            if value is None:
                return None
            value = value.strip()
            return value or None

        api_key = lookup("PI_API_KEY")
        if api_key is None:
            raise ConfigError("PI_API_KEY must be provided")

        defaults = RetryPolicy()
        retry_policy = RetryPolicy(
            max_attempts=_parse_number(
                lookup("PI_RETRY_MAX_ATTEMPTS"), "PI_RETRY_MAX_ATTEMPTS", int, defaults.max_attempts
            ),
            initial_delay=_parse_number(
                lookup("PI_RETRY_INITIAL_DELAY_SECONDS"),
                "PI_RETRY_INITIAL_DELAY_SECONDS",
                float,
                defaults.initial_delay,
            ),
            max_delay=_parse_number(
                lookup("PI_RETRY_MAX_DELAY_SECONDS"),
                "PI_RETRY_MAX_DELAY_SECONDS",
                float,
                defaults.max_delay,
            ),
            backoff_multiplier=_parse_number(
                lookup("PI_RETRY_BACKOFF_MULTIPLIER"),
                "PI_RETRY_BACKOFF_MULTIPLIER",
                float,
                defaults.backoff_multiplier,
            ),
        )

        return cls(
            api_key=api_key,
            base_url=lookup("PI_BASE_URL") or DEFAULT_BASE_URL,
            timeout=_parse_number(
                lookup("PI_TIMEOUT_SECONDS"), "PI_TIMEOUT_SECONDS", float, DEFAULT_TIMEOUT_SECONDS
            ),
            retry_policy=retry_policy,
            user_agent=lookup("PI_USER_AGENT") or DEFAULT_USER_AGENT,
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional["ClientParameters"] = None,
        **explicit: Any,
    ) -> "ClientConfig":
        merged_overrides = dict(overrides or {})
        merged_overrides.update(_collect_parameter_overrides(parameters, explicit))
        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def _parse_number(raw: Optional[str], key: str, kind: type, default: Any) -> Any:
    if raw is None:
        return default
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a valid {kind.__name__}, got '{raw}'") from exc


@dataclass(frozen=True)
class ClientParameters:
    """
    Explicit keyword bundle for :func:`load_client_config`.

    Values set here win over the environment and the ``.env`` file.
    """

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout_seconds: Optional[float | str] = None
    max_attempts: Optional[int | str] = None
    initial_delay_seconds: Optional[float | str] = None
    max_delay_seconds: Optional[float | str] = None
    backoff_multiplier: Optional[float | str] = None
    user_agent: Optional[str] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is not None:
                overrides[env_key] = str(value)
        return overrides


def _collect_parameter_overrides(
    parameters: Optional[ClientParameters],
    explicit: Mapping[str, Any],
) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    if parameters is not None:
        overrides.update(parameters.as_overrides())

    for key, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown client parameter '{key}'") from exc
        overrides[env_key] = str(value)
    return overrides


def load_client_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float | str] = None,
    max_attempts: Optional[int | str] = None,
    initial_delay_seconds: Optional[float | str] = None,
    max_delay_seconds: Optional[float | str] = None,
    backoff_multiplier: Optional[float | str] = None,
    user_agent: Optional[str] = None,
) -> ClientConfig:
    """
    Convenience wrapper that mirrors :meth:`ClientConfig.from_env`.

    Settings can come from environment variables, a ``.env`` file, direct
    keyword arguments, or any combination of the three.
    """
    return ClientConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        api_key=api_key,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
        max_attempts=max_attempts,
        initial_delay_seconds=initial_delay_seconds,
        max_delay_seconds=max_delay_seconds,
        backoff_multiplier=backoff_multiplier,
        user_agent=user_agent,
    )
