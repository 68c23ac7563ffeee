from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .capabilities import Capability, coerce_capability
from .exceptions import ConfigurationError

MAX_FETCH_TIMEOUT_SECONDS = 10.0


class ConfigError(ConfigurationError):
    pass


@dataclass(frozen=True)
class PortalConfig:
    env_name: str
    api_base_url: str
    poll_interval_seconds: float = 3.0
    fetch_timeout_seconds: float = 3.0
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 3
    retry_backoff_seconds: float = 0.3
    max_connections: int = 20
    verify_ssl: bool = True
    not_found_limit: int = 3
    default_tenant_id: str | None = None
    public_capabilities: frozenset[Capability] = field(default_factory=frozenset)
    admin_token: str | None = None
    log_level: str = "INFO"
    telemetry_enabled: bool = False

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env(name: str) -> str | None:
    """Stripped value of `name`; unset and blank both read as None."""
    value = (os.getenv(name) or "").strip()
    return value or None


def _number(
    name: str,
    default: float,
    kind: type = float,
    *,
    above: float | None = None,
    at_least: float | None = None,
    at_most: float | None = None,
):
    raw = _env(name)
    if raw is None:
        value = kind(default)
    else:
        try:
            value = kind(raw)
        except ValueError as exc:
            label = "an integer" if kind is int else "a number"
            raise ConfigError(f"Invalid {name}: expected {label}, got {raw!r}") from exc

    bounds = []
    if above is not None and not value > above:
        bounds.append(f"> {above}")
    if at_least is not None and not value >= at_least:
        bounds.append(f">= {at_least}")
    if at_most is not None and not value <= at_most:
        bounds.append(f"<= {at_most}")
    if bounds:
        raise ConfigError(f"Invalid {name}: expected {' and '.join(bounds)}, got {value}")
    return value


def _flag(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError(f"Invalid {name}: expected a boolean, got {raw!r}")


def _capabilities(name: str) -> frozenset[Capability]:
    parsed: set[Capability] = set()
    for token in (_env(name) or "").split(","):
        token = token.strip()
        if not token:
            continue
        capability = coerce_capability(token)
        if capability is None:
            raise ConfigError(f"Invalid {name}: unknown capability {token!r}")
        parsed.add(capability)
    return frozenset(parsed)


def load_config(env_file: str | None = None) -> PortalConfig:
    """Load config from environment with optional .env override.

    `HELIX_API_BASE_URL_<ENV>` wins over `HELIX_API_BASE_URL` for the
    profile named by `HELIX_ENV`. Every bad value raises ConfigError
    naming the variable.
    """
    load_dotenv(env_file)

    env_name = _env("HELIX_ENV") or "dev"
    api_base_url = _env(f"HELIX_API_BASE_URL_{env_name.upper()}") or _env("HELIX_API_BASE_URL")
    if api_base_url is None:
        raise ConfigError("Missing required config values: HELIX_API_BASE_URL")

    poll_interval_seconds = _number("HELIX_POLL_INTERVAL_SECONDS", 3, above=0)
    fetch_timeout_default = min(poll_interval_seconds, MAX_FETCH_TIMEOUT_SECONDS)

    log_level = (_env("HELIX_LOG_LEVEL") or "INFO").upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigError(f"Invalid HELIX_LOG_LEVEL: got {log_level!r}")

    return PortalConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        poll_interval_seconds=poll_interval_seconds,
        fetch_timeout_seconds=_number(
            "HELIX_FETCH_TIMEOUT_SECONDS", fetch_timeout_default, above=0, at_most=MAX_FETCH_TIMEOUT_SECONDS
        ),
        connect_timeout_seconds=_number("HELIX_CONNECT_TIMEOUT_SECONDS", 5, above=0),
        read_timeout_seconds=_number("HELIX_READ_TIMEOUT_SECONDS", 15, above=0),
        retries=_number("HELIX_RETRIES", 3, int, at_least=0),
        retry_backoff_seconds=_number("HELIX_RETRY_BACKOFF_SECONDS", 0.3, at_least=0),
        max_connections=_number("HELIX_MAX_CONNECTIONS", 20, int, at_least=1),
        verify_ssl=_flag("HELIX_VERIFY_SSL", True),
        not_found_limit=_number("HELIX_NOT_FOUND_LIMIT", 3, int, at_least=1),
        default_tenant_id=_env("HELIX_DEFAULT_TENANT_ID"),
        public_capabilities=_capabilities("HELIX_PUBLIC_CAPABILITIES"),
        admin_token=_env("HELIX_ADMIN_TOKEN"),
        log_level=log_level,
        telemetry_enabled=_flag("HELIX_TELEMETRY_ENABLED", False),
    )
