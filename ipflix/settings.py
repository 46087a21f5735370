"""Runtime configuration helpers for the ipflix service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

_DEFAULT_USER_AGENT = "IPFlix/1.0"
_DEFAULT_OSINT_USER_AGENT = "IPFlix-OSINT/1.0"
_DEFAULT_GEO_HEADERS = {
    "country": "x-vercel-ip-country",
    "city": "x-vercel-ip-city",
    "region": "x-vercel-ip-country-region",
    "timezone": "x-vercel-ip-timezone",
}


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _coerce_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _coerce_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError:
        return default


@dataclass(slots=True)
class AppSettings:
    """Normalized configuration shared by the provider clients and the web layer.

    Attributes:
        abuseipdb_api_key: AbuseIPDB credential; ``None`` disables the lookup
        request_timeout: Transport timeout for every provider call (seconds)
        user_agent: User-Agent sent to geolocation and reputation providers
        osint_user_agent: User-Agent sent to Shodan InternetDB
        reverse_dns: Attempt a PTR lookup when the provider omits a hostname
        geo_headers: Edge-network header names used as the last geolocation fallback
        cache_max_age: ``max-age`` advertised on cacheable endpoints (seconds)
        log_level: Root log level applied by the CLI entry points
    """

    abuseipdb_api_key: str | None = None
    request_timeout: float = 10.0
    user_agent: str = _DEFAULT_USER_AGENT
    osint_user_agent: str = _DEFAULT_OSINT_USER_AGENT
    reverse_dns: bool = True
    geo_headers: dict[str, str] = field(default_factory=lambda: dict(_DEFAULT_GEO_HEADERS))
    cache_max_age: int = 3600
    log_level: str = "INFO"

    @property
    def abuseipdb_enabled(self) -> bool:
        """Return True when an AbuseIPDB credential is configured."""
        return bool(self.abuseipdb_api_key)

    @classmethod
    def from_sources(
        cls,
        config: Mapping[str, Any] | None = None,
        env_prefix: str = "IPFLIX_",
    ) -> "AppSettings":
        """Build settings from defaults, optional config mapping, and environment variables.

        Precedence order (highest to lowest):
        1. Explicit config mapping values
        2. Environment variables
        3. Default values

        ``ABUSEIPDB_API_KEY`` is honoured without the prefix so existing
        deployments keep working.
        """
        cfg: dict[str, Any] = {
            "abuseipdb_api_key": None,
            "request_timeout": 10.0,
            "user_agent": _DEFAULT_USER_AGENT,
            "osint_user_agent": _DEFAULT_OSINT_USER_AGENT,
            "reverse_dns": True,
            "geo_headers": dict(_DEFAULT_GEO_HEADERS),
            "cache_max_age": 3600,
            "log_level": "INFO",
        }

        config_keys: set[str] = set()
        if config:
            config_keys = {k for k, v in config.items() if v is not None}
            cfg.update({k: v for k, v in config.items() if v is not None})

        env = os.environ
        prefix = env_prefix.upper()

        if "abuseipdb_api_key" not in config_keys:
            api_key = env.get(f"{prefix}ABUSEIPDB_API_KEY") or env.get("ABUSEIPDB_API_KEY")
            if api_key and api_key.strip():
                cfg["abuseipdb_api_key"] = api_key.strip()

        if "request_timeout" not in config_keys:
            cfg["request_timeout"] = _coerce_float(
                env.get(f"{prefix}REQUEST_TIMEOUT"), float(cfg["request_timeout"])
            )

        if "user_agent" not in config_keys:
            user_agent = env.get(f"{prefix}USER_AGENT")
            if user_agent:
                cfg["user_agent"] = user_agent.strip()

        if "osint_user_agent" not in config_keys:
            osint_user_agent = env.get(f"{prefix}OSINT_USER_AGENT")
            if osint_user_agent:
                cfg["osint_user_agent"] = osint_user_agent.strip()

        if "reverse_dns" not in config_keys:
            cfg["reverse_dns"] = _coerce_bool(env.get(f"{prefix}REVERSE_DNS"), bool(cfg["reverse_dns"]))

        if "cache_max_age" not in config_keys:
            cfg["cache_max_age"] = _coerce_int(env.get(f"{prefix}CACHE_MAX_AGE"), int(cfg["cache_max_age"]))

        if "log_level" not in config_keys:
            log_level = env.get(f"{prefix}LOG_LEVEL")
            if log_level:
                cfg["log_level"] = log_level.strip().upper()

        return cls(**cfg)


def load_settings(
    config: Mapping[str, Any] | None = None,
    env_prefix: str = "IPFLIX_",
) -> AppSettings:
    """Convenience wrapper used by CLI entry points and the app factory."""
    return AppSettings.from_sources(config=config, env_prefix=env_prefix)


__all__ = ["AppSettings", "load_settings"]
