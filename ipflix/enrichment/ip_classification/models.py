"""Data models for IP classification.

This module provides the core data structures for per-request IP
classification: scope and version enums plus an immutable result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IPScope(str, Enum):
    """Network scope of an IP address.

    Attributes:
        PRIVATE: Loopback, RFC1918 or unspecified address. Never sent upstream.
        PUBLIC: Anything else; eligible for provider lookups.
    """

    PRIVATE = "private"
    PUBLIC = "public"


class IPVersion(str, Enum):
    """Textual IP version as reported to clients."""

    IPV4 = "IPv4"
    IPV6 = "IPv6"


@dataclass(slots=True, frozen=True)
class IPClassification:
    """Immutable IP classification result.

    Attributes:
        ip: The address exactly as received (trimmed)
        scope: Private or public network membership
        version: IPv4 or IPv6, decided by the presence of ``:``
        geolocatable: Whether the geolocation path may query providers for it.
            Stricter than ``scope``: every ``172.`` address is excluded.

    Example:
        >>> from ipflix.enrichment.ip_classification import classify_ip
        >>> result = classify_ip("10.0.0.7")
        >>> print(f"{result.scope.value} {result.version.value}")
        private IPv4
    """

    ip: str
    scope: IPScope
    version: IPVersion
    geolocatable: bool

    @property
    def is_private(self) -> bool:
        """Return True for private/local network addresses."""
        return self.scope is IPScope.PRIVATE
