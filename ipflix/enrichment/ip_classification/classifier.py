"""Prefix-based IP classification.

Classification is a textual prefix match, not CIDR containment. Octet ranges
are never validated, IPv6 is only special-cased for the ``::1`` literal, and a
string such as ``"172.999.0.1"`` is public while ``"10.999.0.1"`` is private.
Consumers rely on these exact answers, so the check stays textual.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .models import IPClassification, IPScope, IPVersion

logger = logging.getLogger(__name__)

# Exact literals treated as local in both checks
LOCAL_LITERALS = frozenset({"0.0.0.0", "::1"})

# Every /16 block of 172.16.0.0/12 is listed on its own
PRIVATE_PREFIXES: tuple[str, ...] = ("127.", "10.", "192.168.") + tuple(f"172.{block}." for block in range(16, 32))

# The geolocation path rejects the whole 172. family
NON_GEOLOCATABLE_PREFIXES: tuple[str, ...] = ("127.", "10.", "192.168.", "172.")

# Request headers consulted for the caller address, in priority order
CLIENT_IP_HEADERS: tuple[str, ...] = ("x-real-ip", "x-forwarded-for", "cf-connecting-ip", "x-client-ip")

UNSPECIFIED_IP = "0.0.0.0"


def is_private_ip(ip: str) -> bool:
    """Return True when ``ip`` belongs to a private or local network.

    Args:
        ip: Candidate address string

    Returns:
        True for the empty string, ``0.0.0.0``, ``::1`` and any address
        prefixed with ``127.``, ``10.``, ``192.168.`` or ``172.16.`` through
        ``172.31.``.

    Examples:
        >>> is_private_ip("172.31.4.4")
        True
        >>> is_private_ip("172.32.4.4")
        False
    """
    if not ip or ip in LOCAL_LITERALS:
        return True
    return ip.startswith(PRIVATE_PREFIXES)


def is_valid_ip(ip: str) -> bool:
    """Return True when ``ip`` may be geolocated.

    A False answer means "cannot geolocate", not "private network".
    """
    if not ip or ip in LOCAL_LITERALS:
        return False
    return not ip.startswith(NON_GEOLOCATABLE_PREFIXES)


def get_ip_version(ip: str) -> IPVersion:
    """Return the textual IP version for ``ip``."""
    return IPVersion.IPV6 if ":" in ip else IPVersion.IPV4


def classify_ip(ip: str) -> IPClassification:
    """Classify ``ip`` into scope, version and geolocation eligibility."""
    candidate = (ip or "").strip()
    return IPClassification(
        ip=candidate,
        scope=IPScope.PRIVATE if is_private_ip(candidate) else IPScope.PUBLIC,
        version=get_ip_version(candidate),
        geolocatable=is_valid_ip(candidate),
    )


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; werkzeug headers are not
        value = headers.get(name.title())
    return value or None


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Resolve the caller address from proxy/CDN request headers.

    Args:
        headers: Request header mapping

    Returns:
        The first non-empty value of ``x-real-ip``, the first entry of
        ``x-forwarded-for``, ``cf-connecting-ip`` or ``x-client-ip``; else
        ``0.0.0.0``. Always trimmed.
    """
    for name in CLIENT_IP_HEADERS:
        value = _header(headers, name)
        if not value:
            continue
        if name == "x-forwarded-for":
            value = value.split(",")[0]
        if value.strip():
            return value.strip()
    logger.debug("No client IP header present, using %s", UNSPECIFIED_IP)
    return UNSPECIFIED_IP
