"""Shodan InternetDB client for exposed services and known vulnerabilities.

InternetDB is free and keyless. It answers 404 for addresses it has never
scanned; that is "no data", not an outage.

API Documentation:
    https://internetdb.shodan.io/docs

Response Format:
    {
        "ip": "1.2.3.4",
        "ports": [22, 80],
        "vulns": ["CVE-2023-38408"],
        "cpes": ["cpe:/a:openbsd:openssh:8.2p1"],
        "hostnames": ["host.example.com"],
        "tags": ["cloud"]
    }
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

import requests

from ipflix.settings import AppSettings
from ipflix.telemetry import start_span

from .ip_classification import is_private_ip

logger = logging.getLogger(__name__)

WELL_KNOWN_PORTS: Mapping[int, str] = MappingProxyType(
    {
        21: "FTP",
        22: "SSH",
        23: "Telnet",
        25: "SMTP",
        53: "DNS",
        80: "HTTP",
        110: "POP3",
        143: "IMAP",
        443: "HTTPS",
        445: "SMB",
        3306: "MySQL",
        3389: "RDP",
        5432: "PostgreSQL",
        5900: "VNC",
        6379: "Redis",
        8080: "HTTP Alt",
        8443: "HTTPS Alt",
        27017: "MongoDB",
    }
)


def port_name(port: int) -> str:
    """Return the well-known service name for ``port`` or ``Unknown``."""
    return WELL_KNOWN_PORTS.get(port, "Unknown")


def _list_of(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _strings(value: Any) -> list[str]:
    """Keep string items, stringify numbers and drop everything else."""
    items: list[str] = []
    for item in _list_of(value):
        if isinstance(item, str):
            items.append(item)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            items.append(str(item))
    return items


def _ports(value: Any) -> list[int]:
    """Convert port items to int, dropping anything that is not a port number."""
    ports: list[int] = []
    for item in _list_of(value):
        if isinstance(item, bool):
            continue
        try:
            ports.append(int(item))
        except (TypeError, ValueError):
            logger.debug("Dropping non-numeric Shodan port %r", item)
    return ports


@dataclass(slots=True)
class ShodanData:
    """Exposure data for one IP.

    Attributes:
        ports: Open ports observed by Shodan
        vulns: CVE identifiers
        cpes: Common Platform Enumeration strings
        hostnames: Hostnames seen on the IP
        tags: Shodan classification tags (e.g. ``cloud``, ``honeypot``)
    """

    ports: list[int] = field(default_factory=list)
    vulns: list[str] = field(default_factory=list)
    cpes: list[str] = field(default_factory=list)
    hostnames: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "ShodanData":
        """Return the non-null "no data" result."""
        return cls()

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ShodanData":
        """Normalize an InternetDB payload."""
        return cls(
            ports=_ports(data.get("ports")),
            vulns=_strings(data.get("vulns")),
            cpes=_strings(data.get("cpes")),
            hostnames=_strings(data.get("hostnames")),
            tags=_strings(data.get("tags")),
        )

    @property
    def services(self) -> dict[int, str]:
        """Map every open port to its well-known service name."""
        return {port: port_name(port) for port in self.ports}

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation."""
        return {
            "ports": list(self.ports),
            "vulns": list(self.vulns),
            "cpes": list(self.cpes),
            "hostnames": list(self.hostnames),
            "tags": list(self.tags),
            "services": {str(port): name for port, name in self.services.items()},
        }


class ShodanClient:
    """Shodan InternetDB lookups.

    Usage:
        client = ShodanClient(settings)
        data = client.lookup("1.2.3.4")
        if data is None:
            print("lookup failed")
        elif not data.ports:
            print("nothing exposed")
    """

    API_BASE_URL = "https://internetdb.shodan.io"

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        """Initialize client with application settings."""
        self.settings = settings or AppSettings()
        self.stats: dict[str, int] = {"lookups": 0, "not_found": 0, "api_success": 0, "api_failures": 0}
        self._lock = threading.Lock()

    def _count(self, key: str) -> None:
        with self._lock:
            self.stats[key] += 1

    def lookup(self, ip: str) -> Optional[ShodanData]:
        """Return exposure data for ``ip``.

        Returns:
            ShodanData (empty for private IPs and 404s) or None when the lookup
            failed
        """
        self._count("lookups")
        if is_private_ip(ip):
            return ShodanData.empty()

        with start_span("osint.shodan"):
            try:
                response = requests.get(
                    f"{self.API_BASE_URL}/{ip}",
                    headers={"User-Agent": self.settings.osint_user_agent},
                    timeout=self.settings.request_timeout,
                )
            except requests.exceptions.RequestException as e:
                logger.error("Shodan InternetDB request failed for %s: %s", ip, e)
                self._count("api_failures")
                return None

            if response.status_code == 404:
                logger.debug("IP %s not found in Shodan InternetDB", ip)
                self._count("not_found")
                return ShodanData.empty()

            if not response.ok:
                logger.error("Shodan API failed: %s", response.status_code)
                self._count("api_failures")
                return None

            try:
                data = response.json()
            except ValueError:
                logger.error("Shodan InternetDB returned invalid JSON for %s", ip)
                self._count("api_failures")
                return None

            if not isinstance(data, dict):
                logger.warning("Unexpected Shodan payload for %s: %r", ip, data)
                self._count("api_failures")
                return None

            self._count("api_success")
            return ShodanData.from_payload(data)


__all__ = ["ShodanClient", "ShodanData", "WELL_KNOWN_PORTS", "port_name"]
