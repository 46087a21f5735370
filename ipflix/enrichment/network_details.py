"""Network owner details (ISP, organization, ASN, hostname) for an IP.

Details come from ipapi.co. When the provider has no hostname a PTR record is
looked up over DNS instead.

DNS Query Format:
    Reverse IP: 8.8.8.8 -> 8.8.8.8.in-addr.arpa PTR
    Response: "dns.google."
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional

import dns.exception
import dns.resolver
import dns.reversename

from ipflix.errors import ProviderError
from ipflix.settings import AppSettings
from ipflix.telemetry import start_span

from .geolocation import fetch_ipapi_co
from .ip_classification import is_valid_ip

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


@dataclass(slots=True)
class NetworkDetails:
    """Owner of the network an IP belongs to.

    Attributes:
        isp: Internet service provider name
        org: Organization name
        asn: Autonomous System Number, e.g. ``AS15169``
        hostname: Reverse-DNS hostname
    """

    isp: str
    org: str
    asn: str
    hostname: str

    @classmethod
    def private(cls) -> "NetworkDetails":
        """Return the sentinel for addresses that are never looked up."""
        return cls(isp="Private Network", org="Private Network", asn="N/A", hostname="localhost")

    @classmethod
    def unknown(cls) -> "NetworkDetails":
        """Return the sentinel used when the lookup failed."""
        return cls(isp=UNKNOWN, org=UNKNOWN, asn=UNKNOWN, hostname=UNKNOWN)

    def to_dict(self) -> dict[str, str]:
        """Return the wire representation."""
        return asdict(self)


def reverse_dns(ip: str, timeout: float = 3.0) -> Optional[str]:
    """Return the PTR hostname for ``ip`` or None.

    Args:
        ip: IPv4 or IPv6 address
        timeout: Resolver lifetime in seconds

    Returns:
        Hostname without the trailing dot, or None when no record exists
    """
    try:
        query_name = dns.reversename.from_address(ip)
    except (dns.exception.SyntaxError, ValueError):
        logger.debug("Cannot build reverse name for %s", ip)
        return None

    try:
        answers = dns.resolver.resolve(query_name, "PTR", lifetime=timeout)
    except dns.resolver.NXDOMAIN:
        logger.debug("DNS NXDOMAIN for %s", ip)
        return None
    except dns.resolver.NoAnswer:
        logger.debug("DNS NoAnswer for %s", ip)
        return None
    except dns.exception.Timeout:
        logger.warning("DNS timeout for %s", ip)
        return None
    except dns.exception.DNSException as e:
        logger.warning("Reverse DNS failed for %s: %s", ip, e)
        return None

    for rdata in answers:
        return str(rdata.target).rstrip(".")
    return None


class NetworkDetailsClient:
    """Look up network owner details for public IPs.

    Usage:
        client = NetworkDetailsClient(settings)
        details = client.lookup("8.8.8.8")
        print(details.org, details.asn)
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        """Initialize client with application settings."""
        self.settings = settings or AppSettings()

    def lookup(self, ip: str) -> NetworkDetails:
        """Return network details for ``ip``; never raises.

        Non-geolocatable addresses get the private sentinel without any I/O.
        Provider failures yield the all-``Unknown`` result.
        """
        if not is_valid_ip(ip):
            logger.info("Skipping network info for invalid/private IP: %s", ip)
            return NetworkDetails.private()

        with start_span("network_details.lookup"):
            try:
                data = fetch_ipapi_co(ip, timeout=self.settings.request_timeout, user_agent=self.settings.user_agent)
            except ProviderError as e:
                logger.error("Network info error for %s: %s", ip, e)
                return NetworkDetails.unknown()

            hostname = data.get("hostname")
            if not hostname and self.settings.reverse_dns:
                hostname = reverse_dns(ip)

            return NetworkDetails(
                isp=data.get("org") or UNKNOWN,
                org=data.get("org") or UNKNOWN,
                asn=data.get("asn") or UNKNOWN,
                hostname=hostname or UNKNOWN,
            )


__all__ = ["NetworkDetails", "NetworkDetailsClient", "reverse_dns"]
