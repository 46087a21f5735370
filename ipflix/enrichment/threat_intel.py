"""IP reputation scoring backed by the ipapi.is API.

The provider answers a single GET with boolean risk flags, an abuse score and
company/ASN metadata. The payload is scored deterministically on every
request; nothing is cached server-side.

Response Format (abridged):
    {
        "is_vpn": false, "is_proxy": false, "is_tor": false,
        "is_relay": false, "is_datacenter": true, "is_cloud": true,
        "is_bot": false, "is_crawler": false, "abuse_score": 12,
        "company": {"name": "Google LLC", "domain": "google.com", "type": "hosting"},
        "asn": {"asn": 15169, "org": "Google LLC", "domain": "google.com",
                "route": "8.8.8.0/24", "type": "hosting"},
        "location": {"country_code": "US"}
    }
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import requests

from ipflix.levels import ThreatLevel, clamp_score, round_score
from ipflix.settings import AppSettings
from ipflix.telemetry import start_span

from .ip_classification import is_private_ip

logger = logging.getLogger(__name__)

# Points per triggered flag, evaluated and reported in this order
THREAT_WEIGHTS: tuple[tuple[str, int, str], ...] = (
    ("vpn", 30, "VPN detected"),
    ("proxy", 30, "Proxy detected"),
    ("tor", 40, "Tor exit node detected"),
    ("relay", 20, "Network relay detected"),
    ("hosting", 15, "Hosting/datacenter IP"),
    ("cloud", 10, "Cloud provider IP"),
    ("bot", 25, "Bot/crawler detected"),
)
ABUSE_SCORE_FACTOR = 0.3
HIGH_ABUSE_THRESHOLD = 50


@dataclass(slots=True)
class ThreatScore:
    """Output of :func:`score_threat`."""

    score: int
    level: ThreatLevel
    risks: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ThreatIntelligence:
    """Scored reputation of a single IP.

    Attributes:
        threat_score: Weighted risk score, 0-100
        threat_level: Ordinal level derived from ``threat_score``
        is_vpn: Known VPN endpoint
        is_proxy: Known proxy
        is_tor: Tor exit node
        is_relay: Network relay (e.g. iCloud Private Relay)
        is_hosting: Hosting or datacenter range
        is_cloud_provider: Cloud provider range
        is_bot: Known bot or crawler
        abuse_score: Upstream abuse score, 0-100
        usage_type: Free-form usage classification
        risks: Human-readable findings in fixed order
        company_name: Owning company, when known
        company_domain: Owning company domain, when known
        company_type: Owning company type, when known
    """

    threat_score: int
    threat_level: ThreatLevel
    is_vpn: bool = False
    is_proxy: bool = False
    is_tor: bool = False
    is_relay: bool = False
    is_hosting: bool = False
    is_cloud_provider: bool = False
    is_bot: bool = False
    abuse_score: float = 0
    usage_type: str = "unknown"
    risks: list[str] = field(default_factory=list)
    company_name: Optional[str] = None
    company_domain: Optional[str] = None
    company_type: Optional[str] = None

    @classmethod
    def private(cls) -> "ThreatIntelligence":
        """Return the zero-risk sentinel for private addresses."""
        return cls(threat_score=0, threat_level=ThreatLevel.SAFE, usage_type="private")

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ThreatIntelligence":
        """Normalize and score an ipapi.is payload."""
        flags = _extract_flags(data)
        scored = score_threat(data)
        company = _as_mapping(data.get("company"))
        asn = _as_mapping(data.get("asn"))
        return cls(
            threat_score=scored.score,
            threat_level=scored.level,
            is_vpn=flags["vpn"],
            is_proxy=flags["proxy"],
            is_tor=flags["tor"],
            is_relay=flags["relay"],
            is_hosting=flags["hosting"],
            is_cloud_provider=flags["cloud"],
            is_bot=flags["bot"],
            abuse_score=_abuse_score(data),
            usage_type=determine_usage_type(data),
            risks=scored.risks,
            company_name=company.get("name") or asn.get("org"),
            company_domain=company.get("domain") or asn.get("domain"),
            company_type=company.get("type"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        payload: dict[str, Any] = {
            "threatScore": self.threat_score,
            "threatLevel": self.threat_level.value,
            "isVpn": self.is_vpn,
            "isProxy": self.is_proxy,
            "isTor": self.is_tor,
            "isRelay": self.is_relay,
            "isHosting": self.is_hosting,
            "isCloudProvider": self.is_cloud_provider,
            "abuseScore": self.abuse_score,
            "isBot": self.is_bot,
            "usageType": self.usage_type,
            "risks": list(self.risks),
        }
        if self.company_name is not None:
            payload["companyName"] = self.company_name
        if self.company_domain is not None:
            payload["companyDomain"] = self.company_domain
        if self.company_type is not None:
            payload["companyType"] = self.company_type
        return payload


@dataclass(slots=True)
class ASNDetails:
    """Autonomous system that announces an IP."""

    asn: str
    name: str
    domain: str
    route: str
    type: str
    country: str

    @classmethod
    def private(cls) -> "ASNDetails":
        """Return the sentinel for private addresses."""
        return cls(asn="N/A", name="Private Network", domain="localhost", route="Private", type="private", country="N/A")

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ASNDetails":
        """Normalize the ``asn`` and ``location`` blocks of an ipapi.is payload."""
        asn = _as_mapping(data.get("asn"))
        location = _as_mapping(data.get("location"))
        asn_number = asn.get("asn")
        return cls(
            asn=str(asn_number) if asn_number else "Unknown",
            name=asn.get("org") or asn.get("name") or "Unknown",
            domain=asn.get("domain") or "Unknown",
            route=asn.get("route") or "Unknown",
            type=asn.get("type") or "Unknown",
            country=location.get("country_code") or "Unknown",
        )

    def to_dict(self) -> dict[str, str]:
        """Return the wire representation."""
        return {
            "asn": self.asn,
            "name": self.name,
            "domain": self.domain,
            "route": self.route,
            "type": self.type,
            "country": self.country,
        }


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _abuse_score(data: Mapping[str, Any]) -> float:
    value = data.get("abuse_score")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _extract_flags(data: Mapping[str, Any]) -> dict[str, bool]:
    return {
        "vpn": bool(data.get("is_vpn")),
        "proxy": bool(data.get("is_proxy")),
        "tor": bool(data.get("is_tor")),
        "relay": bool(data.get("is_relay")),
        "hosting": bool(data.get("is_hosting") or data.get("is_datacenter")),
        "cloud": bool(data.get("is_cloud")),
        "bot": bool(data.get("is_bot") or data.get("is_crawler")),
    }


def score_threat(data: Mapping[str, Any]) -> ThreatScore:
    """Score an ipapi.is payload.

    Flags add fixed weights (VPN 30, proxy 30, Tor 40, relay 20,
    hosting/datacenter 15, cloud 10, bot/crawler 25) and the upstream abuse
    score adds ``abuse_score * 0.3``. The sum is clamped to [0, 100] and
    rounded; the level is derived from the rounded score.

    Args:
        data: Raw provider payload

    Returns:
        ThreatScore with score, level and risks in fixed order

    Examples:
        >>> score_threat({"is_vpn": True, "is_cloud": True}).score
        40
    """
    flags = _extract_flags(data)
    total = 0.0
    risks: list[str] = []

    for flag, weight, finding in THREAT_WEIGHTS:
        if flags[flag]:
            total += weight
            risks.append(finding)

    abuse_score = _abuse_score(data)
    if abuse_score:
        total += abuse_score * ABUSE_SCORE_FACTOR
        if abuse_score > HIGH_ABUSE_THRESHOLD:
            risks.append(f"High abuse score: {abuse_score}")

    score = round_score(clamp_score(total))
    return ThreatScore(score=score, level=ThreatLevel.from_score(score), risks=risks)


def determine_usage_type(data: Mapping[str, Any]) -> str:
    """Classify how an IP is used from company and ASN metadata."""
    company_type = _as_mapping(data.get("company")).get("type")
    if company_type in ("education", "government", "military"):
        return str(company_type)
    if data.get("is_hosting") or data.get("is_datacenter"):
        return "hosting"
    if data.get("is_cloud"):
        return "cloud"
    if company_type == "business":
        return "business"
    if _as_mapping(data.get("asn")).get("type") == "isp":
        return "residential"
    return "unknown"


class ThreatIntelClient:
    """ipapi.is client producing threat intelligence and ASN details.

    Usage:
        client = ThreatIntelClient(settings)
        report = client.get_threat_report("1.2.3.4")
        print(report["threat"].threat_level if report["threat"] else "unavailable")
    """

    API_URL = "https://api.ipapi.is/"

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        """Initialize client with application settings."""
        self.settings = settings or AppSettings()
        self.stats: dict[str, int] = {"lookups": 0, "private": 0, "api_success": 0, "api_failures": 0}
        self._lock = threading.Lock()

    def _count(self, key: str) -> None:
        with self._lock:
            self.stats[key] += 1

    def _fetch(self, ip: str) -> Optional[dict[str, Any]]:
        """Fetch the raw payload for ``ip`` or None on any failure."""
        try:
            response = requests.get(
                self.API_URL,
                params={"q": ip},
                headers={"User-Agent": self.settings.user_agent},
                timeout=self.settings.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Threat intelligence request failed for %s: %s", ip, e)
            self._count("api_failures")
            return None

        if not response.ok:
            logger.error("Threat intelligence API failed: %s", response.status_code)
            self._count("api_failures")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Threat intelligence API returned invalid JSON for %s", ip)
            self._count("api_failures")
            return None

        if not isinstance(data, dict):
            logger.warning("Unexpected threat intelligence payload for %s: %r", ip, data)
            self._count("api_failures")
            return None

        self._count("api_success")
        return data

    def get_threat_intelligence(self, ip: str) -> Optional[ThreatIntelligence]:
        """Return scored threat intelligence, the private sentinel, or None on failure."""
        self._count("lookups")
        if is_private_ip(ip):
            self._count("private")
            return ThreatIntelligence.private()

        with start_span("threat_intel.lookup"):
            data = self._fetch(ip)
            if data is None:
                return None
            return ThreatIntelligence.from_payload(data)

    def get_asn_details(self, ip: str) -> Optional[ASNDetails]:
        """Return ASN details, the private sentinel, or None on failure."""
        if is_private_ip(ip):
            return ASNDetails.private()

        with start_span("threat_intel.asn"):
            data = self._fetch(ip)
            if data is None:
                return None
            return ASNDetails.from_payload(data)

    def get_threat_report(self, ip: str) -> dict[str, Any]:
        """Run the threat and ASN lookups concurrently.

        Returns:
            ``{"threat": ThreatIntelligence | None, "asn": ASNDetails | None}``;
            each half degrades to None independently
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="threat") as executor:
            threat_future = executor.submit(self.get_threat_intelligence, ip)
            asn_future = executor.submit(self.get_asn_details, ip)
            return {"threat": threat_future.result(), "asn": asn_future.result()}


__all__ = [
    "ASNDetails",
    "ThreatIntelClient",
    "ThreatIntelligence",
    "ThreatScore",
    "determine_usage_type",
    "score_threat",
]
