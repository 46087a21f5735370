"""AbuseIPDB client for community abuse reports.

The lookup is optional: without an API key it is skipped and returns None,
which callers treat as "feature disabled" rather than as a failure.

API Documentation:
    https://docs.abuseipdb.com/#check-endpoint

Response Format (verbose):
    {"data": {
        "abuseConfidenceScore": 100, "totalReports": 412,
        "numDistinctUsers": 97, "lastReportedAt": "2024-11-05T10:12:00+00:00",
        "usageType": "Data Center/Web Hosting/Transit", "isp": "...",
        "domain": "...", "countryCode": "CN", "isWhitelisted": false,
        "reports": [{"categories": [18, 22], ...}, ...]
    }}
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import requests

from ipflix.settings import AppSettings
from ipflix.telemetry import start_span

from .ip_classification import is_private_ip

logger = logging.getLogger(__name__)

ABUSEIPDB_CATEGORIES: Mapping[int, str] = MappingProxyType(
    {
        3: "Fraud Orders",
        4: "DDoS Attack",
        5: "FTP Brute-Force",
        6: "Ping of Death",
        7: "Phishing",
        8: "Fraud VoIP",
        9: "Open Proxy",
        10: "Web Spam",
        11: "Email Spam",
        12: "Blog Spam",
        13: "VPN IP",
        14: "Port Scan",
        15: "Hacking",
        16: "SQL Injection",
        17: "Spoofing",
        18: "Brute-Force",
        19: "Bad Web Bot",
        20: "Exploited Host",
        21: "Web App Attack",
        22: "SSH",
        23: "IoT Targeted",
    }
)


def category_name(code: int) -> str:
    """Return the AbuseIPDB category label for ``code``."""
    return ABUSEIPDB_CATEGORIES.get(code, f"Unknown ({code})")


def collect_categories(reports: Iterable[Mapping[str, Any]]) -> list[int]:
    """Flatten report categories, de-duplicated in first-seen order."""
    seen: dict[int, None] = {}
    for report in reports:
        categories = report.get("categories") if isinstance(report, Mapping) else None
        for code in categories or []:
            seen.setdefault(code, None)
    return list(seen)


@dataclass(slots=True)
class AbuseIPDBData:
    """Abuse report summary for one IP."""

    abuse_confidence_score: float = 0
    total_reports: int = 0
    num_distinct_users: int = 0
    last_reported_at: Optional[str] = None
    usage_type: str = "Unknown"
    isp: str = "Unknown"
    domain: str = "Unknown"
    country_code: str = "XX"
    is_whitelisted: bool = False
    categories: list[int] = field(default_factory=list)
    category_names: list[str] = field(default_factory=list)

    @classmethod
    def private(cls) -> "AbuseIPDBData":
        """Return the sentinel for private addresses."""
        return cls(usage_type="Private", isp="Private Network", domain="localhost", is_whitelisted=True)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "AbuseIPDBData":
        """Normalize the ``data`` block of a verbose check response."""
        reports = data.get("reports")
        categories = collect_categories(reports if isinstance(reports, list) else [])
        return cls(
            abuse_confidence_score=data.get("abuseConfidenceScore") or 0,
            total_reports=data.get("totalReports") or 0,
            num_distinct_users=data.get("numDistinctUsers") or 0,
            last_reported_at=data.get("lastReportedAt"),
            usage_type=data.get("usageType") or "Unknown",
            isp=data.get("isp") or "Unknown",
            domain=data.get("domain") or "Unknown",
            country_code=data.get("countryCode") or "XX",
            is_whitelisted=bool(data.get("isWhitelisted")),
            categories=categories,
            category_names=[category_name(code) for code in categories],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        return {
            "abuseConfidenceScore": self.abuse_confidence_score,
            "totalReports": self.total_reports,
            "numDistinctUsers": self.num_distinct_users,
            "lastReportedAt": self.last_reported_at,
            "usageType": self.usage_type,
            "isp": self.isp,
            "domain": self.domain,
            "countryCode": self.country_code,
            "isWhitelisted": self.is_whitelisted,
            "categories": list(self.categories),
            "categoryNames": list(self.category_names),
        }


class AbuseIPDBClient:
    """AbuseIPDB v2 ``check`` endpoint client.

    Usage:
        client = AbuseIPDBClient(settings)
        if client.enabled:
            data = client.lookup("1.2.3.4")
    """

    API_URL = "https://api.abuseipdb.com/api/v2/check"
    MAX_AGE_DAYS = 90

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        """Initialize client with application settings."""
        self.settings = settings or AppSettings()
        self.stats: dict[str, int] = {"lookups": 0, "disabled": 0, "api_success": 0, "api_failures": 0}
        self._lock = threading.Lock()

    def _count(self, key: str) -> None:
        with self._lock:
            self.stats[key] += 1

    @property
    def enabled(self) -> bool:
        """Return True when an API key is configured."""
        return self.settings.abuseipdb_enabled

    def lookup(self, ip: str) -> Optional[AbuseIPDBData]:
        """Return abuse data for ``ip``.

        Returns:
            AbuseIPDBData, the whitelisted sentinel for private IPs, or None
            when no API key is configured or the lookup failed
        """
        self._count("lookups")
        if is_private_ip(ip):
            return AbuseIPDBData.private()

        if not self.enabled:
            logger.info("AbuseIPDB API key not configured - skipping check")
            self._count("disabled")
            return None

        with start_span("osint.abuseipdb"):
            try:
                response = requests.get(
                    self.API_URL,
                    params={"ipAddress": ip, "maxAgeInDays": self.MAX_AGE_DAYS, "verbose": ""},
                    headers={"Key": self.settings.abuseipdb_api_key or "", "Accept": "application/json"},
                    timeout=self.settings.request_timeout,
                )
            except requests.exceptions.RequestException as e:
                logger.error("AbuseIPDB request failed for %s: %s", ip, e)
                self._count("api_failures")
                return None

            if response.status_code == 401:
                logger.error("AbuseIPDB authentication failed (invalid API key)")
                self._count("api_failures")
                return None

            if not response.ok:
                logger.error("AbuseIPDB API failed: %s", response.status_code)
                self._count("api_failures")
                return None

            try:
                payload = response.json()
            except ValueError:
                logger.error("AbuseIPDB returned invalid JSON for %s", ip)
                self._count("api_failures")
                return None

            data = payload.get("data") if isinstance(payload, dict) else None
            if not isinstance(data, dict):
                logger.warning("Invalid AbuseIPDB response for %s: %r", ip, payload)
                self._count("api_failures")
                return None

            self._count("api_success")
            return AbuseIPDBData.from_payload(data)


__all__ = ["ABUSEIPDB_CATEGORIES", "AbuseIPDBClient", "AbuseIPDBData", "category_name", "collect_categories"]
