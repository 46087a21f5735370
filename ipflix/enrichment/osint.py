"""OSINT aggregation over Shodan InternetDB and AbuseIPDB.

Both sources are queried concurrently and combined into one risk score with
actionable recommendations. A ``None`` source means "unavailable" (outage or
disabled); an empty :class:`~ipflix.enrichment.shodan_client.ShodanData`
means the source answered with nothing to report.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional

from ipflix.levels import ThreatLevel, clamp_score, round_score
from ipflix.settings import AppSettings
from ipflix.telemetry import start_span

from .abuseipdb_client import AbuseIPDBClient, AbuseIPDBData
from .shodan_client import ShodanClient, ShodanData

logger = logging.getLogger(__name__)

PORT_WEIGHT = 5
PORT_CAP = 30
VULN_WEIGHT = 15
VULN_CAP = 40
MALICIOUS_TAG_WEIGHT = 20
MALICIOUS_TAG_MARKERS: tuple[str, ...] = ("malware", "compromised", "honeypot", "scanner")
ABUSE_CONFIDENCE_FACTOR = 0.3
HIGH_ABUSE_CONFIDENCE = 50
REPORT_CAP = 20
MANY_REPORTS = 10
TOP_ATTACK_TYPES = 3
NO_ISSUES = "No security issues detected in public databases"


@dataclass(slots=True)
class RiskScore:
    """Output of :func:`score_osint`."""

    score: int
    level: ThreatLevel
    recommendations: list[str] = field(default_factory=list)


def find_malicious_tags(tags: list[str]) -> list[str]:
    """Return the tags that contain a malicious marker, case-insensitively."""
    return [
        tag for tag in tags if isinstance(tag, str) and any(marker in tag.lower() for marker in MALICIOUS_TAG_MARKERS)
    ]


def score_osint(shodan: Optional[ShodanData], abuse: Optional[AbuseIPDBData]) -> RiskScore:
    """Combine Shodan and AbuseIPDB findings into a 0-100 risk score.

    Shodan contributes 5 per open port (max 30), 15 per CVE (max 40) and 20
    per malicious tag. AbuseIPDB contributes 0.3 x confidence plus one point
    per report (max 20). The total is rounded, then capped at 100.

    Args:
        shodan: Shodan data, or None when unavailable
        abuse: AbuseIPDB data, or None when unavailable or disabled

    Returns:
        RiskScore with recommendations in a fixed order

    Examples:
        >>> score_osint(ShodanData(ports=[22, 80]), None).score
        10
        >>> score_osint(None, None).recommendations
        ['No security issues detected in public databases']
    """
    total = 0.0
    recommendations: list[str] = []

    if shodan is not None:
        total += min(len(shodan.ports) * PORT_WEIGHT, PORT_CAP)
        if shodan.ports:
            recommendations.append(f"Close unnecessary ports: {', '.join(str(port) for port in shodan.ports)}")

        total += min(len(shodan.vulns) * VULN_WEIGHT, VULN_CAP)
        if shodan.vulns:
            recommendations.append(f"Patch critical vulnerabilities: {len(shodan.vulns)} CVEs found")

        malicious = find_malicious_tags(shodan.tags)
        if malicious:
            total += MALICIOUS_TAG_WEIGHT * len(malicious)
            recommendations.append(f"Address security tags: {', '.join(malicious)}")

    if abuse is not None:
        total += abuse.abuse_confidence_score * ABUSE_CONFIDENCE_FACTOR
        if abuse.abuse_confidence_score > HIGH_ABUSE_CONFIDENCE:
            recommendations.append("IP has high abuse confidence score - likely malicious")

        total += min(abuse.total_reports, REPORT_CAP)
        if abuse.total_reports > MANY_REPORTS:
            recommendations.append(f"IP reported {abuse.total_reports} times for abuse")

        if abuse.category_names:
            recommendations.append(f"Attack types: {', '.join(abuse.category_names[:TOP_ATTACK_TYPES])}")

    score = int(clamp_score(round_score(total)))
    if score == 0:
        recommendations.append(NO_ISSUES)

    return RiskScore(score=score, level=ThreatLevel.from_score(score), recommendations=recommendations)


@dataclass(slots=True)
class OSINTResult:
    """Combined OSINT view of one IP."""

    shodan: Optional[ShodanData]
    abuseipdb: Optional[AbuseIPDBData]
    risk_score: int
    risk_level: ThreatLevel
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        return {
            "shodan": self.shodan.to_dict() if self.shodan is not None else None,
            "abuseipdb": self.abuseipdb.to_dict() if self.abuseipdb is not None else None,
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level.value,
            "recommendations": list(self.recommendations),
        }


class OSINTAnalyzer:
    """Query every OSINT source for an IP and score the result.

    Usage:
        analyzer = OSINTAnalyzer(settings)
        result = analyzer.analyze("1.2.3.4")
        print(result.risk_level, result.recommendations)
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        shodan_client: Optional[ShodanClient] = None,
        abuseipdb_client: Optional[AbuseIPDBClient] = None,
    ) -> None:
        """Initialize analyzer, building default clients from ``settings``."""
        self.settings = settings or AppSettings()
        self.shodan_client = shodan_client or ShodanClient(self.settings)
        self.abuseipdb_client = abuseipdb_client or AbuseIPDBClient(self.settings)

    def analyze(self, ip: str) -> OSINTResult:
        """Run both lookups concurrently, wait for both, then score."""
        with start_span("osint.analyze") as span:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="osint") as executor:
                shodan_future = executor.submit(self.shodan_client.lookup, ip)
                abuse_future = executor.submit(self.abuseipdb_client.lookup, ip)
                shodan = shodan_future.result()
                abuse = abuse_future.result()

            risk = score_osint(shodan, abuse)
            span.set_attribute("osint.risk_score", risk.score)
            logger.debug("OSINT for %s scored %s (%s)", ip, risk.score, risk.level.value)
            return OSINTResult(
                shodan=shodan,
                abuseipdb=abuse,
                risk_score=risk.score,
                risk_level=risk.level,
                recommendations=risk.recommendations,
            )


__all__ = ["OSINTAnalyzer", "OSINTResult", "RiskScore", "find_malicious_tags", "score_osint"]
