"""Unit tests for OSINT risk scoring and aggregation."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from ipflix.enrichment.abuseipdb_client import AbuseIPDBClient, AbuseIPDBData
from ipflix.enrichment.osint import OSINTAnalyzer, find_malicious_tags, score_osint
from ipflix.enrichment.shodan_client import ShodanClient, ShodanData
from ipflix.levels import ThreatLevel
from ipflix.settings import AppSettings


class TestScoreOsint:
    """Test score_osint contributions and recommendations."""

    def test_nothing_available(self) -> None:
        """Test missing sources give a Safe score with one recommendation."""
        result = score_osint(None, None)

        assert result.score == 0
        assert result.level == ThreatLevel.SAFE
        assert result.recommendations == ["No security issues detected in public databases"]

    def test_empty_shodan_contributes_nothing(self) -> None:
        """Test a no-data answer scores zero."""
        assert score_osint(ShodanData.empty(), None).score == 0

    def test_port_contribution_capped_at_30(self) -> None:
        """Test seven ports contribute 30, not 35."""
        result = score_osint(ShodanData(ports=[21, 22, 23, 25, 53, 80, 443]), None)

        assert result.score == 30
        assert result.recommendations == ["Close unnecessary ports: 21, 22, 23, 25, 53, 80, 443"]

    @pytest.mark.parametrize(("count", "expected"), [(1, 15), (2, 30), (3, 40), (5, 40)])
    def test_vuln_contribution_capped_at_40(self, count: int, expected: int) -> None:
        """Test the vulnerability cap triggers at the third CVE."""
        vulns = [f"CVE-2024-{index:04d}" for index in range(count)]

        result = score_osint(ShodanData(vulns=vulns), None)

        assert result.score == expected
        assert result.recommendations == [f"Patch critical vulnerabilities: {count} CVEs found"]

    def test_malicious_tags(self) -> None:
        """Test each malicious tag adds 20, matched case-insensitively."""
        shodan = ShodanData(tags=["cloud", "Honeypot", "known-scanner", "self-signed"])

        result = score_osint(shodan, None)

        assert find_malicious_tags(shodan.tags) == ["Honeypot", "known-scanner"]
        assert result.score == 40
        assert result.recommendations == ["Address security tags: Honeypot, known-scanner"]

    def test_non_string_tags_are_ignored(self) -> None:
        """Test a non-string tag does not break scoring."""
        result = score_osint(ShodanData(tags=[1, "honeypot"]), None)  # type: ignore[list-item]

        assert result.score == 20
        assert result.recommendations == ["Address security tags: honeypot"]

    def test_abuse_contributions(self) -> None:
        """Test confidence and report counts with their recommendations."""
        abuse = AbuseIPDBData(
            abuse_confidence_score=80,
            total_reports=35,
            category_names=["Brute-Force", "SSH", "Port Scan", "Hacking"],
        )

        result = score_osint(None, abuse)

        assert result.score == 44
        assert result.level == ThreatLevel.MEDIUM
        assert result.recommendations == [
            "IP has high abuse confidence score - likely malicious",
            "IP reported 35 times for abuse",
            "Attack types: Brute-Force, SSH, Port Scan",
        ]

    def test_quiet_abuse_record(self) -> None:
        """Test thresholds are strict."""
        result = score_osint(None, AbuseIPDBData(abuse_confidence_score=50, total_reports=10))

        assert result.score == 25
        assert result.recommendations == []

    def test_recommendation_order_and_cap(self) -> None:
        """Test the combined score is capped at 100 and ordered."""
        shodan = ShodanData(ports=[22, 3389], vulns=["CVE-1", "CVE-2", "CVE-3"], tags=["compromised"])
        abuse = AbuseIPDBData(abuse_confidence_score=100, total_reports=500, category_names=["DDoS Attack"])

        result = score_osint(shodan, abuse)

        assert result.score == 100
        assert result.level == ThreatLevel.CRITICAL
        assert [text.split(":")[0] for text in result.recommendations] == [
            "Close unnecessary ports",
            "Patch critical vulnerabilities",
            "Address security tags",
            "IP has high abuse confidence score - likely malicious",
            "IP reported 500 times for abuse",
            "Attack types",
        ]

    def test_private_sentinel_scores_zero(self) -> None:
        """Test the private sentinels produce a Safe score."""
        result = score_osint(ShodanData.empty(), AbuseIPDBData.private())

        assert result.score == 0
        assert result.level == ThreatLevel.SAFE


class TestOSINTAnalyzer:
    """Test OSINTAnalyzer.analyze."""

    def test_outage_is_null_and_no_data_is_empty(self) -> None:
        """Test a Shodan outage serializes as null, distinct from no data."""
        shodan_client = Mock(spec=ShodanClient)
        abuse_client = Mock(spec=AbuseIPDBClient)
        shodan_client.lookup.return_value = None
        abuse_client.lookup.return_value = None
        analyzer = OSINTAnalyzer(AppSettings(), shodan_client=shodan_client, abuseipdb_client=abuse_client)

        outage = analyzer.analyze("203.0.113.9").to_dict()

        shodan_client.lookup.return_value = ShodanData.empty()
        no_data = analyzer.analyze("203.0.113.9").to_dict()

        assert outage["shodan"] is None
        assert no_data["shodan"] == {"ports": [], "vulns": [], "cpes": [], "hostnames": [], "tags": [], "services": {}}
        assert outage["riskScore"] == no_data["riskScore"] == 0
        assert outage["abuseipdb"] is None

    def test_both_sources_are_queried(self) -> None:
        """Test both lookups run and the result is scored."""
        shodan_client = Mock(spec=ShodanClient)
        abuse_client = Mock(spec=AbuseIPDBClient)
        shodan_client.lookup.return_value = ShodanData(ports=[22])
        abuse_client.lookup.return_value = AbuseIPDBData(abuse_confidence_score=10, total_reports=2)
        analyzer = OSINTAnalyzer(AppSettings(), shodan_client=shodan_client, abuseipdb_client=abuse_client)

        result = analyzer.analyze("198.51.100.7")

        shodan_client.lookup.assert_called_once_with("198.51.100.7")
        abuse_client.lookup.assert_called_once_with("198.51.100.7")
        assert result.risk_score == 10
        assert result.to_dict()["riskLevel"] == "Low"
        assert result.to_dict()["abuseipdb"]["totalReports"] == 2
