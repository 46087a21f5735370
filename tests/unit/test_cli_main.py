"""Unit tests for the ipflix command line interface."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import Mock, patch

import pytest

from ipflix.cli.main import build_parser, lookup_ip, main
from ipflix.enrichment.geolocation import GeoLocation, GeolocationResolver
from ipflix.enrichment.osint import OSINTAnalyzer, OSINTResult
from ipflix.enrichment.threat_intel import ASNDetails, ThreatIntelClient, ThreatIntelligence
from ipflix.levels import ThreatLevel


@pytest.fixture
def resolver() -> Mock:
    """Resolver that always answers with Mountain View."""
    mock = Mock(spec=GeolocationResolver)
    mock.resolve.return_value = GeoLocation(country="United States", country_code="US", city="Mountain View")
    mock.stats = {}
    return mock


@pytest.fixture
def threat_client() -> Mock:
    """Threat client whose ASN half failed."""
    mock = Mock(spec=ThreatIntelClient)
    mock.get_threat_report.return_value = {
        "threat": ThreatIntelligence(threat_score=25, threat_level=ThreatLevel.LOW, is_hosting=True),
        "asn": None,
    }
    return mock


class TestBuildParser:
    """Test argument parsing."""

    def test_lookup_defaults(self) -> None:
        """Test OSINT is on and the progress bar off by default."""
        args = build_parser().parse_args(["lookup", "8.8.8.8"])

        assert args.ips == ["8.8.8.8"]
        assert args.osint is True
        assert args.progress is False

    def test_no_osint(self) -> None:
        """Test --no-osint disables the OSINT analysis."""
        args = build_parser().parse_args(["lookup", "8.8.8.8", "1.1.1.1", "--no-osint"])

        assert args.ips == ["8.8.8.8", "1.1.1.1"]
        assert args.osint is False

    def test_serve_defaults(self) -> None:
        """Test serve binds to localhost:3000."""
        args = build_parser().parse_args(["serve"])

        assert args.host == "127.0.0.1"
        assert args.port == 3000
        assert args.debug is False

    def test_no_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test running without a subcommand prints help and fails."""
        assert main([]) == 1
        assert "usage: ipflix" in capsys.readouterr().out


class TestLookupIp:
    """Test lookup_ip report assembly."""

    def test_report_without_osint(self, resolver: Mock, threat_client: Mock) -> None:
        """Test failed halves serialize as null."""
        report = lookup_ip(" 8.8.8.8 ", resolver, threat_client)

        assert report["ip"] == "8.8.8.8"
        assert report["ipVersion"] == "IPv4"
        assert report["scope"] == "public"
        assert report["location"]["city"] == "Mountain View"
        assert report["threat"]["threatScore"] == 25
        assert report["asn"] is None
        assert "osint" not in report
        resolver.resolve.assert_called_once_with("8.8.8.8")

    def test_report_with_osint(self, resolver: Mock, threat_client: Mock) -> None:
        """Test the OSINT section is attached when an analyzer is given."""
        resolver.resolve.return_value = None
        threat_client.get_threat_report.return_value = {
            "threat": ThreatIntelligence.private(),
            "asn": ASNDetails.private(),
        }
        analyzer = Mock(spec=OSINTAnalyzer)
        analyzer.analyze.return_value = OSINTResult(
            shodan=None, abuseipdb=None, risk_score=0, risk_level=ThreatLevel.SAFE, recommendations=[]
        )

        report = lookup_ip("10.0.0.8", resolver, threat_client, analyzer)

        assert report["scope"] == "private"
        assert report["location"] is None
        assert report["asn"]["name"] == "Private Network"
        assert report["osint"]["riskLevel"] == "Safe"


class TestMain:
    """Test main() dispatch."""

    @patch("ipflix.cli.main.OSINTAnalyzer")
    @patch("ipflix.cli.main.ThreatIntelClient")
    @patch("ipflix.cli.main.GeolocationResolver")
    def test_lookup_prints_json(
        self,
        mock_resolver_cls: Mock,
        mock_threat_cls: Mock,
        mock_osint_cls: Mock,
        resolver: Mock,
        threat_client: Mock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test a single IP prints one JSON object."""
        mock_resolver_cls.default.return_value = resolver
        mock_threat_cls.return_value = threat_client

        assert main(["lookup", "8.8.8.8", "--no-osint"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["ip"] == "8.8.8.8"
        assert output["threat"]["threatLevel"] == "Low"
        mock_osint_cls.assert_not_called()

    @patch("ipflix.cli.main.OSINTAnalyzer")
    @patch("ipflix.cli.main.ThreatIntelClient")
    @patch("ipflix.cli.main.GeolocationResolver")
    def test_lookup_many_prints_list(
        self,
        mock_resolver_cls: Mock,
        mock_threat_cls: Mock,
        mock_osint_cls: Mock,
        resolver: Mock,
        threat_client: Mock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test several IPs print a JSON list in argument order."""
        mock_resolver_cls.default.return_value = resolver
        mock_threat_cls.return_value = threat_client
        mock_osint_cls.return_value.analyze.return_value = OSINTResult(
            shodan=None, abuseipdb=None, risk_score=0, risk_level=ThreatLevel.SAFE
        )

        assert main(["lookup", "8.8.8.8", "1.1.1.1"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert [item["ip"] for item in output] == ["8.8.8.8", "1.1.1.1"]
        assert output[1]["osint"]["riskScore"] == 0

    @patch("ipflix.cli.main.ThreatIntelClient")
    @patch("ipflix.cli.main.GeolocationResolver")
    def test_lookup_failure_returns_one(
        self, mock_resolver_cls: Mock, mock_threat_cls: Mock, resolver: Mock
    ) -> None:
        """Test an unexpected client error fails the command."""
        mock_resolver_cls.default.return_value = resolver
        mock_threat_cls.return_value.get_threat_report.side_effect = RuntimeError("boom")

        assert main(["lookup", "8.8.8.8", "--no-osint"]) == 1

    def test_privacy(self, tmp_path: Path, privacy_bundle: dict[str, Any], capsys: pytest.CaptureFixture[str]) -> None:
        """Test the privacy command recomputes the score."""
        bundle_path = tmp_path / "audit.json"
        bundle_path.write_text(json.dumps(privacy_bundle), encoding="utf-8")

        assert main(["privacy", str(bundle_path)]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["privacyScore"] == 20
        assert output["privacyLevel"] == "Low"
        assert len(output["risks"]) == 6

    def test_fingerprint(self, tmp_path: Path, probe_bundle: dict[str, Any], capsys: pytest.CaptureFixture[str]) -> None:
        """Test the fingerprint command scores both probes."""
        probes_path = tmp_path / "probes.json"
        probes_path.write_text(json.dumps(probe_bundle), encoding="utf-8")

        assert main(["fingerprint", str(probes_path)]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["lies"]["trustScore"] == 60
        assert output["bot"]["isBot"] is True

    @pytest.mark.parametrize("command", ["privacy", "fingerprint"])
    def test_invalid_json(self, tmp_path: Path, command: str) -> None:
        """Test unreadable bundles fail with exit code 1."""
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")

        assert main([command, str(bad)]) == 1
        assert main([command, str(tmp_path / "missing.json")]) == 1

    def test_invalid_section(self, tmp_path: Path) -> None:
        """Test a bundle with a malformed section is rejected."""
        bundle_path = tmp_path / "audit.json"
        bundle_path.write_text(json.dumps({"privacy": [1, 2]}), encoding="utf-8")

        assert main(["privacy", str(bundle_path)]) == 1

    @patch("ipflix.web.create_app")
    def test_serve(self, mock_create_app: Mock) -> None:
        """Test serve runs the Flask app with the parsed bind address."""
        assert main(["serve", "--host", "0.0.0.0", "--port", "8080"]) == 0

        mock_create_app.return_value.run.assert_called_once_with(host="0.0.0.0", port=8080, debug=False)
