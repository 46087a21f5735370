"""Unit tests for the Shodan InternetDB client."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Any
from unittest.mock import Mock, patch

import pytest
import requests

from ipflix.enrichment.shodan_client import WELL_KNOWN_PORTS, ShodanClient, ShodanData, port_name
from ipflix.settings import AppSettings


class TestShodanData:
    """Test ShodanData normalization."""

    def test_services_map_known_and_unknown_ports(self) -> None:
        """Test ports resolve through the static table."""
        data = ShodanData(ports=[22, 443, 6379, 31337])

        assert data.services == {22: "SSH", 443: "HTTPS", 6379: "Redis", 31337: "Unknown"}
        assert data.to_dict()["services"] == {"22": "SSH", "443": "HTTPS", "6379": "Redis", "31337": "Unknown"}

    def test_port_table_is_immutable(self) -> None:
        """Test the port table cannot be modified."""
        assert isinstance(WELL_KNOWN_PORTS, MappingProxyType)
        with pytest.raises(TypeError):
            WELL_KNOWN_PORTS[1] = "tcpmux"  # type: ignore[index]
        assert len(WELL_KNOWN_PORTS) == 18
        assert port_name(27017) == "MongoDB"
        assert port_name(8080) == "HTTP Alt"

    def test_from_payload_ignores_bad_types(self) -> None:
        """Test non-list fields become empty lists."""
        data = ShodanData.from_payload({"ports": None, "vulns": "CVE-1", "tags": ["cloud"]})

        assert data.ports == []
        assert data.vulns == []
        assert data.tags == ["cloud"]

    def test_from_payload_normalizes_mixed_items(self) -> None:
        """Test list items are coerced to their field type or dropped."""
        data = ShodanData.from_payload(
            {
                "ports": [22, "443", "ssh", None, True, 8080.0],
                "vulns": ["CVE-2021-44228", {"id": "CVE-1"}, None],
                "cpes": ["cpe:/a:openbsd:openssh", 7],
                "hostnames": [None, "scan.example.net"],
                "tags": [1, "honeypot", ["nested"]],
            }
        )

        assert data.ports == [22, 443, 8080]
        assert data.vulns == ["CVE-2021-44228"]
        assert data.cpes == ["cpe:/a:openbsd:openssh", "7"]
        assert data.hostnames == ["scan.example.net"]
        assert data.tags == ["1", "honeypot"]
        assert data.to_dict()["services"] == {"22": "SSH", "443": "HTTPS", "8080": "HTTP Alt"}


class TestShodanClient:
    """Test ShodanClient.lookup."""

    @patch("ipflix.enrichment.shodan_client.requests.get")
    def test_success(self, mock_get: Mock, make_response: Any) -> None:
        """Test a populated answer is normalized."""
        mock_get.return_value = make_response(
            200,
            {
                "ip": "93.184.216.34",
                "ports": [80, 443],
                "vulns": ["CVE-2023-44487"],
                "cpes": ["cpe:/a:nginx:nginx"],
                "hostnames": ["example.com"],
                "tags": ["cdn"],
            },
        )

        data = ShodanClient(AppSettings(osint_user_agent="osint-test")).lookup("93.184.216.34")

        assert data is not None
        assert data.ports == [80, 443]
        assert data.vulns == ["CVE-2023-44487"]
        args, kwargs = mock_get.call_args
        assert args[0] == "https://internetdb.shodan.io/93.184.216.34"
        assert kwargs["headers"] == {"User-Agent": "osint-test"}

    @patch("ipflix.enrichment.shodan_client.requests.get")
    def test_not_found_is_empty_data(self, mock_get: Mock, make_response: Any) -> None:
        """Test 404 means no data, not an outage."""
        mock_get.return_value = make_response(404, {"detail": "No information available"})
        client = ShodanClient(AppSettings())

        data = client.lookup("203.0.113.50")

        assert data is not None
        assert data.to_dict() == {
            "ports": [],
            "vulns": [],
            "cpes": [],
            "hostnames": [],
            "tags": [],
            "services": {},
        }
        assert client.stats["not_found"] == 1

    @patch("ipflix.enrichment.shodan_client.requests.get")
    def test_server_error_is_none(self, mock_get: Mock, make_response: Any) -> None:
        """Test other non-2xx answers are failures."""
        mock_get.return_value = make_response(503, {})

        assert ShodanClient(AppSettings()).lookup("203.0.113.50") is None

    @patch("ipflix.enrichment.shodan_client.requests.get")
    def test_transport_error_is_none(self, mock_get: Mock) -> None:
        """Test transport exceptions are failures."""
        mock_get.side_effect = requests.exceptions.ConnectionError("reset")
        client = ShodanClient(AppSettings())

        assert client.lookup("203.0.113.50") is None
        assert client.stats["api_failures"] == 1

    @patch("ipflix.enrichment.shodan_client.requests.get")
    def test_private_ip_skips_provider(self, mock_get: Mock) -> None:
        """Test private addresses get empty data without I/O."""
        data = ShodanClient(AppSettings()).lookup("172.16.0.5")

        assert data == ShodanData.empty()
        mock_get.assert_not_called()

    @patch("ipflix.enrichment.shodan_client.requests.get")
    def test_stats_under_concurrent_lookups(self, mock_get: Mock, make_response: Any) -> None:
        """Test counters stay exact when the client is shared between threads."""
        mock_get.return_value = make_response(404, {"detail": "No information available"})
        client = ShodanClient(AppSettings())

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(client.lookup, ["203.0.113.50"] * 100))

        assert all(result == ShodanData.empty() for result in results)
        assert client.stats["lookups"] == 100
        assert client.stats["not_found"] == 100
