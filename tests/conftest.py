"""Shared pytest fixtures for ipflix tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import Mock

import pytest
import requests

from ipflix.settings import AppSettings

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "ipflix"


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer credentials out of the tests."""
    monkeypatch.delenv("ABUSEIPDB_API_KEY", raising=False)
    monkeypatch.delenv("IPFLIX_ABUSEIPDB_API_KEY", raising=False)


@pytest.fixture
def settings() -> AppSettings:
    """Settings with AbuseIPDB enabled and reverse DNS disabled."""
    return AppSettings(abuseipdb_api_key="test-key", request_timeout=5.0, reverse_dns=False)


@pytest.fixture
def settings_without_key() -> AppSettings:
    """Settings with AbuseIPDB disabled."""
    return AppSettings(abuseipdb_api_key=None, reverse_dns=False)


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    """Build a fake ``requests.Response``."""

    def _make(status_code: int = 200, payload: Any = None, json_error: Optional[Exception] = None) -> Mock:
        response = Mock(spec=requests.Response)
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        if json_error is not None:
            response.json.side_effect = json_error
        else:
            response.json.return_value = payload
        return response

    return _make


@pytest.fixture
def privacy_bundle() -> dict[str, Any]:
    """Collector bundle for a poorly protected browser."""
    return json.loads((FIXTURES_DIR / "privacy_bundle.json").read_text(encoding="utf-8"))


@pytest.fixture
def probe_bundle() -> dict[str, Any]:
    """Advanced fingerprint probes of a headless automation session."""
    return json.loads((FIXTURES_DIR / "probe_bundle.json").read_text(encoding="utf-8"))


@pytest.fixture
def ipapi_is_payload() -> dict[str, Any]:
    """ipapi.is answer for a cloud-hosted address."""
    return {
        "ip": "34.117.59.81",
        "is_vpn": False,
        "is_proxy": False,
        "is_tor": False,
        "is_relay": False,
        "is_datacenter": True,
        "is_cloud": True,
        "is_bot": False,
        "is_crawler": False,
        "abuse_score": 0,
        "company": {"name": "Google LLC", "domain": "google.com", "type": "hosting"},
        "asn": {
            "asn": 396982,
            "org": "Google LLC",
            "domain": "google.com",
            "route": "34.116.0.0/14",
            "type": "hosting",
        },
        "location": {"country_code": "US"},
    }
