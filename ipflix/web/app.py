"""Flask application factory.

Every endpoint is a GET. Provider failures degrade to ``null`` sections inside
a 200 response; only unexpected exceptions produce a 500 with a fixed message
and the details go to the log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Optional

from flask import Flask, Response, current_app, jsonify, make_response, request
from flask_cors import CORS

from ipflix import get_version
from ipflix.enrichment.geolocation import GeolocationResolver, get_basic_client_info
from ipflix.enrichment.ip_classification import get_client_ip
from ipflix.enrichment.network_details import NetworkDetailsClient
from ipflix.enrichment.osint import OSINTAnalyzer
from ipflix.enrichment.threat_intel import ThreatIntelClient
from ipflix.settings import AppSettings, load_settings
from ipflix.telemetry import start_span
from ipflix.useragent import UserAgentInfo

logger = logging.getLogger(__name__)

NO_STORE = "no-store, max-age=0"
IP_REQUIRED = "IP address is required"


@dataclass(slots=True)
class Services:
    """Provider clients shared by the request handlers."""

    resolver: GeolocationResolver
    network: NetworkDetailsClient
    threat: ThreatIntelClient
    osint: OSINTAnalyzer

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "Services":
        """Build the default client set."""
        return cls(
            resolver=GeolocationResolver.default(settings),
            network=NetworkDetailsClient(settings),
            threat=ThreatIntelClient(settings),
            osint=OSINTAnalyzer(settings),
        )


def _services() -> Services:
    return current_app.extensions["ipflix"]


def _settings() -> AppSettings:
    return current_app.config["IPFLIX_SETTINGS"]


def _public_cache() -> str:
    return f"public, max-age={_settings().cache_max_age}"


def _iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _json(payload: Any, cache_control: str, status: int = 200) -> Response:
    response = make_response(jsonify(payload), status)
    response.headers["Cache-Control"] = cache_control
    return response


def _json_error(message: str, status: int) -> Response:
    return make_response(jsonify({"error": message}), status)


def _require_ip(failure_message: str) -> Callable[[Callable[[str], Response]], Callable[[], Response]]:
    """Read the ``ip`` query parameter and map unexpected errors to a fixed 500."""

    def decorator(view: Callable[[str], Response]) -> Callable[[], Response]:
        @wraps(view)
        def wrapper() -> Response:
            ip = (request.args.get("ip") or "").strip()
            if not ip:
                return _json_error(IP_REQUIRED, 400)
            try:
                return view(ip)
            except Exception:
                logger.exception("%s for %s", failure_message, ip)
                return _json_error(failure_message, 500)

        return wrapper

    return decorator


def ip_text() -> Response:
    """Return the caller IP as plain text."""
    try:
        ip = get_client_ip(request.headers)
    except Exception:
        logger.exception("IP endpoint error")
        return Response("Error retrieving IP", status=500, mimetype="text/plain")

    response = Response(ip, status=200, mimetype="text/plain")
    response.headers["Cache-Control"] = NO_STORE
    return response


def ip_info() -> Response:
    """Return caller IP, location and user agent details."""
    try:
        ip = get_client_ip(request.headers)
        with start_span("http.ip_info"):
            payload = get_basic_client_info(ip, _services().resolver, headers=request.headers)
        payload.update(UserAgentInfo.from_header(request.headers.get("User-Agent")).to_dict())
        payload["timestamp"] = _iso_timestamp()
    except Exception:
        logger.exception("IP API error")
        return _json_error("Failed to retrieve IP information", 500)
    return _json(payload, NO_STORE)


@_require_ip("Failed to retrieve detailed IP information")
def ip_details(ip: str) -> Response:
    """Return network owner details plus the security block."""
    details = _services().network.lookup(ip)
    payload = details.to_dict()
    # Placeholder until a proxy/VPN source is wired in; /api/ip/threat has the real flags
    payload["security"] = {"isVpn": False, "isProxy": False, "isTor": False}
    return _json(payload, _public_cache())


@_require_ip("Failed to retrieve threat intelligence")
def ip_threat(ip: str) -> Response:
    """Return threat intelligence and ASN details."""
    report = _services().threat.get_threat_report(ip)
    threat = report["threat"]
    asn = report["asn"]
    payload = {
        "threat": threat.to_dict() if threat is not None else None,
        "asn": asn.to_dict() if asn is not None else None,
    }
    return _json(payload, _public_cache())


@_require_ip("Failed to retrieve OSINT intelligence")
def osint(ip: str) -> Response:
    """Return the combined OSINT report."""
    result = _services().osint.analyze(ip)
    return _json(result.to_dict(), _public_cache())


def healthz() -> Response:
    """Liveness probe."""
    return _json({"status": "ok", "version": get_version()}, NO_STORE)


def create_app(settings: Optional[AppSettings] = None, services: Optional[Services] = None) -> Flask:
    """Build the Flask application.

    Args:
        settings: Configuration; loaded from the environment when omitted
        services: Provider clients; built from ``settings`` when omitted

    Returns:
        Configured Flask application
    """
    settings = settings or load_settings()
    app = Flask(__name__)
    app.json.sort_keys = False
    app.config["IPFLIX_SETTINGS"] = settings
    app.extensions["ipflix"] = services or Services.from_settings(settings)

    CORS(app)

    app.add_url_rule("/ip", "ip_text", ip_text, methods=["GET"])
    app.add_url_rule("/api/ip", "ip_info", ip_info, methods=["GET"])
    app.add_url_rule("/api/ip/details", "ip_details", ip_details, methods=["GET"])
    app.add_url_rule("/api/ip/threat", "ip_threat", ip_threat, methods=["GET"])
    app.add_url_rule("/api/osint", "osint", osint, methods=["GET"])
    app.add_url_rule("/healthz", "healthz", healthz, methods=["GET"])

    logger.debug("ipflix app created (abuseipdb enabled: %s)", settings.abuseipdb_enabled)
    return app


__all__ = ["Services", "create_app"]
