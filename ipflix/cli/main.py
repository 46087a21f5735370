"""``ipflix`` command line interface.

Examples:
  ipflix serve --port 3000
  ipflix lookup 8.8.8.8 1.1.1.1 --progress
  ipflix lookup 8.8.8.8 --no-osint
  ipflix privacy audit.json
  ipflix fingerprint probes.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, Optional

from tqdm import tqdm

from ipflix import get_version
from ipflix.enrichment.geolocation import GeolocationResolver
from ipflix.enrichment.ip_classification import classify_ip
from ipflix.enrichment.osint import OSINTAnalyzer
from ipflix.enrichment.threat_intel import ThreatIntelClient
from ipflix.errors import BundleError
from ipflix.privacy import AdvancedFingerprint, PrivacyAuditResult
from ipflix.settings import AppSettings, load_settings

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool, settings: AppSettings) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(message)s")
    else:
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _load_json(path: str) -> Any:
    """Read a JSON document, raising BundleError on I/O or parse failures."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise BundleError(f"cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise BundleError(f"{path} is not valid JSON: {e}") from e


def lookup_ip(
    ip: str,
    resolver: GeolocationResolver,
    threat_client: ThreatIntelClient,
    analyzer: Optional[OSINTAnalyzer] = None,
) -> dict[str, Any]:
    """Build the full report for one IP."""
    classification = classify_ip(ip)
    location = resolver.resolve(classification.ip)
    report = threat_client.get_threat_report(classification.ip)
    threat = report["threat"]
    asn = report["asn"]
    result: dict[str, Any] = {
        "ip": classification.ip,
        "ipVersion": classification.version.value,
        "scope": classification.scope.value,
        "location": location.to_dict() if location is not None else None,
        "threat": threat.to_dict() if threat is not None else None,
        "asn": asn.to_dict() if asn is not None else None,
    }
    if analyzer is not None:
        result["osint"] = analyzer.analyze(classification.ip).to_dict()
    return result


def run_lookup(args: argparse.Namespace, settings: AppSettings) -> int:
    """Look up every IP on the command line and print a JSON report."""
    resolver = GeolocationResolver.default(settings)
    threat_client = ThreatIntelClient(settings)
    analyzer = OSINTAnalyzer(settings) if args.osint else None

    reports = []
    for ip in tqdm(args.ips, desc="Looking up IPs", unit="ip", disable=not args.progress):
        try:
            reports.append(lookup_ip(ip, resolver, threat_client, analyzer))
        except Exception as e:
            logger.error("Lookup failed for %s: %s", ip, e)
            return 1

    logger.debug("Geolocation stats: %s", resolver.stats)
    print(json.dumps(reports[0] if len(reports) == 1 else reports, indent=2))
    return 0


def run_privacy(args: argparse.Namespace) -> int:
    """Score a collected privacy audit bundle."""
    try:
        audit = PrivacyAuditResult.from_dict(_load_json(args.bundle))
    except BundleError as e:
        logger.error("Invalid privacy bundle: %s", e)
        return 1

    scored = audit.with_score()
    print(json.dumps(scored.to_dict(), indent=2))
    return 0


def run_fingerprint(args: argparse.Namespace) -> int:
    """Score an advanced fingerprint probe snapshot."""
    try:
        fingerprint = AdvancedFingerprint.from_probe_bundle(_load_json(args.probes))
    except BundleError as e:
        logger.error("Invalid probe bundle: %s", e)
        return 1

    print(json.dumps(fingerprint.to_dict(), indent=2))
    return 0


def run_serve(args: argparse.Namespace, settings: AppSettings) -> int:
    """Run the development HTTP server."""
    from ipflix.web import create_app

    app = create_app(settings)
    logger.info("Serving ipflix %s on %s:%s", get_version(), args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ipflix",
        description="IP intelligence and browser privacy audit toolkit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=3000, help="Bind port (default: 3000)")
    serve_parser.add_argument("--debug", action="store_true", help="Enable the Flask debugger")

    lookup_parser = subparsers.add_parser("lookup", help="Geolocation, threat and OSINT report for IPs")
    lookup_parser.add_argument("ips", nargs="+", metavar="IP", help="Addresses to look up")
    lookup_parser.add_argument(
        "--osint",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Include Shodan/AbuseIPDB analysis (default: on)",
    )
    lookup_parser.add_argument("--progress", action="store_true", help="Show progress bar")

    privacy_parser = subparsers.add_parser("privacy", help="Score a collected privacy audit bundle")
    privacy_parser.add_argument("bundle", metavar="BUNDLE.json", help="Audit bundle produced by the browser collector")

    fingerprint_parser = subparsers.add_parser("fingerprint", help="Score advanced fingerprint probes")
    fingerprint_parser.add_argument("probes", metavar="PROBES.json", help="Probe snapshot produced by the collector")

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if not args.command:
        parser.print_help()
        return 1

    settings = load_settings()
    _configure_logging(args.verbose, settings)

    if args.command == "serve":
        return run_serve(args, settings)
    elif args.command == "lookup":
        return run_lookup(args, settings)
    elif args.command == "privacy":
        return run_privacy(args)
    elif args.command == "fingerprint":
        return run_fingerprint(args)
    else:
        parser.error(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
