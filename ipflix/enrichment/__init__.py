"""Provider clients that enrich an IP address with location and reputation data."""

from .abuseipdb_client import AbuseIPDBClient, AbuseIPDBData
from .geolocation import GeoLocation, GeolocationResolver, get_basic_client_info
from .network_details import NetworkDetails, NetworkDetailsClient
from .osint import OSINTAnalyzer, OSINTResult, score_osint
from .shodan_client import ShodanClient, ShodanData
from .threat_intel import ASNDetails, ThreatIntelClient, ThreatIntelligence, score_threat

__all__ = [
    "ASNDetails",
    "AbuseIPDBClient",
    "AbuseIPDBData",
    "GeoLocation",
    "GeolocationResolver",
    "NetworkDetails",
    "NetworkDetailsClient",
    "OSINTAnalyzer",
    "OSINTResult",
    "ShodanClient",
    "ShodanData",
    "ThreatIntelClient",
    "ThreatIntelligence",
    "get_basic_client_info",
    "score_osint",
    "score_threat",
]
