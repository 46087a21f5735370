"""Geolocation with an ordered provider fallback chain.

Providers are attempted strictly in order and the first success wins:

1. ipapi.co (HTTPS, 1000 requests/day on the free tier)
2. ip-api.com (HTTP only on the free tier, different response schema)
3. Edge-network geolocation headers injected by the hosting platform

A provider is never retried; a failure immediately advances the chain. Each
provider normalizes its own schema into :class:`GeoLocation`.

Example:
    >>> resolver = GeolocationResolver.default(settings)
    >>> location = resolver.resolve("8.8.8.8", headers=request.headers)
    >>> if location:
    ...     print(location.country_code)
    US
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import unquote

import requests

from ipflix.errors import ProviderError
from ipflix.settings import AppSettings
from ipflix.telemetry import start_span

from .ip_classification import get_ip_version, is_valid_ip

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
UNKNOWN_COUNTRY_CODE = "XX"
DEFAULT_TIMEZONE = "UTC"


@dataclass(slots=True)
class GeoLocation:
    """Normalized geolocation produced by exactly one provider.

    Attributes:
        country: Country name
        country_code: ISO 3166-1 alpha-2 code (``XX`` when unknown)
        city: City name
        region: Region or state name
        latitude: Latitude (0 when the provider has none)
        longitude: Longitude (0 when the provider has none)
        timezone: IANA timezone name
        currency: ISO 4217 currency code, primary provider only
        currency_symbol: Currency symbol, primary provider only
        source: Name of the provider that produced this result
    """

    country: str = UNKNOWN
    country_code: str = UNKNOWN_COUNTRY_CODE
    city: str = UNKNOWN
    region: str = UNKNOWN
    latitude: float = 0
    longitude: float = 0
    timezone: str = DEFAULT_TIMEZONE
    currency: Optional[str] = None
    currency_symbol: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        payload: dict[str, Any] = {
            "country": self.country,
            "countryCode": self.country_code,
            "city": self.city,
            "region": self.region,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": self.timezone,
        }
        if self.currency is not None:
            payload["currency"] = self.currency
        if self.currency_symbol is not None:
            payload["currencySymbol"] = self.currency_symbol
        return payload


class GeoProvider(ABC):
    """Abstract base class for geolocation strategies.

    Subclasses implement :meth:`locate`, returning a normalized
    :class:`GeoLocation` or raising :class:`ProviderError`.
    """

    name: str = "provider"

    @abstractmethod
    def locate(self, ip: str, headers: Optional[Mapping[str, str]] = None) -> GeoLocation:
        """Locate ``ip``.

        Args:
            ip: Public IP address
            headers: Incoming request headers, for providers that read them

        Raises:
            ProviderError: If this provider cannot locate the address
        """


class IpapiCoProvider(GeoProvider):
    """Primary provider: ipapi.co JSON API.

    Response Format:
        {"country_name": "United States", "country_code": "US", "city": "...",
         "region": "...", "latitude": 37.4, "longitude": -122.1,
         "timezone": "America/Los_Angeles", "currency": "USD", "currency_symbol": "$"}

    Errors are reported in-band as ``{"error": true, "reason": "..."}``.
    """

    name = "ipapi.co"
    API_URL = "https://ipapi.co/{ip}/json/"

    def __init__(self, timeout: float = 10.0, user_agent: str = "IPFlix/1.0") -> None:
        """Initialize provider.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
        """
        self.timeout = timeout
        self.user_agent = user_agent

    def locate(self, ip: str, headers: Optional[Mapping[str, str]] = None) -> GeoLocation:
        """Query ipapi.co for ``ip``."""
        data = fetch_ipapi_co(ip, timeout=self.timeout, user_agent=self.user_agent)
        return GeoLocation(
            country=data.get("country_name") or UNKNOWN,
            country_code=data.get("country_code") or UNKNOWN_COUNTRY_CODE,
            city=data.get("city") or UNKNOWN,
            region=data.get("region") or UNKNOWN,
            latitude=data.get("latitude") or 0,
            longitude=data.get("longitude") or 0,
            timezone=data.get("timezone") or DEFAULT_TIMEZONE,
            currency=data.get("currency") or "USD",
            currency_symbol=data.get("currency_symbol") or "$",
            source=self.name,
        )


class IpApiComProvider(GeoProvider):
    """Secondary provider: ip-api.com.

    Failures are signalled with ``{"status": "fail", "message": "..."}``.
    """

    name = "ip-api.com"
    API_URL = "http://ip-api.com/json/{ip}"
    FIELDS = "status,message,country,countryCode,region,regionName,city,lat,lon,timezone"

    def __init__(self, timeout: float = 10.0) -> None:
        """Initialize provider with a request timeout in seconds."""
        self.timeout = timeout

    def locate(self, ip: str, headers: Optional[Mapping[str, str]] = None) -> GeoLocation:
        """Query ip-api.com for ``ip``."""
        try:
            response = requests.get(
                self.API_URL.format(ip=ip),
                params={"fields": self.FIELDS},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"ip-api.com request failed: {e}") from e

        if not response.ok:
            raise ProviderError(f"ip-api.com failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("ip-api.com returned invalid JSON") from e

        if not isinstance(data, dict):
            raise ProviderError("ip-api.com returned an unexpected payload")

        if data.get("status") == "fail":
            raise ProviderError(data.get("message") or "API error")

        return GeoLocation(
            country=data.get("country") or UNKNOWN,
            country_code=data.get("countryCode") or UNKNOWN_COUNTRY_CODE,
            city=data.get("city") or UNKNOWN,
            region=data.get("regionName") or UNKNOWN,
            latitude=data.get("lat") or 0,
            longitude=data.get("lon") or 0,
            timezone=data.get("timezone") or DEFAULT_TIMEZONE,
            source=self.name,
        )


class PlatformHeaderProvider(GeoProvider):
    """Last resort: geolocation headers pre-populated by the edge network.

    Only a present country header counts as success. Coordinates are unknown
    and reported as 0.
    """

    name = "platform-headers"

    def __init__(self, header_names: Optional[Mapping[str, str]] = None) -> None:
        """Initialize provider.

        Args:
            header_names: Mapping of ``country``/``city``/``region``/``timezone``
                to the header names carrying them
        """
        names = dict(header_names or {})
        self.country_header = names.get("country", "x-vercel-ip-country")
        self.city_header = names.get("city", "x-vercel-ip-city")
        self.region_header = names.get("region", "x-vercel-ip-country-region")
        self.timezone_header = names.get("timezone", "x-vercel-ip-timezone")

    def locate(self, ip: str, headers: Optional[Mapping[str, str]] = None) -> GeoLocation:
        """Build a location from edge headers."""
        if not headers:
            raise ProviderError("no request headers available")

        country = headers.get(self.country_header)
        if not country:
            raise ProviderError("edge geolocation headers not present")

        city = headers.get(self.city_header)
        region = headers.get(self.region_header)
        timezone = headers.get(self.timezone_header)

        logger.info("Using edge-network geolocation headers for %s", ip)
        return GeoLocation(
            country=country,
            country_code=country,
            city=unquote(city) if city else UNKNOWN,
            region=unquote(region) if region else UNKNOWN,
            latitude=0,
            longitude=0,
            timezone=timezone or DEFAULT_TIMEZONE,
            source=self.name,
        )


def fetch_ipapi_co(ip: str, timeout: float = 10.0, user_agent: str = "IPFlix/1.0") -> dict[str, Any]:
    """Fetch the raw ipapi.co payload for ``ip``.

    Shared by geolocation and network-details lookups.

    Raises:
        ProviderError: On transport errors, non-2xx responses, invalid JSON or
            an in-band ``error`` field
    """
    try:
        response = requests.get(
            IpapiCoProvider.API_URL.format(ip=ip),
            headers={"User-Agent": user_agent},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        raise ProviderError(f"ipapi.co request failed: {e}") from e

    if not response.ok:
        raise ProviderError(f"ipapi.co failed with status: {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise ProviderError("ipapi.co returned invalid JSON") from e

    if not isinstance(data, dict):
        raise ProviderError("ipapi.co returned an unexpected payload")

    if data.get("error"):
        raise ProviderError(data.get("reason") or "API error")

    return data


class GeolocationResolver:
    """Resolve an IP through an ordered list of providers.

    Attributes:
        providers: Strategies in priority order
        stats: Per-provider success and failure counters
    """

    def __init__(self, providers: Sequence[GeoProvider]) -> None:
        """Initialize resolver with providers in the order they must be attempted."""
        self.providers = list(providers)
        self.stats: dict[str, int] = {"lookups": 0, "skipped": 0, "unresolved": 0}
        self._lock = threading.Lock()
        for provider in self.providers:
            self.stats[f"{provider.name}_hits"] = 0
            self.stats[f"{provider.name}_failures"] = 0

    def _count(self, key: str) -> None:
        with self._lock:
            self.stats[key] += 1

    @classmethod
    def default(cls, settings: Optional[AppSettings] = None) -> "GeolocationResolver":
        """Build the standard ipapi.co -> ip-api.com -> edge headers chain."""
        settings = settings or AppSettings()
        return cls(
            [
                IpapiCoProvider(timeout=settings.request_timeout, user_agent=settings.user_agent),
                IpApiComProvider(timeout=settings.request_timeout),
                PlatformHeaderProvider(settings.geo_headers),
            ]
        )

    def resolve(self, ip: str, headers: Optional[Mapping[str, str]] = None) -> Optional[GeoLocation]:
        """Return the first successful provider result for ``ip``.

        Args:
            ip: Address to locate
            headers: Incoming request headers, consumed by the edge provider

        Returns:
            GeoLocation from the first provider that succeeded, or None when
            the address cannot be geolocated or every provider failed
        """
        if not is_valid_ip(ip):
            logger.info("Skipping geolocation for invalid/private IP: %s", ip)
            self._count("skipped")
            return None

        self._count("lookups")
        with start_span("geolocation.resolve", {"ip.version": get_ip_version(ip).value}) as span:
            for provider in self.providers:
                try:
                    location = provider.locate(ip, headers)
                except ProviderError as e:
                    logger.warning("%s geolocation failed for %s: %s", provider.name, ip, e)
                    self._count(f"{provider.name}_failures")
                    continue
                except Exception:
                    logger.exception("%s geolocation raised unexpectedly for %s", provider.name, ip)
                    self._count(f"{provider.name}_failures")
                    continue

                self._count(f"{provider.name}_hits")
                logger.debug("%s located %s in %s", provider.name, ip, location.country_code)
                span.set_attribute("geolocation.provider", provider.name)
                return location

        logger.error("All geolocation providers failed for %s", ip)
        self._count("unresolved")
        return None


def get_basic_client_info(
    ip: str,
    resolver: GeolocationResolver,
    headers: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """Return IP, version and location, substituting the unknown sentinel location.

    Args:
        ip: Caller address
        resolver: Geolocation chain
        headers: Incoming request headers

    Returns:
        Dictionary with ``ip``, ``ipVersion`` and every GeoLocation field
    """
    location = resolver.resolve(ip, headers=headers) or GeoLocation()
    return {"ip": ip, "ipVersion": get_ip_version(ip).value, **location.to_dict()}


__all__ = [
    "GeoLocation",
    "GeoProvider",
    "GeolocationResolver",
    "IpApiComProvider",
    "IpapiCoProvider",
    "PlatformHeaderProvider",
    "ProviderError",
    "fetch_ipapi_co",
    "get_basic_client_info",
]
