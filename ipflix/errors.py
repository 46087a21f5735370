"""Exception hierarchy for ipflix."""

from __future__ import annotations


class IpflixError(Exception):
    """Base class for errors raised by ipflix."""


class ProviderError(IpflixError):
    """Raised by a provider strategy when it cannot produce a result."""


class BundleError(IpflixError):
    """Raised when a collected browser bundle cannot be parsed."""


__all__ = ["BundleError", "IpflixError", "ProviderError"]
