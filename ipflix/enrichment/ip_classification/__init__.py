"""IP classification for request routing.

Decides whether an address is private (short-circuits every provider) and
whether the geolocation chain may be attempted for it.

Example:
    >>> from ipflix.enrichment.ip_classification import classify_ip, is_private_ip
    >>> is_private_ip("192.168.1.10")
    True
    >>> classify_ip("8.8.8.8").scope.value
    'public'
"""

from .classifier import classify_ip, get_client_ip, get_ip_version, is_private_ip, is_valid_ip
from .models import IPClassification, IPScope, IPVersion

__all__ = [
    "IPClassification",
    "IPScope",
    "IPVersion",
    "classify_ip",
    "get_client_ip",
    "get_ip_version",
    "is_private_ip",
    "is_valid_ip",
]
