"""Coarse User-Agent classification.

Substring checks run in a fixed order and the first match wins. Chrome-based
Edge reports ``Chrome`` too, so Chrome is only claimed when ``Edg`` is absent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

UNKNOWN = "Unknown"

# (browser, required tokens, forbidden tokens)
_BROWSER_RULES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("Chrome", ("Chrome",), ("Edg",)),
    ("Safari", ("Safari",), ("Chrome",)),
    ("Firefox", ("Firefox",), ()),
    ("Edge", ("Edg",), ()),
    ("Opera", ("Opera",), ()),
    ("Opera", ("OPR",), ()),
)

_OS_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Windows 10/11", ("Windows NT 10.0",)),
    ("Windows", ("Windows NT",)),
    ("macOS", ("Mac OS X",)),
    ("Linux", ("Linux",)),
    ("Android", ("Android",)),
    ("iOS", ("iOS", "iPhone", "iPad")),
)


def parse_browser(user_agent: str) -> str:
    """Return the browser family named by ``user_agent``."""
    for browser, required, forbidden in _BROWSER_RULES:
        if all(token in user_agent for token in required) and not any(token in user_agent for token in forbidden):
            return browser
    return UNKNOWN


def parse_os(user_agent: str) -> str:
    """Return the operating system named by ``user_agent``.

    Android agents also carry ``Linux`` and therefore report ``Linux``.
    """
    for name, tokens in _OS_RULES:
        if any(token in user_agent for token in tokens):
            return name
    return UNKNOWN


def parse_device(user_agent: str) -> str:
    """Return ``Mobile``, ``Tablet`` or ``Desktop``."""
    if "Mobile" in user_agent or "Android" in user_agent:
        return "Mobile"
    if "Tablet" in user_agent or "iPad" in user_agent:
        return "Tablet"
    return "Desktop"


@dataclass(slots=True, frozen=True)
class UserAgentInfo:
    """Parsed view of a User-Agent header."""

    user_agent: str
    browser: str
    os: str
    device: str

    @classmethod
    def from_header(cls, user_agent: Optional[str]) -> "UserAgentInfo":
        """Parse a raw header value; a missing header parses as empty."""
        value = user_agent or ""
        return cls(user_agent=value, browser=parse_browser(value), os=parse_os(value), device=parse_device(value))

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        return {"userAgent": self.user_agent, "browser": self.browser, "os": self.os, "device": self.device}


__all__ = ["UserAgentInfo", "parse_browser", "parse_device", "parse_os"]
