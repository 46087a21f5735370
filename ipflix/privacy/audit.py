"""Privacy scoring for a collected browser audit.

The score starts at 100 and every exposed tracking vector subtracts a fixed
penalty. Penalties are independent, so only the order of the reported risks
depends on evaluation order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from ipflix.levels import PrivacyLevel

from .models import PrivacyAuditResult

logger = logging.getLogger(__name__)

MAX_PRIVACY_SCORE = 100
FONT_LIMIT = 10
COOKIE_LIMIT = 20
NOT_OBTAINABLE = frozenset({"blocked", "unavailable"})

_IPV4_IN_CANDIDATE = re.compile(r"([0-9]{1,3}(?:\.[0-9]{1,3}){3})")


@dataclass(slots=True)
class PrivacyScore:
    """Output of :func:`score_privacy`."""

    score: int
    level: PrivacyLevel
    risks: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def _obtainable(artifact: str | None) -> bool:
    return bool(artifact) and artifact not in NOT_OBTAINABLE


def score_privacy(audit: PrivacyAuditResult) -> PrivacyScore:
    """Score how well the audited browser resists tracking.

    Args:
        audit: Parsed audit; missing sections add no penalty

    Returns:
        PrivacyScore with the score floored at 0 and risks in fixed order
    """
    score = MAX_PRIVACY_SCORE
    risks: list[str] = []
    recommendations: list[str] = []

    def penalize(points: int, risk: str, recommendation: str) -> None:
        nonlocal score
        score -= points
        risks.append(risk)
        recommendations.append(recommendation)

    fingerprint = audit.fingerprint
    if fingerprint is not None:
        if _obtainable(fingerprint.canvas):
            penalize(15, "Canvas fingerprinting is possible", "Use browser extensions that block canvas fingerprinting")
        if _obtainable(fingerprint.webgl):
            penalize(15, "WebGL fingerprinting exposes GPU information", "Disable WebGL or use privacy-focused browsers")
        if len(fingerprint.fonts) > FONT_LIMIT:
            penalize(
                10,
                f"{len(fingerprint.fonts)} fonts detected - unique fingerprint",
                "Reduce installed fonts or use font blocking extensions",
            )

    privacy = audit.privacy
    if privacy is not None:
        if privacy.do_not_track is None or privacy.do_not_track == "0":
            penalize(5, "Do Not Track is not enabled", "Enable Do Not Track in browser settings")
        if privacy.ad_blocker_detected is False:
            penalize(10, "No ad blocker detected", "Install an ad blocker like uBlock Origin")
        if privacy.third_party_cookies_blocked is False:
            penalize(20, "Third-party cookies are enabled", "Block third-party cookies in browser settings")

    if audit.network is not None and audit.network.webrtc_ips:
        penalize(
            15, "WebRTC is leaking local IP addresses", "Disable WebRTC or use extensions to prevent IP leaks"
        )

    if audit.storage is not None and len(audit.storage.cookies) > COOKIE_LIMIT:
        penalize(
            10, f"{len(audit.storage.cookies)} cookies stored", "Regularly clear cookies and browsing data"
        )

    score = max(0, score)
    logger.debug("Privacy score %s with %d risks", score, len(risks))
    return PrivacyScore(
        score=score,
        level=PrivacyLevel.from_score(score),
        risks=risks,
        recommendations=recommendations,
    )


def dedupe_webrtc_ips(candidates: Iterable[str]) -> list[str]:
    """Extract the IPv4 address from each ICE candidate line, first seen first.

    Examples:
        >>> dedupe_webrtc_ips([
        ...     "candidate:1 1 udp 2122260223 192.168.1.5 54321 typ host",
        ...     "candidate:2 1 udp 2122260223 192.168.1.5 54322 typ host",
        ... ])
        ['192.168.1.5']
    """
    seen: dict[str, None] = {}
    for candidate in candidates:
        match = _IPV4_IN_CANDIDATE.search(candidate or "")
        if match:
            seen.setdefault(match.group(1), None)
    return list(seen)


__all__ = ["PrivacyScore", "dedupe_webrtc_ips", "score_privacy"]
