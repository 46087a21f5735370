"""Browser privacy audit and advanced fingerprint scoring.

Example:
    >>> from ipflix.privacy import PrivacyAuditResult, score_privacy
    >>> score_privacy(PrivacyAuditResult()).score
    100
"""

from .advanced import (
    AdvancedFingerprint,
    BehaviorObserver,
    BotProbe,
    BotReport,
    LieProbe,
    LieReport,
    detect_bot,
    detect_lies,
)
from .audit import PrivacyScore, dedupe_webrtc_ips, score_privacy
from .models import PrivacyAuditResult

__all__ = [
    "AdvancedFingerprint",
    "BehaviorObserver",
    "BotProbe",
    "BotReport",
    "LieProbe",
    "LieReport",
    "PrivacyAuditResult",
    "PrivacyScore",
    "dedupe_webrtc_ips",
    "detect_bot",
    "detect_lies",
    "score_privacy",
]
