"""Ordinal score levels shared by the scoring engines.

Every level is a total, monotonic function of an already-clamped score. Levels
compare by rank, not by their string value.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

MIN_SCORE = 0
MAX_SCORE = 100


def clamp_score(value: float) -> float:
    """Clamp ``value`` into [0, 100]."""
    return max(float(MIN_SCORE), min(float(MAX_SCORE), value))


def round_score(value: float) -> int:
    """Round half up, so 24.5 becomes 25 rather than 24."""
    return int(math.floor(value + 0.5))


class _OrderedLevel(str, Enum):
    """String enum ordered by declaration order."""

    @property
    def rank(self) -> int:
        """Position of this level, lowest first."""
        return list(type(self)).index(self)

    def _check(self, other: Any) -> bool:
        return isinstance(other, type(self))

    def __lt__(self, other: Any) -> bool:
        if not self._check(other):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: Any) -> bool:
        if not self._check(other):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: Any) -> bool:
        if not self._check(other):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: Any) -> bool:
        if not self._check(other):
            return NotImplemented
        return self.rank >= other.rank

    def __str__(self) -> str:
        return str(self.value)


class ThreatLevel(_OrderedLevel):
    """Five-level risk classification used for threat and OSINT scores."""

    SAFE = "Safe"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @classmethod
    def from_score(cls, score: float) -> "ThreatLevel":
        """Map a clamped 0-100 risk score to its level.

        Examples:
            >>> ThreatLevel.from_score(24).value
            'Low'
            >>> ThreatLevel.from_score(75).value
            'Critical'
        """
        if score == 0:
            return cls.SAFE
        if score < 25:
            return cls.LOW
        if score < 50:
            return cls.MEDIUM
        if score < 75:
            return cls.HIGH
        return cls.CRITICAL


class PrivacyLevel(_OrderedLevel):
    """Four-level privacy classification; higher means better protected."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"

    @classmethod
    def from_score(cls, score: float) -> "PrivacyLevel":
        """Map a 0-100 privacy score to its level."""
        if score >= 80:
            return cls.VERY_HIGH
        if score >= 60:
            return cls.HIGH
        if score >= 40:
            return cls.MEDIUM
        return cls.LOW


__all__ = ["MAX_SCORE", "MIN_SCORE", "PrivacyLevel", "ThreatLevel", "clamp_score", "round_score"]
