"""Data models for a collected browser privacy audit.

A browser-side collector produces a camelCase JSON bundle. Each section is
optional; a missing section stays ``None`` and contributes no penalty. Inside
a section, tri-state booleans keep ``None`` distinct from an explicit
``False`` because only the explicit answer is penalized.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from ipflix.errors import BundleError
from ipflix.levels import PrivacyLevel


def _section(data: Mapping[str, Any], key: str) -> Optional[Mapping[str, Any]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise BundleError(f"section {key!r} must be an object, got {type(value).__name__}")
    return value


def _strings(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value]


@dataclass(slots=True)
class FingerprintArtifacts:
    """Raw fingerprint values; ``blocked``/``unavailable`` mean not obtainable."""

    canvas: Optional[str] = None
    webgl: Optional[str] = None
    audio: Optional[str] = None
    fonts: list[str] = field(default_factory=list)
    plugins: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FingerprintArtifacts":
        return cls(
            canvas=data.get("canvas"),
            webgl=data.get("webgl"),
            audio=data.get("audio"),
            fonts=_strings(data.get("fonts")),
            plugins=_strings(data.get("plugins")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "canvas": self.canvas,
            "webgl": self.webgl,
            "audio": self.audio,
            "fonts": list(self.fonts),
            "plugins": list(self.plugins),
        }


@dataclass(slots=True)
class DeviceInfo:
    screen_resolution: Optional[str] = None
    color_depth: Optional[int] = None
    pixel_ratio: Optional[float] = None
    hardware_concurrency: Optional[int] = None
    device_memory: Optional[float] = None
    max_touch_points: Optional[int] = None
    platform: Optional[str] = None
    architecture: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeviceInfo":
        return cls(
            screen_resolution=data.get("screenResolution"),
            color_depth=data.get("colorDepth"),
            pixel_ratio=data.get("pixelRatio"),
            hardware_concurrency=data.get("hardwareConcurrency"),
            device_memory=data.get("deviceMemory"),
            max_touch_points=data.get("maxTouchPoints"),
            platform=data.get("platform"),
            architecture=data.get("architecture"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "screenResolution": self.screen_resolution,
            "colorDepth": self.color_depth,
            "pixelRatio": self.pixel_ratio,
            "hardwareConcurrency": self.hardware_concurrency,
            "deviceMemory": self.device_memory,
            "maxTouchPoints": self.max_touch_points,
            "platform": self.platform,
            "architecture": self.architecture,
        }


@dataclass(slots=True)
class NetworkInfo:
    """Connection hints plus the local addresses WebRTC exposed."""

    effective_type: Optional[str] = None
    downlink: Optional[float] = None
    rtt: Optional[float] = None
    save_data: Optional[bool] = None
    webrtc_ips: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NetworkInfo":
        return cls(
            effective_type=data.get("effectiveType"),
            downlink=data.get("downlink"),
            rtt=data.get("rtt"),
            save_data=data.get("saveData"),
            webrtc_ips=_strings(data.get("webrtcIPs")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "effectiveType": self.effective_type,
            "downlink": self.downlink,
            "rtt": self.rtt,
            "saveData": self.save_data,
            "webrtcIPs": list(self.webrtc_ips),
        }


@dataclass(slots=True)
class PrivacySettings:
    """Browser privacy switches.

    Attributes:
        do_not_track: Raw ``navigator.doNotTrack`` (``"1"``, ``"0"`` or None)
        ad_blocker_detected: None when the probe did not run
        third_party_cookies_blocked: None when the probe did not run
    """

    do_not_track: Optional[str] = None
    incognito_detected: Optional[bool] = None
    ad_blocker_detected: Optional[bool] = None
    cookies_enabled: Optional[bool] = None
    java_enabled: Optional[bool] = None
    third_party_cookies_blocked: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PrivacySettings":
        dnt = data.get("doNotTrack")
        return cls(
            do_not_track=None if dnt is None else str(dnt),
            incognito_detected=data.get("incognitoDetected"),
            ad_blocker_detected=data.get("adBlockerDetected"),
            cookies_enabled=data.get("cookiesEnabled"),
            java_enabled=data.get("javaEnabled"),
            third_party_cookies_blocked=data.get("thirdPartyCookiesBlocked"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "doNotTrack": self.do_not_track,
            "incognitoDetected": self.incognito_detected,
            "adBlockerDetected": self.ad_blocker_detected,
            "cookiesEnabled": self.cookies_enabled,
            "javaEnabled": self.java_enabled,
            "thirdPartyCookiesBlocked": self.third_party_cookies_blocked,
        }


@dataclass(slots=True)
class CookieInfo:
    name: str
    domain: Optional[str] = None
    secure: bool = False
    http_only: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CookieInfo":
        return cls(
            name=str(data.get("name") or "unknown"),
            domain=data.get("domain"),
            secure=bool(data.get("secure")),
            http_only=bool(data.get("httpOnly")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "domain": self.domain, "secure": self.secure, "httpOnly": self.http_only}


@dataclass(slots=True)
class StorageInfo:
    """Tracking state found in browser storage."""

    cookies: list[CookieInfo] = field(default_factory=list)
    local_storage: int = 0
    session_storage: int = 0
    indexed_db: list[str] = field(default_factory=list)
    service_workers: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StorageInfo":
        cookies = data.get("cookies")
        return cls(
            cookies=[
                CookieInfo.from_dict(item) if isinstance(item, Mapping) else CookieInfo(name=str(item))
                for item in (cookies if isinstance(cookies, list) else [])
            ],
            local_storage=data.get("localStorage") or 0,
            session_storage=data.get("sessionStorage") or 0,
            indexed_db=_strings(data.get("indexedDB")),
            service_workers=data.get("serviceWorkers") or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "cookies": [cookie.to_dict() for cookie in self.cookies],
            "localStorage": self.local_storage,
            "sessionStorage": self.session_storage,
            "indexedDB": list(self.indexed_db),
            "serviceWorkers": self.service_workers,
        }


@dataclass(slots=True)
class PermissionStates:
    notifications: Optional[str] = None
    geolocation: Optional[str] = None
    camera: Optional[str] = None
    microphone: Optional[str] = None
    battery: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PermissionStates":
        return cls(
            notifications=data.get("notifications"),
            geolocation=data.get("geolocation"),
            camera=data.get("camera"),
            microphone=data.get("microphone"),
            battery=data.get("battery"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "notifications": self.notifications,
            "geolocation": self.geolocation,
            "camera": self.camera,
            "microphone": self.microphone,
            "battery": self.battery,
        }


# camelCase bundle key -> attribute name
_CAPABILITY_KEYS: tuple[tuple[str, str], ...] = (
    ("webgl", "webgl"),
    ("webrtc", "webrtc"),
    ("webassembly", "webassembly"),
    ("webWorkers", "web_workers"),
    ("sharedWorkers", "shared_workers"),
    ("serviceWorker", "service_worker"),
    ("indexedDB", "indexed_db"),
    ("localStorage", "local_storage"),
    ("sessionStorage", "session_storage"),
)


@dataclass(slots=True)
class Capabilities:
    webgl: bool = False
    webrtc: bool = False
    webassembly: bool = False
    web_workers: bool = False
    shared_workers: bool = False
    service_worker: bool = False
    indexed_db: bool = False
    local_storage: bool = False
    session_storage: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Capabilities":
        return cls(**{attr: bool(data.get(key)) for key, attr in _CAPABILITY_KEYS})

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in _CAPABILITY_KEYS}


@dataclass(slots=True)
class PrivacyAuditResult:
    """Everything the collector observed, plus the derived score once computed.

    Example:
        >>> audit = PrivacyAuditResult.from_dict({"privacy": {"adBlockerDetected": False}})
        >>> audit.with_score().privacy_score
        85
    """

    fingerprint: Optional[FingerprintArtifacts] = None
    device: Optional[DeviceInfo] = None
    network: Optional[NetworkInfo] = None
    privacy: Optional[PrivacySettings] = None
    storage: Optional[StorageInfo] = None
    permissions: Optional[PermissionStates] = None
    capabilities: Optional[Capabilities] = None
    privacy_score: Optional[int] = None
    privacy_level: Optional[PrivacyLevel] = None
    risks: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PrivacyAuditResult":
        """Parse a collector bundle.

        Derived fields in the bundle are ignored; call :meth:`with_score`.

        Raises:
            BundleError: If the bundle or one of its sections is not an object
        """
        if not isinstance(data, Mapping):
            raise BundleError(f"privacy bundle must be an object, got {type(data).__name__}")

        fingerprint = _section(data, "fingerprint")
        device = _section(data, "device")
        network = _section(data, "network")
        privacy = _section(data, "privacy")
        storage = _section(data, "storage")
        permissions = _section(data, "permissions")
        capabilities = _section(data, "capabilities")
        return cls(
            fingerprint=FingerprintArtifacts.from_dict(fingerprint) if fingerprint is not None else None,
            device=DeviceInfo.from_dict(device) if device is not None else None,
            network=NetworkInfo.from_dict(network) if network is not None else None,
            privacy=PrivacySettings.from_dict(privacy) if privacy is not None else None,
            storage=StorageInfo.from_dict(storage) if storage is not None else None,
            permissions=PermissionStates.from_dict(permissions) if permissions is not None else None,
            capabilities=Capabilities.from_dict(capabilities) if capabilities is not None else None,
        )

    def with_score(self) -> "PrivacyAuditResult":
        """Return a copy carrying score, level, risks and recommendations."""
        from .audit import score_privacy

        scored = score_privacy(self)
        return replace(
            self,
            privacy_score=scored.score,
            privacy_level=scored.level,
            risks=list(scored.risks),
            recommendations=list(scored.recommendations),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        sections = {
            "fingerprint": self.fingerprint,
            "device": self.device,
            "network": self.network,
            "privacy": self.privacy,
            "storage": self.storage,
            "permissions": self.permissions,
            "capabilities": self.capabilities,
        }
        payload: dict[str, Any] = {
            key: section.to_dict() if section is not None else None for key, section in sections.items()
        }
        payload["privacyScore"] = self.privacy_score
        payload["privacyLevel"] = self.privacy_level.value if self.privacy_level is not None else None
        payload["risks"] = list(self.risks)
        payload["recommendations"] = list(self.recommendations)
        return payload


__all__ = [
    "Capabilities",
    "CookieInfo",
    "DeviceInfo",
    "FingerprintArtifacts",
    "NetworkInfo",
    "PermissionStates",
    "PrivacyAuditResult",
    "PrivacySettings",
    "StorageInfo",
]
