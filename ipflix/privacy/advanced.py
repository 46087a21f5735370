"""Trust and bot scoring over advanced browser fingerprint probes.

Probes are snapshots of values a browser-side collector already observed.
Scoring is pure: it reads the snapshot and never performs I/O. The only
stateful piece is :class:`BehaviorObserver`, an explicit accumulator for
user-input events with a bounded observation window.

Example:
    >>> probe = LieProbe(user_agent="Mozilla/5.0 (X11; Linux x86_64)", platform="Linux x86_64",
    ...                  timezone_name="Europe/Berlin", plugin_count=3,
    ...                  screen_width=1920, screen_height=1080)
    >>> detect_lies(probe).trust_score
    100
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ipflix.errors import BundleError
from ipflix.telemetry import start_span

logger = logging.getLogger(__name__)

LIE_PENALTY = 10
BOT_THRESHOLD = 50
MAX_BOT_SCORE = 100
MIN_SCREEN_DIMENSION = 100
DEFAULT_MOUSE_WINDOW_MS = 1000
MAX_VOICE_NAMES = 10

# (user agent token, platform token, finding)
_PLATFORM_CHECKS: tuple[tuple[str, str, str], ...] = (
    ("Win", "Win", "User agent claims Windows but platform disagrees"),
    ("Mac", "Mac", "User agent claims Mac but platform disagrees"),
    ("Linux", "Linux", "User agent claims Linux but platform disagrees"),
)


def _mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise BundleError(f"probe section {key!r} must be an object, got {type(value).__name__}")
    return value


@dataclass(slots=True)
class LieProbe:
    """Claimed versus observed browser identity."""

    user_agent: str = ""
    has_chrome_object: bool = False
    has_safari_object: bool = False
    platform: str = ""
    language: Optional[str] = None
    languages: list[str] = field(default_factory=list)
    screen_width: int = 0
    screen_height: int = 0
    timezone_name: Optional[str] = None
    webdriver: bool = False
    plugin_count: int = 0
    connection_rtt: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LieProbe":
        """Build a probe from the collector's camelCase keys."""
        return cls(
            user_agent=data.get("userAgent") or "",
            has_chrome_object=bool(data.get("hasChromeObject")),
            has_safari_object=bool(data.get("hasSafariObject")),
            platform=data.get("platform") or "",
            language=data.get("language"),
            languages=list(data.get("languages") or []),
            screen_width=data.get("screenWidth") or 0,
            screen_height=data.get("screenHeight") or 0,
            timezone_name=data.get("timezoneName"),
            webdriver=bool(data.get("webdriver")),
            plugin_count=data.get("pluginCount") or 0,
            connection_rtt=data.get("connectionRtt"),
        )


@dataclass(slots=True)
class LieReport:
    detected: bool
    count: int
    details: list[str]
    trust_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "detected": self.detected,
            "count": self.count,
            "details": list(self.details),
            "trustScore": self.trust_score,
        }


def detect_lies(probe: LieProbe) -> LieReport:
    """Find inconsistencies between the claimed and the observed browser.

    Every finding costs 10 trust points; the trust score never drops below 0.
    """
    ua = probe.user_agent
    lies: list[str] = []

    if "Chrome" in ua and not probe.has_chrome_object:
        lies.append("Claims to be Chrome but window.chrome is missing")
    if "Safari" in ua and "Chrome" not in ua and not probe.has_safari_object:
        lies.append("Claims to be Safari but window.safari is missing")

    for ua_token, platform_token, finding in _PLATFORM_CHECKS:
        if ua_token in ua and platform_token not in probe.platform:
            lies.append(finding)

    if probe.languages and probe.language != probe.languages[0]:
        lies.append("navigator.language differs from navigator.languages[0]")
    if probe.screen_width < MIN_SCREEN_DIMENSION or probe.screen_height < MIN_SCREEN_DIMENSION:
        lies.append("Suspicious screen dimensions")
    if not probe.timezone_name or probe.timezone_name == "UTC":
        lies.append("Timezone set to UTC (common in automation)")
    if probe.webdriver:
        lies.append("navigator.webdriver is true (automation detected)")
    if probe.plugin_count == 0 and "Mobile" not in ua:
        lies.append("No plugins detected (unusual for desktop browsers)")
    if probe.connection_rtt is not None and probe.connection_rtt == 0:
        lies.append("Network RTT is 0 (suspicious)")

    return LieReport(
        detected=bool(lies),
        count=len(lies),
        details=lies,
        trust_score=max(0, 100 - len(lies) * LIE_PENALTY),
    )


class BehaviorObserver:
    """Accumulates user-input signals for one page session.

    Event handlers call the ``record_*`` methods; scorers read the flags or
    block in :meth:`wait_for_mouse` for at most the observation window.
    """

    def __init__(self, window_ms: int = DEFAULT_MOUSE_WINDOW_MS) -> None:
        self.window_ms = window_ms
        self._mouse = threading.Event()
        self._keyboard = False
        self._touch = False

    def record_mouse(self) -> None:
        self._mouse.set()

    def record_keyboard(self) -> None:
        self._keyboard = True

    def record_touch(self) -> None:
        self._touch = True

    @property
    def mouse_movement(self) -> bool:
        return self._mouse.is_set()

    @property
    def keyboard_detected(self) -> bool:
        return self._keyboard

    @property
    def touch_detected(self) -> bool:
        return self._touch

    def wait_for_mouse(self, timeout: Optional[float] = None) -> bool:
        """Return True once mouse movement is seen, False when the window expires.

        Args:
            timeout: Seconds to wait; defaults to the observation window
        """
        if timeout is None:
            timeout = self.window_ms / 1000
        return self._mouse.wait(timeout)

    def indicators(self, automation_detected: bool = False) -> "BehavioralIndicators":
        """Snapshot the accumulated flags."""
        return BehavioralIndicators(
            mouse_movement=self.mouse_movement,
            keyboard_detected=self.keyboard_detected,
            touch_detected=self.touch_detected,
            automation_detected=automation_detected,
        )


@dataclass(slots=True)
class BotProbe:
    """Automation markers observed in the page.

    Attributes:
        phantom_globals: ``window._phantom`` or ``window.phantom`` present
        selenium_globals: ``window.callPhantom`` or ``window._selenium`` present
        dom_automation: ``domAutomation`` or ``domAutomationController`` present
        webdriver_document_props: ``__webdriver_script_fn`` or
            ``__webdriver_unwrapped`` present on ``document``
        mouse_movement: Outcome of the bounded mouse wait, None if not observed
        notification_permission_state: Permissions API answer for notifications
        notification_permission: ``Notification.permission``
        chrome_runtime_keys: Keys of ``window.chrome.runtime``, None when absent
    """

    user_agent: str = ""
    webdriver: bool = False
    phantom_globals: bool = False
    selenium_globals: bool = False
    plugin_count: int = 0
    dom_automation: bool = False
    webdriver_document_props: bool = False
    mouse_movement: Optional[bool] = None
    notification_permission_state: Optional[str] = None
    notification_permission: Optional[str] = None
    chrome_runtime_keys: Optional[list[str]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BotProbe":
        """Build a probe from the collector's camelCase keys."""
        runtime_keys = data.get("chromeRuntimeKeys")
        return cls(
            user_agent=data.get("userAgent") or "",
            webdriver=bool(data.get("webdriver")),
            phantom_globals=bool(data.get("phantom")),
            selenium_globals=bool(data.get("selenium")),
            plugin_count=data.get("pluginCount") or 0,
            dom_automation=bool(data.get("domAutomation")),
            webdriver_document_props=bool(data.get("webdriverDocumentProps")),
            mouse_movement=data.get("mouseMovement"),
            notification_permission_state=data.get("notificationPermissionState"),
            notification_permission=data.get("notificationPermission"),
            chrome_runtime_keys=list(runtime_keys) if runtime_keys is not None else None,
        )


@dataclass(slots=True)
class BotReport:
    is_bot: bool
    bot_score: int
    indicators: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"isBot": self.is_bot, "botScore": self.bot_score, "indicators": list(self.indicators)}


def detect_bot(probe: BotProbe, observer: Optional[BehaviorObserver] = None) -> BotReport:
    """Score automation markers.

    Args:
        probe: Observed markers
        observer: Live behaviour accumulator; when given, mouse movement is
            awaited for its window instead of read from ``probe``

    Returns:
        BotReport with the score capped at 100; ``is_bot`` from 50 upwards
    """
    score = 0
    indicators: list[str] = []
    headless = "HeadlessChrome" in probe.user_agent

    if probe.webdriver:
        score += 40
        indicators.append("WebDriver detected")
    if probe.phantom_globals:
        score += 50
        indicators.append("PhantomJS detected")
    if probe.selenium_globals:
        score += 50
        indicators.append("Selenium detected")
    if probe.plugin_count == 0 and headless:
        score += 50
        indicators.append("Headless Chrome detected")
    if probe.dom_automation:
        score += 40
        indicators.append("DOM automation detected")
    if probe.webdriver_document_props:
        score += 40
        indicators.append("WebDriver properties detected")

    if observer is not None:
        mouse_movement = observer.wait_for_mouse()
    else:
        mouse_movement = bool(probe.mouse_movement)
    if not mouse_movement:
        score += 20
        indicators.append("No mouse movement detected")

    if probe.notification_permission_state == "denied" and probe.notification_permission == "granted":
        score += 15
        indicators.append("Permission API inconsistency")

    if probe.chrome_runtime_keys is not None and headless and "onConnectExternal" not in probe.chrome_runtime_keys:
        score += 30
        indicators.append("Headless browser indicators")

    return BotReport(is_bot=score >= BOT_THRESHOLD, bot_score=min(MAX_BOT_SCORE, score), indicators=indicators)


@dataclass(slots=True)
class HardwareInfo:
    gpu_vendor: str = "Unknown"
    gpu_renderer: str = "Unknown"
    cores: int = 0
    memory: float = 0
    architecture: str = ""
    battery_charging: Optional[bool] = None
    battery_level: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HardwareInfo":
        return cls(
            gpu_vendor=data.get("gpuVendor") or "Unknown",
            gpu_renderer=data.get("gpuRenderer") or "Unknown",
            cores=data.get("cores") or 0,
            memory=data.get("memory") or 0,
            architecture=data.get("architecture") or "",
            battery_charging=data.get("batteryCharging"),
            battery_level=data.get("batteryLevel"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "gpuVendor": self.gpu_vendor,
            "gpuRenderer": self.gpu_renderer,
            "cores": self.cores,
            "memory": self.memory,
            "architecture": self.architecture,
            "batteryCharging": self.battery_charging,
            "batteryLevel": self.battery_level,
        }


@dataclass(slots=True)
class MediaInfo:
    voices: int = 0
    voice_names: list[str] = field(default_factory=list)
    cameras: int = 0
    microphones: int = 0
    speakers: int = 0

    @property
    def media_devices(self) -> int:
        return self.cameras + self.microphones + self.speakers

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MediaInfo":
        names = [str(name) for name in data.get("voiceNames") or []]
        return cls(
            voices=data.get("voices") or 0,
            voice_names=names[:MAX_VOICE_NAMES],
            cameras=data.get("cameras") or 0,
            microphones=data.get("microphones") or 0,
            speakers=data.get("speakers") or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "voices": self.voices,
            "voiceNames": list(self.voice_names),
            "mediaDevices": self.media_devices,
            "cameras": self.cameras,
            "microphones": self.microphones,
            "speakers": self.speakers,
        }


@dataclass(slots=True)
class ApiInfo:
    client_hints: Optional[dict[str, Any]] = None
    performance_entries: int = 0
    math_precision: str = ""
    error_stack_format: str = "unknown"
    timezone_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApiInfo":
        hints = data.get("clientHints")
        return cls(
            client_hints=dict(hints) if isinstance(hints, Mapping) else None,
            performance_entries=data.get("performanceEntries") or 0,
            math_precision=data.get("mathPrecision") or "",
            error_stack_format=data.get("errorStackFormat") or "unknown",
            timezone_name=data.get("timezoneName"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "clientHints": self.client_hints,
            "performanceEntries": self.performance_entries,
            "mathPrecision": self.math_precision,
            "errorStackFormat": self.error_stack_format,
            "timezoneName": self.timezone_name,
        }


@dataclass(slots=True)
class BehavioralIndicators:
    mouse_movement: bool = False
    keyboard_detected: bool = False
    touch_detected: bool = False
    automation_detected: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BehavioralIndicators":
        return cls(
            mouse_movement=bool(data.get("mouseMovement")),
            keyboard_detected=bool(data.get("keyboardDetected")),
            touch_detected=bool(data.get("touchDetected")),
            automation_detected=bool(data.get("automationDetected")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "mouseMovement": self.mouse_movement,
            "keyboardDetected": self.keyboard_detected,
            "touchDetected": self.touch_detected,
            "automationDetected": self.automation_detected,
        }


@dataclass(slots=True)
class AdvancedFingerprint:
    """Derived lie and bot reports plus the observed probe values."""

    lies: LieReport
    bot: BotReport
    hardware: HardwareInfo = field(default_factory=HardwareInfo)
    media: MediaInfo = field(default_factory=MediaInfo)
    apis: ApiInfo = field(default_factory=ApiInfo)
    behavioral: BehavioralIndicators = field(default_factory=BehavioralIndicators)

    @classmethod
    def analyze(
        cls,
        lie_probe: LieProbe,
        bot_probe: BotProbe,
        hardware: Optional[HardwareInfo] = None,
        media: Optional[MediaInfo] = None,
        apis: Optional[ApiInfo] = None,
        behavioral: Optional[BehavioralIndicators] = None,
        observer: Optional[BehaviorObserver] = None,
    ) -> "AdvancedFingerprint":
        """Score both probes and attach the observed values unchanged."""
        with start_span("fingerprint.analyze"):
            lies = detect_lies(lie_probe)
            bot = detect_bot(bot_probe, observer=observer)
            if behavioral is None:
                if observer is not None:
                    behavioral = observer.indicators(automation_detected=bot_probe.webdriver)
                else:
                    behavioral = BehavioralIndicators(
                        mouse_movement=bool(bot_probe.mouse_movement), automation_detected=bot_probe.webdriver
                    )
            logger.debug("Fingerprint trust=%s bot=%s", lies.trust_score, bot.bot_score)
            return cls(
                lies=lies,
                bot=bot,
                hardware=hardware or HardwareInfo(),
                media=media or MediaInfo(),
                apis=apis or ApiInfo(),
                behavioral=behavioral,
            )

    @classmethod
    def from_probe_bundle(cls, data: Mapping[str, Any]) -> "AdvancedFingerprint":
        """Analyze a collector bundle with ``lies``, ``bot`` and optional probe sections.

        Raises:
            BundleError: If the bundle or a section is not an object
        """
        if not isinstance(data, Mapping):
            raise BundleError(f"probe bundle must be an object, got {type(data).__name__}")
        behavioral = data.get("behavioral")
        return cls.analyze(
            LieProbe.from_dict(_mapping(data, "lies")),
            BotProbe.from_dict(_mapping(data, "bot")),
            hardware=HardwareInfo.from_dict(_mapping(data, "hardware")),
            media=MediaInfo.from_dict(_mapping(data, "media")),
            apis=ApiInfo.from_dict(_mapping(data, "apis")),
            behavioral=BehavioralIndicators.from_dict(_mapping(data, "behavioral")) if behavioral is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        return {
            "lies": self.lies.to_dict(),
            "bot": self.bot.to_dict(),
            "hardware": self.hardware.to_dict(),
            "media": self.media.to_dict(),
            "apis": self.apis.to_dict(),
            "behavioral": self.behavioral.to_dict(),
        }


__all__ = [
    "AdvancedFingerprint",
    "ApiInfo",
    "BehaviorObserver",
    "BehavioralIndicators",
    "BotProbe",
    "BotReport",
    "HardwareInfo",
    "LieProbe",
    "LieReport",
    "MediaInfo",
    "detect_bot",
    "detect_lies",
]
