"""Core data models for SmartZoom.

Input telemetry (mouse, click, key, scroll events), persisted zoom
blocks and the effects they travel in, the intermediate detection
records (action points and clusters), and the camera's carry-over
physics state.  Persisted models support JSON serialization via
``to_dict()`` / ``from_dict()`` with camelCase keys; top-level
recordings use ``to_json()`` / ``from_json()``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
import uuid
import json

from .config import DEFAULT_INTRO_MS, DEFAULT_OUTRO_MS
from .coordinates import CENTER, NormalizedPoint


def _from_camel(d: dict, keys: Dict[str, str]) -> dict:
    """Rename the camelCase keys in *keys* to field names.

    Unknown keys and ``None`` values are dropped, so a null in stored JSON
    falls back to the field default.
    """
    return {keys[k]: v for k, v in d.items() if k in keys and v is not None}


def _compact(d: dict) -> dict:
    """Drop ``None`` values so optional fields stay out of the JSON."""
    return {k: v for k, v in d.items() if v is not None}


# ── Input events ────────────────────────────────────────────────────

@dataclass
class MouseEvent:
    """A single cursor sample captured during recording.

    Coordinates are in **source pixels**.  The per-event screen and
    capture sizes are optional; zero means "unknown, use the recording's
    dimensions".
    """
    x: float
    y: float
    timestamp: float  # ms since recording start
    screen_width: float = 0
    screen_height: float = 0
    cursor_type: str = "default"
    capture_width: float = 0
    capture_height: float = 0

    _KEYS = {
        "x": "x", "y": "y", "timestamp": "timestamp",
        "screenWidth": "screen_width", "screenHeight": "screen_height",
        "cursorType": "cursor_type",
        "captureWidth": "capture_width", "captureHeight": "capture_height",
    }

    def to_dict(self) -> dict:
        d = {"x": self.x, "y": self.y, "timestamp": self.timestamp}
        if self.screen_width and self.screen_height:
            d["screenWidth"] = self.screen_width
            d["screenHeight"] = self.screen_height
        if self.cursor_type != "default":
            d["cursorType"] = self.cursor_type
        if self.capture_width and self.capture_height:
            d["captureWidth"] = self.capture_width
            d["captureHeight"] = self.capture_height
        return d

    @staticmethod
    def from_dict(d: dict) -> "MouseEvent":
        """Reconstruct from a dict, ignoring unknown keys for forward compat."""
        return MouseEvent(**_from_camel(d, MouseEvent._KEYS))


@dataclass
class ClickEvent:
    """A mouse click with position and timestamp."""
    x: float
    y: float
    timestamp: float  # ms since recording start
    button: str = "left"

    def to_dict(self) -> dict:
        d = {"x": self.x, "y": self.y, "timestamp": self.timestamp}
        if self.button != "left":
            d["button"] = self.button
        return d

    @staticmethod
    def from_dict(d: dict) -> "ClickEvent":
        return ClickEvent(
            x=d["x"], y=d["y"], timestamp=d["timestamp"],
            button=d.get("button", "left"),
        )


@dataclass
class KeyEvent:
    """A single keystroke.  Only the timing matters to detection."""
    timestamp: float  # ms since recording start
    key: str = ""

    def to_dict(self) -> dict:
        d: dict = {"timestamp": self.timestamp}
        if self.key:
            d["key"] = self.key
        return d

    @staticmethod
    def from_dict(d: dict) -> "KeyEvent":
        return KeyEvent(timestamp=d["timestamp"], key=d.get("key", ""))


@dataclass
class ScrollEvent:
    """A wheel/trackpad scroll step."""
    timestamp: float  # ms since recording start
    delta_x: float = 0.0
    delta_y: float = 0.0

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "deltaX": self.delta_x, "deltaY": self.delta_y}

    @staticmethod
    def from_dict(d: dict) -> "ScrollEvent":
        return ScrollEvent(
            timestamp=d["timestamp"],
            delta_x=d.get("deltaX", 0.0),
            delta_y=d.get("deltaY", 0.0),
        )


# ── Effects ─────────────────────────────────────────────────────────

class EffectType(str, Enum):
    ZOOM = "zoom"
    CURSOR = "cursor"
    ANNOTATION = "annotation"


@dataclass
class Effect:
    """A time-ranged entry from the timeline's effects store.

    Only the zoom, cursor and annotation kinds are read by the camera;
    ``data`` holds the kind-specific payload in camelCase.
    """
    id: str
    type: EffectType
    start_time: float
    end_time: float
    enabled: bool = True
    data: dict = field(default_factory=dict)

    def active_at(self, time_ms: float) -> bool:
        return self.enabled and self.start_time <= time_ms < self.end_time

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "enabled": self.enabled,
            "data": dict(self.data),
        }

    @staticmethod
    def from_dict(d: dict) -> "Effect":
        return Effect(
            id=d["id"],
            type=EffectType(d["type"]),
            start_time=d["startTime"],
            end_time=d["endTime"],
            enabled=d.get("enabled", True),
            data=dict(d.get("data") or {}),
        )


# ── Zoom blocks ─────────────────────────────────────────────────────

ZOOM_ORIGINS = ("auto", "manual")
FOLLOW_STRATEGIES = ("mouse", "center", "manual")


@dataclass
class ZoomBlock:
    """A time-ranged camera directive: zoom to *scale* between two times.

    ``target_x`` / ``target_y`` are in source pixels measured against
    ``screen_width`` × ``screen_height``.  Blocks are produced by the
    detector (``origin="auto"``) or by the user (``"manual"``) and are
    read-only to the camera.
    """

    id: str
    start_time: float  # ms on the timeline
    end_time: float
    scale: float = 2.0
    origin: str = "auto"
    target_x: Optional[float] = None
    target_y: Optional[float] = None
    screen_width: Optional[float] = None
    screen_height: Optional[float] = None
    intro_ms: float = DEFAULT_INTRO_MS
    outro_ms: float = DEFAULT_OUTRO_MS
    smoothing: Optional[float] = None
    follow_strategy: Optional[str] = None  # None behaves like "mouse"
    auto_scale: Optional[str] = None  # "fill" hides overscan padding
    mouse_idle_px: Optional[float] = None
    dead_zone_ratio: Optional[float] = None
    transition_style: str = "smoother"
    importance: Optional[float] = None

    # camelCase data key → field name (timing lives on the Effect itself)
    _DATA_KEYS = {
        "scale": "scale",
        "origin": "origin",
        "targetX": "target_x",
        "targetY": "target_y",
        "screenWidth": "screen_width",
        "screenHeight": "screen_height",
        "introMs": "intro_ms",
        "outroMs": "outro_ms",
        "smoothing": "smoothing",
        "followStrategy": "follow_strategy",
        "autoScale": "auto_scale",
        "mouseIdlePx": "mouse_idle_px",
        "deadZoneRatio": "dead_zone_ratio",
        "transitionStyle": "transition_style",
        "importance": "importance",
    }

    @staticmethod
    def create(start_time: float, end_time: float, scale: float = 2.0, **kwargs) -> "ZoomBlock":
        """Factory that auto-generates a UUID for a user-created block."""
        kwargs.setdefault("origin", "manual")
        return ZoomBlock(
            id=str(uuid.uuid4()),
            start_time=start_time,
            end_time=end_time,
            scale=scale,
            **kwargs,
        )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def follows_mouse(self) -> bool:
        return self.follow_strategy in (None, "mouse") and self.auto_scale != "fill"

    @property
    def locks_center(self) -> bool:
        return self.follow_strategy == "center" or self.auto_scale == "fill"

    def contains(self, time_ms: float) -> bool:
        return self.start_time <= time_ms <= self.end_time

    def target_normalized(self, fallback_width: float, fallback_height: float) -> Optional[NormalizedPoint]:
        """The baked-in target as a normalized point, or None if unset."""
        if self.target_x is None or self.target_y is None:
            return None
        w = self.screen_width or fallback_width
        h = self.screen_height or fallback_height
        if w <= 0 or h <= 0:
            return CENTER
        return NormalizedPoint(self.target_x / w, self.target_y / h)

    def data_dict(self) -> dict:
        """The zoom effect payload (everything except id and timing)."""
        d = {camel: getattr(self, name) for camel, name in self._DATA_KEYS.items()}
        return _compact(d)

    def to_dict(self) -> dict:
        d = {"id": self.id, "startTime": self.start_time, "endTime": self.end_time}
        d.update(self.data_dict())
        return d

    @staticmethod
    def from_dict(d: dict) -> "ZoomBlock":
        """Reconstruct from ``to_dict()`` output, ignoring unknown keys."""
        kwargs = _from_camel(d, ZoomBlock._DATA_KEYS)
        return ZoomBlock(id=d["id"], start_time=d["startTime"], end_time=d["endTime"], **kwargs)

    def to_effect(self) -> Effect:
        """Wrap this block as a zoom effect for the effects store."""
        return Effect(
            id=self.id,
            type=EffectType.ZOOM,
            start_time=self.start_time,
            end_time=self.end_time,
            enabled=True,
            data=self.data_dict(),
        )

    @staticmethod
    def from_effect(effect: Effect) -> "ZoomBlock":
        kwargs = _from_camel(effect.data, ZoomBlock._DATA_KEYS)
        return ZoomBlock(
            id=effect.id, start_time=effect.start_time, end_time=effect.end_time, **kwargs,
        )


# ── Detection intermediates ─────────────────────────────────────────


@dataclass(frozen=True)
class ActionPoint:
    """A scored moment of user focus, in source pixels."""
    timestamp: float
    x: float
    y: float
    kind: str
    importance: float
    context: str = "default"
    duration: Optional[float] = None
    deliberate: bool = False


@dataclass
class ClickCluster:
    """Clicks grouped by a moving time window around a running centroid."""
    clicks: List[ClickEvent]
    deliberate: bool = False

    @property
    def start_time(self) -> float:
        return self.clicks[0].timestamp

    @property
    def end_time(self) -> float:
        return self.clicks[-1].timestamp

    @property
    def center_x(self) -> float:
        return sum(c.x for c in self.clicks) / len(self.clicks)

    @property
    def center_y(self) -> float:
        return sum(c.y for c in self.clicks) / len(self.clicks)

    def add(self, click: ClickEvent, deliberate: bool) -> None:
        self.clicks.append(click)
        if deliberate:
            self.deliberate = True


def outranks(candidate: ActionPoint, incumbent: ActionPoint) -> bool:
    """True if *candidate* should replace *incumbent* as a cluster's primary.

    Higher importance wins; on a tie the earlier action keeps the camera.
    """
    if candidate.importance != incumbent.importance:
        return candidate.importance > incumbent.importance
    return candidate.timestamp < incumbent.timestamp


@dataclass(frozen=True)
class ActionCluster:
    """Action points that share one camera intent.

    The center is always the primary action's position, never an average,
    so two distinct UI targets are not blended into a meaningless midpoint.
    """
    actions: Tuple[ActionPoint, ...]
    primary: ActionPoint

    @staticmethod
    def start(point: ActionPoint) -> "ActionCluster":
        return ActionCluster(actions=(point,), primary=point)

    def join(self, point: ActionPoint) -> "ActionCluster":
        """Return a new cluster with *point* appended."""
        primary = point if outranks(point, self.primary) else self.primary
        return ActionCluster(actions=self.actions + (point,), primary=primary)

    @property
    def last(self) -> ActionPoint:
        return self.actions[-1]

    @property
    def start_time(self) -> float:
        return self.actions[0].timestamp

    @property
    def end_time(self) -> float:
        return max(a.timestamp + (a.duration or 0.0) for a in self.actions)

    @property
    def max_importance(self) -> float:
        return max(a.importance for a in self.actions)

    @property
    def center(self) -> Tuple[float, float]:
        return self.primary.x, self.primary.y


# ── Camera state ────────────────────────────────────────────────────

@dataclass(frozen=True)
class CameraPhysicsState:
    """Per-player carry-over between successive camera evaluations.

    Immutable: every camera evaluation returns a fresh instance.  ``vx``
    and ``vy`` are reserved and always zero.  ``last_time_ms`` is None
    before the first evaluation, which therefore snaps like a seek.
    """
    x: float = 0.5
    y: float = 0.5
    vx: float = 0.0
    vy: float = 0.0
    last_time_ms: Optional[float] = None
    last_source_time_ms: Optional[float] = None
    cursor_stopped_at_ms: Optional[float] = None
    frozen_target_x: Optional[float] = None
    frozen_target_y: Optional[float] = None

    @property
    def frozen_target(self) -> Optional[NormalizedPoint]:
        if self.frozen_target_x is None or self.frozen_target_y is None:
            return None
        return NormalizedPoint(self.frozen_target_x, self.frozen_target_y)


@dataclass(frozen=True)
class CameraState:
    """What the compositor needs to position the video layer for one frame."""
    active_zoom_block: Optional[ZoomBlock]
    zoom_scale: float
    zoom_center: NormalizedPoint
    physics: CameraPhysicsState


# ── Recording ───────────────────────────────────────────────────────

@dataclass
class RecordingMetadata:
    """Everything the trackers captured for one recording."""

    id: str
    width: float
    height: float
    duration: float
    mouse_events: List[MouseEvent]
    click_events: List[ClickEvent] = field(default_factory=list)
    key_events: List[KeyEvent] = field(default_factory=list)
    scroll_events: List[ScrollEvent] = field(default_factory=list)

    def to_json(self) -> str:
        """Serialize the recording to a JSON string."""
        data = {
            "id": self.id,
            "width": self.width,
            "height": self.height,
            "duration": self.duration,
            "mouseEvents": [m.to_dict() for m in self.mouse_events],
        }
        if self.click_events:
            data["clickEvents"] = [c.to_dict() for c in self.click_events]
        if self.key_events:
            data["keyboardEvents"] = [k.to_dict() for k in self.key_events]
        if self.scroll_events:
            data["scrollEvents"] = [s.to_dict() for s in self.scroll_events]
        return json.dumps(data, indent=2)

    @staticmethod
    def from_json(s: str) -> "RecordingMetadata":
        d = json.loads(s)
        return RecordingMetadata(
            id=d.get("id", ""),
            width=d.get("width", 0),
            height=d.get("height", 0),
            duration=d.get("duration", 0),
            mouse_events=[MouseEvent.from_dict(m) for m in d.get("mouseEvents", [])],
            click_events=[ClickEvent.from_dict(c) for c in d.get("clickEvents", [])],
            key_events=[KeyEvent.from_dict(k) for k in d.get("keyboardEvents", [])],
            scroll_events=[ScrollEvent.from_dict(s) for s in d.get("scrollEvents", [])],
        )


DEFAULT_FPS = 60
