"""Zoom engine — parses zoom effects and evaluates their scale envelope.

Zoom effects from the timeline are validated and turned into
:class:`ZoomBlock` objects; :func:`get_zoom_block_at_time` finds the one
covering a timeline position and :func:`calculate_zoom_scale` eases the
scale from 1 up to the block's target and back.  The intro uses the
block's transition style; the outro always uses exponential ease-out so
the camera settles instead of stopping abruptly.

:class:`CameraCache` memoizes the parsed blocks (keyed by the content
of the zoom effects, not by list identity) and the numpy mouse trails
(keyed by a fingerprint of the recording), so a preview calling the
camera 60 times a second does not re-parse or re-copy anything.
"""

import logging
import math
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Sequence

from .config import (
    BLOCK_EDGE_EPSILON_MS,
    DEFAULT_INTRO_MS,
    DEFAULT_OUTRO_MS,
    DEFAULT_ZOOM_SCALE,
)
from .models import FOLLOW_STRATEGIES, ZOOM_ORIGINS, Effect, EffectType, MouseEvent, RecordingMetadata, ZoomBlock
from .mouse_trail import MouseTrail
from .utils import clamp01

logger = logging.getLogger(__name__)


# ── Easing ──────────────────────────────────────────────────────────

def ease_out(t: float) -> float:
    """Quintic ease-out — fast start, decelerates asymptotically to zero.

    f(t) = 1 - (1-t)⁵

    Roughly 80% of the movement happens in the first 40% of the
    duration; used for the ``"settle"`` transition style.
    """
    inv = 1.0 - t
    return 1.0 - inv * inv * inv * inv * inv


def smootherstep(t: float) -> float:
    """Perlin's smootherstep: zero first and second derivative at both ends."""
    t = clamp01(t)
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def ease_in_out_cubic(t: float) -> float:
    t = clamp01(t)
    if t < 0.5:
        return 4.0 * t * t * t
    return 1.0 - (-2.0 * t + 2.0) ** 3 / 2.0


def ease_in_out_sine(t: float) -> float:
    return 0.5 - 0.5 * math.cos(math.pi * clamp01(t))


def ease_in_out_expo(t: float) -> float:
    t = clamp01(t)
    if t == 0.0 or t == 1.0:
        return t
    if t < 0.5:
        return 2.0 ** (20.0 * t - 10.0) / 2.0
    return (2.0 - 2.0 ** (-20.0 * t + 10.0)) / 2.0


def ease_out_expo(t: float) -> float:
    t = clamp01(t)
    return 1.0 if t == 1.0 else 1.0 - 2.0 ** (-10.0 * t)


def ease_in_out_sigmoid(t: float, k: float = 10.0) -> float:
    """Logistic curve rescaled to pass exactly through (0, 0) and (1, 1)."""
    def s(v: float) -> float:
        return 1.0 / (1.0 + math.exp(-k * (v - 0.5)))
    s0, s1 = s(0.0), s(1.0)
    return (s(clamp01(t)) - s0) / (s1 - s0)


EASINGS: Dict[str, Callable[[float], float]] = {
    "linear": clamp01,
    "cubic": ease_in_out_cubic,
    "sine": ease_in_out_sine,
    "expo": ease_in_out_expo,
    "sigmoid": ease_in_out_sigmoid,
    "smoother": smootherstep,
    "settle": lambda t: ease_out(clamp01(t)),
}

# Style ids written by older project files
LEGACY_STYLES = {"cinematic": "cubic", "smooth": "sine", "spring": "expo"}

DEFAULT_STYLE = "smoother"


def ease_zoom_progress(style: Optional[str], progress: float) -> float:
    return EASINGS.get(style or DEFAULT_STYLE, smootherstep)(progress)


# ── Scale envelope ──────────────────────────────────────────────────

def effective_ease_durations(block_duration: float, intro_ms: float, outro_ms: float):
    """Shrink intro/outro proportionally so they never overlap.

    Returns ``(duration, intro, outro)``, all zero for an empty block.
    """
    duration = max(0.0, block_duration)
    if duration <= 0:
        return 0.0, 0.0, 0.0
    intro = max(0.0, intro_ms)
    outro = max(0.0, outro_ms)
    total = intro + outro
    if total > duration:
        ratio = duration / total
        intro *= ratio
        outro *= ratio
    return duration, intro, outro


def calculate_zoom_scale(
    elapsed: float,
    block_duration: float,
    target_scale: float,
    intro_ms: float = DEFAULT_INTRO_MS,
    outro_ms: float = DEFAULT_OUTRO_MS,
    transition_style: Optional[str] = None,
) -> float:
    """Scale at *elapsed* ms into a block: ramp up, hold, ramp down."""
    duration, intro, outro = effective_ease_durations(block_duration, intro_ms, outro_ms)
    if duration <= 0:
        return 1.0

    t = max(0.0, min(duration, elapsed))
    if t < intro:
        eased = ease_zoom_progress(transition_style, t / intro)
        return 1.0 + (target_scale - 1.0) * eased
    if t > duration - outro:
        eased = ease_out_expo((t - (duration - outro)) / outro)
        return max(1.0, target_scale - (target_scale - 1.0) * eased)
    return target_scale


# ── Parsing ─────────────────────────────────────────────────────────

def _finite(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _validation_error(effect: Effect) -> Optional[str]:
    """Why *effect* cannot become a zoom block, or None when it is valid."""
    d = effect.data
    if not (_finite(effect.start_time) and _finite(effect.end_time)):
        return "invalid timing"
    if effect.start_time >= effect.end_time:
        return "non-positive duration"
    if d.get("origin", "auto") not in ZOOM_ORIGINS:
        return "invalid origin %r" % d.get("origin")
    scale = d.get("scale", DEFAULT_ZOOM_SCALE)
    if not _finite(scale) or scale <= 0:
        return "invalid scale %r" % scale
    for key in ("introMs", "outroMs", "smoothing", "mouseIdlePx"):
        v = d.get(key)
        if v is not None and (not _finite(v) or v < 0):
            return "invalid %s %r" % (key, v)
    for key in ("targetX", "targetY"):
        v = d.get(key)
        if v is not None and not _finite(v):
            return "invalid %s %r" % (key, v)
    for key in ("screenWidth", "screenHeight"):
        v = d.get(key)
        if v is not None and (not _finite(v) or v <= 0):
            return "invalid %s %r" % (key, v)
    ratio = d.get("deadZoneRatio")
    if ratio is not None and (not _finite(ratio) or not 0.0 <= ratio <= 1.0):
        return "deadZoneRatio must be within 0-1"
    strategy = d.get("followStrategy")
    if strategy is not None and strategy not in FOLLOW_STRATEGIES:
        return "invalid followStrategy %r" % strategy
    style = d.get("transitionStyle")
    if style is not None and style not in EASINGS and style not in LEGACY_STYLES:
        return "invalid transitionStyle %r" % style
    return None


def parse_zoom_effect(effect: Effect) -> Optional[ZoomBlock]:
    """Validate one zoom effect; invalid ones are logged and skipped."""
    problem = _validation_error(effect)
    if problem:
        logger.warning("Skipping zoom effect %s: %s", effect.id, problem)
        return None
    block = ZoomBlock.from_effect(effect)
    block.transition_style = LEGACY_STYLES.get(block.transition_style, block.transition_style)
    if block.transition_style not in EASINGS:
        block.transition_style = DEFAULT_STYLE
    return block


def zoom_effects_key(effects: Sequence[Effect]) -> str:
    """Content key over the enabled zoom effects and every field the camera reads."""
    parts = []
    for e in effects:
        if e.type != EffectType.ZOOM or not e.enabled:
            continue
        data = sorted((k, repr(v)) for k, v in e.data.items())
        parts.append("%s|%r|%r|%r" % (e.id, e.start_time, e.end_time, data))
    return ";".join(parts)


def parse_zoom_blocks(effects: Sequence[Effect]) -> List[ZoomBlock]:
    """Enabled, valid zoom effects as blocks, in their original order.

    Order is preserved because overlapping blocks resolve to the first one.
    """
    blocks: List[ZoomBlock] = []
    for e in effects:
        if e.type != EffectType.ZOOM or not e.enabled:
            continue
        block = parse_zoom_effect(e)
        if block is not None:
            blocks.append(block)
    return blocks


def get_zoom_block_at_time(blocks: Sequence[ZoomBlock], timeline_ms: float) -> Optional[ZoomBlock]:
    """The block covering *timeline_ms*.

    Strict containment wins.  Otherwise the nearest block that starts or
    ends within 40 ms is used, so rounding at boundaries does not drop a
    frame out of the zoom.
    """
    for b in blocks:
        if b.contains(timeline_ms):
            return b

    best: Optional[ZoomBlock] = None
    best_dist = math.inf
    for b in blocks:
        after_end = timeline_ms - b.end_time
        if 0 < after_end <= BLOCK_EDGE_EPSILON_MS and after_end < best_dist:
            best, best_dist = b, after_end
        before_start = b.start_time - timeline_ms
        if 0 < before_start <= BLOCK_EDGE_EPSILON_MS and before_start < best_dist:
            best, best_dist = b, before_start
    return best


# ── Cache ───────────────────────────────────────────────────────────

MAX_CACHED_TRAILS = 4


class CameraCache:
    """Caller-owned memo for parsed zoom blocks and mouse trails.

    One instance can be shared by every player showing the same project;
    it holds no camera state, only derived data.
    """

    def __init__(self) -> None:
        self._blocks_key: Optional[str] = None
        self._blocks: List[ZoomBlock] = []
        self._trails: "OrderedDict[tuple, MouseTrail]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def zoom_blocks(self, effects: Sequence[Effect]) -> List[ZoomBlock]:
        key = zoom_effects_key(effects)
        if key == self._blocks_key:
            self.hits += 1
            return self._blocks
        self.misses += 1
        self._blocks = parse_zoom_blocks(effects)
        self._blocks_key = key
        return self._blocks

    def trail(self, metadata: Optional[RecordingMetadata]) -> MouseTrail:
        events: List[MouseEvent] = metadata.mouse_events if metadata else []
        key = _trail_key(metadata, events)
        found = self._trails.get(key)
        if found is not None:
            self._trails.move_to_end(key)
            return found
        trail = MouseTrail(events)
        self._trails[key] = trail
        if len(self._trails) > MAX_CACHED_TRAILS:
            self._trails.popitem(last=False)
        return trail

    def clear(self) -> None:
        self._blocks_key = None
        self._blocks = []
        self._trails.clear()


def _trail_key(metadata: Optional[RecordingMetadata], events: Sequence[MouseEvent]) -> tuple:
    if not events:
        return (metadata.id if metadata else "", 0)
    first, last = events[0], events[-1]
    return (
        metadata.id if metadata else "",
        len(events),
        first.timestamp, first.x, first.y,
        last.timestamp, last.x, last.y,
    )
