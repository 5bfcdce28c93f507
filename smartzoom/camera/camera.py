"""Virtual camera — center and scale of the source frame for one instant.

:func:`compute_camera_state` is called once per exported frame
(``deterministic=True``) and once per animation tick or scrub event in
the preview.  It is a pure function of its inputs: the caller threads
the returned :class:`CameraPhysicsState` into the next call.

Per call:

1. find the zoom block active at the timeline position and ease its
   scale (intro / hold / outro);
2. work out where the cursor is (the centroid of a dwell region while
   it lingers), looking slightly ahead during the zoom-in so the camera
   arrives where the action will be;
3. freeze the follow target while the cursor rests (with hysteresis in
   the preview so it does not flicker);
4. pick a target center: screen center, the block's baked-in target, or
   a soft dead-zone follow of the cursor, blended in over the intro;
5. move toward the target: snap in export and after a seek, otherwise
   exponential smoothing scaled by playback rate;
6. push the center so the whole cursor glyph stays visible, then clamp
   to the content plus overscan.

Nothing here raises on bad input: missing telemetry or dimensions give
the frame center at scale 1.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from .config import (
    ALPHA_FLOOR,
    CURSOR_STOP_DWELL_MS,
    CURSOR_STOP_MIN_ZOOM,
    CURSOR_STOP_VELOCITY,
    CURSOR_UNFREEZE_FACTOR,
    DEFAULT_CINEMATIC_SMOOTHING,
    DEFAULT_MOUSE_IDLE_PX,
    EXPORT_SMOOTHING_TAU_MS,
    EXPORT_SMOOTHING_WINDOW_MS,
    FROZEN_TAU_MULTIPLIER,
    RATE_MAX,
    RATE_MIN,
    SEEK_THRESHOLD_MS,
    SMOOTHING_WINDOW_PER_UNIT_MS,
    SNAP_EPSILON,
    TAU_MAX_S,
    TAU_MIN_S,
    UNZOOMED_EPSILON,
)
from .coordinates import (
    CENTER,
    NO_OVERSCAN,
    NormalizedPoint,
    Overscan,
    ScreenRect,
    SourcePoint,
    clamp_to_overscan_bounds,
    from_output_space,
    map_to_mockup_screen,
    to_output_space,
)
from .cursor_geometry import (
    DEFAULT_CURSOR_SIZE,
    DEFAULT_THEME,
    Margins,
    active_cursor_effect,
    cursor_margins_norm,
)
from .framing import (
    clamp_center_to_content_bounds,
    follow_target,
    get_half_windows,
    project_center_to_keep_cursor_visible,
)
from .models import (
    DEFAULT_FPS,
    CameraPhysicsState,
    CameraState,
    Effect,
    EffectType,
    RecordingMetadata,
    ZoomBlock,
)
from .mouse_trail import MouseTrail
from .utils import clamp, clamp01, lerp
from .zoom_engine import (
    CameraCache,
    calculate_zoom_scale,
    get_zoom_block_at_time,
    parse_zoom_blocks,
    smootherstep,
)

logger = logging.getLogger(__name__)


# ── Inputs ──────────────────────────────────────────────────────────

def normalize_smoothing_amount(value: Optional[float]) -> float:
    """Smoothing on a 0-100 scale; legacy 0-1 values are scaled up."""
    if value is None or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    if 0 < value <= 1:
        value = value * 100
    return clamp(float(value), 0.0, 100.0)


def cinematic_smoothing_at(effects: Sequence[Effect], timeline_ms: float) -> float:
    """Smoothing requested by an active "cinematic scroll" annotation, else 0."""
    for e in effects:
        if e.type == EffectType.ANNOTATION and e.active_at(timeline_ms) \
                and e.data.get("kind") == "scrollCinematic":
            return normalize_smoothing_amount(e.data.get("smoothing", DEFAULT_CINEMATIC_SMOOTHING))
    return 0.0


def source_dimensions(
    trail: MouseTrail,
    source_time_ms: float,
    metadata: Optional[RecordingMetadata],
) -> Tuple[float, float]:
    """Source frame size at *source_time_ms*.

    Per-sample capture size wins, then the sample's screen size, then the
    recording's own dimensions.
    """
    event = trail.event_at(source_time_ms)
    if event is not None:
        if event.capture_width > 0 and event.capture_height > 0:
            return event.capture_width, event.capture_height
        if event.screen_width > 0 and event.screen_height > 0:
            return event.screen_width, event.screen_height
    if metadata is not None and metadata.width > 0 and metadata.height > 0:
        return metadata.width, metadata.height
    return 0.0, 0.0


def _intro_blend(block: Optional[ZoomBlock], timeline_ms: float, current: float, target: float) -> float:
    """How far the zoom-in has progressed, 0 at the block start and 1 after the intro."""
    if block is None:
        return 1.0
    intro = max(0.0, block.intro_ms)
    if intro <= 0:
        return 1.0
    if timeline_ms <= block.start_time:
        return 0.0
    if timeline_ms >= block.start_time + intro:
        return 1.0
    if target <= UNZOOMED_EPSILON:
        return smootherstep((timeline_ms - block.start_time) / intro)
    return smootherstep(clamp01((current - 1.0) / (target - 1.0)))


class _Space:
    """Follow math for one frame, done in output space when there is overscan."""

    def __init__(self, overscan: Overscan, half_x: float, half_y: float) -> None:
        self.overscan = overscan
        self.padded = not overscan.is_zero
        self.half_x = half_x
        self.half_y = half_y

    def follow(self, cursor: NormalizedPoint, base: NormalizedPoint, scale: float,
               dead_zone_ratio: Optional[float]) -> NormalizedPoint:
        if not self.padded:
            return follow_target(cursor, base, self.half_x, self.half_y, scale, dead_zone_ratio)
        ov = self.overscan
        out = follow_target(
            to_output_space(cursor, ov), to_output_space(base, ov),
            self.half_x / ov.denom_x, self.half_y / ov.denom_y, scale, dead_zone_ratio,
        )
        return from_output_space(out, ov)

    def project(self, center: NormalizedPoint, cursor: NormalizedPoint,
                margins: Optional[Margins]) -> NormalizedPoint:
        if not self.padded:
            return project_center_to_keep_cursor_visible(
                center, cursor, self.half_x, self.half_y, self.overscan, margins,
            )
        ov = self.overscan
        out_margins = None
        if margins is not None:
            out_margins = Margins(
                margins.left / ov.denom_x, margins.right / ov.denom_x,
                margins.top / ov.denom_y, margins.bottom / ov.denom_y,
            )
        out = project_center_to_keep_cursor_visible(
            to_output_space(center, ov), to_output_space(cursor, ov),
            self.half_x / ov.denom_x, self.half_y / ov.denom_y,
            NO_OVERSCAN, out_margins, allow_full_range=True,
        )
        return from_output_space(out, ov)

    def clamp(self, center: NormalizedPoint, follows_mouse: bool) -> NormalizedPoint:
        if follows_mouse and self.padded:
            out = clamp_center_to_content_bounds(
                to_output_space(center, self.overscan), self.half_x, self.half_y,
                allow_full_range=True,
            )
            return from_output_space(out, self.overscan)
        return clamp_center_to_content_bounds(center, self.half_x, self.half_y, self.overscan)


# ── Main entry point ────────────────────────────────────────────────

def compute_camera_state(
    effects: Sequence[Effect],
    timeline_ms: float,
    source_time_ms: float,
    physics: Optional[CameraPhysicsState] = None,
    *,
    metadata: Optional[RecordingMetadata] = None,
    output_width: Optional[float] = None,
    output_height: Optional[float] = None,
    overscan: Optional[Overscan] = None,
    mockup_screen: Optional[ScreenRect] = None,
    force_follow_cursor: bool = False,
    deterministic: bool = False,
    cache: Optional[CameraCache] = None,
) -> CameraState:
    """Camera center and scale at *timeline_ms*.

    *source_time_ms* is the matching position in the recording (they
    differ when clips are trimmed or sped up).  In deterministic mode the
    result depends only on the effects, metadata and the two times.
    """
    if physics is None:
        physics = CameraPhysicsState()
    ov = overscan or NO_OVERSCAN

    if cache is not None:
        blocks = cache.zoom_blocks(effects)
        trail = cache.trail(metadata)
    else:
        blocks = parse_zoom_blocks(effects)
        trail = MouseTrail(metadata.mouse_events if metadata else [])
    block = get_zoom_block_at_time(blocks, timeline_ms)

    # ── scale ──
    target_scale = 1.0
    scale = 1.0
    if block is not None:
        target_scale = ov.fill_scale if block.auto_scale == "fill" else block.scale
        scale = max(1.0, calculate_zoom_scale(
            timeline_ms - block.start_time, block.duration, target_scale,
            block.intro_ms, block.outro_ms, block.transition_style,
        ))

    width, height = source_dimensions(trail, source_time_ms, metadata)
    if width <= 0 or height <= 0:
        width, height = output_width or 0.0, output_height or 0.0
    if width <= 0 or height <= 0:
        logger.debug("No source dimensions at %.0fms; using frame center", source_time_ms)
        return CameraState(
            active_zoom_block=block,
            zoom_scale=1.0,
            zoom_center=CENTER,
            physics=CameraPhysicsState(last_time_ms=timeline_ms, last_source_time_ms=source_time_ms),
        )

    half_x, half_y = get_half_windows(scale, width, height, output_width, output_height)
    space = _Space(ov, half_x, half_y)

    def to_frame(p: Optional[SourcePoint]) -> Optional[NormalizedPoint]:
        if p is None:
            return None
        n = NormalizedPoint(p.x / width, p.y / height)
        if mockup_screen is not None and output_width and output_height:
            n = map_to_mockup_screen(n, mockup_screen, output_width, output_height)
        return clamp_to_overscan_bounds(n, ov)

    smoothing = max(
        cinematic_smoothing_at(effects, timeline_ms),
        normalize_smoothing_amount(block.smoothing if block else None),
    )

    # ── timing ──
    last_time = physics.last_time_ms if physics.last_time_ms is not None else timeline_ms
    dt_timeline = timeline_ms - last_time
    # The first evaluation after a reset lands on its target like a scrub
    is_seek = not deterministic and (
        physics.last_time_ms is None or abs(dt_timeline) > SEEK_THRESHOLD_MS
    )
    blend = _intro_blend(block, timeline_ms, scale, target_scale)
    in_intro = block is not None and timeline_ms < block.start_time + block.intro_ms

    rate = 1.0
    if not deterministic and not is_seek and dt_timeline > 1:
        last_source = physics.last_source_time_ms
        if last_source is not None:
            estimate = (source_time_ms - last_source) / dt_timeline
            rate = clamp(estimate or 1.0, RATE_MIN, RATE_MAX)

    # Look ahead to where the cursor will be when the zoom-in lands
    lookahead_ms = source_time_ms
    if in_intro:
        until_landed = block.start_time + block.intro_ms - timeline_ms
        lookahead_ms = source_time_ms + until_landed * rate * blend

    # ── cursor ──
    dwell = trail.active_cluster(lookahead_ms, width, height)
    if dwell is not None:
        attractor = SourcePoint(dwell.x, dwell.y)
    elif smoothing > 0:
        attractor = trail.cinematic_position(lookahead_ms, smoothing * SMOOTHING_WINDOW_PER_UNIT_MS)
    else:
        attractor = trail.position_at(lookahead_ms)
    cursor = to_frame(attractor) or clamp_to_overscan_bounds(CENTER, ov)

    jitter = DEFAULT_MOUSE_IDLE_PX
    if block is not None and block.mouse_idle_px is not None:
        jitter = block.mouse_idle_px
    motion = trail.velocity(source_time_ms, width, height, jitter)

    # ── cursor stop ──
    stop_applies = scale >= CURSOR_STOP_MIN_ZOOM
    frozen: Optional[NormalizedPoint] = None
    stopped_at_next: Optional[float] = None
    if deterministic:
        if stop_applies and motion.velocity < CURSOR_STOP_VELOCITY:
            stopped_at = motion.stopped_since_ms if motion.stopped_since_ms is not None else source_time_ms
            if source_time_ms - stopped_at >= CURSOR_STOP_DWELL_MS:
                frozen = cursor
    else:
        carried_stop = None if is_seek else physics.cursor_stopped_at_ms
        if carried_stop is not None and carried_stop > source_time_ms:
            carried_stop = None
        carried_target = None if is_seek else physics.frozen_target
        if stop_applies and motion.velocity < CURSOR_STOP_VELOCITY:
            stopped_at = carried_stop
            if stopped_at is None:
                stopped_at = motion.stopped_since_ms if motion.stopped_since_ms is not None else source_time_ms
            stopped_at_next = stopped_at
            if source_time_ms - stopped_at >= CURSOR_STOP_DWELL_MS:
                frozen = carried_target or cursor
        elif carried_target is not None and motion.velocity < CURSOR_STOP_VELOCITY * CURSOR_UNFREEZE_FACTOR:
            frozen = carried_target
            stopped_at_next = carried_stop

    follow_cursor = frozen or cursor

    # ── target ──
    follows_mouse = block is not None and block.follows_mouse
    if deterministic:
        base = CENTER
    elif is_seek:
        base = follow_cursor
    else:
        base = NormalizedPoint(physics.x, physics.y)

    if block is None:
        target = CENTER
    elif block.locks_center:
        target = CENTER
    elif not follows_mouse:
        baked = block.target_normalized(width, height)
        if baked is None:
            target = CENTER
        else:
            target = clamp_center_to_content_bounds(baked, half_x, half_y, ov)
    else:
        follow_point = follow_cursor
        if deterministic and frozen is None:
            smoothed = trail.exponentially_smoothed(
                lookahead_ms, EXPORT_SMOOTHING_TAU_MS, EXPORT_SMOOTHING_WINDOW_MS,
            )
            follow_point = to_frame(smoothed) or follow_cursor
        target = space.follow(follow_point, base, scale, block.dead_zone_ratio)
        if in_intro:
            target = NormalizedPoint(lerp(base.x, target.x, blend), lerp(base.y, target.y, blend))

    if force_follow_cursor:
        target = follow_cursor

    # ── update ──
    if deterministic or is_seek:
        center = target
    else:
        dt_s = max(0.0, dt_timeline / 1000.0)
        tau = lerp(TAU_MIN_S, TAU_MAX_S, smoothing / 100.0) / rate
        if frozen is not None:
            tau *= FROZEN_TAU_MULTIPLIER
        alpha = min(1.0, max(ALPHA_FLOOR, 1.0 - math.exp(-dt_s / tau))) if dt_s > 0 else 0.0
        if block is not None and block.locks_center:
            center = CENTER
        else:
            center = NormalizedPoint(
                lerp(physics.x, target.x, alpha),
                lerp(physics.y, target.y, alpha),
            )
        if math.hypot(center.x - target.x, center.y - target.y) < SNAP_EPSILON:
            center = target

    # ── visibility + clamp ──
    if force_follow_cursor:
        final = follow_cursor
    else:
        final = center
        if follows_mouse and frozen is None:
            raw = to_frame(trail.position_at(source_time_ms)) or cursor
            margins = _cursor_margins(effects, trail, source_time_ms, width, height,
                                      output_width, output_height, space)
            final = space.project(final, raw, margins)
        final = space.clamp(final, follows_mouse)

    if deterministic:
        next_physics = CameraPhysicsState(
            x=final.x, y=final.y, last_time_ms=timeline_ms, last_source_time_ms=source_time_ms,
        )
    else:
        next_physics = CameraPhysicsState(
            x=final.x,
            y=final.y,
            last_time_ms=timeline_ms,
            last_source_time_ms=source_time_ms,
            cursor_stopped_at_ms=stopped_at_next,
            frozen_target_x=frozen.x if frozen is not None else None,
            frozen_target_y=frozen.y if frozen is not None else None,
        )

    return CameraState(
        active_zoom_block=block,
        zoom_scale=scale,
        zoom_center=final,
        physics=next_physics,
    )


def _cursor_margins(
    effects: Sequence[Effect],
    trail: MouseTrail,
    source_time_ms: float,
    width: float,
    height: float,
    output_width: Optional[float],
    output_height: Optional[float],
    space: _Space,
) -> Optional[Margins]:
    """Glyph margins for the active cursor effect, or None when no cursor is drawn."""
    effect = active_cursor_effect(effects)
    if effect is None:
        return None
    size = effect.data.get("size", DEFAULT_CURSOR_SIZE)
    theme = effect.data.get("theme", DEFAULT_THEME)
    event = trail.event_at(source_time_ms)
    cursor_type = event.cursor_type if event is not None else "default"
    draw_w = (output_width or width) / (space.overscan.denom_x if space.padded else 1.0)
    draw_h = (output_height or height) / (space.overscan.denom_y if space.padded else 1.0)
    return cursor_margins_norm(cursor_type, size, draw_w, draw_h, space.half_x, space.half_y, theme)


# ── Export ──────────────────────────────────────────────────────────

def precompute_camera_path(
    effects: Sequence[Effect],
    metadata: Optional[RecordingMetadata],
    duration_ms: float,
    fps: float = DEFAULT_FPS,
    **kwargs,
) -> List[CameraState]:
    """Deterministic camera state for every frame of an export.

    Timeline and source time coincide (no clip remapping).  Extra keyword
    arguments are passed through to :func:`compute_camera_state`; export is
    always deterministic, so a ``deterministic`` argument is ignored.
    """
    if fps <= 0 or duration_ms < 0:
        return []
    kwargs.pop("deterministic", None)
    cache = kwargs.pop("cache", None) or CameraCache()
    frame_count = int(math.floor(duration_ms * fps / 1000.0)) + 1
    states: List[CameraState] = []
    physics = CameraPhysicsState()
    for i in range(frame_count):
        t = i * 1000.0 / fps
        state = compute_camera_state(
            effects, t, t, physics,
            metadata=metadata, deterministic=True, cache=cache, **kwargs,
        )
        physics = state.physics
        states.append(state)
    logger.info("Precomputed %d camera frames at %s fps", len(states), fps)
    return states
