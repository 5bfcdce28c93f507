"""Tuning constants for zoom detection and the virtual camera.

Detection tunables that callers override per run (zooms per minute,
minimum gap) live on :class:`ActionZoomConfig`; everything the camera
reads every frame is a plain module-level constant.
"""

from dataclasses import dataclass, field
from typing import Dict


# ── Zoom transitions ────────────────────────────────────────────────

DEFAULT_INTRO_MS = 450     # zoom-in ramp, fast enough to feel responsive
DEFAULT_OUTRO_MS = 800     # zoom-out ramp, slower "crane coming to rest"
DEFAULT_ZOOM_SCALE = 2.0   # scale used when a zoom effect omits one

# ── Detection guards ────────────────────────────────────────────────

END_GUARD_MS = 100                # blocks never run into the last 100ms
SCROLL_STOP_GAP_MS = 500          # scroll pause that ends a scroll run
SCROLL_STOP_MIN_DISTANCE = 100    # accumulated |dx|+|dy| for a scroll stop
SCROLL_LARGE_DISTANCE = 500       # distance that earns the scroll bonus
ACTION_CLUSTER_RADIUS = 0.25      # normalized join radius for action points
HOVER_NEAR_DISTANCE = 0.05        # "near the click" while hovering
HOVER_NEAR_FRACTION = 0.7         # share of hover samples that must be near
HOVER_MIN_SAMPLES = 3
ACTIVITY_FULL_SCALE_PX = 100.0    # path length that counts as full activity
MULTI_CLICK_COUNT = 3             # clicks that earn the multi-click bonus
MULTI_CLICK_BONUS = 0.1
LONG_TYPING_MS = 2000             # typing longer than this earns a bonus
LONG_TYPING_BONUS = 0.1

# Hold extension after the cluster starts
ACTIVITY_LOOKAHEAD_MS = 10000
TYPING_EXTENSION_MIN_KEYS = 4
TYPING_EXTENSION_TAIL_MS = 1500
TYPING_EXTENSION_CAP_MS = 8000
MOUSE_EXTENSION_MIN_SAMPLES = 21
MOUSE_EXTENSION_RADIUS = 0.15
MOUSE_EXTENSION_TAIL_MS = 1000
MOUSE_EXTENSION_CAP_MS = 6000

# ── Camera follow ───────────────────────────────────────────────────

SEEK_THRESHOLD_MS = 100        # timeline jump treated as a scrub
DEAD_ZONE_RATIO = 0.4          # dead zone as a fraction of the half window
DEAD_ZONE_SHRINK = 0.7         # default ratio shrinks to 70% at high zoom
DEAD_ZONE_SHRINK_OVERRIDE = 0.85  # per-block ratios only shrink to 85%
DEAD_ZONE_MIN_RATIO = 0.1
DEAD_ZONE_SHRINK_START = 1.5   # scale where shrinking begins
DEAD_ZONE_SHRINK_END = 4.0     # scale where shrinking is complete
DEAD_ZONE_TRANSITION = 1.5     # soft band extends 50% past the dead zone
UNZOOMED_EPSILON = 1.001       # scales at or below this count as 1x

CINEMATIC_SAMPLES = 8          # samples in the trailing cursor average
SMOOTHING_WINDOW_PER_UNIT_MS = 10  # smoothing 0-100 maps to a 0-1000ms window
DEFAULT_CINEMATIC_SMOOTHING = 20
DEFAULT_MOUSE_IDLE_PX = 2.0

# Dwell regions: the cursor lingering near one spot holds the camera there
MOTION_CLUSTER_RADIUS_RATIO = 0.02   # of the screen diagonal
MOTION_CLUSTER_MIN_DURATION_MS = 500
MOTION_CLUSTER_HOLD_MS = 250         # keep holding after the cursor leaves

# Exponential smoothing (interactive playback)
TAU_MIN_S = 0.08
TAU_MAX_S = 0.5
FROZEN_TAU_MULTIPLIER = 3.0
ALPHA_FLOOR = 0.001
SNAP_EPSILON = 1e-4
RATE_MIN = 0.5
RATE_MAX = 3.0

# Exponentially weighted cursor (deterministic export)
EXPORT_SMOOTHING_TAU_MS = 120.0
EXPORT_SMOOTHING_WINDOW_MS = 480.0

# ── Cursor stop ─────────────────────────────────────────────────────

CURSOR_STOP_VELOCITY = 0.002   # normalized units per second
CURSOR_STOP_DWELL_MS = 80
CURSOR_STOP_MIN_ZOOM = 1.05
CURSOR_UNFREEZE_FACTOR = 1.5   # hysteresis band above the stop threshold
VELOCITY_WINDOW_MS = 100

# ── Zoom block lookup ───────────────────────────────────────────────

BLOCK_EDGE_EPSILON_MS = 40     # tolerate rounding at block boundaries


@dataclass(frozen=True)
class ScaleRange:
    """Minimum/maximum zoom scale for one action context."""
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min


def _default_scale_ranges() -> Dict[str, ScaleRange]:
    return {
        "typing": ScaleRange(1.3, 1.6),
        "deliberateClick": ScaleRange(1.6, 2.0),
        "clickCluster": ScaleRange(1.8, 2.2),
        "scrollStop": ScaleRange(1.4, 1.8),
        "default": ScaleRange(1.5, 2.0),
    }


@dataclass(frozen=True)
class ActionZoomConfig:
    """Tunables for action-based zoom detection.

    The defaults reproduce the shipped behaviour; tests and the CLI build
    variants with :func:`dataclasses.replace`.
    """

    # importance scoring
    click_importance_base: float = 0.7
    click_after_pause_bonus: float = 0.2
    typing_importance_base: float = 0.6
    typing_first_burst_bonus: float = 0.2
    scroll_stop_importance_base: float = 0.4
    scroll_distance_bonus: float = 0.2
    min_importance_threshold: float = 0.4

    # click clustering
    click_cluster_window_ms: float = 3000
    cluster_spatial_threshold: float = 0.15
    min_clicks_to_trigger: int = 2
    deliberate_pause_ms: float = 500
    deliberate_activity_threshold: float = 0.3
    hover_before_click_ms: float = 400

    # typing
    typing_burst_window_ms: float = 800
    min_keys_in_burst: int = 3

    # block synthesis
    anticipation_ms: float = 300
    min_hold_ms: float = 3000
    action_cluster_window_ms: float = 4000
    min_zoom_gap_ms: float = 5000
    max_zooms_per_minute: float = 5
    intro_ms: float = DEFAULT_INTRO_MS
    outro_ms: float = DEFAULT_OUTRO_MS
    zoom_scale_by_context: Dict[str, ScaleRange] = field(default_factory=_default_scale_ranges)

    def scale_range(self, context: str) -> ScaleRange:
        """Scale range for *context*, falling back to the default preset."""
        found = self.zoom_scale_by_context.get(context)
        if found is None:
            found = self.zoom_scale_by_context.get("default", ScaleRange(1.5, 2.0))
        return found


DEFAULT_CONFIG = ActionZoomConfig()
