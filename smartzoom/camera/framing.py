"""Where the camera should look: visible window, dead zone, and clamps.

All functions work in normalized source space.  A *half window* is half
the fraction of the source visible on each axis at the current zoom; a
camera center ``c`` shows ``[c - half, c + half]``.
"""

from typing import Optional, Tuple

from .config import (
    DEAD_ZONE_MIN_RATIO,
    DEAD_ZONE_RATIO,
    DEAD_ZONE_SHRINK,
    DEAD_ZONE_SHRINK_END,
    DEAD_ZONE_SHRINK_OVERRIDE,
    DEAD_ZONE_SHRINK_START,
    DEAD_ZONE_TRANSITION,
    UNZOOMED_EPSILON,
)
from .coordinates import NO_OVERSCAN, NormalizedPoint, Overscan
from .cursor_geometry import Margins
from .zoom_engine import smootherstep


def get_half_windows(
    zoom_scale: float,
    source_width: float,
    source_height: float,
    output_width: Optional[float] = None,
    output_height: Optional[float] = None,
) -> Tuple[float, float]:
    """Visible half window ``(x, y)`` at *zoom_scale*.

    When the output aspect differs from the source, the fitted frame is
    letterboxed (or pillarboxed) and the window on the unconstrained
    axis widens accordingly.
    """
    if zoom_scale <= UNZOOMED_EPSILON:
        return 0.5, 0.5

    rx = ry = 1.0
    if output_width and output_height and source_width > 0 and source_height > 0:
        source_aspect = source_width / source_height
        output_aspect = output_width / output_height
        if output_aspect > source_aspect:
            ry = output_aspect / source_aspect
        elif output_aspect < source_aspect:
            rx = source_aspect / output_aspect
    return 0.5 * rx / zoom_scale, 0.5 * ry / zoom_scale


def adaptive_dead_zone_ratio(zoom_scale: float, base_ratio: Optional[float] = None) -> float:
    """Dead-zone ratio for *zoom_scale*: tighter tracking at higher zoom.

    Between 1.5x and 4x the ratio shrinks linearly to 70% of the default,
    or to 85% of a per-block override, never below 0.1.
    """
    max_ratio = DEAD_ZONE_RATIO if base_ratio is None else base_ratio
    shrink = DEAD_ZONE_SHRINK if base_ratio is None else DEAD_ZONE_SHRINK_OVERRIDE
    min_ratio = max(DEAD_ZONE_MIN_RATIO, max_ratio * shrink)
    if zoom_scale <= DEAD_ZONE_SHRINK_START:
        return max_ratio
    t = min(1.0, (zoom_scale - DEAD_ZONE_SHRINK_START) / (DEAD_ZONE_SHRINK_END - DEAD_ZONE_SHRINK_START))
    return max_ratio + (min_ratio - max_ratio) * t


def _transition_factor(dist: float, dead_half: float, band_half: float) -> float:
    if dist <= dead_half:
        return 0.0
    if dist >= band_half:
        return 1.0
    return smootherstep((dist - dead_half) / (band_half - dead_half))


def follow_target(
    cursor: NormalizedPoint,
    center: NormalizedPoint,
    half_window_x: float,
    half_window_y: float,
    zoom_scale: float,
    dead_zone_ratio: Optional[float] = None,
) -> NormalizedPoint:
    """Next camera center following *cursor* through a soft dead zone.

    Inside the dead zone the camera holds still.  Past 1.5× the dead zone
    it tracks fully, keeping the cursor on the dead-zone edge.  In the band
    between, it blends with smootherstep so crossing the edge never jerks.
    The result is not clamped.
    """
    ratio = adaptive_dead_zone_ratio(zoom_scale, dead_zone_ratio)
    dead_x = half_window_x * ratio
    dead_y = half_window_y * ratio

    dx = cursor.x - center.x
    dy = cursor.y - center.y
    tx = _transition_factor(abs(dx), dead_x, dead_x * DEAD_ZONE_TRANSITION)
    ty = _transition_factor(abs(dy), dead_y, dead_y * DEAD_ZONE_TRANSITION)

    full_x = cursor.x - (-dead_x if dx < 0 else dead_x)
    full_y = cursor.y - (-dead_y if dy < 0 else dead_y)
    return NormalizedPoint(
        center.x + (full_x - center.x) * tx,
        center.y + (full_y - center.y) * ty,
    )


def clamp_center_to_content_bounds(
    center: NormalizedPoint,
    half_window_x: float,
    half_window_y: float,
    overscan: Overscan = NO_OVERSCAN,
    allow_full_range: bool = False,
) -> NormalizedPoint:
    """Keep the visible window inside the content plus overscan.

    With *allow_full_range* the point is in output space, where the
    padding is already part of ``[0, 1]``; the center may then reach the
    very edges so the window can reveal the padding.
    """
    if allow_full_range:
        return NormalizedPoint(max(0.0, min(1.0, center.x)), max(0.0, min(1.0, center.y)))

    def _axis(c: float, half: float, lo_pad: float, hi_pad: float) -> float:
        lo = half - lo_pad
        hi = 1.0 - half + hi_pad
        if lo > hi:
            return (lo + hi) / 2
        return max(lo, min(hi, c))

    return NormalizedPoint(
        _axis(center.x, half_window_x, overscan.left, overscan.right),
        _axis(center.y, half_window_y, overscan.top, overscan.bottom),
    )


def project_center_to_keep_cursor_visible(
    center: NormalizedPoint,
    cursor: NormalizedPoint,
    half_window_x: float,
    half_window_y: float,
    overscan: Overscan = NO_OVERSCAN,
    margins: Optional[Margins] = None,
    allow_full_range: bool = False,
) -> NormalizedPoint:
    """Shift *center* the least amount that keeps the whole cursor glyph visible.

    The window ``[c - half, c + half]`` must contain
    ``[cursor - margin_lo, cursor + margin_hi]``.  When that cannot hold
    inside the allowed bounds (huge cursor, extreme zoom) the unprojected
    center is clamped instead.
    """
    m = margins or Margins(0.0, 0.0, 0.0, 0.0)

    def _axis(c: float, pos: float, half: float, m_lo: float, m_hi: float,
              pad_lo: float, pad_hi: float) -> float:
        pos = max(0.0, min(1.0, pos))
        lo_allowed = half if allow_full_range else half - pad_lo
        hi_allowed = 1.0 - half if allow_full_range else 1.0 - half + pad_hi
        lo = max(pos + m_hi - half, lo_allowed)
        hi = min(pos - m_lo + half, hi_allowed)
        if lo > hi:
            return max(lo_allowed, min(hi_allowed, c))
        return max(lo, min(hi, c))

    return NormalizedPoint(
        _axis(center.x, cursor.x, half_window_x, m.left, m.right, overscan.left, overscan.right),
        _axis(center.y, cursor.y, half_window_y, m.top, m.bottom, overscan.top, overscan.bottom),
    )


def cursor_fully_visible(
    center: NormalizedPoint,
    cursor: NormalizedPoint,
    half_window_x: float,
    half_window_y: float,
    margins: Optional[Margins] = None,
    tolerance: float = 1e-9,
) -> bool:
    """True when the glyph around *cursor* lies inside the window at *center*."""
    m = margins or Margins(0.0, 0.0, 0.0, 0.0)
    return (
        cursor.x - m.left >= center.x - half_window_x - tolerance
        and cursor.x + m.right <= center.x + half_window_x + tolerance
        and cursor.y - m.top >= center.y - half_window_y - tolerance
        and cursor.y + m.bottom <= center.y + half_window_y + tolerance
    )
