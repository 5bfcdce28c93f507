"""Rendered cursor glyph sizes, used to keep the whole cursor on screen.

The compositor draws a themed cursor image whose hotspot is not at its
center, so the camera needs per-edge margins (left/right/top/bottom of
the hotspot) to guarantee the full glyph stays inside the visible window.
Recorded cursor names are CSS-style (``"pointer"``, ``"text"`` …) and
are mapped onto the glyph set first.
"""

from typing import Dict, NamedTuple, Optional, Tuple

from .models import Effect, EffectType

DEFAULT_CURSOR_SIZE = 2.0  # cursor effect scale when the effect omits one
DEFAULT_THEME = "default"
TAHOE_THEMES = ("tahoe", "tahoeNoTail")


class Margins(NamedTuple):
    left: float
    right: float
    top: float
    bottom: float


# Base glyph size in pixels (width, height) at cursor scale 1
CURSOR_DIMENSIONS: Dict[str, Tuple[float, float]] = {
    "arrow": (24, 32),
    "iBeam": (16, 32),
    "pointingHand": (28, 28),
    "closedHand": (28, 28),
    "openHand": (32, 32),
    "crosshair": (24, 24),
    "resizeLeft": (24, 24),
    "resizeRight": (24, 24),
    "resizeUp": (24, 24),
    "resizeDown": (24, 24),
    "resizeLeftRight": (32, 24),
    "resizeUpDown": (24, 32),
    "contextualMenu": (24, 32),
    "disappearingItem": (24, 32),
    "dragCopy": (24, 32),
    "dragLink": (24, 32),
    "operationNotAllowed": (28, 28),
    "iBeamCursorForVerticalLayout": (32, 16),
}

# Hotspot as a fraction of the glyph size
CURSOR_HOTSPOTS: Dict[str, Tuple[float, float]] = {
    "arrow": (0.15, 0.12),
    "iBeam": (0.5, 0.5),
    "pointingHand": (0.64, 0.18),
    "closedHand": (0.5, 0.34),
    "openHand": (0.5, 0.34),
    "crosshair": (0.5, 0.5),
    "resizeLeft": (0.5, 0.5),
    "resizeRight": (0.5, 0.5),
    "resizeUp": (0.5, 0.5),
    "resizeDown": (0.5, 0.5),
    "resizeLeftRight": (0.5, 0.5),
    "resizeUpDown": (0.5, 0.5),
    "contextualMenu": (0.25, 0.175),
    "disappearingItem": (0.5, 0.5),
    "dragCopy": (0.25, 0.175),
    "dragLink": (0.25, 0.19),
    "operationNotAllowed": (0.5, 0.5),
    "iBeamCursorForVerticalLayout": (0.5, 0.5),
}

# The Tahoe theme draws a subset of glyphs on a square 32 px canvas
TAHOE_HOTSPOTS: Dict[str, Tuple[float, float]] = {
    "arrow": (2 / 128, 3 / 128),
    "iBeam": (65 / 128, 62 / 128),
    "pointingHand": (22 / 128, 3 / 128),
    "openHand": (38 / 128, 38 / 128),
    "crosshair": (65 / 128, 65 / 128),
    "resizeLeftRight": (30 / 128, 47 / 128),
    "resizeUpDown": (47 / 128, 33 / 128),
    "operationNotAllowed": (2 / 128, 2 / 128),
}
TAHOE_SIZE = (32, 32)

CSS_TO_CURSOR: Dict[str, str] = {
    "default": "arrow",
    "pointer": "pointingHand",
    "text": "iBeam",
    "vertical-text": "iBeamCursorForVerticalLayout",
    "crosshair": "crosshair",
    "move": "openHand",
    "grabbing": "closedHand",
    "grab": "openHand",
    "not-allowed": "operationNotAllowed",
    "context-menu": "contextualMenu",
    "copy": "dragCopy",
    "alias": "dragLink",
    "e-resize": "resizeRight",
    "w-resize": "resizeLeft",
    "n-resize": "resizeUp",
    "s-resize": "resizeDown",
    "ew-resize": "resizeLeftRight",
    "ns-resize": "resizeUpDown",
    "ne-resize": "resizeRight",
    "nw-resize": "resizeLeft",
    "se-resize": "resizeRight",
    "sw-resize": "resizeLeft",
    "nesw-resize": "resizeLeftRight",
    "nwse-resize": "resizeLeftRight",
    "col-resize": "resizeLeftRight",
    "row-resize": "resizeUpDown",
    "all-scroll": "openHand",
    "zoom-in": "crosshair",
    "zoom-out": "crosshair",
}


def glyph_for(cursor_type: Optional[str]) -> str:
    """Map a recorded cursor name to a glyph id (arrow when unknown)."""
    if cursor_type in CURSOR_DIMENSIONS:
        return cursor_type
    return CSS_TO_CURSOR.get(cursor_type or "default", "arrow")


def glyph_geometry(glyph: str, theme: str = DEFAULT_THEME) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """``((width, height), (hotspot_x, hotspot_y))`` for *glyph* in *theme*."""
    if theme in TAHOE_THEMES and glyph in TAHOE_HOTSPOTS:
        return TAHOE_SIZE, TAHOE_HOTSPOTS[glyph]
    return CURSOR_DIMENSIONS[glyph], CURSOR_HOTSPOTS[glyph]


def cursor_margins_px(cursor_type: Optional[str], cursor_scale: float, theme: str = DEFAULT_THEME) -> Margins:
    """Distance in output pixels from the hotspot to each glyph edge."""
    (w, h), (hx, hy) = glyph_geometry(glyph_for(cursor_type), theme)
    width = w * cursor_scale
    height = h * cursor_scale
    return Margins(hx * width, (1 - hx) * width, hy * height, (1 - hy) * height)


def cursor_margins_norm(
    cursor_type: Optional[str],
    cursor_scale: float,
    draw_width: float,
    draw_height: float,
    half_window_x: float,
    half_window_y: float,
    theme: str = DEFAULT_THEME,
) -> Margins:
    """Hotspot margins in normalized source units at the current zoom.

    The glyph is drawn at a fixed size on the output, so it covers a
    fraction ``px / draw_size`` of the visible window, which itself spans
    ``2 × half_window`` of the source.
    """
    px = cursor_margins_px(cursor_type, cursor_scale, theme)
    if draw_width <= 0 or draw_height <= 0:
        return Margins(0.0, 0.0, 0.0, 0.0)
    wx = 2 * half_window_x / draw_width
    wy = 2 * half_window_y / draw_height
    return Margins(px.left * wx, px.right * wx, px.top * wy, px.bottom * wy)


def active_cursor_effect(effects) -> Optional[Effect]:
    """The first enabled cursor effect, which drives glyph size and theme."""
    for e in effects:
        if e.type == EffectType.CURSOR and e.enabled:
            return e
    return None
