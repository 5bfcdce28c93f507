"""Coordinate spaces used by the camera.

Two spaces matter:

* **source** — physical pixels of the captured screen (what the input
  trackers record), represented by :class:`SourcePoint`;
* **normalized** — ``[0, 1]`` fractions of the source frame, represented
  by :class:`NormalizedPoint`.  Camera centers always live here.

Both are ``NamedTuple`` subclasses so they unpack like plain ``(x, y)``
pairs but stay distinct in signatures.  When the compositor pads the
frame (overscan), a third "output" space stretches the padded canvas
back onto ``[0, 1]``; the helpers at the bottom convert in and out of it.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional


class SourcePoint(NamedTuple):
    """A position in source pixels."""
    x: float
    y: float


class NormalizedPoint(NamedTuple):
    """A position as fractions of the source frame."""
    x: float
    y: float


CENTER = NormalizedPoint(0.5, 0.5)


@dataclass(frozen=True)
class Overscan:
    """Allowed margin beyond each frame edge, as a fraction of the draw size."""
    left: float = 0.0
    right: float = 0.0
    top: float = 0.0
    bottom: float = 0.0

    @property
    def denom_x(self) -> float:
        return 1.0 + self.left + self.right

    @property
    def denom_y(self) -> float:
        return 1.0 + self.top + self.bottom

    @property
    def fill_scale(self) -> float:
        """Scale that hides the padding entirely."""
        return max(self.denom_x, self.denom_y)

    @property
    def is_zero(self) -> bool:
        return self.left <= 0 and self.right <= 0 and self.top <= 0 and self.bottom <= 0

    @staticmethod
    def from_dict(d: Optional[dict]) -> "Overscan":
        if not d:
            return NO_OVERSCAN
        return Overscan(
            left=d.get("left", 0.0),
            right=d.get("right", 0.0),
            top=d.get("top", 0.0),
            bottom=d.get("bottom", 0.0),
        )


NO_OVERSCAN = Overscan()


def to_normalized(point: SourcePoint, width: float, height: float) -> NormalizedPoint:
    """Convert source pixels to normalized coordinates.

    Zero or negative dimensions have no meaningful mapping; the frame
    center is returned instead.
    """
    if width <= 0 or height <= 0:
        return CENTER
    return NormalizedPoint(point.x / width, point.y / height)


def to_source(point: NormalizedPoint, width: float, height: float) -> SourcePoint:
    """Convert normalized coordinates back to source pixels."""
    return SourcePoint(point.x * width, point.y * height)


def normalized_distance(
    x1: float, y1: float, x2: float, y2: float, width: float, height: float,
) -> float:
    """Euclidean distance between two source-pixel points, per axis normalized."""
    if width <= 0 or height <= 0:
        return 0.0
    dx = (x1 - x2) / width
    dy = (y1 - y2) / height
    return math.sqrt(dx * dx + dy * dy)


# ── Overscan (output space) ─────────────────────────────────────────

def to_output_space(point: NormalizedPoint, overscan: Overscan) -> NormalizedPoint:
    """Map a source-normalized point onto the padded output canvas."""
    return NormalizedPoint(
        (overscan.left + point.x) / overscan.denom_x,
        (overscan.top + point.y) / overscan.denom_y,
    )


def from_output_space(point: NormalizedPoint, overscan: Overscan) -> NormalizedPoint:
    """Inverse of :func:`to_output_space`."""
    return NormalizedPoint(
        point.x * overscan.denom_x - overscan.left,
        point.y * overscan.denom_y - overscan.top,
    )


def clamp_to_overscan_bounds(point: NormalizedPoint, overscan: Overscan) -> NormalizedPoint:
    """Clamp into ``[-left, 1 + right] × [-top, 1 + bottom]``."""
    return NormalizedPoint(
        max(-overscan.left, min(1.0 + overscan.right, point.x)),
        max(-overscan.top, min(1.0 + overscan.bottom, point.y)),
    )


# ── Device mockups ──────────────────────────────────────────────────

@dataclass(frozen=True)
class ScreenRect:
    """Pixel rectangle of a device mockup's screen inside the output frame."""
    x: float
    y: float
    width: float
    height: float


def map_to_mockup_screen(
    point: NormalizedPoint,
    screen: ScreenRect,
    output_width: float,
    output_height: float,
) -> NormalizedPoint:
    """Remap a frame-normalized point into the mockup's screen rectangle."""
    if output_width <= 0 or output_height <= 0:
        return point

    def _frac(v: float, total: float) -> float:
        return max(0.0, min(1.0, v / total))

    sx = _frac(screen.x, output_width)
    sy = _frac(screen.y, output_height)
    sw = _frac(screen.width, output_width)
    sh = _frac(screen.height, output_height)
    return NormalizedPoint(sx + point.x * sw, sy + point.y * sh)
