"""Vectorized queries over a recorded mouse track.

:class:`MouseTrail` copies the timestamps and positions of a list of
:class:`MouseEvent` samples into numpy arrays once, so the per-frame
queries the camera makes (interpolated position, trailing averages,
velocity, "when did the cursor last move") are a ``searchsorted`` plus
a few array ops instead of Python loops over the whole track.

Samples are assumed to be in timestamp order, which is how the
trackers record them.
"""

import math
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .config import (
    CINEMATIC_SAMPLES,
    MOTION_CLUSTER_HOLD_MS,
    MOTION_CLUSTER_MIN_DURATION_MS,
    MOTION_CLUSTER_RADIUS_RATIO,
    VELOCITY_WINDOW_MS,
)
from .coordinates import SourcePoint
from .models import MouseEvent


class CursorVelocity(NamedTuple):
    velocity: float  # normalized units per second
    stopped_since_ms: Optional[float]  # end of the last above-jitter move


class MotionCluster(NamedTuple):
    """A stretch of the track where the cursor lingered near one spot."""
    start_time: float
    end_time: float
    x: float  # centroid, source pixels
    y: float


class MouseTrail:
    """Read-only numpy view of a mouse track."""

    def __init__(self, events: Sequence[MouseEvent]) -> None:
        self.events: List[MouseEvent] = list(events)
        n = len(self.events)
        self._t = np.fromiter((e.timestamp for e in self.events), dtype=np.float64, count=n)
        self._x = np.fromiter((e.x for e in self.events), dtype=np.float64, count=n)
        self._y = np.fromiter((e.y for e in self.events), dtype=np.float64, count=n)
        # jitter threshold → running "last real movement" time per sample
        self._last_move: Dict[float, np.ndarray] = {}
        # (width, height) → dwell regions and their end times
        self._clusters: Dict[Tuple[float, float], Tuple[List[MotionCluster], np.ndarray]] = {}

    def __len__(self) -> int:
        return len(self.events)

    @property
    def empty(self) -> bool:
        return len(self.events) == 0

    # ── point lookups ───────────────────────────────────────────────

    def position_at(self, time_ms: float) -> Optional[SourcePoint]:
        """Linearly interpolated position, held at the ends of the track."""
        if self.empty:
            return None
        return SourcePoint(
            float(np.interp(time_ms, self._t, self._x)),
            float(np.interp(time_ms, self._t, self._y)),
        )

    def index_at_or_before(self, time_ms: float) -> int:
        """Index of the last sample with ``timestamp <= time_ms``, or -1."""
        return int(np.searchsorted(self._t, time_ms, side="right")) - 1

    def event_at(self, time_ms: float) -> Optional[MouseEvent]:
        """The sample in effect at *time_ms* (the first one before the track starts)."""
        if self.empty:
            return None
        idx = self.index_at_or_before(time_ms)
        return self.events[max(idx, 0)]

    def first_at_or_after(self, time_ms: float) -> Optional[MouseEvent]:
        """First sample at or after *time_ms*, or the last sample if none."""
        if self.empty:
            return None
        idx = int(np.searchsorted(self._t, time_ms, side="left"))
        return self.events[min(idx, len(self.events) - 1)]

    # ── windows ─────────────────────────────────────────────────────

    def _window(self, start_ms: float, end_ms: float) -> slice:
        lo = int(np.searchsorted(self._t, start_ms, side="left"))
        hi = int(np.searchsorted(self._t, end_ms, side="left"))
        return slice(lo, hi)

    def samples_between(self, start_ms: float, end_ms: float) -> Tuple[np.ndarray, np.ndarray]:
        """Positions of samples with ``start_ms <= timestamp < end_ms``."""
        w = self._window(start_ms, end_ms)
        return self._x[w], self._y[w]

    def timestamps_between(self, start_ms: float, end_ms: float) -> np.ndarray:
        return self._t[self._window(start_ms, end_ms)]

    def path_length(self, start_ms: float, end_ms: float) -> float:
        """Total distance travelled (pixels) by samples in ``[start, end)``."""
        xs, ys = self.samples_between(start_ms, end_ms)
        if len(xs) < 2:
            return 0.0
        return float(np.hypot(np.diff(xs), np.diff(ys)).sum())

    # ── smoothed positions ──────────────────────────────────────────

    def cinematic_position(
        self, time_ms: float, window_ms: float, samples: int = CINEMATIC_SAMPLES,
    ) -> Optional[SourcePoint]:
        """Average of *samples* interpolated positions over the trailing window."""
        if self.empty:
            return None
        ts = time_ms - np.arange(samples) * (window_ms / samples)
        return SourcePoint(
            float(np.interp(ts, self._t, self._x).mean()),
            float(np.interp(ts, self._t, self._y).mean()),
        )

    def exponentially_smoothed(
        self, time_ms: float, tau_ms: float, window_ms: float,
    ) -> Optional[SourcePoint]:
        """Exponentially weighted average of the trailing samples.

        Weights fall off as ``exp(-age / tau)``; the interpolated position
        at *time_ms* itself always takes part with weight 1.  Depends only
        on the track and *time_ms*, so export frames are reproducible.
        """
        now = self.position_at(time_ms)
        if now is None:
            return None
        w = self._window(time_ms - window_ms, time_ms)
        ages = time_ms - self._t[w]
        weights = np.exp(-ages / max(tau_ms, 1e-6))
        total = 1.0 + float(weights.sum())
        sx = now.x + float((weights * self._x[w]).sum())
        sy = now.y + float((weights * self._y[w]).sum())
        return SourcePoint(sx / total, sy / total)

    # ── dwell regions ───────────────────────────────────────────────

    def motion_clusters(self, width: float, height: float) -> List[MotionCluster]:
        """Dwell regions of the track for a *width* × *height* screen.

        Samples are walked in order; each joins the current region while it
        stays within ``MOTION_CLUSTER_RADIUS_RATIO`` of the screen diagonal
        from the region's running centroid.  Regions shorter than
        ``MOTION_CLUSTER_MIN_DURATION_MS`` are dropped.
        """
        return self._cluster_index(width, height)[0]

    def _cluster_index(self, width: float, height: float) -> Tuple[List[MotionCluster], np.ndarray]:
        key = (float(width), float(height))
        cached = self._clusters.get(key)
        if cached is not None:
            return cached

        radius = math.hypot(width, height) * MOTION_CLUSTER_RADIUS_RATIO
        clusters: List[MotionCluster] = []
        start = 0
        sum_x = sum_y = 0.0

        def close(first: int, last: int) -> None:
            count = last - first + 1
            if self._t[last] - self._t[first] >= MOTION_CLUSTER_MIN_DURATION_MS:
                clusters.append(MotionCluster(
                    float(self._t[first]), float(self._t[last]), sum_x / count, sum_y / count,
                ))

        for i in range(len(self.events)):
            x, y = float(self._x[i]), float(self._y[i])
            if i > start:
                count = i - start
                if math.hypot(x - sum_x / count, y - sum_y / count) > radius:
                    close(start, i - 1)
                    start, sum_x, sum_y = i, 0.0, 0.0
            sum_x += x
            sum_y += y
        if len(self.events):
            close(start, len(self.events) - 1)

        ends = np.fromiter((c.end_time for c in clusters), dtype=np.float64, count=len(clusters))
        self._clusters[key] = (clusters, ends)
        return clusters, ends

    def active_cluster(
        self, time_ms: float, width: float, height: float, hold_ms: float = MOTION_CLUSTER_HOLD_MS,
    ) -> Optional[MotionCluster]:
        """The dwell region covering *time_ms*, held for *hold_ms* after it ends."""
        if self.empty or width <= 0 or height <= 0:
            return None
        clusters, ends = self._cluster_index(width, height)
        idx = int(np.searchsorted(ends + hold_ms, time_ms, side="left"))
        if idx >= len(clusters):
            return None
        c = clusters[idx]
        if c.start_time <= time_ms <= c.end_time + hold_ms:
            return c
        return None

    # ── motion ──────────────────────────────────────────────────────

    def _last_move_times(self, jitter_px: float) -> np.ndarray:
        """Per sample: end time of the latest step longer than *jitter_px*."""
        cached = self._last_move.get(jitter_px)
        if cached is not None:
            return cached
        steps = np.hypot(np.diff(self._x), np.diff(self._y))
        ends = np.where(steps > jitter_px, self._t[1:], -np.inf)
        last = np.maximum.accumulate(np.concatenate(([-np.inf], ends)))
        self._last_move[jitter_px] = last
        return last

    def velocity(
        self,
        time_ms: float,
        width: float,
        height: float,
        jitter_px: float,
        window_ms: float = VELOCITY_WINDOW_MS,
    ) -> CursorVelocity:
        """Cursor speed over the trailing window, ignoring sub-jitter steps.

        Returns the speed in normalized units per second together with the
        time the cursor last made a real (above-jitter) move.  When it never
        moved, that time is the start of the track.
        """
        if self.empty or width <= 0 or height <= 0:
            return CursorVelocity(0.0, None)
        idx = self.index_at_or_before(time_ms)
        if idx < 0:
            return CursorVelocity(0.0, float(self._t[0]))

        lo = int(np.searchsorted(self._t, time_ms - window_ms, side="left"))
        xs = self._x[lo:idx + 1]
        ys = self._y[lo:idx + 1]
        speed = 0.0
        if len(xs) >= 2:
            dx = np.diff(xs)
            dy = np.diff(ys)
            moving = np.hypot(dx, dy) > jitter_px
            dist = np.hypot(dx[moving] / width, dy[moving] / height).sum()
            speed = float(dist) / (window_ms / 1000.0)

        last = float(self._last_move_times(jitter_px)[idx])
        stopped_since = float(self._t[0]) if math.isinf(last) else last
        return CursorVelocity(speed, stopped_since)
