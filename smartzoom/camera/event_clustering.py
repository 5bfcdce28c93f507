"""Group raw input events into the moments worth zooming on.

Three detectors feed the action scorer:

1. **Click clusters** — a click joins the open cluster when it lands
   within ``click_cluster_window_ms`` of the cluster's last click *and*
   within ``cluster_spatial_threshold`` (normalized) of its running
   centroid.  Each click is also classified as *deliberate* when the
   cursor was idle and hovering on the target just before it.

2. **Typing bursts** — keystrokes no more than ``typing_burst_window_ms``
   apart form one burst; short bursts are ignored.

3. **Scroll stops** — scroll runs separated by a pause; a run that
   covered enough distance marks the moment the user stopped to read.
"""

import logging
from typing import List, NamedTuple, Sequence

from .config import (
    ActionZoomConfig,
    DEFAULT_CONFIG,
    ACTIVITY_FULL_SCALE_PX,
    HOVER_MIN_SAMPLES,
    HOVER_NEAR_DISTANCE,
    HOVER_NEAR_FRACTION,
    SCROLL_STOP_GAP_MS,
    SCROLL_STOP_MIN_DISTANCE,
)
from .coordinates import normalized_distance
from .models import ClickCluster, ClickEvent, KeyEvent, ScrollEvent
from .mouse_trail import MouseTrail

logger = logging.getLogger(__name__)


class TypingBurst(NamedTuple):
    start_time: float
    end_time: float
    key_count: int

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class ScrollStop(NamedTuple):
    timestamp: float
    total_distance: float


# ── Clicks ──────────────────────────────────────────────────────────

def mouse_activity_before(trail: MouseTrail, timestamp: float, window_ms: float) -> float:
    """Mouse activity in ``[timestamp - window, timestamp)`` on a 0-1 scale.

    Path length divided by 100 px, capped at 1.  Fewer than two samples
    means the cursor did not move at all.
    """
    return min(1.0, trail.path_length(timestamp - window_ms, timestamp) / ACTIVITY_FULL_SCALE_PX)


def hovered_before_click(
    trail: MouseTrail,
    click: ClickEvent,
    width: float,
    height: float,
    config: ActionZoomConfig = DEFAULT_CONFIG,
) -> bool:
    """True when most of the cursor samples just before *click* sat on its target."""
    xs, ys = trail.samples_between(click.timestamp - config.hover_before_click_ms, click.timestamp)
    if len(xs) < HOVER_MIN_SAMPLES:
        return False
    near = sum(
        1 for x, y in zip(xs, ys)
        if normalized_distance(x, y, click.x, click.y, width, height) < HOVER_NEAR_DISTANCE
    )
    return near / len(xs) >= HOVER_NEAR_FRACTION


def is_deliberate_click(
    click: ClickEvent,
    trail: MouseTrail,
    width: float,
    height: float,
    config: ActionZoomConfig = DEFAULT_CONFIG,
) -> bool:
    """A click is deliberate when the cursor paused and hovered on the target first."""
    idle = mouse_activity_before(trail, click.timestamp, config.deliberate_pause_ms) \
        < config.deliberate_activity_threshold
    return idle and hovered_before_click(trail, click, width, height, config)


def cluster_click_events(
    clicks: Sequence[ClickEvent],
    trail: MouseTrail,
    width: float,
    height: float,
    config: ActionZoomConfig = DEFAULT_CONFIG,
) -> List[ClickCluster]:
    """Split *clicks* into temporal + spatial clusters, in order."""
    clusters: List[ClickCluster] = []
    current: ClickCluster | None = None

    for click in clicks:
        deliberate = is_deliberate_click(click, trail, width, height, config)
        if current is not None:
            close_in_time = click.timestamp - current.end_time <= config.click_cluster_window_ms
            close_in_space = normalized_distance(
                click.x, click.y, current.center_x, current.center_y, width, height,
            ) <= config.cluster_spatial_threshold
            if close_in_time and close_in_space:
                current.add(click, deliberate)
                continue
            clusters.append(current)
        current = ClickCluster(clicks=[click], deliberate=deliberate)

    if current is not None:
        clusters.append(current)

    logger.debug("Clustered %d clicks into %d clusters", len(clicks), len(clusters))
    return clusters


def cluster_triggers_zoom(cluster: ClickCluster, config: ActionZoomConfig = DEFAULT_CONFIG) -> bool:
    return len(cluster.clicks) >= config.min_clicks_to_trigger or cluster.deliberate


# ── Keyboard ────────────────────────────────────────────────────────

def detect_typing_bursts(
    keys: Sequence[KeyEvent], config: ActionZoomConfig = DEFAULT_CONFIG,
) -> List[TypingBurst]:
    """Runs of keystrokes with small gaps, at least ``min_keys_in_burst`` long."""
    bursts: List[TypingBurst] = []
    if len(keys) < config.min_keys_in_burst:
        return bursts

    start = end = keys[0].timestamp
    count = 1
    for key in keys[1:]:
        if key.timestamp - end <= config.typing_burst_window_ms:
            end = key.timestamp
            count += 1
            continue
        if count >= config.min_keys_in_burst:
            bursts.append(TypingBurst(start, end, count))
        start = end = key.timestamp
        count = 1

    if count >= config.min_keys_in_burst:
        bursts.append(TypingBurst(start, end, count))
    return bursts


# ── Scroll ──────────────────────────────────────────────────────────

def detect_scroll_stops(scrolls: Sequence[ScrollEvent]) -> List[ScrollStop]:
    """Moments where a sufficiently long scroll run came to rest.

    A run ends at a pause longer than 500 ms (or at the end of the
    stream); its stop is reported at the run's last event.
    """
    stops: List[ScrollStop] = []
    if not scrolls:
        return stops

    def _flush(last_time: float, distance: float) -> None:
        if distance > SCROLL_STOP_MIN_DISTANCE:
            stops.append(ScrollStop(last_time, distance))

    distance = abs(scrolls[0].delta_x) + abs(scrolls[0].delta_y)
    last_time = scrolls[0].timestamp
    for event in scrolls[1:]:
        if event.timestamp - last_time > SCROLL_STOP_GAP_MS:
            _flush(last_time, distance)
            distance = 0.0
        distance += abs(event.delta_x) + abs(event.delta_y)
        last_time = event.timestamp
    _flush(last_time, distance)
    return stops
