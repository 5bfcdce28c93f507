"""Turn clustered input activity into importance-scored action points.

Importance is a base score per signal plus additive bonuses, capped at 1:

* click cluster — 0.7, +0.2 when deliberate, +0.1 for three or more clicks
* typing burst  — 0.6, +0.2 for the first burst, +0.1 when longer than 2 s
* scroll stop   — 0.4, +0.2 when the run scrolled more than 500 units

Typing and scroll moments have no position of their own; they borrow the
first cursor sample at or after the moment.
"""

import logging
from typing import List, Sequence

from .config import (
    ActionZoomConfig,
    DEFAULT_CONFIG,
    LONG_TYPING_BONUS,
    LONG_TYPING_MS,
    MULTI_CLICK_BONUS,
    MULTI_CLICK_COUNT,
    SCROLL_LARGE_DISTANCE,
)
from .coordinates import SourcePoint
from .event_clustering import (
    cluster_click_events,
    cluster_triggers_zoom,
    detect_scroll_stops,
    detect_typing_bursts,
)
from .models import ActionPoint, ClickEvent, KeyEvent, ScrollEvent
from .mouse_trail import MouseTrail

logger = logging.getLogger(__name__)


def _position_at(trail: MouseTrail, time_ms: float, width: float, height: float) -> SourcePoint:
    event = trail.first_at_or_after(time_ms)
    if event is None:
        return SourcePoint(width / 2, height / 2)
    return SourcePoint(event.x, event.y)


def extract_action_points(
    trail: MouseTrail,
    clicks: Sequence[ClickEvent],
    keys: Sequence[KeyEvent],
    scrolls: Sequence[ScrollEvent],
    width: float,
    height: float,
    config: ActionZoomConfig = DEFAULT_CONFIG,
) -> List[ActionPoint]:
    """Score every click cluster, typing burst and scroll stop, sorted by time."""
    actions: List[ActionPoint] = []

    for cluster in cluster_click_events(clicks, trail, width, height, config):
        if not cluster_triggers_zoom(cluster, config):
            continue
        importance = config.click_importance_base
        if cluster.deliberate:
            importance += config.click_after_pause_bonus
        if len(cluster.clicks) >= MULTI_CLICK_COUNT:
            importance += MULTI_CLICK_BONUS
        single = len(cluster.clicks) == 1
        actions.append(ActionPoint(
            timestamp=cluster.start_time,
            x=cluster.center_x,
            y=cluster.center_y,
            kind="click",
            importance=min(1.0, importance),
            context="deliberateClick" if cluster.deliberate and single else "clickCluster",
            deliberate=cluster.deliberate,
        ))

    for i, burst in enumerate(detect_typing_bursts(keys, config)):
        importance = config.typing_importance_base
        if i == 0:
            importance += config.typing_first_burst_bonus
        if burst.duration > LONG_TYPING_MS:
            importance += LONG_TYPING_BONUS
        pos = _position_at(trail, burst.start_time, width, height)
        actions.append(ActionPoint(
            timestamp=burst.start_time,
            x=pos.x,
            y=pos.y,
            kind="typing-start",
            importance=min(1.0, importance),
            context="typing",
            duration=burst.duration,
        ))

    for stop in detect_scroll_stops(scrolls):
        importance = config.scroll_stop_importance_base
        if stop.total_distance > SCROLL_LARGE_DISTANCE:
            importance += config.scroll_distance_bonus
        pos = _position_at(trail, stop.timestamp, width, height)
        actions.append(ActionPoint(
            timestamp=stop.timestamp,
            x=pos.x,
            y=pos.y,
            kind="scroll-stop",
            importance=min(1.0, importance),
            context="scrollStop",
        ))

    actions.sort(key=lambda a: a.timestamp)
    return actions


def filter_significant(
    actions: Sequence[ActionPoint], config: ActionZoomConfig = DEFAULT_CONFIG,
) -> List[ActionPoint]:
    """Drop action points below ``min_importance_threshold``."""
    kept = [a for a in actions if a.importance >= config.min_importance_threshold]
    if len(kept) < len(actions):
        logger.debug("Dropped %d low-importance actions", len(actions) - len(kept))
    return kept
