"""Action-based zoom detection.

Pipeline, given a recording's input telemetry:

1. Score action points (click clusters, typing bursts, scroll stops)
   and drop the insignificant ones.
2. Merge nearby actions into :class:`ActionCluster` camera intents.  A
   cluster's target is its most important action, never an average.
3. Cap the zoom count at ``ceil(minutes × max_zooms_per_minute)``,
   keeping the most important clusters.
4. Turn each cluster into a :class:`ZoomBlock` whose scale depends on
   the kind of action and its importance, whose hold stretches over
   follow-up typing or pointing, and whose intro already runs when the
   action happens.
5. Enforce a minimum gap between consecutive zooms.

Click data is required: recordings without clicks produce no zooms.
"""

import logging
import math
from typing import List, Optional, Sequence

from .action_scorer import extract_action_points, filter_significant
from .config import (
    ACTION_CLUSTER_RADIUS,
    ACTIVITY_LOOKAHEAD_MS,
    ActionZoomConfig,
    DEFAULT_CONFIG,
    END_GUARD_MS,
    MOUSE_EXTENSION_CAP_MS,
    MOUSE_EXTENSION_MIN_SAMPLES,
    MOUSE_EXTENSION_RADIUS,
    MOUSE_EXTENSION_TAIL_MS,
    TYPING_EXTENSION_CAP_MS,
    TYPING_EXTENSION_MIN_KEYS,
    TYPING_EXTENSION_TAIL_MS,
)
from .coordinates import normalized_distance
from .models import ActionCluster, ActionPoint, ClickEvent, KeyEvent, MouseEvent, ScrollEvent, ZoomBlock
from .mouse_trail import MouseTrail
from .utils import clamp01, fmt_time_precise, round_half_up

logger = logging.getLogger(__name__)


# ── Clustering ──────────────────────────────────────────────────────

def cluster_action_points(
    actions: Sequence[ActionPoint],
    width: float,
    height: float,
    config: ActionZoomConfig = DEFAULT_CONFIG,
) -> List[ActionCluster]:
    """Fold time-sorted action points into clusters.

    Each point joins the most recent cluster whose last action is within
    ``action_cluster_window_ms`` and whose center is closer than 0.25
    (normalized); otherwise it opens a new cluster.
    """
    clusters: List[ActionCluster] = []
    for action in actions:
        for i in range(len(clusters) - 1, -1, -1):
            cluster = clusters[i]
            cx, cy = cluster.center
            if (action.timestamp - cluster.last.timestamp <= config.action_cluster_window_ms
                    and normalized_distance(action.x, action.y, cx, cy, width, height) < ACTION_CLUSTER_RADIUS):
                clusters[i] = cluster.join(action)
                break
        else:
            clusters.append(ActionCluster.start(action))
    return clusters


def max_zooms_for(duration_ms: float, max_zooms_per_minute: float) -> int:
    return int(math.ceil(duration_ms / 60000.0 * max_zooms_per_minute))


def limit_zoom_frequency(clusters: Sequence[ActionCluster], max_zooms: int) -> List[ActionCluster]:
    """Keep the *max_zooms* most important clusters, in chronological order."""
    if len(clusters) <= max_zooms:
        return list(clusters)
    ranked = sorted(clusters, key=lambda c: c.max_importance, reverse=True)[:max(0, max_zooms)]
    logger.info("Frequency cap: keeping %d of %d zoom candidates", len(ranked), len(clusters))
    return sorted(ranked, key=lambda c: c.start_time)


# ── Block synthesis ─────────────────────────────────────────────────

def _activity_extension(
    cluster: ActionCluster,
    trail: MouseTrail,
    keys: Sequence[KeyEvent],
    width: float,
    height: float,
) -> float:
    """Extra hold time earned by follow-up typing or pointing near the target."""
    start = cluster.start_time
    horizon = start + ACTIVITY_LOOKAHEAD_MS
    keys_after = [k for k in keys if start <= k.timestamp <= horizon]

    extension = 0.0
    if len(keys_after) >= TYPING_EXTENSION_MIN_KEYS:
        extension = min(TYPING_EXTENSION_CAP_MS, keys_after[-1].timestamp - start + TYPING_EXTENSION_TAIL_MS)

    cx, cy = cluster.center
    ts = trail.timestamps_between(start, horizon)
    xs, ys = trail.samples_between(start, horizon)
    near = [
        t for t, x, y in zip(ts, xs, ys)
        if normalized_distance(x, y, cx, cy, width, height) < MOUSE_EXTENSION_RADIUS
    ]
    if len(near) >= MOUSE_EXTENSION_MIN_SAMPLES and len(near) > len(keys_after) * 2:
        extension = max(extension, min(MOUSE_EXTENSION_CAP_MS, float(near[-1]) - start + MOUSE_EXTENSION_TAIL_MS))

    return max(0.0, extension)


def create_zoom_block(
    cluster: ActionCluster,
    width: float,
    height: float,
    duration: float,
    keys: Sequence[KeyEvent] = (),
    trail: Optional[MouseTrail] = None,
    config: ActionZoomConfig = DEFAULT_CONFIG,
) -> ZoomBlock:
    """Build the zoom block for one action cluster."""
    if trail is None:
        trail = MouseTrail([])
    primary = cluster.primary
    importance = cluster.max_importance

    scales = config.scale_range(primary.context or "default")
    threshold = config.min_importance_threshold
    weight = clamp01((importance - threshold) / (1.0 - threshold)) if threshold < 1.0 else 1.0
    scale = round_half_up(scales.min + scales.span * weight, 1)

    intro_ms = config.intro_ms
    outro_ms = config.outro_ms
    hold_ms = config.min_hold_ms + _activity_extension(cluster, trail, keys, width, height)
    desired = intro_ms + hold_ms + outro_ms

    # Land the action inside the intro; near the end, slide earlier instead of truncating.
    max_end = max(1.0, duration - END_GUARD_MS)
    start = max(0.0, primary.timestamp - min(config.anticipation_ms, intro_ms))
    end = start + desired
    if end > max_end:
        end = max_end
        start = max(0.0, end - desired)
    if end <= start:
        start, end = 0.0, max_end

    return ZoomBlock(
        id=f"zoom-action-{int(cluster.start_time)}",
        origin="auto",
        start_time=start,
        end_time=end,
        scale=scale,
        target_x=primary.x,
        target_y=primary.y,
        screen_width=width,
        screen_height=height,
        intro_ms=intro_ms,
        outro_ms=outro_ms,
        importance=importance,
    )


def enforce_minimum_gap(blocks: Sequence[ZoomBlock], min_gap_ms: float) -> List[ZoomBlock]:
    """Space zooms at least *min_gap_ms* apart.

    A block too close to the previously accepted one is dropped, unless
    it zooms deeper, in which case it takes that block's place.
    """
    ordered = sorted(blocks, key=lambda b: b.start_time)
    if len(ordered) < 2:
        return ordered

    result = [ordered[0]]
    for block in ordered[1:]:
        prev = result[-1]
        if block.start_time - prev.end_time >= min_gap_ms:
            result.append(block)
        elif block.scale > prev.scale:
            result[-1] = block
    return result


# ── Entry point ─────────────────────────────────────────────────────

def detect_zoom_blocks(
    mouse_events: Sequence[MouseEvent],
    video_width: float,
    video_height: float,
    duration: float,
    click_events: Optional[Sequence[ClickEvent]] = None,
    key_events: Optional[Sequence[KeyEvent]] = None,
    scroll_events: Optional[Sequence[ScrollEvent]] = None,
    max_zooms_per_minute: Optional[float] = None,
    min_zoom_gap_ms: Optional[float] = None,
    config: ActionZoomConfig = DEFAULT_CONFIG,
) -> List[ZoomBlock]:
    """Propose zoom blocks for a recording.

    Pure: the same telemetry always yields the same blocks (ids included).
    *max_zooms_per_minute* / *min_zoom_gap_ms* override the config for
    this call.
    """
    if not click_events:
        logger.warning("No click events available; zoom detection requires click data")
        return []

    width = (mouse_events[0].screen_width if mouse_events else 0) or video_width
    height = (mouse_events[0].screen_height if mouse_events else 0) or video_height
    if width <= 0 or height <= 0:
        logger.warning("Cannot detect zooms without screen dimensions (%sx%s)", width, height)
        return []

    zooms_per_minute = config.max_zooms_per_minute if max_zooms_per_minute is None else max_zooms_per_minute
    min_gap = config.min_zoom_gap_ms if min_zoom_gap_ms is None else min_zoom_gap_ms
    keys = list(key_events or [])
    trail = MouseTrail(mouse_events)

    logger.info(
        "Analyzing: %d mouse samples, %d clicks, %d keys, %d scrolls, duration=%.0fms",
        len(trail), len(click_events), len(keys), len(scroll_events or []), duration,
    )

    actions = extract_action_points(
        trail, click_events, keys, scroll_events or [], width, height, config,
    )
    if not actions:
        logger.warning("No action points extracted from events")
        return []

    significant = filter_significant(actions, config)
    if not significant:
        logger.warning("No significant actions found above importance threshold")
        return []

    clusters = cluster_action_points(significant, width, height, config)
    limited = limit_zoom_frequency(clusters, max_zooms_for(duration, zooms_per_minute))
    blocks = [create_zoom_block(c, width, height, duration, keys, trail, config) for c in limited]
    result = enforce_minimum_gap(blocks, min_gap)

    logger.info(
        "Detected %d zoom blocks from %d actions in %d clusters",
        len(result), len(significant), len(clusters),
    )
    for block in result:
        logger.info(
            "  %s → %s  scale=%.1f  importance=%.2f",
            fmt_time_precise(block.start_time), fmt_time_precise(block.end_time),
            block.scale, block.importance or 0.0,
        )
    return result
