"""Shared pytest fixtures for SmartZoom tests."""

from typing import List

import pytest

from camera.models import (
    ClickEvent,
    Effect,
    EffectType,
    KeyEvent,
    MouseEvent,
    RecordingMetadata,
    ZoomBlock,
)


# ── Screen ──────────────────────────────────────────────────────────

SCREEN_W = 1920
SCREEN_H = 1080


@pytest.fixture
def screen() -> tuple:
    """A 1920×1080 capture."""
    return SCREEN_W, SCREEN_H


# ── Mouse track helpers ────────────────────────────────────────────

def still_track(x: float, y: float, start: float, end: float, step: float = 16.0) -> List[MouseEvent]:
    """Samples at a fixed position from *start* up to (not including) *end*."""
    n = int((end - start) / step)
    return [MouseEvent(x=x, y=y, timestamp=start + i * step) for i in range(n)]


def line_track(x0: float, y0: float, x1: float, y1: float,
               start: float, end: float, step: float = 16.0) -> List[MouseEvent]:
    """Samples moving linearly from (x0, y0) to (x1, y1)."""
    n = int((end - start) / step)
    out = []
    for i in range(n + 1):
        f = i / n
        out.append(MouseEvent(x=x0 + (x1 - x0) * f, y=y0 + (y1 - y0) * f, timestamp=start + i * step))
    return out


@pytest.fixture
def simple_mouse_track() -> List[MouseEvent]:
    """Short straight-line mouse track (20 samples, 320ms)."""
    return [
        MouseEvent(x=100.0 + i * 10, y=200.0, timestamp=i * 16.0)
        for i in range(20)
    ]


@pytest.fixture
def idle_then_sweep_track() -> List[MouseEvent]:
    """Cursor parked at (400, 300) for 3s, then sweeps right over 1s and rests."""
    track = still_track(400, 300, 0, 3000)
    track += line_track(400, 300, 1500, 800, 3000, 4000)[1:]
    track += still_track(1500, 800, 4016, 10000)
    return track


# ── Key / click event helpers ──────────────────────────────────────

@pytest.fixture
def typing_burst() -> List[KeyEvent]:
    """Rapid typing burst at ~3s (20 keys over 1s)."""
    return [KeyEvent(timestamp=3000.0 + i * 50) for i in range(20)]


@pytest.fixture
def click_cluster() -> List[ClickEvent]:
    """Three clicks within a few pixels over 900ms."""
    return [
        ClickEvent(x=100, y=100, timestamp=0),
        ClickEvent(x=102, y=101, timestamp=400),
        ClickEvent(x=99, y=103, timestamp=900),
    ]


# ── Effects ─────────────────────────────────────────────────────────

def zoom_effect(start: float, end: float, scale: float = 2.0, **data) -> Effect:
    """A zoom effect as the timeline stores it."""
    payload = {"scale": scale, "origin": "manual"}
    payload.update(data)
    return Effect(id=f"zoom-{int(start)}", type=EffectType.ZOOM,
                  start_time=start, end_time=end, data=payload)


def cursor_effect(size: float = 2.0) -> Effect:
    return Effect(id="cursor", type=EffectType.CURSOR, start_time=0,
                  end_time=10 ** 9, data={"size": size})


@pytest.fixture
def sweep_recording(idle_then_sweep_track: List[MouseEvent]) -> RecordingMetadata:
    """10s recording built on :func:`idle_then_sweep_track`."""
    return RecordingMetadata(
        id="rec-sweep",
        width=SCREEN_W,
        height=SCREEN_H,
        duration=10000,
        mouse_events=idle_then_sweep_track,
        click_events=[ClickEvent(x=400, y=300, timestamp=2500)],
    )


@pytest.fixture
def sample_block() -> ZoomBlock:
    return ZoomBlock(id="zb-1", start_time=1000, end_time=5000, scale=2.0,
                     target_x=960, target_y=540, screen_width=1920, screen_height=1080)
