"""Tests for camera.camera — per-frame camera state."""

import math

import pytest

from camera.camera import (
    cinematic_smoothing_at,
    compute_camera_state,
    normalize_smoothing_amount,
    precompute_camera_path,
    source_dimensions,
)
from camera.config import DEFAULT_INTRO_MS, DEFAULT_OUTRO_MS, FROZEN_TAU_MULTIPLIER, TAU_MIN_S
from camera.coordinates import NormalizedPoint, Overscan
from camera.cursor_geometry import cursor_margins_norm
from camera.framing import cursor_fully_visible, get_half_windows
from camera.models import CameraPhysicsState, Effect, EffectType, MouseEvent, RecordingMetadata
from camera.mouse_trail import MouseTrail
from camera.zoom_engine import CameraCache

from conftest import SCREEN_H, SCREEN_W, cursor_effect, still_track, zoom_effect

# Cursor rests here from 4s on (see idle_then_sweep_track)
RESTING = NormalizedPoint(1500 / SCREEN_W, 800 / SCREEN_H)


def _annotation(start: float, end: float, **data) -> Effect:
    return Effect(id="note", type=EffectType.ANNOTATION, start_time=start, end_time=end, data=data)


# ── Inputs ──────────────────────────────────────────────────────────


class TestSmoothingInputs:
    @pytest.mark.parametrize("value, expected", [
        (None, 0.0),
        (0, 0.0),
        (0.5, 50.0),
        (1, 100.0),
        (35, 35.0),
        (150, 100.0),
        (-3, 0.0),
        (float("nan"), 0.0),
    ])
    def test_normalize(self, value, expected: float) -> None:
        assert normalize_smoothing_amount(value) == pytest.approx(expected)

    def test_cinematic_annotation_default(self) -> None:
        effects = [_annotation(0, 1000, kind="scrollCinematic")]
        assert cinematic_smoothing_at(effects, 500) == 20.0

    def test_cinematic_annotation_value(self) -> None:
        effects = [_annotation(0, 1000, kind="scrollCinematic", smoothing=60)]
        assert cinematic_smoothing_at(effects, 500) == 60.0
        assert cinematic_smoothing_at(effects, 1500) == 0.0

    def test_other_annotations_ignored(self) -> None:
        assert cinematic_smoothing_at([_annotation(0, 1000, kind="text")], 500) == 0.0


class TestSourceDimensions:
    def test_capture_size_wins(self) -> None:
        trail = MouseTrail([MouseEvent(x=0, y=0, timestamp=0, screen_width=1920, screen_height=1080,
                                       capture_width=1280, capture_height=720)])
        assert source_dimensions(trail, 0, None) == (1280, 720)

    def test_screen_size(self) -> None:
        trail = MouseTrail([MouseEvent(x=0, y=0, timestamp=0, screen_width=2560, screen_height=1440)])
        assert source_dimensions(trail, 0, None) == (2560, 1440)

    def test_metadata_fallback(self, sweep_recording: RecordingMetadata) -> None:
        trail = MouseTrail(sweep_recording.mouse_events)
        assert source_dimensions(trail, 0, sweep_recording) == (SCREEN_W, SCREEN_H)

    def test_nothing_known(self) -> None:
        assert source_dimensions(MouseTrail([]), 0, None) == (0.0, 0.0)


# ── Degenerate input ────────────────────────────────────────────────


class TestDegenerateInput:
    def test_no_blocks_is_centered(self, sweep_recording) -> None:
        state = compute_camera_state([], 500, 500, metadata=sweep_recording, deterministic=True)
        assert state.active_zoom_block is None
        assert state.zoom_scale == 1.0
        assert state.zoom_center == (0.5, 0.5)

    def test_no_metadata(self) -> None:
        state = compute_camera_state([zoom_effect(0, 5000)], 2000, 2000)
        assert state.zoom_scale == 1.0
        assert state.zoom_center == (0.5, 0.5)

    def test_zero_dimensions(self) -> None:
        rec = RecordingMetadata(id="r", width=0, height=0, duration=1000,
                                mouse_events=[MouseEvent(x=5, y=5, timestamp=0)])
        state = compute_camera_state([zoom_effect(0, 5000)], 2000, 2000, metadata=rec)
        assert state.zoom_center == (0.5, 0.5)
        assert state.zoom_scale == 1.0

    def test_output_size_stands_in_for_source(self) -> None:
        state = compute_camera_state([zoom_effect(0, 5000, followStrategy="center")], 2000, 2000,
                                     output_width=1920, output_height=1080, deterministic=True)
        assert state.zoom_scale == 2.0
        assert state.zoom_center == (0.5, 0.5)

    def test_no_mouse_data_centers(self) -> None:
        rec = RecordingMetadata(id="r", width=1920, height=1080, duration=5000, mouse_events=[])
        state = compute_camera_state([zoom_effect(0, 5000)], 2000, 2000, metadata=rec,
                                     deterministic=True)
        assert state.zoom_scale == 2.0
        assert state.zoom_center == pytest.approx((0.5, 0.5))

    def test_null_timings_evaluate(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 3000, introMs=None, outroMs=None)]
        for deterministic in (True, False):
            state = compute_camera_state(effects, 1500, 1500, metadata=sweep_recording,
                                         deterministic=deterministic)
            assert state.active_zoom_block.intro_ms == DEFAULT_INTRO_MS
            assert state.active_zoom_block.outro_ms == DEFAULT_OUTRO_MS
            assert 1.0 <= state.zoom_scale <= 2.0
            assert math.isfinite(state.zoom_center.x) and math.isfinite(state.zoom_center.y)

    def test_invalid_effect_ignored(self, sweep_recording) -> None:
        state = compute_camera_state([zoom_effect(0, 5000, scale=-2)], 2000, 2000,
                                     metadata=sweep_recording, deterministic=True)
        assert state.active_zoom_block is None
        assert state.zoom_scale == 1.0


# ── Strategies ──────────────────────────────────────────────────────


class TestFollowStrategies:
    def test_hold_scale(self, sweep_recording) -> None:
        state = compute_camera_state([zoom_effect(1000, 9000, 2.0)], 6000, 6000,
                                     metadata=sweep_recording, deterministic=True)
        assert state.zoom_scale == 2.0
        assert state.active_zoom_block.id == "zoom-1000"

    def test_center_lock(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000, followStrategy="center")]
        for deterministic in (True, False):
            state = compute_camera_state(effects, 6000, 6000, metadata=sweep_recording,
                                         deterministic=deterministic)
            assert state.zoom_center == (0.5, 0.5)

    def test_manual_target(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000, followStrategy="manual", targetX=600, targetY=400,
                               screenWidth=1920, screenHeight=1080)]
        state = compute_camera_state(effects, 6000, 6000, metadata=sweep_recording,
                                     deterministic=True)
        assert state.zoom_center.x == pytest.approx(600 / 1920)
        assert state.zoom_center.y == pytest.approx(400 / 1080)

    def test_manual_target_clamped(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000, followStrategy="manual", targetX=0, targetY=0)]
        state = compute_camera_state(effects, 6000, 6000, metadata=sweep_recording,
                                     deterministic=True)
        assert state.zoom_center == pytest.approx((0.25, 0.25))

    def test_manual_without_target_centers(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000, followStrategy="manual")]
        state = compute_camera_state(effects, 6000, 6000, metadata=sweep_recording,
                                     deterministic=True)
        assert state.zoom_center == (0.5, 0.5)

    def test_mouse_follow_moves_toward_cursor(self, sweep_recording) -> None:
        state = compute_camera_state([zoom_effect(1000, 9000)], 6000, 6000,
                                     metadata=sweep_recording, deterministic=True)
        assert state.zoom_center.x > 0.6
        assert state.zoom_center.y > 0.6
        hx, hy = get_half_windows(state.zoom_scale, SCREEN_W, SCREEN_H)
        assert cursor_fully_visible(state.zoom_center, RESTING, hx, hy)

    def test_fill_scale_hides_overscan(self, sweep_recording) -> None:
        ov = Overscan(left=0.1, right=0.1, top=0.05, bottom=0.05)
        state = compute_camera_state([zoom_effect(1000, 9000, autoScale="fill")], 6000, 6000,
                                     metadata=sweep_recording, overscan=ov, deterministic=True)
        assert state.zoom_scale == pytest.approx(1.2)
        assert state.zoom_center == (0.5, 0.5)

    def test_force_follow_cursor(self, sweep_recording) -> None:
        state = compute_camera_state([zoom_effect(1000, 9000)], 2000, 2000,
                                     metadata=sweep_recording, force_follow_cursor=True,
                                     deterministic=True)
        # centroid of the dwell around (400, 300)
        assert state.zoom_center.x == pytest.approx(400 / SCREEN_W, abs=1e-3)
        assert state.zoom_center.y == pytest.approx(300 / SCREEN_H, abs=1e-3)

    def test_before_block_is_unzoomed(self, sweep_recording) -> None:
        state = compute_camera_state([zoom_effect(5000, 9000)], 2000, 2000,
                                     metadata=sweep_recording, deterministic=True)
        assert state.active_zoom_block is None
        assert state.zoom_scale == 1.0


# ── Export (deterministic) ──────────────────────────────────────────


class TestDeterminism:
    def test_independent_of_physics(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000)]
        a = compute_camera_state(effects, 3500, 3500, CameraPhysicsState(),
                                 metadata=sweep_recording, deterministic=True)
        b = compute_camera_state(effects, 3500, 3500,
                                 CameraPhysicsState(x=0.1, y=0.9, last_time_ms=100,
                                                    frozen_target_x=0.2, frozen_target_y=0.2),
                                 metadata=sweep_recording, deterministic=True)
        assert a.zoom_center == b.zoom_center
        assert a.zoom_scale == b.zoom_scale

    def test_path_repeatable(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000), cursor_effect()]
        first = precompute_camera_path(effects, sweep_recording, 10000, fps=30)
        second = precompute_camera_path(effects, sweep_recording, 10000, fps=30,
                                        cache=CameraCache())
        assert [(s.zoom_scale, s.zoom_center) for s in first] == \
            [(s.zoom_scale, s.zoom_center) for s in second]

    def test_frame_count(self, sweep_recording) -> None:
        assert len(precompute_camera_path([], sweep_recording, 1000, fps=60)) == 61
        assert precompute_camera_path([], sweep_recording, 1000, fps=0) == []

    def test_path_ignores_deterministic_argument(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000)]
        plain = precompute_camera_path(effects, sweep_recording, 2000, fps=30)
        passed = precompute_camera_path(effects, sweep_recording, 2000, fps=30, deterministic=False)
        assert [s.zoom_center for s in passed] == [s.zoom_center for s in plain]

    def test_path_scale_envelope(self, sweep_recording) -> None:
        path = precompute_camera_path([zoom_effect(1000, 9000, 2.0)], sweep_recording, 10000, fps=30)
        scales = [s.zoom_scale for s in path]
        assert scales[0] == 1.0
        assert max(scales) == 2.0
        assert scales[-1] == 1.0

    def test_physics_carries_no_freeze_state(self, sweep_recording) -> None:
        state = compute_camera_state([zoom_effect(1000, 9000)], 6000, 6000,
                                     metadata=sweep_recording, deterministic=True)
        assert state.physics.frozen_target is None
        assert state.physics.cursor_stopped_at_ms is None
        assert state.physics.last_time_ms == 6000


class TestBoundedness:
    @pytest.mark.parametrize("overscan", [
        Overscan(),
        Overscan(left=0.1, right=0.1, top=0.1, bottom=0.1),
        Overscan(left=0.3, right=0.0, top=0.0, bottom=0.2),
    ])
    @pytest.mark.parametrize("deterministic", [True, False])
    def test_center_within_bounds(self, sweep_recording, overscan, deterministic) -> None:
        effects = [
            zoom_effect(500, 3500, 3.0),
            zoom_effect(4000, 7000, 0.5),
            zoom_effect(7500, 9500, 2.5, followStrategy="manual", targetX=1900, targetY=5),
            cursor_effect(),
        ]
        cache = CameraCache()
        physics = CameraPhysicsState()
        for i in range(0, 10000, 16):
            state = compute_camera_state(effects, i, i, physics, metadata=sweep_recording,
                                         overscan=overscan, deterministic=deterministic,
                                         cache=cache)
            physics = state.physics
            assert state.zoom_scale >= 1.0
            c = state.zoom_center
            assert -overscan.left - 1e-9 <= c.x <= 1.0 + overscan.right + 1e-9
            assert -overscan.top - 1e-9 <= c.y <= 1.0 + overscan.bottom + 1e-9
            assert math.isfinite(c.x) and math.isfinite(c.y)


class TestVisibility:
    def test_cursor_glyph_stays_visible(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000, 2.0), cursor_effect(2.0)]
        trail = MouseTrail(sweep_recording.mouse_events)
        path = precompute_camera_path(effects, sweep_recording, 10000, fps=30)
        for i, state in enumerate(path):
            t = i * 1000.0 / 30
            p = trail.position_at(t)
            cursor = NormalizedPoint(p.x / SCREEN_W, p.y / SCREEN_H)
            hx, hy = get_half_windows(state.zoom_scale, SCREEN_W, SCREEN_H)
            margins = cursor_margins_norm("default", 2.0, SCREEN_W, SCREEN_H, hx, hy)
            assert cursor_fully_visible(state.zoom_center, cursor, hx, hy, margins, tolerance=1e-6), \
                f"cursor hidden at frame {i} ({t:.0f}ms)"


class TestDwellRegions:
    @pytest.fixture
    def hover_recording(self) -> RecordingMetadata:
        """Cursor wobbling ±10px around screen center for 2s, then parked far away."""
        track = [MouseEvent(x=960 + (10 if i % 2 else -10), y=540, timestamp=i * 16.0)
                 for i in range(125)]
        track += still_track(1500, 800, 2000, 4000)
        return RecordingMetadata(id="hover", width=SCREEN_W, height=SCREEN_H,
                                 duration=4000, mouse_events=track)

    def _cursor_at(self, recording: RecordingMetadata, t: float) -> NormalizedPoint:
        return compute_camera_state([zoom_effect(0, 4000)], t, t, metadata=recording,
                                    force_follow_cursor=True, deterministic=True).zoom_center

    def test_holds_on_centroid(self, hover_recording) -> None:
        p = self._cursor_at(hover_recording, 1008)  # raw cursor at x=970
        assert p.x == pytest.approx(0.5, abs=1e-3)
        assert p.y == pytest.approx(0.5)

    def test_hold_outlasts_departure(self, hover_recording) -> None:
        assert self._cursor_at(hover_recording, 2100).x == pytest.approx(0.5, abs=1e-3)
        parked = self._cursor_at(hover_recording, 2400)
        assert parked.x == pytest.approx(1500 / SCREEN_W)
        assert parked.y == pytest.approx(800 / SCREEN_H)


# ── Preview (interactive) ───────────────────────────────────────────


class TestSeek:
    def test_seek_snaps_regardless_of_history(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000)]
        a = compute_camera_state(effects, 6000, 6000,
                                 CameraPhysicsState(x=0.2, y=0.2, last_time_ms=0),
                                 metadata=sweep_recording)
        b = compute_camera_state(effects, 6000, 6000,
                                 CameraPhysicsState(x=0.8, y=0.3, last_time_ms=9000,
                                                    last_source_time_ms=100,
                                                    cursor_stopped_at_ms=50,
                                                    frozen_target_x=0.1, frozen_target_y=0.1),
                                 metadata=sweep_recording)
        assert a.zoom_center == b.zoom_center
        assert a.physics.x == a.zoom_center.x
        assert a.physics.frozen_target == b.physics.frozen_target

    def test_seek_lands_on_target(self, sweep_recording) -> None:
        state = compute_camera_state([zoom_effect(1000, 9000)], 6000, 6000,
                                     CameraPhysicsState(x=0.5, y=0.5, last_time_ms=1000),
                                     metadata=sweep_recording)
        # resting cursor, clamped so the 0.25 half window stays on screen
        assert state.zoom_center.x == pytest.approx(0.75)
        assert state.zoom_center.y == pytest.approx(RESTING.y, abs=1e-3)

    def test_first_evaluation_snaps(self, sweep_recording) -> None:
        fresh = compute_camera_state([zoom_effect(1000, 9000)], 6000, 6000,
                                     metadata=sweep_recording)
        seeked = compute_camera_state([zoom_effect(1000, 9000)], 6000, 6000,
                                      CameraPhysicsState(last_time_ms=0), metadata=sweep_recording)
        assert fresh.zoom_center == seeked.zoom_center


class TestInteractiveSmoothing:
    def _run(self, recording, effects, start: float, end: float, physics: CameraPhysicsState):
        states = []
        for t in range(int(start), int(end), 16):
            state = compute_camera_state(effects, t, t, physics, metadata=recording)
            physics = state.physics
            states.append(state)
        return states

    def test_eases_instead_of_jumping(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000)]
        physics = CameraPhysicsState(x=0.5, y=0.5, last_time_ms=4984, last_source_time_ms=4984)
        states = self._run(sweep_recording, effects, 5000, 7000, physics)
        xs = [s.zoom_center.x for s in states]
        assert xs[0] < 0.55
        assert xs[-1] > 0.6
        assert all(b >= a - 1e-9 for a, b in zip(xs, xs[1:]))
        assert max(b - a for a, b in zip(xs, xs[1:])) < 0.05

    def test_freeze_is_carried(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000)]
        first = compute_camera_state(effects, 6000, 6000, metadata=sweep_recording)
        assert first.physics.frozen_target is not None
        assert first.physics.cursor_stopped_at_ms is not None
        second = compute_camera_state(effects, 6016, 6016, first.physics, metadata=sweep_recording)
        assert second.physics.frozen_target == first.physics.frozen_target
        assert second.physics.cursor_stopped_at_ms == first.physics.cursor_stopped_at_ms

    def test_no_freeze_while_moving(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000)]
        states = self._run(sweep_recording, effects, 3200, 3800,
                           CameraPhysicsState(last_time_ms=3184, last_source_time_ms=3184))
        assert all(s.physics.frozen_target is None for s in states)

    def test_center_lock_pins(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000, followStrategy="center")]
        physics = CameraPhysicsState(x=0.7, y=0.7, last_time_ms=5984, last_source_time_ms=5984)
        state = compute_camera_state(effects, 6000, 6000, physics, metadata=sweep_recording)
        assert state.zoom_center == (0.5, 0.5)

    def test_paused_playback_holds(self, sweep_recording) -> None:
        effects = [zoom_effect(1000, 9000)]
        physics = CameraPhysicsState(x=0.6, y=0.6, last_time_ms=6000, last_source_time_ms=6000)
        state = compute_camera_state(effects, 6000, 6000, physics, metadata=sweep_recording)
        assert state.zoom_center == pytest.approx((0.6, 0.6))

    def test_cinematic_smoothing_slows_camera(self, sweep_recording) -> None:
        base = [zoom_effect(1000, 9000)]
        smooth = base + [_annotation(0, 10000, kind="scrollCinematic", smoothing=100)]
        physics = CameraPhysicsState(x=0.5, y=0.5, last_time_ms=4984, last_source_time_ms=4984)
        fast = self._run(sweep_recording, base, 5000, 5200, physics)[-1]
        slow = self._run(sweep_recording, smooth, 5000, 5200, physics)[-1]
        assert slow.zoom_center.x < fast.zoom_center.x

    # Frozen on the resting cursor: tau = TAU_MIN_S × 3 / rate
    def _step_fraction(self, recording, source_ms: float) -> float:
        effects = [zoom_effect(1000, 9000)]
        target = compute_camera_state(effects, 6000, 6000, metadata=recording,
                                      deterministic=True).zoom_center
        physics = CameraPhysicsState(x=0.5, y=0.5, last_time_ms=5984, last_source_time_ms=5984)
        state = compute_camera_state(effects, 6000, source_ms, physics, metadata=recording)
        assert state.physics.frozen_target is not None
        return (state.zoom_center.x - 0.5) / (target.x - 0.5)

    def test_frozen_triples_tau(self, sweep_recording) -> None:
        fraction = self._step_fraction(sweep_recording, 6000)
        frozen_tau = TAU_MIN_S * FROZEN_TAU_MULTIPLIER
        assert fraction == pytest.approx(1.0 - math.exp(-0.016 / frozen_tau))
        assert fraction < 1.0 - math.exp(-0.016 / TAU_MIN_S)

    def test_fast_playback_shortens_tau(self, sweep_recording) -> None:
        normal = self._step_fraction(sweep_recording, 6000)
        double = self._step_fraction(sweep_recording, 6016)  # 32ms of source per 16ms tick
        assert double > normal
        tau = TAU_MIN_S * FROZEN_TAU_MULTIPLIER / 2.0
        assert double == pytest.approx(1.0 - math.exp(-0.016 / tau))

    def test_playback_rate_clamped(self, sweep_recording) -> None:
        fast = self._step_fraction(sweep_recording, 6144)  # 10x
        tau = TAU_MIN_S * FROZEN_TAU_MULTIPLIER / 3.0
        assert fast == pytest.approx(1.0 - math.exp(-0.016 / tau))
        assert fast == pytest.approx(self._step_fraction(sweep_recording, 6032))

    def _drifting(self, px_per_sample: float) -> RecordingMetadata:
        """Still until 3s, then a slow horizontal drift."""
        track = still_track(960, 540, 0, 3000)
        track += [MouseEvent(x=960 + px_per_sample * k, y=540, timestamp=3000 + 16 * k)
                  for k in range(126)]
        return RecordingMetadata(id="drift", width=SCREEN_W, height=SCREEN_H,
                                 duration=5000, mouse_events=track)

    def _after_freeze(self, recording: RecordingMetadata, carried: bool):
        effects = [zoom_effect(1000, 9000, mouseIdlePx=0)]
        physics = CameraPhysicsState(x=0.5, y=0.5, last_time_ms=3984, last_source_time_ms=3984)
        if carried:
            physics = CameraPhysicsState(x=0.5, y=0.5, last_time_ms=3984, last_source_time_ms=3984,
                                         cursor_stopped_at_ms=1000,
                                         frozen_target_x=0.4, frozen_target_y=0.45)
        return compute_camera_state(effects, 4000, 4000, physics, metadata=recording)

    def test_hysteresis_holds_freeze(self) -> None:
        # 0.1px per 16ms sample is ~1.3x the stop velocity
        slow = self._drifting(0.1)
        held = self._after_freeze(slow, carried=True)
        assert held.physics.frozen_target == NormalizedPoint(0.4, 0.45)
        assert held.physics.cursor_stopped_at_ms == 1000
        assert self._after_freeze(slow, carried=False).physics.frozen_target is None

    def test_hysteresis_releases_above_band(self) -> None:
        # 0.2px per sample is ~2.6x the stop velocity
        released = self._after_freeze(self._drifting(0.2), carried=True)
        assert released.physics.frozen_target is None
