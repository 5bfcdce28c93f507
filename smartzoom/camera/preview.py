"""Preview camera driver — feeds the interactive camera from the player.

Each player (main preview, ambient glow, …) owns one
:class:`CameraPreviewDriver`, and with it one physics state, so two views
of the same project never fight over smoothing history.  The driver is
called from the GUI thread on every animation tick or scrub and emits
``camera_changed(scale, x, y)`` for the compositor to pick up.
"""

import logging
from typing import List, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from .camera import compute_camera_state
from .coordinates import Overscan, ScreenRect
from .models import CameraPhysicsState, CameraState, Effect, RecordingMetadata
from .zoom_engine import CameraCache

logger = logging.getLogger(__name__)


class CameraPreviewDriver(QObject):
    """Owns the interactive camera state for one player."""

    camera_changed = Signal(float, float, float)  # scale, center x, center y

    def __init__(
        self,
        cache: Optional[CameraCache] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._cache = cache or CameraCache()
        self._effects: List[Effect] = []
        self._metadata: Optional[RecordingMetadata] = None
        self._physics = CameraPhysicsState()
        self._state: Optional[CameraState] = None
        self.output_width: Optional[float] = None
        self.output_height: Optional[float] = None
        self.overscan: Optional[Overscan] = None
        self.mockup_screen: Optional[ScreenRect] = None
        self.force_follow_cursor = False

    # ── project ─────────────────────────────────────────────────────

    def set_project(self, effects: Sequence[Effect], metadata: Optional[RecordingMetadata]) -> None:
        """Switch to a new effects list / recording and start from rest."""
        self._effects = list(effects)
        if metadata is not self._metadata:
            self._metadata = metadata
            self.reset()

    def set_effects(self, effects: Sequence[Effect]) -> None:
        """Replace the effects after an edit, keeping the camera where it is."""
        self._effects = list(effects)

    @property
    def physics(self) -> CameraPhysicsState:
        return self._physics

    @property
    def state(self) -> Optional[CameraState]:
        """The last computed camera state, or None before the first tick."""
        return self._state

    # ── playback ────────────────────────────────────────────────────

    def tick(self, timeline_ms: float, source_time_ms: Optional[float] = None) -> CameraState:
        """Advance the camera to *timeline_ms* and emit the new framing.

        *source_time_ms* defaults to the timeline position (no clip
        remapping).  Large jumps are detected as seeks automatically.
        """
        if source_time_ms is None:
            source_time_ms = timeline_ms
        state = compute_camera_state(
            self._effects,
            timeline_ms,
            source_time_ms,
            self._physics,
            metadata=self._metadata,
            output_width=self.output_width,
            output_height=self.output_height,
            overscan=self.overscan,
            mockup_screen=self.mockup_screen,
            force_follow_cursor=self.force_follow_cursor,
            cache=self._cache,
        )
        self._physics = state.physics
        self._state = state
        self.camera_changed.emit(state.zoom_scale, state.zoom_center.x, state.zoom_center.y)
        return state

    def seek(self, timeline_ms: float, source_time_ms: Optional[float] = None) -> CameraState:
        """Jump to *timeline_ms*; the camera lands on its target without easing."""
        logger.debug("Camera seek to %.0fms", timeline_ms)
        self._physics = CameraPhysicsState(x=self._physics.x, y=self._physics.y)
        return self.tick(timeline_ms, source_time_ms)

    def reset(self) -> None:
        """Forget all smoothing history and recenter."""
        self._physics = CameraPhysicsState()
        self._state = None
