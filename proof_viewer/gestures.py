"""Click / drag / draw disambiguation for one pointer gesture."""
from dataclasses import dataclass
from typing import Dict, Optional

from proof_viewer.models import TOOL_PIN

# Movement beyond this fraction of the surface (per axis) turns a click into a drag
MOVE_EPSILON = 0.004

CLICK_CREATE = "click-create"
DRAG_COMMIT = "drag-commit"
DRAW_COMMIT = "draw-commit"
NOOP = "no-op"


@dataclass
class _Track:
    down_x: float
    down_y: float
    moved: bool = False


class GestureClassifier:
    def __init__(self, epsilon: float = MOVE_EPSILON):
        self.epsilon = epsilon
        self._tracks: Dict[int, _Track] = {}

    def begin(self, pointer_id: int, x: float, y: float) -> None:
        self._tracks[pointer_id] = _Track(x, y)

    def track(self, pointer_id: int, x: float, y: float) -> None:
        t = self._tracks.get(pointer_id)
        if t is None or t.moved:
            return
        if abs(x - t.down_x) > self.epsilon or abs(y - t.down_y) > self.epsilon:
            t.moved = True

    def mark_moved(self, pointer_id: int) -> None:
        t = self._tracks.get(pointer_id)
        if t is not None:
            t.moved = True

    def has_moved(self, pointer_id: int) -> bool:
        t = self._tracks.get(pointer_id)
        return t is not None and t.moved

    def classify(
        self,
        pointer_id: int,
        tool: str,
        on_background: bool,
        dragging: bool,
        drawing: bool,
    ) -> str:
        """Classify and forget the gesture of *pointer_id*."""
        t: Optional[_Track] = self._tracks.pop(pointer_id, None)
        if t is None:
            return NOOP
        if not t.moved and tool == TOOL_PIN and on_background:
            return CLICK_CREATE
        if dragging:
            return DRAG_COMMIT
        if drawing:
            return DRAW_COMMIT
        return NOOP

    def reset(self) -> None:
        self._tracks.clear()
