"""Pointer interaction state machine for one page surface.

Input: pointer down/move/up events, double and secondary activations on
existing annotations. Output: mutation intents handed to ``commit``.

States::

    Idle ──down on background, tool=rect──▶ Drawing ──up──▶ Idle  (rect-create)
    Idle ──down on annotation, any tool──▶ Dragging ──up──▶ Idle  (drag-update)
    Idle ──down+up within epsilon, tool=pin, on background──▶ Idle  (pin-create)

The pointer that starts a gesture owns it: events from any other pointer
are ignored until the owner's pointer-up (or ``cancel``) releases it.

Text entry and confirmation are asynchronous. The machine is back in Idle
as soon as the pointer goes up; the pending create/update is committed when
the collaborator answers, or dropped when it answers None / False.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from proof_viewer import gestures
from proof_viewer.autoscroll import AutoScrollController, Scheduler, Scroller
from proof_viewer.geometry import clamp_position, normalize, rect_from_corners
from proof_viewer.models import (
    PIN, RECT, TOOL_RECT, TOOL_SELECT, TOOLS,
    Annotation, CreateAnnotation, PointerEvent, RemoveAnnotation, SurfaceRect, UpdateAnnotation,
)

logger = logging.getLogger(__name__)

PIN_CREATE = "pin-create"
RECT_CREATE = "rect-create"
DRAG_UPDATE = "drag-update"
NOOP = gestures.NOOP

PIN_PROMPT = "Comment:"
RECT_PROMPT = "Note:"
EDIT_PROMPT = "Edit note:"
DELETE_PROMPT = "Delete this annotation?"


class TextEntry:
    def request_text(self, prompt: str, initial: str,
                     on_result: Callable[[Optional[str]], None]) -> None:
        """Ask for a text and call *on_result* with it, or with None if cancelled."""
        raise NotImplementedError


class Confirmation:
    def confirm(self, prompt: str, on_result: Callable[[bool], None]) -> None:
        raise NotImplementedError


@dataclass
class Idle:
    pass


@dataclass
class Drawing:
    x0: float
    y0: float
    x1: float
    y1: float


@dataclass
class Dragging:
    target_id: str
    target_type: str
    origin_x: float
    origin_y: float
    w: float
    h: float
    down_x: float
    down_y: float
    x: float    # current clamped position
    y: float


State = Union[Idle, Drawing, Dragging]
Intent = Union[CreateAnnotation, UpdateAnnotation, RemoveAnnotation]


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _new_annotation_id() -> str:
    return str(uuid.uuid4())


class InteractionStateMachine:
    def __init__(
        self,
        page: int,
        surface_rect: Callable[[], SurfaceRect],
        commit: Callable[[Intent], None],
        text_entry: TextEntry,
        confirmation: Confirmation,
        scheduler: Optional[Scheduler] = None,
        scroller: Optional[Scroller] = None,
        tool: str = TOOL_SELECT,
        read_only: bool = False,
        clock: Callable[[], int] = _epoch_ms,
        id_factory: Callable[[], str] = _new_annotation_id,
    ):
        self.page = page
        self.read_only = read_only
        self.state: State = Idle()
        self._tool = TOOL_SELECT
        self.set_tool(tool)
        self._surface_rect = surface_rect
        self._commit = commit
        self._text_entry = text_entry
        self._confirmation = confirmation
        self._clock = clock
        self._id_factory = id_factory
        self._classifier = gestures.GestureClassifier()
        self._owner: Optional[int] = None
        self._down_on_background = False
        self.autoscroll: Optional[AutoScrollController] = None
        if scheduler is not None:
            self.autoscroll = AutoScrollController(scheduler, scroller, self.is_gesture_active)

    # ── Public state ──────────────────────────────────────────────────────────

    @property
    def tool(self) -> str:
        return self._tool

    def set_tool(self, tool: str) -> None:
        if tool not in TOOLS:
            raise ValueError(f"Unknown tool: {tool!r}")
        self._tool = tool

    @property
    def owner(self) -> Optional[int]:
        return self._owner

    def is_gesture_active(self) -> bool:
        return isinstance(self.state, (Drawing, Dragging))

    @property
    def ghost(self) -> Optional[Tuple[float, float, float, float]]:
        """Live *(x, y, w, h)* of the rectangle being drawn, for rendering only."""
        if isinstance(self.state, Drawing):
            s = self.state
            return rect_from_corners(s.x0, s.y0, s.x1, s.y1)
        return None

    @property
    def preview(self) -> Optional[Tuple[str, float, float]]:
        """*(annotation_id, x, y)* of the shape being dragged, for rendering only."""
        if isinstance(self.state, Dragging):
            return self.state.target_id, self.state.x, self.state.y
        return None

    # ── Pointer input ─────────────────────────────────────────────────────────

    def pointer_down(self, event: PointerEvent) -> None:
        if self._owner is not None:
            logger.debug("page %d: pointer %d ignored, gesture owned by %d",
                         self.page, event.pointer_id, self._owner)
            return
        x, y = normalize(event, self._surface_rect())
        self._owner = event.pointer_id
        self._down_on_background = event.target is None
        self._classifier.begin(event.pointer_id, x, y)
        if self.read_only:
            return

        target = event.target
        if target is not None:
            # Dragging an existing shape never doubles as a click-create.
            self._classifier.mark_moved(event.pointer_id)
            self.state = Dragging(
                target_id=target.id,
                target_type=target.type,
                origin_x=target.x,
                origin_y=target.y,
                w=target.w or 0.0,
                h=target.h or 0.0,
                down_x=x,
                down_y=y,
                x=target.x,
                y=target.y,
            )
        elif self._tool == TOOL_RECT:
            self.state = Drawing(x, y, x, y)
        else:
            return
        self._start_autoscroll(event)

    def pointer_move(self, event: PointerEvent) -> None:
        if self._owner is None or event.pointer_id != self._owner:
            return
        x, y = normalize(event, self._surface_rect())
        self._classifier.track(event.pointer_id, x, y)
        if self.autoscroll is not None:
            self.autoscroll.update_pointer(event.client_y)
        self._follow(x, y)

    def pointer_up(self, event: PointerEvent) -> str:
        """End the owner's gesture and return its single outcome."""
        if self._owner is None or event.pointer_id != self._owner:
            return NOOP
        x, y = normalize(event, self._surface_rect())
        self._follow(x, y)
        state = self.state
        kind = self._classifier.classify(
            event.pointer_id,
            self._tool,
            on_background=self._down_on_background,
            dragging=isinstance(state, Dragging),
            drawing=isinstance(state, Drawing),
        )
        self._release()

        if self.read_only:
            return NOOP
        if kind == gestures.CLICK_CREATE:
            self._create_pin(x, y)
            return PIN_CREATE
        if kind == gestures.DRAG_COMMIT:
            # A press and release in place (first half of a double-click) saves nothing
            if (state.x, state.y) != (state.origin_x, state.origin_y):
                self._emit(UpdateAnnotation(self.page, state.target_id, {"x": state.x, "y": state.y}))
            return DRAG_UPDATE
        if kind == gestures.DRAW_COMMIT:
            self._create_rect(state)
            return RECT_CREATE
        return NOOP

    def cancel(self) -> None:
        """Abort the active gesture without committing anything."""
        if self._owner is not None:
            logger.debug("page %d: gesture of pointer %d cancelled", self.page, self._owner)
        self._classifier.reset()
        self._release()

    # ── Activations on existing annotations ───────────────────────────────────

    def double_activate(self, target: Annotation) -> None:
        if self.read_only or self._owner is not None:
            return

        def _on_text(text: Optional[str]):
            if text is None:
                return
            self._emit(UpdateAnnotation(self.page, target.id, {"text": text}))

        self._text_entry.request_text(EDIT_PROMPT, target.text, _on_text)

    def secondary_activate(self, target: Annotation) -> None:
        if self.read_only or self._owner is not None:
            return

        def _on_answer(confirmed: bool):
            if confirmed:
                self._emit(RemoveAnnotation(self.page, target.id))

        self._confirmation.confirm(DELETE_PROMPT, _on_answer)

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _follow(self, x: float, y: float) -> None:
        s = self.state
        if isinstance(s, Drawing):
            s.x1, s.y1 = x, y
        elif isinstance(s, Dragging):
            s.x, s.y = clamp_position(
                s.target_type,
                s.origin_x + (x - s.down_x),
                s.origin_y + (y - s.down_y),
                s.w, s.h,
            )

    def _release(self) -> None:
        self.state = Idle()
        self._owner = None
        self._down_on_background = False
        if self.autoscroll is not None:
            self.autoscroll.stop()

    def _start_autoscroll(self, event: PointerEvent) -> None:
        if self.autoscroll is None:
            return
        self.autoscroll.update_pointer(event.client_y)
        self.autoscroll.start()

    def _create_pin(self, x: float, y: float) -> None:
        def _on_text(text: Optional[str]):
            if text is None:
                logger.debug("page %d: pin creation cancelled", self.page)
                return
            self._emit(CreateAnnotation(self.page, Annotation(
                id=self._id_factory(), type=PIN, x=x, y=y,
                text=text, created_at=self._clock(),
            )))

        self._text_entry.request_text(PIN_PROMPT, "", _on_text)

    def _create_rect(self, drawing: Drawing) -> None:
        x, y, w, h = rect_from_corners(drawing.x0, drawing.y0, drawing.x1, drawing.y1)

        def _on_text(text: Optional[str]):
            if text is None:
                logger.debug("page %d: rect creation cancelled", self.page)
                return
            self._emit(CreateAnnotation(self.page, Annotation(
                id=self._id_factory(), type=RECT, x=x, y=y, w=w, h=h,
                text=text, created_at=self._clock(),
            )))

        self._text_entry.request_text(RECT_PROMPT, "", _on_text)

    def _emit(self, intent: Intent) -> None:
        logger.debug("page %d: commit %s", self.page, type(intent).__name__)
        self._commit(intent)
