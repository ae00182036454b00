"""Qt adapters that connect one rendered page to its interaction state machine."""
import logging
from typing import Callable, Optional, Tuple

from PySide6.QtCore import QObject, QPoint, Qt, QTimer
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import QInputDialog, QLabel, QMessageBox, QScrollArea, QWidget

from proof_viewer import annotation_overlay
from proof_viewer.annotation_store import AnnotationStore
from proof_viewer.autoscroll import Scheduler, Scroller, TaskHandle
from proof_viewer.interaction import NOOP, Confirmation, InteractionStateMachine, TextEntry
from proof_viewer.models import Annotation, PointerEvent, SurfaceRect

logger = logging.getLogger(__name__)

# Qt delivers a single mouse; touch input is not routed to the surfaces.
MOUSE_POINTER_ID = 1


# ── Collaborators ─────────────────────────────────────────────────────────────

class _TimerHandle(TaskHandle):
    def __init__(self, timer: QTimer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()
        self._timer.deleteLater()


class QtScheduler(Scheduler):
    def __init__(self, parent: QObject):
        self._parent = parent

    def schedule_periodic(self, interval_ms: int, callback: Callable[[], None]) -> TaskHandle:
        timer = QTimer(self._parent)
        timer.setInterval(interval_ms)
        timer.timeout.connect(callback)
        timer.start()
        return _TimerHandle(timer)


class ScrollAreaScroller(Scroller):
    def __init__(self, area: QScrollArea):
        self._area = area

    def viewport_bounds(self) -> Tuple[float, float]:
        vp = self._area.viewport()
        top = vp.mapToGlobal(QPoint(0, 0)).y()
        return top, top + vp.height()

    def scroll_by(self, dy: int) -> None:
        bar = self._area.verticalScrollBar()
        bar.setValue(bar.value() + dy)


class DialogTextEntry(TextEntry):
    """Window-modal QInputDialog opened without blocking the event loop."""

    def __init__(self, parent: QWidget):
        self._parent = parent

    def request_text(self, prompt: str, initial: str,
                     on_result: Callable[[Optional[str]], None]) -> None:
        dialog = QInputDialog(self._parent)
        dialog.setWindowTitle("Annotation")
        dialog.setInputMode(QInputDialog.InputMode.TextInput)
        dialog.setLabelText(prompt)
        dialog.setTextValue(initial)
        dialog.accepted.connect(lambda: on_result(dialog.textValue()))
        dialog.rejected.connect(lambda: on_result(None))
        dialog.finished.connect(dialog.deleteLater)
        dialog.open()


class DialogConfirmation(Confirmation):
    def __init__(self, parent: QWidget):
        self._parent = parent

    def confirm(self, prompt: str, on_result: Callable[[bool], None]) -> None:
        box = QMessageBox(
            QMessageBox.Icon.Question, "Confirm", prompt,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            self._parent,
        )
        yes = box.button(QMessageBox.StandardButton.Yes)
        box.finished.connect(lambda _result: on_result(box.clickedButton() is yes))
        box.finished.connect(box.deleteLater)
        box.open()


# ── Page surface ──────────────────────────────────────────────────────────────

class AnnotationSurface(QLabel):
    """A rendered page that forwards mouse input to its state machine."""

    def __init__(
        self,
        page: int,
        raw_pixmap: QPixmap,
        store: AnnotationStore,
        text_entry: TextEntry,
        confirmation: Confirmation,
        scheduler: Optional[Scheduler] = None,
        scroller: Optional[Scroller] = None,
        parent: Optional[QWidget] = None,
    ):
        super().__init__(parent)
        self.setMouseTracking(True)
        self._page = page
        self._raw = raw_pixmap
        self._store = store
        self.machine = InteractionStateMachine(
            page,
            self._surface_rect,
            store.apply,
            text_entry,
            confirmation,
            scheduler=scheduler,
            scroller=scroller,
        )
        store.subscribe(self._on_store_changed)
        self.refresh()

    @property
    def page(self) -> int:
        return self._page

    def set_tool(self, tool: str) -> None:
        self.machine.cancel()
        self.machine.set_tool(tool)
        self.refresh()

    def set_read_only(self, read_only: bool) -> None:
        self.machine.cancel()
        self.machine.read_only = read_only
        self.refresh()

    def refresh(self) -> None:
        display = annotation_overlay.draw_annotations(
            self._raw,
            self._store.page(self._page),
            preview=self.machine.preview,
            ghost=self.machine.ghost,
        )
        self.setPixmap(display)
        dpr = display.devicePixelRatio()
        self.setFixedSize(int(display.width() / dpr), int(display.height() / dpr))

    # ── Geometry ──────────────────────────────────────────────────────────────

    def _surface_rect(self) -> SurfaceRect:
        # Read live on every event: the label moves when the page list scrolls.
        origin = self.mapToGlobal(QPoint(0, 0))
        return SurfaceRect(origin.x(), origin.y(), self.width(), self.height())

    def _hit(self, pos) -> Optional[Annotation]:
        w, h = self.width(), self.height()
        if w <= 0 or h <= 0:
            return None
        return annotation_overlay.find_annotation_at(
            self._store.page(self._page), pos.x() / w, pos.y() / h, w, h,
        )

    def _pointer(self, event) -> PointerEvent:
        gp = event.globalPosition()
        return PointerEvent(MOUSE_POINTER_ID, gp.x(), gp.y(), target=self._hit(event.position()))

    # ── Qt events ─────────────────────────────────────────────────────────────

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.machine.pointer_down(self._pointer(event))
            self.refresh()
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self.machine.owner is not None:
            self.machine.pointer_move(self._pointer(event))
            if self.machine.is_gesture_active():
                self.refresh()
        event.accept()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            outcome = self.machine.pointer_up(self._pointer(event))
            if outcome != NOOP:
                logger.debug("page %d: %s", self._page, outcome)
            self.refresh()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            target = self._hit(event.position())
            if target is not None:
                self.machine.double_activate(target)
            event.accept()
            return
        super().mouseDoubleClickEvent(event)

    def contextMenuEvent(self, event):
        target = self._hit(event.pos())
        if target is None:
            super().contextMenuEvent(event)
            return
        self.machine.secondary_activate(target)
        event.accept()

    def _on_store_changed(self, page: int) -> None:
        if page == self._page:
            self.refresh()
