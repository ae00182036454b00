"""Edge auto-scroll while a draw or drag gesture is in progress."""
from typing import Callable, Optional, Tuple

EDGE_BAND_PX = 36
SPEED_PX = 18
FRAME_INTERVAL_MS = 16


class TaskHandle:
    def cancel(self) -> None:
        raise NotImplementedError


class Scheduler:
    """Runs *callback* every *interval_ms* until the returned handle is cancelled."""

    def schedule_periodic(self, interval_ms: int, callback: Callable[[], None]) -> TaskHandle:
        raise NotImplementedError


class Scroller:
    def viewport_bounds(self) -> Tuple[float, float]:
        """Return *(top, bottom)* of the scrollable viewport in pointer coordinates."""
        raise NotImplementedError

    def scroll_by(self, dy: int) -> None:
        raise NotImplementedError


class AutoScrollController:
    def __init__(
        self,
        scheduler: Scheduler,
        scroller: Optional[Scroller],
        is_active: Callable[[], bool],
        edge: int = EDGE_BAND_PX,
        speed: int = SPEED_PX,
        interval_ms: int = FRAME_INTERVAL_MS,
    ):
        self._scheduler = scheduler
        self._scroller = scroller
        self._is_active = is_active
        self.edge = edge
        self.speed = speed
        self.interval_ms = interval_ms
        self.pointer_y: float = 0.0
        self._task: Optional[TaskHandle] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def update_pointer(self, y: float) -> None:
        self.pointer_y = y

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = self._scheduler.schedule_periodic(self.interval_ms, self.tick)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def tick(self) -> None:
        if not self._is_active():
            self.stop()
            return
        if self._scroller is None:
            return
        top, bottom = self._scroller.viewport_bounds()
        dy = 0
        if self.pointer_y < top + self.edge:
            dy = -self.speed
        elif self.pointer_y > bottom - self.edge:
            dy = self.speed
        if dy:
            self._scroller.scroll_by(dy)
