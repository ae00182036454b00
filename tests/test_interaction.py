import random

import pytest

from proof_viewer import interaction
from proof_viewer.autoscroll import EDGE_BAND_PX, SPEED_PX, AutoScrollController, Scheduler, Scroller, TaskHandle
from proof_viewer.interaction import Confirmation, InteractionStateMachine, TextEntry
from proof_viewer.models import (
    PIN, RECT, TOOL_PIN, TOOL_RECT, TOOL_SELECT,
    Annotation, CreateAnnotation, PointerEvent, RemoveAnnotation, SurfaceRect, UpdateAnnotation,
)

SIZE = 1000


class FakeTextEntry(TextEntry):
    def __init__(self):
        self.requests = []

    def request_text(self, prompt, initial, on_result):
        self.requests.append((prompt, initial, on_result))

    def answer(self, text):
        _, _, on_result = self.requests.pop(0)
        on_result(text)


class FakeConfirmation(Confirmation):
    def __init__(self):
        self.requests = []

    def confirm(self, prompt, on_result):
        self.requests.append((prompt, on_result))

    def answer(self, confirmed):
        _, on_result = self.requests.pop(0)
        on_result(confirmed)


class FakeHandle(TaskHandle):
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler(Scheduler):
    def __init__(self):
        self.tasks = []

    def schedule_periodic(self, interval_ms, callback):
        handle = FakeHandle()
        self.tasks.append((handle, callback))
        return handle

    def fire(self):
        for handle, callback in list(self.tasks):
            if not handle.cancelled:
                callback()


class FakeScroller(Scroller):
    def __init__(self, top=0, bottom=SIZE):
        self.bounds = (top, bottom)
        self.scrolled = []

    def viewport_bounds(self):
        return self.bounds

    def scroll_by(self, dy):
        self.scrolled.append(dy)


@pytest.fixture()
def text_entry():
    return FakeTextEntry()


@pytest.fixture()
def confirmation():
    return FakeConfirmation()


@pytest.fixture()
def commits():
    return []


@pytest.fixture()
def make_machine(text_entry, confirmation, commits):
    def _make(**kwargs):
        return InteractionStateMachine(
            1,
            lambda: SurfaceRect(0, 0, SIZE, SIZE),
            commits.append,
            text_entry,
            confirmation,
            clock=lambda: 1234,
            id_factory=lambda: "new-id",
            **kwargs,
        )
    return _make


def at(fx, fy, pointer_id=1, target=None):
    return PointerEvent(pointer_id, fx * SIZE, fy * SIZE, target=target)


# ── Creation and drag scenarios ──────────────────────────────────────────────

def test_draw_rect(make_machine, text_entry, commits):
    m = make_machine(tool=TOOL_RECT)
    m.pointer_down(at(0.10, 0.10))
    m.pointer_move(at(0.25, 0.20))
    assert m.ghost is not None
    m.pointer_move(at(0.40, 0.30))
    assert m.pointer_up(at(0.40, 0.30)) == interaction.RECT_CREATE

    assert text_entry.requests[0][0] == interaction.RECT_PROMPT
    text_entry.answer("Move logo")
    [intent] = commits
    assert isinstance(intent, CreateAnnotation)
    ann = intent.annotation
    assert ann.type == RECT
    assert (ann.x, ann.y) == pytest.approx((0.10, 0.10))
    assert (ann.w, ann.h) == pytest.approx((0.30, 0.20))
    assert ann.text == "Move logo"
    assert ann.id == "new-id"
    assert ann.created_at == 1234
    assert m.ghost is None


def test_click_creates_pin(make_machine, text_entry, commits):
    m = make_machine(tool=TOOL_PIN)
    m.pointer_down(at(0.50, 0.50))
    m.pointer_move(at(0.502, 0.501))
    assert m.pointer_up(at(0.50, 0.50)) == interaction.PIN_CREATE

    text_entry.answer("typo")
    [intent] = commits
    assert intent.annotation.type == PIN
    assert (intent.annotation.x, intent.annotation.y) == (0.5, 0.5)
    assert intent.annotation.w is None


def test_drag_pin(make_machine, commits):
    target = Annotation("p1", PIN, 0.20, 0.20)
    m = make_machine(tool=TOOL_SELECT)
    m.pointer_down(at(0.20, 0.20, target=target))
    m.pointer_move(at(0.30, 0.30))
    assert m.preview == ("p1", pytest.approx(0.30), pytest.approx(0.30))
    assert m.pointer_up(at(0.30, 0.30)) == interaction.DRAG_UPDATE

    [intent] = commits
    assert isinstance(intent, UpdateAnnotation)
    assert intent.annotation_id == "p1"
    assert intent.changes["x"] == pytest.approx(0.30)
    assert intent.changes["y"] == pytest.approx(0.30)


def test_drag_rect_is_clamped(make_machine, commits):
    target = Annotation("r1", RECT, 0.90, 0.50, w=0.20, h=0.10)
    m = make_machine()
    m.pointer_down(at(0.70, 0.55, target=target))
    m.pointer_move(at(0.90, 0.55))
    m.pointer_up(at(0.90, 0.55))

    [intent] = commits
    assert intent.changes["x"] == pytest.approx(0.80)
    assert intent.changes["y"] == pytest.approx(0.50)


def test_press_in_place_on_annotation_saves_nothing(make_machine, text_entry, commits):
    target = Annotation("p1", PIN, 0.5, 0.5)
    m = make_machine(tool=TOOL_PIN)
    m.pointer_down(at(0.5, 0.5, target=target))
    assert m.pointer_up(at(0.5, 0.5)) == interaction.DRAG_UPDATE
    assert text_entry.requests == []
    assert commits == []


def test_nudge_on_annotation_is_saved(make_machine, commits):
    target = Annotation("p1", PIN, 0.5, 0.5)
    m = make_machine(tool=TOOL_PIN)
    m.pointer_down(at(0.5, 0.5, target=target))
    assert m.pointer_up(at(0.502, 0.5)) == interaction.DRAG_UPDATE
    [intent] = commits
    assert intent.changes["x"] == pytest.approx(0.502)


def test_select_tool_on_background_does_nothing(make_machine, text_entry, commits):
    m = make_machine(tool=TOOL_SELECT)
    m.pointer_down(at(0.5, 0.5))
    assert m.pointer_up(at(0.5, 0.5)) == interaction.NOOP
    assert text_entry.requests == []
    assert commits == []


def test_moved_pin_click_is_not_created(make_machine, text_entry):
    m = make_machine(tool=TOOL_PIN)
    m.pointer_down(at(0.5, 0.5))
    m.pointer_move(at(0.6, 0.5))
    assert m.pointer_up(at(0.6, 0.5)) == interaction.NOOP
    assert text_entry.requests == []


# ── Text entry cancellation ──────────────────────────────────────────────────

def test_cancelled_text_drops_creation(make_machine, text_entry, commits):
    m = make_machine(tool=TOOL_PIN)
    m.pointer_down(at(0.5, 0.5))
    assert m.pointer_up(at(0.5, 0.5)) == interaction.PIN_CREATE
    text_entry.answer(None)
    assert commits == []
    assert m.owner is None


def test_empty_text_still_creates(make_machine, text_entry, commits):
    m = make_machine(tool=TOOL_PIN)
    m.pointer_down(at(0.5, 0.5))
    m.pointer_up(at(0.5, 0.5))
    text_entry.answer("")
    assert commits[0].annotation.text == ""


# ── Pointer ownership ────────────────────────────────────────────────────────

def test_second_pointer_is_ignored(make_machine, commits):
    m = make_machine(tool=TOOL_RECT)
    m.pointer_down(at(0.1, 0.1, pointer_id=1))
    m.pointer_down(at(0.8, 0.8, pointer_id=2))
    m.pointer_move(at(0.9, 0.9, pointer_id=2))
    assert m.owner == 1
    assert m.pointer_up(at(0.9, 0.9, pointer_id=2)) == interaction.NOOP
    assert m.owner == 1
    assert m.ghost == (0.1, 0.1, 0.0, 0.0)


def test_cancel_releases_gesture(make_machine, text_entry, commits):
    m = make_machine(tool=TOOL_RECT)
    m.pointer_down(at(0.1, 0.1))
    m.pointer_move(at(0.5, 0.5))
    m.cancel()
    assert m.owner is None
    assert not m.is_gesture_active()
    assert m.pointer_up(at(0.5, 0.5)) == interaction.NOOP
    assert text_entry.requests == []
    assert commits == []


def test_unknown_tool(make_machine):
    m = make_machine()
    with pytest.raises(ValueError):
        m.set_tool("lasso")


# ── Read-only ────────────────────────────────────────────────────────────────

def test_read_only_ignores_gestures(make_machine, text_entry, confirmation, commits):
    target = Annotation("p1", PIN, 0.2, 0.2)
    m = make_machine(tool=TOOL_PIN, read_only=True)
    m.pointer_down(at(0.5, 0.5))
    assert m.pointer_up(at(0.5, 0.5)) == interaction.NOOP
    m.pointer_down(at(0.2, 0.2, target=target))
    m.pointer_move(at(0.4, 0.4))
    assert m.preview is None
    assert m.pointer_up(at(0.4, 0.4)) == interaction.NOOP
    m.double_activate(target)
    m.secondary_activate(target)
    assert text_entry.requests == []
    assert confirmation.requests == []
    assert commits == []


# ── Activations ──────────────────────────────────────────────────────────────

def test_double_activate_edits_text(make_machine, text_entry, commits):
    target = Annotation("p1", PIN, 0.2, 0.2, text="old")
    m = make_machine()
    m.double_activate(target)
    prompt, initial, _ = text_entry.requests[0]
    assert prompt == interaction.EDIT_PROMPT
    assert initial == "old"
    text_entry.answer("new")
    assert commits == [UpdateAnnotation(1, "p1", {"text": "new"})]


def test_double_activate_cancelled(make_machine, text_entry, commits):
    m = make_machine()
    m.double_activate(Annotation("p1", PIN, 0.2, 0.2))
    text_entry.answer(None)
    assert commits == []


def test_secondary_activate_deletes_after_confirmation(make_machine, confirmation, commits):
    target = Annotation("p1", PIN, 0.2, 0.2)
    m = make_machine()
    m.secondary_activate(target)
    confirmation.answer(False)
    assert commits == []
    m.secondary_activate(target)
    confirmation.answer(True)
    assert commits == [RemoveAnnotation(1, "p1")]


def test_activations_suppressed_during_gesture(make_machine, text_entry, confirmation):
    target = Annotation("p1", PIN, 0.2, 0.2)
    m = make_machine(tool=TOOL_RECT)
    m.pointer_down(at(0.5, 0.5))
    m.double_activate(target)
    m.secondary_activate(target)
    assert text_entry.requests == []
    assert confirmation.requests == []


# ── Auto-scroll ──────────────────────────────────────────────────────────────

def test_autoscroll_near_edges(make_machine):
    scheduler, scroller = FakeScheduler(), FakeScroller()
    m = make_machine(tool=TOOL_RECT, scheduler=scheduler, scroller=scroller)
    m.pointer_down(at(0.5, 0.5))
    assert m.autoscroll.running

    scheduler.fire()
    assert scroller.scrolled == []

    m.pointer_move(PointerEvent(1, 500, EDGE_BAND_PX - 1))
    scheduler.fire()
    m.pointer_move(PointerEvent(1, 500, SIZE - EDGE_BAND_PX + 1))
    scheduler.fire()
    assert scroller.scrolled == [-SPEED_PX, SPEED_PX]

    m.pointer_up(PointerEvent(1, 500, SIZE - 1))
    assert not m.autoscroll.running
    assert scheduler.tasks[0][0].cancelled


def test_autoscroll_not_started_without_gesture(make_machine):
    scheduler = FakeScheduler()
    m = make_machine(tool=TOOL_SELECT, scheduler=scheduler, scroller=FakeScroller())
    m.pointer_down(at(0.5, 0.5))
    assert not m.autoscroll.running
    assert scheduler.tasks == []


def test_autoscroll_stops_itself_when_gesture_ends():
    scheduler, scroller = FakeScheduler(), FakeScroller()
    active = [True]
    ctrl = AutoScrollController(scheduler, scroller, lambda: active[0])
    ctrl.start()
    ctrl.start()
    assert len(scheduler.tasks) == 1

    active[0] = False
    ctrl.update_pointer(0)
    scheduler.fire()
    assert not ctrl.running
    assert scheduler.tasks[0][0].cancelled
    assert scroller.scrolled == []


def test_autoscroll_without_scroller():
    scheduler = FakeScheduler()
    ctrl = AutoScrollController(scheduler, None, lambda: True)
    ctrl.start()
    ctrl.update_pointer(0)
    scheduler.fire()
    assert ctrl.running


# ── Properties over random gestures ──────────────────────────────────────────

OUTCOMES = {interaction.PIN_CREATE, interaction.RECT_CREATE, interaction.DRAG_UPDATE, interaction.NOOP}
TOLERANCE = 1e-9


def _client(rng):
    # Pointers may leave the surface on any side.
    return rng.uniform(-0.5 * SIZE, 1.5 * SIZE)


def _random_target(rng):
    if rng.random() < 0.5:
        return Annotation("p", PIN, rng.random(), rng.random())
    w, h = rng.uniform(0.0, 1.0), rng.uniform(0.0, 1.0)
    return Annotation("r", RECT, rng.uniform(0.0, 1.0 - w), rng.uniform(0.0, 1.0 - h), w=w, h=h)


def _assert_on_page(shape_type, x, y, w=None, h=None):
    assert 0.0 <= x and 0.0 <= y
    if shape_type == RECT:
        assert x + w <= 1.0 + TOLERANCE
        assert y + h <= 1.0 + TOLERANCE
    else:
        assert x <= 1.0 and y <= 1.0


@pytest.mark.parametrize("seed", range(40))
def test_drags_stay_on_page(make_machine, commits, seed):
    rng = random.Random(seed)
    target = _random_target(rng)
    m = make_machine(tool=rng.choice([TOOL_SELECT, TOOL_PIN, TOOL_RECT]))
    m.pointer_down(PointerEvent(1, target.x * SIZE, target.y * SIZE, target=target))
    for _ in range(rng.randint(1, 8)):
        m.pointer_move(PointerEvent(1, _client(rng), _client(rng)))
        _, x, y = m.preview
        _assert_on_page(target.type, x, y, target.w, target.h)
    assert m.pointer_up(PointerEvent(1, _client(rng), _client(rng))) == interaction.DRAG_UPDATE
    for intent in commits:
        _assert_on_page(target.type, intent.changes["x"], intent.changes["y"], target.w, target.h)


@pytest.mark.parametrize("seed", range(40))
def test_drawn_rects_stay_on_page(make_machine, text_entry, commits, seed):
    rng = random.Random(seed)
    m = make_machine(tool=TOOL_RECT)
    m.pointer_down(PointerEvent(1, _client(rng), _client(rng)))
    for _ in range(rng.randint(0, 6)):
        m.pointer_move(PointerEvent(1, _client(rng), _client(rng)))
    assert m.ghost is not None
    outcome = m.pointer_up(PointerEvent(1, _client(rng), _client(rng)))
    assert outcome == interaction.RECT_CREATE
    text_entry.answer("note")
    [intent] = commits
    ann = intent.annotation
    _assert_on_page(RECT, ann.x, ann.y, ann.w, ann.h)
    assert ann.w >= 0.0 and ann.h >= 0.0


@pytest.mark.parametrize("seed", range(60))
def test_every_gesture_has_exactly_one_outcome(make_machine, text_entry, confirmation, commits, seed):
    rng = random.Random(seed)
    m = make_machine(
        tool=rng.choice([TOOL_SELECT, TOOL_PIN, TOOL_RECT]),
        read_only=rng.random() < 0.2,
    )
    target = _random_target(rng) if rng.random() < 0.4 else None
    m.pointer_down(PointerEvent(1, _client(rng), _client(rng), target=target))
    for _ in range(rng.randint(0, 5)):
        pointer_id = rng.choice([1, 1, 2])
        if rng.random() < 0.2:
            m.pointer_down(PointerEvent(pointer_id, _client(rng), _client(rng)))
        m.pointer_move(PointerEvent(pointer_id, _client(rng), _client(rng)))
    # A stray release from another pointer never ends the gesture
    assert m.pointer_up(PointerEvent(2, _client(rng), _client(rng))) == interaction.NOOP

    outcome = m.pointer_up(PointerEvent(1, _client(rng), _client(rng)))
    assert outcome in OUTCOMES
    assert m.owner is None
    assert not m.is_gesture_active()
    while text_entry.requests:
        text_entry.answer("text")
    assert confirmation.requests == []

    assert len(commits) <= 1
    if outcome == interaction.PIN_CREATE:
        assert isinstance(commits[0], CreateAnnotation) and commits[0].annotation.type == PIN
    elif outcome == interaction.RECT_CREATE:
        assert isinstance(commits[0], CreateAnnotation) and commits[0].annotation.type == RECT
    elif outcome == interaction.DRAG_UPDATE:
        assert all(isinstance(c, UpdateAnnotation) for c in commits)
    else:
        assert commits == []
    if m.read_only:
        assert outcome == interaction.NOOP
