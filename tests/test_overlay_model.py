import pytest

from pdfoverlay.models import DragState, EditorSettings
from pdfoverlay.overlay_model import MIN_BOX_HEIGHT, MIN_BOX_WIDTH, OverlayModel


@pytest.fixture()
def model(qapp):
    return OverlayModel(EditorSettings(default_text="Type here", box_width=150, box_height=24))


@pytest.fixture()
def changes(model):
    events = []
    model.annotations_changed.connect(lambda: events.append(1))
    return events


def test_create_uses_defaults_and_click_position(model):
    ann = model.create_annotation(100, 200)
    assert (ann.x, ann.y) == (100.0, 200.0)
    assert ann.text == "Type here"
    assert (ann.width, ann.height) == (150.0, 24.0)
    assert ann.drag_state is DragState.IDLE


def test_creation_order_is_preserved(model):
    a = model.create_annotation(1, 1)
    b = model.create_annotation(2, 2)
    c = model.create_annotation(3, 3)
    assert [x.id for x in model.annotations()] == [a.id, b.id, c.id]
    assert len({a.id, b.id, c.id}) == 3
    assert len(model) == 3


def test_update_text_keeps_position(model, changes):
    ann = model.create_annotation(40, 50)
    model.update_text(ann.id, "Hello")
    assert model.get(ann.id).text == "Hello"
    assert (model.get(ann.id).x, model.get(ann.id).y) == (40.0, 50.0)
    assert len(changes) == 2


def test_update_unknown_id_is_silent_noop(model, changes):
    model.create_annotation(1, 1)
    model.update_text("missing", "x")
    model.move_annotation("missing", 5, 5)
    model.resize_annotation("missing", 50, 50)
    model.end_drag("missing")
    assert model.begin_drag("missing") is False
    assert len(changes) == 1   # only the creation


def test_move_and_resize(model):
    ann = model.create_annotation(0, 0)
    model.move_annotation(ann.id, 12.5, 30)
    model.resize_annotation(ann.id, 1, 1)
    got = model.get(ann.id)
    assert (got.x, got.y) == (12.5, 30.0)
    assert (got.width, got.height) == (MIN_BOX_WIDTH, MIN_BOX_HEIGHT)


def test_drag_suppressed_when_press_is_on_text_input(model):
    ann = model.create_annotation(10, 10)
    assert model.begin_drag(ann.id, pointer_on_text_input=True) is False
    assert model.get(ann.id).drag_state is DragState.IDLE
    model.drag_to(ann.id, 99, 99)
    assert (model.get(ann.id).x, model.get(ann.id).y) == (10.0, 10.0)


def test_drag_cycle(model):
    ann = model.create_annotation(10, 10)
    assert model.begin_drag(ann.id) is True
    assert model.get(ann.id).drag_state is DragState.DRAGGING
    model.drag_to(ann.id, 70, 80)
    model.end_drag(ann.id)
    got = model.get(ann.id)
    assert got.drag_state is DragState.IDLE
    assert (got.x, got.y) == (70.0, 80.0)
    model.drag_to(ann.id, 0, 0)   # no longer dragging
    assert (got.x, got.y) == (70.0, 80.0)


def test_snapshot_is_independent(model):
    ann = model.create_annotation(1, 2)
    snap = model.snapshot()
    model.update_text(ann.id, "changed")
    model.create_annotation(3, 4)
    assert len(snap) == 1
    assert snap[0].text == "Type here"


def test_clear(model, changes):
    model.create_annotation(1, 1)
    model.clear()
    assert len(model) == 0
    model.clear()   # already empty: no extra signal
    assert len(changes) == 2
