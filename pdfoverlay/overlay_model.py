"""Pending (not yet committed) text annotations placed on the page surface."""
import dataclasses
from typing import List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from pdfoverlay import data_store
from pdfoverlay.models import Annotation, DragState, EditorSettings, new_annotation_id

MIN_BOX_WIDTH = 20.0
MIN_BOX_HEIGHT = 12.0


class OverlayModel(QObject):
    """Ordered set of annotations.

    Creation order is preserved: it is the z-order on screen and the draw
    order on commit.  Updates addressed to an unknown id are ignored.
    """

    annotations_changed = Signal()

    def __init__(self, settings: Optional[EditorSettings] = None, parent=None):
        super().__init__(parent)
        self._settings = settings or EditorSettings()
        self._annotations: List[Annotation] = []

    def set_settings(self, settings: EditorSettings):
        self._settings = settings

    # ── Queries ───────────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._annotations)

    def annotations(self) -> Tuple[Annotation, ...]:
        return tuple(self._annotations)

    def snapshot(self) -> List[Annotation]:
        """Independent copies of the current annotations, in creation order."""
        return [dataclasses.replace(a) for a in self._annotations]

    def get(self, ann_id: str) -> Optional[Annotation]:
        for ann in self._annotations:
            if ann.id == ann_id:
                return ann
        return None

    def _lookup(self, ann_id: str, op: str) -> Optional[Annotation]:
        ann = self.get(ann_id)
        if ann is None:
            data_store.dbg(f"{op}: no annotation with id {ann_id!r}, ignored")
        return ann

    # ── Mutations ─────────────────────────────────────────────────────────────

    def create_annotation(self, screen_x: float, screen_y: float) -> Annotation:
        ann = Annotation(
            id=new_annotation_id(),
            text=self._settings.default_text,
            x=float(screen_x),
            y=float(screen_y),
            width=float(self._settings.box_width),
            height=float(self._settings.box_height),
        )
        self._annotations.append(ann)
        data_store.dbg(f"Annotation {ann.id} created at ({ann.x:.1f}, {ann.y:.1f})")
        self.annotations_changed.emit()
        return ann

    def update_text(self, ann_id: str, text: str):
        ann = self._lookup(ann_id, "update_text")
        if ann is None or ann.text == text:
            return
        ann.text = text
        self.annotations_changed.emit()

    def move_annotation(self, ann_id: str, x: float, y: float):
        ann = self._lookup(ann_id, "move_annotation")
        if ann is None:
            return
        ann.x, ann.y = float(x), float(y)
        self.annotations_changed.emit()

    def resize_annotation(self, ann_id: str, width: float, height: float):
        ann = self._lookup(ann_id, "resize_annotation")
        if ann is None:
            return
        ann.width = max(MIN_BOX_WIDTH, float(width))
        ann.height = max(MIN_BOX_HEIGHT, float(height))
        self.annotations_changed.emit()

    def begin_drag(self, ann_id: str, pointer_on_text_input: bool = False) -> bool:
        """Start dragging *ann_id*; return whether the drag actually started.

        A press that lands on the text-input surface belongs to text
        selection and never starts a drag.
        """
        if pointer_on_text_input:
            return False
        ann = self._lookup(ann_id, "begin_drag")
        if ann is None:
            return False
        ann.drag_state = DragState.DRAGGING
        return True

    def drag_to(self, ann_id: str, x: float, y: float):
        ann = self.get(ann_id)
        if ann is None or ann.drag_state is not DragState.DRAGGING:
            return
        ann.x, ann.y = float(x), float(y)
        self.annotations_changed.emit()

    def end_drag(self, ann_id: str):
        ann = self._lookup(ann_id, "end_drag")
        if ann is None:
            return
        ann.drag_state = DragState.IDLE

    def clear(self):
        if self._annotations:
            self._annotations = []
            self.annotations_changed.emit()
