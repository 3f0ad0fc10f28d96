"""Annotation overlay: geometry and painting of pending text boxes.

All positions are page-surface pixels, the same space the annotations are
stored in.  Each box is a frame with a drag grip on its left edge; the
text editor widget sits inside the frame, right of the grip.
"""
from typing import Optional, Sequence

from PySide6.QtCore import QRect, Qt
from PySide6.QtGui import QColor, QPainter, QPen

from pdfoverlay.models import Annotation, DragState

GRIP_WIDTH = 8      # px, left strip of the frame used to drag the box
_TEXT_PAD = 2       # px between frame and editor
_GRIP_DOTS = 3

_BOX_FILL = QColor(255, 255, 0, 96)
_BOX_BORDER = QColor(120, 120, 120)
_GRIP_COLOUR = QColor(70, 130, 230, 200)
_DRAG_BORDER = QColor(70, 130, 230)


def box_rect(ann: Annotation) -> QRect:
    """Frame of *ann* in page-surface pixels."""
    return QRect(round(ann.x), round(ann.y), round(ann.width), round(ann.height))


def grip_rect(ann: Annotation) -> QRect:
    r = box_rect(ann)
    return QRect(r.left(), r.top(), GRIP_WIDTH, r.height())


def editor_rect(ann: Annotation) -> QRect:
    """Where the text editor for *ann* goes, inside the frame."""
    r = box_rect(ann)
    return r.adjusted(GRIP_WIDTH, _TEXT_PAD, -_TEXT_PAD, -_TEXT_PAD)


def find_annotation_at(annotations: Sequence[Annotation], x: float, y: float) -> int:
    """Index of the topmost annotation whose frame contains *(x, y)*, or -1.

    Later annotations are drawn on top, so they win.
    """
    for i in range(len(annotations) - 1, -1, -1):
        if box_rect(annotations[i]).contains(int(x), int(y)):
            return i
    return -1


def draw_frames(painter: QPainter, annotations: Sequence[Annotation],
                active_id: Optional[str] = None):
    """Paint the frame and drag grip of every annotation, in creation order."""
    for ann in annotations:
        r = box_rect(ann)
        painter.fillRect(r, _BOX_FILL)
        dragging = ann.drag_state is DragState.DRAGGING or ann.id == active_id
        pen = QPen(_DRAG_BORDER if dragging else _BOX_BORDER, 2 if dragging else 1)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(r.adjusted(0, 0, -1, -1))
        _draw_grip(painter, grip_rect(ann))


def _draw_grip(painter: QPainter, rect: QRect):
    painter.fillRect(rect, _GRIP_COLOUR.lighter(150))
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(_GRIP_COLOUR)
    cx = rect.center().x()
    step = max(4, rect.height() // (_GRIP_DOTS + 1))
    for i in range(1, _GRIP_DOTS + 1):
        cy = rect.top() + i * step
        if cy >= rect.bottom():
            break
        painter.drawEllipse(cx - 1, cy - 1, 3, 3)
    painter.setBrush(Qt.BrushStyle.NoBrush)
