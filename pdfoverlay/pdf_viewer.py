"""Center panel: rasterised PDF page with editable text boxes on top.

The page surface holds the rendered page at a fixed canvas offset.  A click
on the page creates one text box; dragging a box's grip moves it.  Text is
only written into the PDF when the user commits.
"""
from typing import Dict, Optional

from PySide6.QtCore import QEvent, QObject, QPoint, QRect, Qt, Signal
from PySide6.QtGui import QColor, QImage, QPainter
from PySide6.QtWidgets import (
    QApplication, QHBoxLayout, QLabel, QLineEdit, QPushButton, QScrollArea,
    QSizePolicy, QVBoxLayout, QWidget,
)

from pdfoverlay import annotation_overlay, data_store
from pdfoverlay.models import CanvasOffset
from pdfoverlay.render_controller import RenderState
from pdfoverlay.session import EditorSession

_PLACEHOLDER_SIZE = (400, 300)
_SURFACE_BG = QColor(110, 110, 110)
_MESSAGE_COLOURS = {"info": "#555", "busy": "#555", "ok": "#2a7a2a", "error": "red"}


class _TextBox(QLineEdit):
    """Single-line editor for one annotation's text."""

    def __init__(self, ann_id: str, parent=None):
        super().__init__(parent)
        self.ann_id = ann_id
        self.setFrame(False)
        self.setStyleSheet("QLineEdit { background: transparent; }")


class _NavShortcutFilter(QObject):
    """App-level event filter: Alt+Left / Alt+Right page navigation."""

    def __init__(self, viewer: "PDFViewerPanel", parent=None):
        super().__init__(parent)
        self._viewer = viewer

    def eventFilter(self, obj, event):
        if event.type() != QEvent.Type.KeyPress:
            return False
        # Don't steal keys while a text box has focus
        if isinstance(QApplication.focusWidget(), QLineEdit):
            return False
        mods = event.modifiers() & (Qt.KeyboardModifier.ShiftModifier
                                    | Qt.KeyboardModifier.ControlModifier
                                    | Qt.KeyboardModifier.AltModifier
                                    | Qt.KeyboardModifier.MetaModifier)
        if mods == Qt.KeyboardModifier.AltModifier:
            if event.key() == Qt.Key.Key_Left:
                self._viewer.prev_page()
                return True
            if event.key() == Qt.Key.Key_Right:
                self._viewer.next_page()
                return True
        return False


class PageSurface(QWidget):
    """Widget holding the page raster and the annotation text boxes.

    Coordinates of mouse events on this widget are the space annotations
    are stored in.
    """

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self._session = session
        self._image: Optional[QImage] = None
        self._boxes: Dict[str, _TextBox] = {}
        self._drag_id: Optional[str] = None
        self._drag_grab = QPoint()
        self.setMouseTracking(True)
        self.resize(*_PLACEHOLDER_SIZE)
        session.overlay.annotations_changed.connect(self.sync_boxes)

    # ── Geometry ──────────────────────────────────────────────────────────────

    @property
    def canvas_offset(self) -> CanvasOffset:
        return self._session.canvas_offset

    def canvas_rect(self) -> QRect:
        if self._image is None:
            return QRect()
        ox, oy = self.canvas_offset
        return QRect(int(ox), int(oy), self._image.width(), self._image.height())

    def set_page_image(self, image: QImage):
        self._image = image
        ox, oy = self.canvas_offset
        self.resize(image.width() + 2 * int(ox), image.height() + 2 * int(oy))
        self.update()

    def clear_page(self):
        self._image = None
        self.resize(*_PLACEHOLDER_SIZE)
        self.update()

    # ── Text boxes ────────────────────────────────────────────────────────────

    def sync_boxes(self):
        """Create, move or drop editor widgets to match the overlay model."""
        anns = self._session.overlay.annotations()
        live = {a.id for a in anns}
        for ann_id in list(self._boxes):
            if ann_id not in live:
                self._boxes.pop(ann_id).deleteLater()
        for ann in anns:
            box = self._boxes.get(ann.id)
            if box is None:
                box = _TextBox(ann.id, self)
                box.setText(ann.text)
                box.textEdited.connect(
                    lambda text, i=ann.id: self._session.overlay.update_text(i, text)
                )
                self._boxes[ann.id] = box
                box.show()
                box.setFocus()
                box.selectAll()
            elif box.text() != ann.text:
                box.setText(ann.text)
            box.setGeometry(annotation_overlay.editor_rect(ann))
            box.raise_()
        self.update()

    def _pointer_on_text_input(self, pos: QPoint) -> bool:
        """Is a press at *pos* aimed at a text editor rather than the surface?"""
        child = self.childAt(pos)
        return isinstance(child, _TextBox)

    # ── Painting / mouse ──────────────────────────────────────────────────────

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), _SURFACE_BG)
        if self._image is not None:
            painter.drawImage(self.canvas_rect().topLeft(), self._image)
        annotation_overlay.draw_frames(painter, self._session.overlay.annotations(),
                                       self._drag_id)
        painter.end()

    def mousePressEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            return super().mousePressEvent(event)
        pos = event.position().toPoint()
        overlay = self._session.overlay
        anns = overlay.annotations()
        idx = annotation_overlay.find_annotation_at(anns, pos.x(), pos.y())
        if idx >= 0:
            ann = anns[idx]
            if overlay.begin_drag(ann.id, self._pointer_on_text_input(pos)):
                self._drag_id = ann.id
                self._drag_grab = QPoint(pos.x() - round(ann.x), pos.y() - round(ann.y))
                self.setCursor(Qt.CursorShape.ClosedHandCursor)
                self.update()
            event.accept()
            return
        if self.canvas_rect().contains(pos):
            overlay.create_annotation(pos.x(), pos.y())
        event.accept()

    def mouseMoveEvent(self, event):
        pos = event.position().toPoint()
        if self._drag_id is not None:
            self._session.overlay.drag_to(
                self._drag_id, pos.x() - self._drag_grab.x(), pos.y() - self._drag_grab.y()
            )
            return
        anns = self._session.overlay.annotations()
        idx = annotation_overlay.find_annotation_at(anns, pos.x(), pos.y())
        if idx >= 0 and annotation_overlay.grip_rect(anns[idx]).contains(pos):
            self.setCursor(Qt.CursorShape.OpenHandCursor)
        elif self.canvas_rect().contains(pos):
            self.setCursor(Qt.CursorShape.IBeamCursor)
        else:
            self.unsetCursor()

    def mouseReleaseEvent(self, event):
        if self._drag_id is not None and event.button() == Qt.MouseButton.LeftButton:
            self._session.overlay.end_drag(self._drag_id)
            self._drag_id = None
            self.unsetCursor()
            self.update()
        super().mouseReleaseEvent(event)


class PDFViewerPanel(QWidget):
    export_requested = Signal()
    error_occurred = Signal(str)

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self._session = session

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        # ── Toolbar ──────────────────────────────────────────────────────────
        toolbar = QWidget()
        tb = QHBoxLayout(toolbar)
        tb.setContentsMargins(4, 4, 4, 4)
        tb.setSpacing(4)

        self._prev_btn = QPushButton("◀")
        self._prev_btn.setToolTip("Previous page (Alt+Left)")
        self._prev_btn.setFixedWidth(32)
        self._prev_btn.clicked.connect(self.prev_page)
        tb.addWidget(self._prev_btn)

        self._page_counter = QLabel("Page — / —")
        self._page_counter.setFixedWidth(90)
        self._page_counter.setAlignment(Qt.AlignmentFlag.AlignCenter)
        tb.addWidget(self._page_counter)

        self._next_btn = QPushButton("▶")
        self._next_btn.setToolTip("Next page (Alt+Right)")
        self._next_btn.setFixedWidth(32)
        self._next_btn.clicked.connect(self.next_page)
        tb.addWidget(self._next_btn)

        tb.addSpacing(12)

        self._commit_btn = QPushButton("Commit text")
        self._commit_btn.setToolTip("Draw all text boxes into the first page of the PDF")
        self._commit_btn.clicked.connect(self.commit)
        tb.addWidget(self._commit_btn)

        self._export_btn = QPushButton("Save edited PDF…")
        self._export_btn.clicked.connect(lambda: self.export_requested.emit())
        tb.addWidget(self._export_btn)

        self._message = QLabel("")
        self._message_kind = "info"
        self._message.setStyleSheet(f"color: {_MESSAGE_COLOURS['info']};")
        self._message.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        tb.addWidget(self._message)

        layout.addWidget(toolbar)

        # ── Scroll area ───────────────────────────────────────────────────────
        self._scroll = QScrollArea()
        self._scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._scroll.setWidgetResizable(False)
        self._surface = PageSurface(session)
        self._scroll.setWidget(self._surface)
        layout.addWidget(self._scroll, stretch=1)

        renderer = session.renderer
        renderer.page_rendered.connect(self._on_page_rendered)
        renderer.render_failed.connect(self._on_render_failed)
        renderer.page_changed.connect(self._on_page_changed)
        renderer.state_changed.connect(self._on_render_state)
        session.document_loaded.connect(self._on_document_loaded)
        session.committed.connect(self._on_committed)
        session.commit_failed.connect(self._on_commit_failed)

        self._shortcut_filter = _NavShortcutFilter(self)
        QApplication.instance().installEventFilter(self._shortcut_filter)
        self._update_controls()

    # ── Public API ────────────────────────────────────────────────────────────

    def prev_page(self):
        if self._session.renderer.previous_page():
            data_store.dbg(f"Navigating to previous page: {self._session.renderer.page_number}")

    def next_page(self):
        if self._session.renderer.next_page():
            data_store.dbg(f"Navigating to next page: {self._session.renderer.page_number}")

    def commit(self):
        if not self._session.is_loaded:
            return
        self.setCursor(Qt.CursorShape.WaitCursor)
        try:
            self._session.commit()
        finally:
            self.unsetCursor()

    # ── Slots ─────────────────────────────────────────────────────────────────

    def _show_message(self, text: str, kind: str = "info"):
        self._message_kind = kind
        self._message.setStyleSheet(f"color: {_MESSAGE_COLOURS[kind]};")
        self._message.setText(text)

    def _update_controls(self):
        r = self._session.renderer
        loaded = self._session.is_loaded
        self._prev_btn.setEnabled(loaded and r.page_number > 1)
        self._next_btn.setEnabled(loaded and r.page_number < r.page_count)
        self._commit_btn.setEnabled(loaded)
        self._export_btn.setEnabled(self._session.can_export)

    def _on_document_loaded(self, page_count: int):
        self._show_message("")
        self._surface.clear_page()
        self._surface.sync_boxes()
        self._update_controls()

    def _on_page_changed(self, page_number: int, page_count: int):
        self._page_counter.setText(f"Page {page_number} / {page_count}")
        self._update_controls()

    def _on_page_rendered(self, image: QImage, page_number: int):
        if self._message_kind in ("busy", "error"):
            self._show_message("")
        self._surface.set_page_image(image)

    def _on_render_state(self, state: RenderState):
        if state is RenderState.RENDERING and self._message_kind != "ok":
            self._show_message("Rendering…", "busy")

    def _on_render_failed(self, message: str):
        # Previous frame stays on screen; navigation remains available.
        self._show_message(message.replace("\n", " "), "error")
        self.error_occurred.emit(message)

    def _on_committed(self, data: bytes):
        self._show_message(f"Committed {self._session.last_drawn_count} text box(es).", "ok")
        self._update_controls()

    def _on_commit_failed(self, message: str):
        self._show_message("The source file could not be processed.", "error")
        self.error_occurred.emit(message)
