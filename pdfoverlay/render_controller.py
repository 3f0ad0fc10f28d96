"""Render controller: owns the single active page render job.

State machine per viewing session::

    IDLE ──request──► RENDERING ──ok──────► IDLE
                          │ ├──replaced──► CANCELLED ──(new job)──► RENDERING
                          │ └──error─────► FAILED
"""
import enum
import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional

from PySide6.QtCore import QObject, Signal

from pdfoverlay import data_store
from pdfoverlay.rasterizer import Rasterizer

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    IDLE = "idle"
    RENDERING = "rendering"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class RenderJob:
    document: object
    page_number: int
    task: object


class RenderController(QObject):
    page_rendered = Signal(object, int)   # QImage, 1-based page number
    render_failed = Signal(str)
    state_changed = Signal(object)        # RenderState
    page_changed = Signal(int, int)       # page number, page count

    def __init__(self, scale: float = 1.5, rasterizer: Optional[Rasterizer] = None,
                 parent=None):
        super().__init__(parent)
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale!r}")
        self._scale = scale
        self._rasterizer = rasterizer or Rasterizer()
        self._document = None
        self._page_number = 1
        self._displayed_page: Optional[int] = None
        self._job: Optional[RenderJob] = None
        self._state = RenderState.IDLE

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def document(self):
        return self._document

    @property
    def page_number(self) -> int:
        return self._page_number

    @property
    def displayed_page(self) -> Optional[int]:
        """Page whose bitmap was last delivered, or None."""
        return self._displayed_page

    @property
    def page_count(self) -> int:
        return self._document.page_count if self._document is not None else 0

    @property
    def active_job(self) -> Optional[RenderJob]:
        return self._job

    def set_scale(self, scale: float):
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale!r}")
        if scale != self._scale:
            self._scale = scale
            if self._document is not None:
                self.request_render(self._document, self._page_number)

    # ── Public API ────────────────────────────────────────────────────────────

    def set_document(self, document, page_number: int = 1):
        """Show *document*, clamping *page_number* into its page range."""
        page_number = max(1, min(page_number, document.page_count))
        self.request_render(document, page_number)

    def request_render(self, document, page_number: int):
        if not 1 <= page_number <= document.page_count:
            raise ValueError(
                f"page {page_number} out of range 1..{document.page_count}"
            )
        self._cancel_active()
        if document is not self._document:
            self._displayed_page = None
        self._document = document
        self._page_number = page_number
        self.page_changed.emit(page_number, document.page_count)

        task = self._rasterizer.render_page(document, page_number, self._scale)
        job = RenderJob(document=document, page_number=page_number, task=task)
        self._job = job
        task.finished.connect(partial(self._on_finished, task))
        task.cancelled.connect(partial(self._on_cancelled, task))
        task.failed.connect(partial(self._on_failed, task))
        self._set_state(RenderState.RENDERING)
        data_store.dbg(f"Render requested: page {page_number}/{document.page_count}")
        task.start()

    def next_page(self) -> bool:
        if self._document is None or self._page_number >= self.page_count:
            return False
        self.request_render(self._document, self._page_number + 1)
        return True

    def previous_page(self) -> bool:
        if self._document is None or self._page_number <= 1:
            return False
        self.request_render(self._document, self._page_number - 1)
        return True

    def reset(self):
        """Cancel any job and forget the document (new file loaded)."""
        self._cancel_active()
        self._document = None
        self._page_number = 1
        self._displayed_page = None
        self._set_state(RenderState.IDLE)

    # ── Internal ──────────────────────────────────────────────────────────────

    def _set_state(self, state: RenderState):
        if state is not self._state:
            self._state = state
            self.state_changed.emit(state)

    def _cancel_active(self):
        if self._job is None:
            return
        job, self._job = self._job, None
        job.task.cancel()
        if self._state is RenderState.RENDERING:
            self._set_state(RenderState.CANCELLED)
        data_store.dbg(f"Cancelled render of page {job.page_number}")

    def _is_current(self, task) -> bool:
        return self._job is not None and self._job.task is task

    def _on_finished(self, task, image):
        if not self._is_current(task):
            data_store.dbg(f"Discarding stale render of page {task.page_number}")
            return
        self._job = None
        self._displayed_page = task.page_number
        self._set_state(RenderState.IDLE)
        self.page_rendered.emit(image, task.page_number)

    def _on_cancelled(self, task):
        # Expected whenever a newer request replaced this task.
        data_store.dbg(f"Rendering cancelled (page {task.page_number})")
        if self._is_current(task):
            self._job = None
            self._set_state(RenderState.CANCELLED)

    def _on_failed(self, task, message: str):
        if not self._is_current(task):
            data_store.dbg(f"Ignoring failure of stale render: {message}")
            return
        self._job = None
        logger.error("Rendering page %d failed: %s", task.page_number, message)
        self._set_state(RenderState.FAILED)
        self.render_failed.emit(
            f"Cannot render page {task.page_number}.\n{message}"
        )
        # The previous frame stays up, so the counter goes back to it.
        shown = self._displayed_page
        if shown is not None and shown != self._page_number:
            self._page_number = shown
            self.page_changed.emit(shown, self.page_count)
