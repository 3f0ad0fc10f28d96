"""PDF rasterizer backed by PyMuPDF (fitz).

Rendering runs on the GUI thread: :meth:`RenderTask.start` only schedules
the work with ``QTimer.singleShot(0, ...)`` so the caller returns straight
away and other events (clicks, a newer render request) are processed
first.  Cancellation is cooperative: the flag is checked before and after
rasterising, and a cancelled task never reports a bitmap.
"""
import time
from typing import Tuple

import fitz  # pymupdf
from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtGui import QImage

from pdfoverlay import data_store, pdf_mutator
from pdfoverlay.errors import RenderCancelled, RenderFailed


class RenderTask(QObject):
    """One cancellable rasterisation of a single page."""

    finished = Signal(object)   # QImage
    cancelled = Signal()
    failed = Signal(str)

    def __init__(self, doc: fitz.Document, page_number: int, scale: float, parent=None):
        super().__init__(parent)
        self.doc = doc
        self.page_number = page_number   # 1-based
        self.scale = scale
        self._cancelled = False
        self._done = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def start(self):
        QTimer.singleShot(0, self.run)

    def cancel(self):
        """Ask the task to stop.  Advisory: a running rasterisation finishes first."""
        self._cancelled = True

    def run(self):
        if self._done:
            return
        self._done = True
        try:
            image = self._render()
        except RenderCancelled:
            self.cancelled.emit()
        except RenderFailed as exc:
            data_store.dbg(f"Render of page {self.page_number} failed: {exc}")
            self.failed.emit(str(exc))
        else:
            self.finished.emit(image)

    def _render(self) -> QImage:
        if self._cancelled:
            raise RenderCancelled(f"page {self.page_number}")
        t0 = time.perf_counter()
        try:
            image = render_page_image(self.doc, self.page_number, self.scale)
        except pdf_mutator.MUPDF_ERRORS + (IndexError,) as exc:
            raise RenderFailed(str(exc) or exc.__class__.__name__) from exc
        if self._cancelled:
            raise RenderCancelled(f"page {self.page_number}")
        data_store.dbg(f"Page {self.page_number} rendered in "
                       f"{time.perf_counter() - t0:.3f}s")
        return image


def open_document(data: bytes) -> fitz.Document:
    """Parse *data* for display.  Raises ParseFailed for non-PDF input."""
    return pdf_mutator.open_pdf(data)


def page_size(doc: fitz.Document, page_number: int) -> Tuple[float, float]:
    """*(width, height)* of a 1-based page in points, rotation-aware."""
    rect = doc[page_number - 1].rect
    return rect.width, rect.height


def render_page_image(doc: fitz.Document, page_number: int, scale: float) -> QImage:
    """Rasterise a 1-based page at *scale* and return a detached QImage."""
    page = doc[page_number - 1]
    data_store.dbg(f"Rendering page {page_number}/{doc.page_count} at scale {scale:.2f} "
                   f"(page size: {page.rect.width:.0f}×{page.rect.height:.0f} pt)")
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    img = QImage(pix.samples, pix.width, pix.height,
                 pix.stride, QImage.Format.Format_RGB888)
    # pix.samples is freed with pix; the copy owns its pixels
    return img.copy()


class Rasterizer:
    """Factory used by the render controller; tests substitute a fake."""

    def open(self, data: bytes) -> fitz.Document:
        return open_document(data)

    def render_page(self, doc: fitz.Document, page_number: int, scale: float) -> RenderTask:
        return RenderTask(doc, page_number, scale)

    def page_size(self, doc: fitz.Document, page_number: int) -> Tuple[float, float]:
        return page_size(doc, page_number)
