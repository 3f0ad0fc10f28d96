"""One open PDF with its pending annotations, render state and commits."""
import logging
import os
from typing import Optional

from PySide6.QtCore import QObject, Signal

from pdfoverlay import commit_engine, data_store
from pdfoverlay.errors import ParseFailed
from pdfoverlay.models import CanvasOffset, EditorSettings
from pdfoverlay.overlay_model import OverlayModel
from pdfoverlay.pdf_mutator import PdfMutator
from pdfoverlay.rasterizer import Rasterizer
from pdfoverlay.render_controller import RenderController

logger = logging.getLogger(__name__)

COMMIT_LOG_NAME = "last_commit.log"


class EditorSession(QObject):
    """Glue between the overlay model, the render controller and commits.

    Every commit is derived from the pristine bytes that were loaded, never
    from the previous commit: annotations stay on the overlay after a
    commit, so re-applying them to committed output would draw them twice.
    """

    document_loaded = Signal(int)   # page count
    committed = Signal(bytes)
    commit_failed = Signal(str)

    def __init__(self, settings: Optional[EditorSettings] = None,
                 rasterizer: Optional[Rasterizer] = None,
                 mutator: Optional[PdfMutator] = None, parent=None):
        super().__init__(parent)
        self._settings = settings or EditorSettings()
        self._rasterizer = rasterizer or Rasterizer()
        self._mutator = mutator or PdfMutator()
        self.overlay = OverlayModel(self._settings, self)
        self.renderer = RenderController(self._settings.raster_scale, self._rasterizer, self)
        self._original: Optional[bytes] = None
        self._committed: Optional[bytes] = None
        self._display_doc = None
        self._drawn_count = 0
        self.source_path: Optional[str] = None

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def settings(self) -> EditorSettings:
        return self._settings

    @property
    def is_loaded(self) -> bool:
        return self._original is not None

    @property
    def original_bytes(self) -> Optional[bytes]:
        return self._original

    @property
    def committed_bytes(self) -> Optional[bytes]:
        return self._committed

    @property
    def current_bytes(self) -> Optional[bytes]:
        """Bytes currently on display: the last commit, else the original."""
        return self._committed if self._committed is not None else self._original

    @property
    def can_export(self) -> bool:
        return self._committed is not None

    @property
    def last_drawn_count(self) -> int:
        """Number of text boxes drawn by the last successful commit."""
        return self._drawn_count

    @property
    def canvas_offset(self) -> CanvasOffset:
        m = self._settings.canvas_margin
        return CanvasOffset(m, m)

    def page_height(self) -> float:
        """Height in points of page 1, the page commits are drawn on."""
        if self._display_doc is None:
            raise RuntimeError("No document loaded")
        return self._rasterizer.page_size(self._display_doc, 1)[1]

    def apply_settings(self, settings: EditorSettings):
        self._settings = settings
        self.overlay.set_settings(settings)
        self.renderer.set_scale(settings.raster_scale)
        data_store.set_debug(settings.debug_mode)

    # ── Loading ───────────────────────────────────────────────────────────────

    def load_file(self, path: str):
        """Read and show *path*.  Raises InputRejected or ParseFailed."""
        data = data_store.read_pdf_file(path)
        self.load_bytes(data, source_path=path)

    def load_bytes(self, data: bytes, source_path: Optional[str] = None):
        doc = self._rasterizer.open(data)   # ParseFailed leaves the session as it was
        self.renderer.reset()
        self.overlay.clear()
        self._close_display_doc()
        self._original = bytes(data)
        self._committed = None
        self._drawn_count = 0
        self._display_doc = doc
        self.source_path = source_path
        logger.info("Loaded %s (%d page(s))", source_path or "<bytes>", doc.page_count)
        self.renderer.set_document(doc, 1)
        self.document_loaded.emit(doc.page_count)

    def close(self):
        self.renderer.reset()
        self.overlay.clear()
        self._close_display_doc()
        self._original = None
        self._committed = None
        self._drawn_count = 0
        self.source_path = None

    def _close_display_doc(self):
        if self._display_doc is not None:
            self._display_doc.close()
            self._display_doc = None

    # ── Commit / export ───────────────────────────────────────────────────────

    def _commit_log_path(self) -> Optional[str]:
        if not self._settings.debug_mode:
            return None
        try:
            os.makedirs(data_store.APP_DATA_DIR, exist_ok=True)
        except OSError as exc:
            logger.warning("No commit log, cannot create %s: %s", data_store.APP_DATA_DIR, exc)
            return None
        return os.path.join(data_store.APP_DATA_DIR, COMMIT_LOG_NAME)

    def commit(self) -> Optional[bytes]:
        """Draw all pending annotations into a fresh copy of the original.

        Returns the new bytes, or None if the source could not be processed
        (``commit_failed`` is emitted and the display is left unchanged).
        """
        if self._original is None:
            raise RuntimeError("No document loaded")
        snapshot = self.overlay.snapshot()
        try:
            result = commit_engine.commit_annotations(
                self._original, snapshot,
                page_height=self.page_height(),
                canvas_offset=self.canvas_offset,
                scale=self.renderer.scale,
                settings=self._settings,
                mutator=self._mutator,
                log_path=self._commit_log_path(),
            )
            doc = self._rasterizer.open(result.data)
        except ParseFailed as exc:
            logger.warning("Commit aborted: %s", exc)
            self.commit_failed.emit(str(exc))
            return None

        new_bytes = result.data
        page_number = self.renderer.page_number
        self.renderer.reset()
        self._close_display_doc()
        self._display_doc = doc
        self._committed = new_bytes
        self._drawn_count = result.drawn
        self.renderer.set_document(doc, page_number)
        self.committed.emit(new_bytes)
        return new_bytes

    def export(self, path: str):
        if self._committed is None:
            raise RuntimeError("Nothing to export: commit the annotations first")
        data_store.write_pdf_file(path, self._committed)
