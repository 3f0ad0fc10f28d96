"""Commit pending annotations: draw their text permanently into a PDF copy.

Every commit parses the given bytes afresh, draws all annotations onto the
first page in creation order, and serialises once at the end.  Nothing is
written to *original_bytes*; a parse failure aborts before any drawing, and
a failure while drawing or serialising discards the partial document.
"""
import logging
from contextlib import ExitStack
from typing import Iterable, List, NamedTuple, Optional

from pdfoverlay import coordinates
from pdfoverlay.errors import ParseFailed
from pdfoverlay.models import Annotation, CanvasOffset, EditorSettings
from pdfoverlay.pdf_mutator import MUPDF_ERRORS, PdfMutator

logger = logging.getLogger(__name__)

TARGET_PAGE_INDEX = 0   # only the first page receives committed text


class CommitResult(NamedTuple):
    data: bytes
    drawn: int      # annotations actually drawn; blank ones are skipped


def is_drawable(ann: Annotation) -> bool:
    return bool(ann.text and ann.text.strip())


def commit(
    original_bytes: bytes,
    annotations: Iterable[Annotation],
    page_height: float,
    canvas_offset: CanvasOffset,
    scale: float,
    settings: Optional[EditorSettings] = None,
    mutator=None,
    log_path: Optional[str] = None,
) -> bytes:
    """Return new PDF bytes with each annotation's text drawn on page 1.

    *canvas_offset* and *scale* must be the ones that produced the layout
    the annotations were placed on.  Raises ParseFailed when
    *original_bytes* is not a usable PDF.
    """
    return commit_annotations(
        original_bytes, annotations, page_height, canvas_offset, scale,
        settings=settings, mutator=mutator, log_path=log_path,
    ).data


def commit_annotations(
    original_bytes: bytes,
    annotations: Iterable[Annotation],
    page_height: float,
    canvas_offset: CanvasOffset,
    scale: float,
    settings: Optional[EditorSettings] = None,
    mutator=None,
    log_path: Optional[str] = None,
) -> CommitResult:
    """Like :func:`commit`, but also report how many annotations were drawn."""
    settings = settings or EditorSettings()
    mutator = mutator or PdfMutator()
    # Snapshot before doing anything; later edits do not leak into this commit.
    anns: List[Annotation] = list(annotations)

    with ExitStack() as stack:
        log_fh = None
        if log_path:
            try:
                log_fh = stack.enter_context(open(log_path, "w", encoding="utf-8"))
            except OSError as exc:
                logger.warning("Could not open commit log %r: %s", log_path, exc)

        def _log(msg: str) -> None:
            if log_fh:
                log_fh.write(msg + "\n")
                log_fh.flush()

        _log(f"ANNOTATIONS : {len(anns)}")
        _log(f"SCALE       : {scale}")
        _log(f"OFFSET      : ({canvas_offset[0]}, {canvas_offset[1]})")
        _log(f"PAGE HEIGHT : {page_height:.2f} pt")
        _log("")

        doc = mutator.parse(original_bytes)
        try:
            page = doc.page(TARGET_PAGE_INDEX)
            drawn = 0
            for i, ann in enumerate(anns):
                if not is_drawable(ann):
                    _log(f"-- ann[{i}] id={ann.id} skipped (empty text)")
                    continue
                pdf_x, pdf_y = coordinates.to_page_space(
                    ann.x, ann.y, canvas_offset, page_height, scale,
                )
                max_width = ann.width / scale
                _log(f"-- ann[{i}] id={ann.id}")
                _log(f"     screen x={ann.x:.2f}  y={ann.y:.2f}  w={ann.width:.2f}")
                _log(f"     page   x={pdf_x:.2f}  y={pdf_y:.2f}  max_width={max_width:.2f}")
                _log(f"     text   : {ann.text!r}")
                page.draw_text(
                    ann.text, pdf_x, pdf_y,
                    font_size=settings.font_size,
                    color=settings.text_color,
                    max_width=max_width,
                )
                drawn += 1
            new_bytes = doc.serialize()
        except MUPDF_ERRORS as exc:
            _log(f"FAILED : {exc}")
            raise ParseFailed(f"The source file could not be processed: {exc}") from exc
        finally:
            doc.close()

        _log("")
        _log(f"SERIALIZED : {len(new_bytes)} bytes, {drawn} annotation(s) drawn")
    logger.info("Committed %d annotation(s) → %d bytes", drawn, len(new_bytes))
    return CommitResult(bytes(new_bytes), drawn)
