"""Parse, draw text into, and re-serialise PDFs with PyMuPDF.

Coordinate notes
----------------
Callers pass **page space**: origin at the bottom-left of the page as it is
displayed, y growing upward, in points.  PyMuPDF's ``page.rect`` is
rotation-aware (it reports the displayed size), but ``page.insert_text``
works in the **native** (pre-rotation), top-left-origin space.  Points are
therefore converted page space → visual top-left space → native draw
space via ``_to_draw()`` before drawing.
"""
import functools
from typing import List, Optional, Sequence, Tuple

import fitz  # pymupdf
from pymupdf.mupdf import FzErrorBase

from pdfoverlay import data_store
from pdfoverlay.errors import ParseFailed

FONT_NAME = "helv"

# What PyMuPDF raises on bad input: classic errors plus the MuPDF C-layer ones.
MUPDF_ERRORS = (RuntimeError, ValueError, FzErrorBase)


@functools.lru_cache(maxsize=None)
def _font() -> fitz.Font:
    return fitz.Font(FONT_NAME)


def text_width(text: str, font_size: float) -> float:
    return _font().text_length(text, fontsize=font_size)


def line_height(font_size: float) -> float:
    """Distance between two baselines, as used by ``insert_text``."""
    font = _font()
    return font_size * (font.ascender - font.descender)


def _fit_prefix(word: str, max_width: float, font_size: float) -> int:
    """Length of the longest prefix of *word* that fits (at least one char)."""
    n = 1
    while n < len(word) and text_width(word[:n + 1], font_size) <= max_width:
        n += 1
    return n


def wrap_text(text: str, max_width: Optional[float], font_size: float) -> List[str]:
    """Word-wrap *text* to *max_width* points.  Explicit newlines are kept.

    A single word wider than *max_width* is broken between characters.
    """
    paragraphs = text.split("\n")
    if not max_width or max_width <= 0:
        return paragraphs
    lines: List[str] = []
    for para in paragraphs:
        line = ""
        for word in para.split(" "):
            candidate = f"{line} {word}" if line else word
            if text_width(candidate, font_size) <= max_width:
                line = candidate
                continue
            if line:
                lines.append(line)
            while len(word) > 1 and text_width(word, font_size) > max_width:
                cut = _fit_prefix(word, max_width, font_size)
                lines.append(word[:cut])
                word = word[cut:]
            line = word
        lines.append(line)
    return lines


class MutablePage:
    """A page of a parsed document that text can be drawn onto."""

    def __init__(self, page: fitz.Page):
        self._page = page

    @property
    def width(self) -> float:
        return self._page.rect.width

    @property
    def height(self) -> float:
        return self._page.rect.height

    def _to_draw(self, vx: float, vy: float) -> Tuple[float, float]:
        """Convert visual (page.rect, top-left) coords to native draw coords."""
        rot = self._page.rotation
        mw, mh = self._page.mediabox.width, self._page.mediabox.height
        if rot == 90:
            return vy, mh - vx
        if rot == 180:
            return mw - vx, mh - vy
        if rot == 270:
            return mw - vy, vx
        return vx, vy

    def draw_text(self, text: str, x: float, y: float, font_size: float,
                  color: Sequence[float] = (0.0, 0.0, 0.0),
                  max_width: Optional[float] = None) -> int:
        """Draw *text* with its top-left corner at page-space *(x, y)*.

        Lines are wrapped to *max_width* points.  Returns the number of
        lines written.
        """
        lines = wrap_text(text, max_width, font_size)
        vx, vy = x, self.height - y
        # insert_text positions the first baseline, one ascender below the top
        baseline = self._to_draw(vx, vy + _font().ascender * font_size)
        return self._page.insert_text(
            fitz.Point(*baseline), lines,
            fontsize=font_size, fontname=FONT_NAME,
            color=tuple(color), rotate=self._page.rotation,
        )


class MutableDocument:
    def __init__(self, doc: fitz.Document):
        self._doc = doc

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def page(self, index: int) -> MutablePage:
        return MutablePage(self._doc[index])

    def serialize(self) -> bytes:
        return self._doc.tobytes(garbage=3, deflate=True)

    def close(self):
        self._doc.close()


def open_pdf(data: bytes) -> fitz.Document:
    """Open *data* as a PDF with at least one page.  Raises ParseFailed.

    PyMuPDF sniffs the real format from the content, so HTML, images and
    the like may open fine; anything that is not a PDF is rejected here.
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except MUPDF_ERRORS as exc:
        raise ParseFailed(f"The source file could not be processed: {exc}") from exc
    if not doc.is_pdf:
        doc.close()
        raise ParseFailed("The source file is not a PDF.")
    if doc.page_count == 0:
        doc.close()
        raise ParseFailed("The source file has no pages.")
    return doc


def parse(data: bytes) -> MutableDocument:
    """Parse *data* into an editable document.  Raises ParseFailed."""
    doc = open_pdf(data)
    data_store.dbg(f"Parsed {len(data)} bytes ({doc.page_count} page(s)) for editing")
    return MutableDocument(doc)


class PdfMutator:
    """Default document mutator handed to the commit engine."""

    def parse(self, data: bytes) -> MutableDocument:
        return parse(data)
