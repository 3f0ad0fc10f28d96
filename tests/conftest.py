import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # noqa: E402
import pytest  # noqa: E402
from PySide6.QtCore import QObject, Signal  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from pdfoverlay import data_store  # noqa: E402
from pdfoverlay.errors import ParseFailed  # noqa: E402

LETTER = (612, 792)


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """Redirect settings and commit logs to a temporary directory."""
    monkeypatch.setattr(data_store, "APP_DATA_DIR", str(tmp_path))
    monkeypatch.setattr(data_store, "SETTINGS_PATH", str(tmp_path / "settings.json"))
    return tmp_path


def make_pdf(pages: int = 1, size=LETTER, label: bool = True) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=size[0], height=size[1])
        if label:
            page.insert_text((50, 50), f"Original page {i + 1}", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture()
def pdf_bytes():
    return make_pdf(1)


@pytest.fixture()
def three_page_pdf():
    return make_pdf(3)


# ── Recording mutator ─────────────────────────────────────────────────────────

class RecordingPage:
    def __init__(self, index, calls, fail_on_draw=False):
        self.index = index
        self._calls = calls
        self._fail_on_draw = fail_on_draw

    def draw_text(self, text, x, y, font_size, color=(0, 0, 0), max_width=None):
        if self._fail_on_draw and self._calls:
            raise ValueError("is no PDF")
        self._calls.append({
            "page": self.index, "text": text, "x": x, "y": y,
            "font_size": font_size, "color": tuple(color), "max_width": max_width,
        })
        return 1


class RecordingDocument:
    def __init__(self, calls, events, fail_on_draw=False):
        self._calls = calls
        self._events = events
        self._fail_on_draw = fail_on_draw
        self.closed = False

    @property
    def page_count(self):
        return 3

    def page(self, index):
        return RecordingPage(index, self._calls, self._fail_on_draw)

    def serialize(self):
        self._events.append("serialize")
        return b"%PDF-1.7 recorded"

    def close(self):
        self.closed = True
        self._events.append("close")


class RecordingMutator:
    """Stands in for the PyMuPDF mutator and records every draw call.

    With *fail_on_draw* the second draw_text raises ValueError, the way
    PyMuPDF does when a page cannot take text.
    """

    def __init__(self, fail: bool = False, fail_on_draw: bool = False):
        self.fail = fail
        self.fail_on_draw = fail_on_draw
        self.calls = []
        self.events = []
        self.parsed = []

    def parse(self, data):
        self.parsed.append(data)
        if self.fail or not data.startswith(b"%PDF"):
            raise ParseFailed("The source file could not be processed: bad data")
        return RecordingDocument(self.calls, self.events, self.fail_on_draw)


@pytest.fixture()
def recording_mutator():
    return RecordingMutator()


# ── Fake rasterizer ───────────────────────────────────────────────────────────

class FakeDocument:
    def __init__(self, page_count=3):
        self.page_count = page_count
        self.closed = False

    def close(self):
        self.closed = True


class FakeTask(QObject):
    finished = Signal(object)
    cancelled = Signal()
    failed = Signal(str)

    def __init__(self, doc, page_number, scale):
        super().__init__()
        self.doc = doc
        self.page_number = page_number
        self.scale = scale
        self.started = False
        self.cancel_requested = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancel_requested = True


class FakeRasterizer:
    def __init__(self):
        self.tasks = []
        self.opened = []

    def open(self, data):
        if not data.startswith(b"%PDF"):
            raise ParseFailed("Cannot open PDF: not a PDF")
        doc = FakeDocument()
        self.opened.append(doc)
        return doc

    def render_page(self, doc, page_number, scale):
        task = FakeTask(doc, page_number, scale)
        self.tasks.append(task)
        return task

    def page_size(self, doc, page_number):
        return LETTER


@pytest.fixture()
def fake_rasterizer():
    return FakeRasterizer()
