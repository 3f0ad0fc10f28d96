import fitz
import pytest

from conftest import RecordingMutator, make_pdf
from pdfoverlay import commit_engine
from pdfoverlay.errors import ParseFailed
from pdfoverlay.models import Annotation, CanvasOffset, EditorSettings

OFFSET = CanvasOffset(10, 10)
SCALE = 1.5


def _ann(x, y, text="Hello", width=150.0, ann_id=None):
    return Annotation(id=ann_id or f"id-{x}-{y}", text=text, x=x, y=y, width=width, height=30.0)


def _commit(data, anns, **kw):
    return commit_engine.commit(data, anns, page_height=792, canvas_offset=OFFSET,
                                scale=SCALE, **kw)


def test_click_scenario_draws_at_mapped_point(pdf_bytes, recording_mutator):
    _commit(pdf_bytes, [_ann(100, 200)], mutator=recording_mutator)
    (call,) = recording_mutator.calls
    assert call["page"] == 0
    assert call["x"] == pytest.approx(60.0)
    assert call["y"] == pytest.approx(665.33, abs=0.01)
    assert call["max_width"] == pytest.approx(100.0)   # 150 px / 1.5


def test_draws_in_creation_order(pdf_bytes, recording_mutator):
    anns = [_ann(100, 100, "first"), _ann(50, 300, "second"), _ann(400, 20, "third")]
    _commit(pdf_bytes, anns, mutator=recording_mutator)
    assert [c["text"] for c in recording_mutator.calls] == ["first", "second", "third"]
    assert all(c["page"] == 0 for c in recording_mutator.calls)


def test_fixed_style_from_settings(pdf_bytes, recording_mutator):
    settings = EditorSettings(font_size=20, text_color=(1.0, 0.0, 0.0))
    _commit(pdf_bytes, [_ann(100, 100)], settings=settings, mutator=recording_mutator)
    (call,) = recording_mutator.calls
    assert call["font_size"] == 20
    assert call["color"] == (1.0, 0.0, 0.0)


def test_blank_annotations_are_skipped(pdf_bytes, recording_mutator):
    _commit(pdf_bytes, [_ann(1, 1, ""), _ann(2, 2, "   "), _ann(3, 3, "x")],
            mutator=recording_mutator)
    assert [c["text"] for c in recording_mutator.calls] == ["x"]


def test_serialize_happens_once_after_all_draws(pdf_bytes, recording_mutator):
    out = _commit(pdf_bytes, [_ann(1, 1), _ann(2, 2)], mutator=recording_mutator)
    assert recording_mutator.events == ["serialize", "close"]
    assert out == b"%PDF-1.7 recorded"


def test_parse_failure_draws_nothing(recording_mutator):
    with pytest.raises(ParseFailed):
        _commit(b"definitely not a pdf", [_ann(1, 1)], mutator=recording_mutator)
    assert recording_mutator.calls == []
    assert recording_mutator.events == []


NOT_PDF = [
    b"",
    b"hello world",
    b"%PDF-1.4 truncated garbage",
    b"<html><body>not a pdf</body></html>",
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\x00broken",
]


@pytest.mark.parametrize("data", NOT_PDF)
def test_parse_failure_with_real_mutator(data):
    with pytest.raises(ParseFailed):
        _commit(data, [_ann(1, 1)])


def test_commit_consumes_a_snapshot(pdf_bytes, recording_mutator):
    anns = [_ann(1, 1, "a")]

    def gen():
        yield from anns
        anns.append(_ann(2, 2, "late"))

    _commit(pdf_bytes, gen(), mutator=recording_mutator)
    assert [c["text"] for c in recording_mutator.calls] == ["a"]


# ── Real PyMuPDF commits ──────────────────────────────────────────────────────

def test_empty_commit_leaves_page_content_unchanged(pdf_bytes):
    out = _commit(pdf_bytes, [])
    assert out is not pdf_bytes
    before = fitz.open(stream=pdf_bytes, filetype="pdf")
    after = fitz.open(stream=out, filetype="pdf")
    assert after.page_count == before.page_count
    assert after[0].read_contents() == before[0].read_contents()
    assert after[0].get_text() == before[0].get_text()


def test_commit_places_text_where_it_was_clicked(pdf_bytes):
    original = bytes(pdf_bytes)
    # box top-left on the canvas at (72, 100) pt → page space (72, 692)
    ann = _ann(10 + 72 * SCALE, 10 + 100 * SCALE, text="Committed", width=300)
    out = _commit(pdf_bytes, [ann])

    assert pdf_bytes == original
    doc = fitz.open(stream=out, filetype="pdf")
    (hit,) = doc[0].search_for("Committed")
    assert hit.x0 == pytest.approx(72, abs=2)
    assert hit.y0 == pytest.approx(100, abs=6)


def test_commit_targets_first_page_only(three_page_pdf):
    out = _commit(three_page_pdf, [_ann(100, 200, "Only here")])
    doc = fitz.open(stream=out, filetype="pdf")
    assert doc[0].search_for("Only here")
    assert not doc[1].search_for("Only here")
    assert not doc[2].search_for("Only here")


def test_long_text_wraps_within_box_width(pdf_bytes):
    text = "alpha beta gamma delta epsilon zeta eta theta"
    ann = _ann(10 + 72 * SCALE, 10 + 100 * SCALE, text=text, width=90 * SCALE)
    out = _commit(pdf_bytes, [ann])
    doc = fitz.open(stream=out, filetype="pdf")
    words = [w for w in doc[0].get_text("words") if w[4] in text.split()]
    assert len(words) == len(text.split())
    assert max(w[2] for w in words) <= 72 + 90 + 1
    assert len({round(w[3]) for w in words}) > 1   # more than one line


def test_commit_log_written(pdf_bytes, tmp_path):
    log_path = tmp_path / "commit.log"
    _commit(pdf_bytes, [_ann(100, 200, "logged")], log_path=str(log_path))
    content = log_path.read_text(encoding="utf-8")
    assert "ANNOTATIONS : 1" in content
    assert "'logged'" in content
    assert "x=60.00" in content


def test_multi_page_source_still_parses():
    out = _commit(make_pdf(3), [])
    assert fitz.open(stream=out, filetype="pdf").page_count == 3


def test_draw_failure_becomes_parse_failed(pdf_bytes):
    mutator = RecordingMutator(fail_on_draw=True)
    with pytest.raises(ParseFailed):
        _commit(pdf_bytes, [_ann(1, 1, "a"), _ann(2, 2, "b")], mutator=mutator)
    assert "serialize" not in mutator.events
    assert mutator.events == ["close"]


def test_drawn_count_skips_blank_boxes(pdf_bytes, recording_mutator):
    result = commit_engine.commit_annotations(
        pdf_bytes, [_ann(1, 1, "a"), _ann(2, 2, "  "), _ann(3, 3, "c")],
        page_height=792, canvas_offset=OFFSET, scale=SCALE, mutator=recording_mutator,
    )
    assert result.drawn == 2
    assert result.data == b"%PDF-1.7 recorded"
