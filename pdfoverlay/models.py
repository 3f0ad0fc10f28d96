"""Data models for the PDF text overlay editor."""
import enum
import uuid
from dataclasses import dataclass
from typing import NamedTuple, Tuple


class DragState(enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class CanvasOffset(NamedTuple):
    """Top-left corner of the canvas inside the page surface, in pixels."""
    x: float
    y: float


def new_annotation_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Annotation:
    id: str
    text: str
    x: float        # top-left of the text box, page-surface pixels
    y: float
    width: float    # box size in page-surface pixels
    height: float
    drag_state: DragState = DragState.IDLE


@dataclass
class EditorSettings:
    raster_scale: float = 1.5            # zoom used for rasterising AND for mapping back
    font_size: float = 14.0              # pt, fixed for every committed annotation
    text_color: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    default_text: str = "Text"
    box_width: float = 200.0
    box_height: float = 30.0
    canvas_margin: int = 10              # canvas offset inside the page surface
    export_filename: str = "edited.pdf"
    debug_mode: bool = False             # debug logging + per-commit .log files
    last_directory: str = ""
