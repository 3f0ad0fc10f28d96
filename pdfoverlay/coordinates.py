"""Conversions between page-surface pixels, canvas pixels and PDF page space.

The page surface is the widget the user clicks on.  It contains the canvas
(the rasterised page) at *canvas_offset*.  The canvas was rendered at
*scale* pixels per PDF point, with its origin at the top-left and y
growing downward.  PDF page space has its origin at the bottom-left, y
growing upward, in points.
"""
from typing import Tuple

from pdfoverlay.models import CanvasOffset


def _check_scale(scale: float) -> None:
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale!r}")


def to_canvas(screen_x: float, screen_y: float,
              canvas_offset: CanvasOffset) -> Tuple[float, float]:
    """Page-surface pixels → canvas-local pixels."""
    return screen_x - canvas_offset[0], screen_y - canvas_offset[1]


def to_page_space(screen_x: float, screen_y: float, canvas_offset: CanvasOffset,
                  page_height: float, scale: float) -> Tuple[float, float]:
    """Map a page-surface point to PDF page space."""
    _check_scale(scale)
    cx, cy = to_canvas(screen_x, screen_y, canvas_offset)
    return cx / scale, page_height - cy / scale


def to_screen_space(pdf_x: float, pdf_y: float, canvas_offset: CanvasOffset,
                    page_height: float, scale: float) -> Tuple[float, float]:
    """Inverse of :func:`to_page_space`."""
    _check_scale(scale)
    return (pdf_x * scale + canvas_offset[0],
            (page_height - pdf_y) * scale + canvas_offset[1])


def viewport_size(page_width: float, page_height: float, scale: float) -> Tuple[int, int]:
    """Pixel size of a page rasterised at *scale*, rounded to whole pixels."""
    _check_scale(scale)
    return round(page_width * scale), round(page_height * scale)
