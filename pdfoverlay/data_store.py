"""Data persistence: editor settings, debug switch, PDF file input/output."""
import json
import logging
import mimetypes
import os
from dataclasses import asdict, fields
from typing import Optional

from pdfoverlay.errors import InputRejected
from pdfoverlay.models import EditorSettings

logger = logging.getLogger("pdfoverlay")

PDF_MIME_TYPE = "application/pdf"
_PDF_MAGIC = b"%PDF-"
_HEADER_SCAN = 1024   # the header may be preceded by junk bytes

# ── Settings location (PDFOVERLAY_HOME overrides the default) ────────────────

APP_DATA_DIR = os.environ.get(
    "PDFOVERLAY_HOME", os.path.join(os.path.expanduser("~"), ".pdfoverlay")
)
SETTINGS_PATH = os.path.join(APP_DATA_DIR, "settings.json")


# ── Debug logging ─────────────────────────────────────────────────────────────

def set_debug(enabled: bool) -> None:
    """Switch the package logger between DEBUG and INFO."""
    logger.setLevel(logging.DEBUG if enabled else logging.INFO)


def is_debug() -> bool:
    return logger.isEnabledFor(logging.DEBUG)


def dbg(msg: str) -> None:
    logger.debug(msg)


# ── Settings ──────────────────────────────────────────────────────────────────

def load_settings(path: Optional[str] = None) -> EditorSettings:
    """Read settings from *path* (default: SETTINGS_PATH).

    Missing file → defaults.  Unknown keys are ignored, missing keys keep
    their default value.
    """
    path = path or SETTINGS_PATH
    if not os.path.exists(path):
        return EditorSettings()
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    defaults = EditorSettings()
    known = {f.name for f in fields(EditorSettings)}
    values = {k: v for k, v in data.items() if k in known}
    settings = EditorSettings(**values)
    settings.text_color = tuple(float(c) for c in settings.text_color)
    if settings.raster_scale <= 0:
        logger.warning("Ignoring invalid raster_scale %r in %s", settings.raster_scale, path)
        settings.raster_scale = defaults.raster_scale
    return settings


def save_settings(settings: EditorSettings, path: Optional[str] = None) -> None:
    path = path or SETTINGS_PATH
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    data = asdict(settings)
    data["text_color"] = list(settings.text_color)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


# ── PDF files ─────────────────────────────────────────────────────────────────

def is_pdf_path(path: str) -> bool:
    mime, _ = mimetypes.guess_type(path)
    return mime == PDF_MIME_TYPE


def read_pdf_file(path: str) -> bytes:
    """Return the bytes of *path*, or raise InputRejected if it is not a PDF."""
    if not is_pdf_path(path):
        raise InputRejected(f"{os.path.basename(path)} is not a PDF file.")
    with open(path, "rb") as f:
        data = f.read()
    if _PDF_MAGIC not in data[:_HEADER_SCAN]:
        raise InputRejected(f"{os.path.basename(path)} does not contain PDF data.")
    dbg(f"Read {len(data)} bytes from {path}")
    return data


def write_pdf_file(path: str, data: bytes) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)
    logger.info("Saved %d bytes to %s", len(data), path)
