"""Exceptions raised by the overlay editor core."""


class OverlayEditorError(Exception):
    """Base class for all editor errors."""


class InputRejected(OverlayEditorError):
    """The selected file is not a PDF."""


class RenderCancelled(OverlayEditorError):
    """A render task was cancelled before it produced a bitmap.

    This is expected whenever a newer render replaces an older one and is
    never reported to the user.
    """


class RenderFailed(OverlayEditorError):
    """The rasterizer failed for a reason other than cancellation."""


class ParseFailed(OverlayEditorError):
    """PDF bytes could not be parsed into a document with at least one page."""
