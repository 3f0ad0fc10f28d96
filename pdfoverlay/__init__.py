"""Place text boxes on a rendered PDF page and commit them into the file."""

__version__ = "0.1.0"
