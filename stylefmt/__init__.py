"""stylefmt: deterministic, idempotent source-text style normalizer."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "FormatOptions",
    "FormatResult",
    "format_text",
    "provide_formatting_edits",
    "format_document",
]

from .formatter import FormatOptions, FormatResult, format_text
from .edits import provide_formatting_edits, format_document
