"""Editor boundary: formatting results as LSP text edits.

The host supplies the document text (and, through it, the line addressing)
and applies whatever comes back. The answer is either no edit at all or one
edit replacing the whole document.
"""

from __future__ import annotations

from typing import Mapping

from lsprotocol.types import FormattingOptions, Position, Range, TextEdit

from .formatter import FormatOptions, format_text, split_lines


def utf16_len(s: str) -> int:
    """Length of *s* in UTF-16 code units (LSP ``character`` offsets)."""
    return len(s.encode("utf-16-le")) // 2


def full_range(text: str) -> Range:
    lines = split_lines(text)
    last = len(lines) - 1
    return Range(
        start=Position(line=0, character=0),
        end=Position(line=last, character=utf16_len(lines[last])),
    )


def options_from_lsp(
    lsp_options: FormattingOptions | None, extra: Mapping[str, object] | None = None
) -> FormatOptions:
    """Merge the editor's formatting options, then the extended settings in *extra*.

    Fields the editor leaves unset (``None``) keep their defaults.
    """
    values: dict[str, object] = {}
    if lsp_options is not None:
        values = {
            "tab_size": lsp_options.tab_size,
            "insert_spaces": lsp_options.insert_spaces,
            "trim_trailing_whitespace": lsp_options.trim_trailing_whitespace,
            "insert_final_newline": lsp_options.insert_final_newline,
            "trim_final_newlines": lsp_options.trim_final_newlines,
        }
    base = FormatOptions.from_mapping(values)
    return FormatOptions.from_mapping(extra, base=base)


def provide_formatting_edits(text: str, options: FormatOptions | None = None) -> list[TextEdit]:
    result = format_text(text, options=options)
    if not result.changed:
        return []
    return [TextEdit(range=full_range(text), new_text=result.out_text)]


def format_document(
    text: str, lsp_options: FormattingOptions | None = None, **extra: object
) -> list[TextEdit]:
    """``textDocument/formatting`` entry point: LSP options plus extended keys."""
    return provide_formatting_edits(text, options_from_lsp(lsp_options, extra))
