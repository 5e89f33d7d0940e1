"""String/comment aware line scanner.

Every rewriting pass goes through this module so that string literals and
comments are never modified. It works on one logical line at a time and keeps
no state between lines.

Notes
-----
- Two states only: code, or inside a string opened by ``'`` or ``"``.
- A backslash consumes the following character (inside and outside strings),
  so an escaped quote never opens or closes a literal.
- An unterminated literal runs to the end of the line.
- ``//`` comments run to the end of the line; ``/* ... */`` comments may sit
  anywhere on the line. An unclosed ``/*`` runs to the end of the line.
- Lines belonging to a block comment opened on an earlier line are only
  recognised by shape: a body starting with ``*`` + whitespace, or a stray
  ``*/`` closing text that started before this line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator

CODE = "code"
STRING = "string"
COMMENT = "comment"

QUOTES = ("'", '"')
OPEN_BRACKETS = "{[("
CLOSE_BRACKETS = "}])"

# stands in for string/comment characters in code_mask(); not whitespace, not a word char
MASK_CHAR = "\0"

_CONTINUATION_RE = re.compile(r"^[ \t]*\*(?:[ \t]|$)")


@dataclass(frozen=True)
class Segment:
    kind: str
    text: str
    start: int
    closed: bool = True


def _skip_string(line: str, i: int) -> tuple[int, bool]:
    """Return (end, closed) for the literal whose opening quote is at ``line[i]``."""
    quote = line[i]
    n = len(line)
    j = i + 1
    while j < n:
        ch = line[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            return j + 1, True
        j += 1
    return n, False


def scan(line: str) -> list[Segment]:
    """Split *line* into consecutive code / string / comment segments."""
    if not line:
        return []
    if _CONTINUATION_RE.match(line):
        return [Segment(COMMENT, line, 0)]

    segs: list[Segment] = []
    n = len(line)
    code_start = 0
    i = 0
    while i < n:
        ch = line[i]
        if ch == "\\":
            i += 2
            continue

        if ch in QUOTES:
            if i > code_start:
                segs.append(Segment(CODE, line[code_start:i], code_start))
            end, closed = _skip_string(line, i)
            segs.append(Segment(STRING, line[i:end], i, closed))
            i = code_start = end
            continue

        if line.startswith("//", i):
            if i > code_start:
                segs.append(Segment(CODE, line[code_start:i], code_start))
            segs.append(Segment(COMMENT, line[i:], i))
            return segs

        if line.startswith("/*", i):
            if i > code_start:
                segs.append(Segment(CODE, line[code_start:i], code_start))
            j = line.find("*/", i + 2)
            if j < 0:
                segs.append(Segment(COMMENT, line[i:], i, closed=False))
                return segs
            segs.append(Segment(COMMENT, line[i : j + 2], i))
            i = code_start = j + 2
            continue

        if line.startswith("*/", i):
            # closes a comment opened on an earlier line: everything so far is comment
            segs = [Segment(COMMENT, line[: i + 2], 0)]
            i = code_start = i + 2
            continue

        i += 1

    if code_start < n:
        segs.append(Segment(CODE, line[code_start:], code_start))
    return segs


def strip_strings(line: str) -> str:
    """Line with string literals (quotes included) removed; code and comments kept."""
    return "".join(s.text for s in scan(line) if s.kind != STRING)


def code_only(line: str) -> str:
    return "".join(s.text for s in scan(line) if s.kind == CODE)


def code_mask(line: str) -> str:
    """Same-length view of *line* where every non-code character is MASK_CHAR."""
    return "".join(s.text if s.kind == CODE else MASK_CHAR * len(s.text) for s in scan(line))


def search_code(pattern: re.Pattern[str], line: str) -> re.Match[str] | None:
    """First match of *pattern* that lies entirely in code; offsets index *line*."""
    return pattern.search(code_mask(line))


def finditer_code(pattern: re.Pattern[str], line: str) -> Iterator[re.Match[str]]:
    return pattern.finditer(code_mask(line))


def split_code_and_comment(line: str) -> tuple[str, str]:
    """Split off the trailing comment of *line*.

    The trailing comment is the first ``//`` comment outside strings, or a
    closed ``/* ... */`` followed by nothing but whitespace and comments.
    Returns ``(line, "")`` when there is none.
    """
    segs = scan(line)
    for k, seg in enumerate(segs):
        if seg.kind != COMMENT:
            continue
        if seg.text.startswith("//"):
            return line[: seg.start], line[seg.start :]
        if seg.text.startswith("/*") and seg.closed:
            rest = segs[k + 1 :]
            if all(s.kind == COMMENT or not s.text.strip() for s in rest):
                return line[: seg.start], line[seg.start :]
    return line, ""


def rewrite_code(line: str, fn: Callable[[str], str]) -> str:
    """Apply *fn* to each code segment; strings and comments are copied verbatim."""
    return "".join(fn(s.text) if s.kind == CODE else s.text for s in scan(line))


def rewrite_strings(line: str, fn: Callable[[str, str], str]) -> str:
    """Apply ``fn(content, quote)`` to every closed string literal.

    *fn* returns the full replacement literal, delimiters included.
    Unterminated literals are copied verbatim.
    """
    out = []
    for s in scan(line):
        if s.kind == STRING and s.closed and len(s.text) >= 2:
            out.append(fn(s.text[1:-1], s.text[0]))
        else:
            out.append(s.text)
    return "".join(out)


def net_bracket_delta(line: str) -> int:
    """Opening minus closing brackets in code segments, regardless of bracket kind."""
    code = code_only(line)
    opens = sum(code.count(ch) for ch in OPEN_BRACKETS)
    closes = sum(code.count(ch) for ch in CLOSE_BRACKETS)
    return opens - closes


def starts_with_closing_bracket(line: str) -> bool:
    s = line.lstrip(" \t")
    return bool(s) and s[0] in CLOSE_BRACKETS
