"""Configurable source-text style normalizer (core logic).

Notes
-----
- Pure function of (text, options): no I/O and no module-level state; every
  per-run counter lives in the call.
- Not a parser: string literals and comments are opaque (see scanner.py) and
  indentation comes from a running bracket-depth count, not from syntax.
- Passes, in order:
    1. indentation, quotes, operator/comma/colon spacing, brace and else
       placement, trailing whitespace (one left-to-right pass over lines)
    2. blank-run limit
    3. trailing comment alignment (whole document)
    4. '=' alignment (contiguous blocks)
    5. '//' comment wrapping
  then the lines are joined with the target EOL and the final-newline policy
  is applied.
- Idempotent: formatting the output again reports ``changed=False``.
"""

from __future__ import annotations

import dataclasses
import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, Mapping

from .scanner import (
    finditer_code,
    net_bracket_delta,
    rewrite_code,
    rewrite_strings,
    search_code,
    split_code_and_comment,
    starts_with_closing_bracket,
    strip_strings,
)

# =========================
# Defaults (overridable from the CLI or the editor)
# =========================

TAB_SIZE_DEFAULT = 2
INSERT_SPACES_DEFAULT = True
EOL_DEFAULT = "lf"
MAX_BLANK_LINES_DEFAULT = 2
COLON_MODE_DEFAULT = "right"
QUOTE_STYLE_DEFAULT = "preserve"
BRACE_STYLE_DEFAULT = "attach"
WRAP_COMMENTS_AT_DEFAULT = 100

# wrap_comments_at values at or below this disable comment wrapping
WRAP_MIN_COLUMN = 10

EOL_MODES = {"lf": "\n", "crlf": "\r\n"}
COLON_MODES = ("none", "left", "right", "both")
QUOTE_STYLES = ("preserve", "double", "single")
BRACE_STYLES = ("attach", "break")


def vis_width(s: str, tab_size: int = TAB_SIZE_DEFAULT) -> int:
    """Display width in a monospace console.

    TAB advances to the next tab stop, wide/fullwidth characters count 2,
    combining characters 0, everything else 1.
    """

    w = 0
    for ch in s:
        if ch == "\t":
            w += tab_size - (w % tab_size)
            continue
        if unicodedata.combining(ch):
            continue
        ea = unicodedata.east_asian_width(ch)
        w += 2 if ea in ("W", "F") else 1
    return w


def rstrip_ws(s: str) -> str:
    return s.rstrip(" \t\f\v")


def split_indent(line: str) -> tuple[str, str]:
    body = line.lstrip(" \t")
    return line[: len(line) - len(body)], body


def split_lines(text: str) -> list[str]:
    """Logical lines of *text*; CRLF and LF both end a line."""
    return text.replace("\r\n", "\n").split("\n")


def join_with_eol(lines: list[str], eol_mode: str) -> str:
    return EOL_MODES[eol_mode].join(lines)


def _inc(stats: dict | None, key: str, n: int = 1) -> None:
    if stats is None:
        return
    stats[key] = stats.get(key, 0) + n


def _check_choice(name: str, value: str, choices) -> None:
    if value not in choices:
        allowed = ", ".join(repr(c) for c in choices)
        raise ValueError(f"{name} must be one of {allowed}, got {value!r}")


_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")


def _snake_case(key: str) -> str:
    return _CAMEL_RE.sub(r"\1_\2", key).lower()


@dataclass(frozen=True)
class FormatOptions:
    tab_size: int = TAB_SIZE_DEFAULT
    insert_spaces: bool = INSERT_SPACES_DEFAULT
    trim_trailing_whitespace: bool = True
    insert_final_newline: bool = True
    trim_final_newlines: bool = True
    normalize_eol: str = EOL_DEFAULT
    max_consecutive_blank_lines: int = MAX_BLANK_LINES_DEFAULT
    ensure_space_around_operators: bool = True
    space_after_comma: bool = True
    space_around_colon: str = COLON_MODE_DEFAULT
    normalize_quotes: str = QUOTE_STYLE_DEFAULT
    align_inline_comments: bool = True
    align_equals: bool = True
    brace_style: str = BRACE_STYLE_DEFAULT
    newline_before_else: bool = False
    wrap_comments_at: int = WRAP_COMMENTS_AT_DEFAULT

    def __post_init__(self) -> None:
        _check_choice("normalize_eol", self.normalize_eol, tuple(EOL_MODES))
        _check_choice("space_around_colon", self.space_around_colon, COLON_MODES)
        _check_choice("normalize_quotes", self.normalize_quotes, QUOTE_STYLES)
        _check_choice("brace_style", self.brace_style, BRACE_STYLES)
        if self.tab_size < 1:
            raise ValueError(f"tab_size must be >= 1, got {self.tab_size}")
        if self.max_consecutive_blank_lines < 0:
            raise ValueError(
                f"max_consecutive_blank_lines must be >= 0, got {self.max_consecutive_blank_lines}"
            )

    @classmethod
    def from_mapping(
        cls, values: Mapping[str, object] | None, *, base: FormatOptions | None = None
    ) -> FormatOptions:
        """Merge editor-style settings over *base* (defaults when omitted).

        Keys may be camelCase (``tabSize``, ``normalizeEOL``) or snake_case.
        ``None`` values count as absent and unknown keys are ignored.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        changes = {}
        for key, value in (values or {}).items():
            name = _snake_case(key)
            if name in known and value is not None:
                changes[name] = value
        return dataclasses.replace(base or cls(), **changes)

    @property
    def indent_unit(self) -> str:
        return " " * self.tab_size if self.insert_spaces else "\t"

    @property
    def eol(self) -> str:
        return EOL_MODES[self.normalize_eol]

    @property
    def wrap_enabled(self) -> bool:
        return self.wrap_comments_at > WRAP_MIN_COLUMN


@dataclass
class FormatResult:
    out_text: str
    changed: bool
    stats: dict


# =========================
# Pass 1: indentation, quotes, spacing, braces
# =========================


def normalize_indent(line: str, tab_size: int, use_spaces: bool) -> str:
    lead, body = split_indent(line)
    if use_spaces:
        return lead.replace("\t", " " * tab_size) + body
    width = vis_width(lead, tab_size)
    return "\t" * (width // tab_size) + " " * (width % tab_size) + body


def apply_indent(line: str, level: int, indent_unit: str) -> str:
    return indent_unit * max(0, level) + line.lstrip(" \t")


# longest first, so '===' wins over '==' over '='
_OPERATORS = sorted(
    [
        ">>>=", "<<=", ">>=", ">>>", "===", "!==", "**=", "??=", "...",
        "+=", "-=", "*=", "/=", "%=", "&=", "^=", "|=",
        "==", "!=", "<=", ">=", "&&", "||", "??", "**", "<<", ">>",
        "=>", "->", "++", "--",
        "+", "-", "*", "/", "%", "<", ">", "=", "&", "|", "^",
    ],
    key=len,
    reverse=True,
)
# matched as whole tokens so they are never split, but left unspaced
_UNSPACED_OPERATORS = {"++", "--", "->", "..."}

_OPERATOR_RE = re.compile(r"[ \t]*(" + "|".join(re.escape(op) for op in _OPERATORS) + r")[ \t]*")
_MULTI_SPACE_RE = re.compile(r" {2,}")
_COMMA_RE = re.compile(r"[ \t]*,[ \t]*")
_COMMA_BEFORE_CLOSE_RE = re.compile(r", +([,\]\)}])")
_COLON_RE = re.compile(r"(?<!:)[ \t]*:(?!:)[ \t]*")
_COLON_REPLACEMENTS = {"left": " :", "right": ": ", "both": " : "}
# '1e' / '2.5E' right before a sign: the sign belongs to the number
_EXPONENT_RE = re.compile(r"(?<![\w.])(?:\d[\d_]*(?:\.\d*)?|\.\d+)[eE]$")


def _is_exponent_sign(m: re.Match[str]) -> bool:
    # '1e-5': no whitespace on either side, digits after, mantissa + 'e' before
    return (
        m.group(1) in ("+", "-")
        and m.group(0) == m.group(1)
        and m.string[m.end() : m.end() + 1].isdigit()
        and _EXPONENT_RE.search(m.string, 0, m.start()) is not None
    )


def _space_operator(m: re.Match[str]) -> str:
    op = m.group(1)
    if op in _UNSPACED_OPERATORS:
        return m.group(0)
    if _is_exponent_sign(m):
        return op
    return f" {op} "


def space_operators(chunk: str) -> str:
    return _MULTI_SPACE_RE.sub(" ", _OPERATOR_RE.sub(_space_operator, chunk))


# a '*' opening a statement is a dereference: '*p', never '* p' (which reads as a block comment line)
_LEADING_DEREF_RE = re.compile(r"\*(?![*=/\s])")


def space_operators_in_body(line: str) -> str:
    indent, body = split_indent(line)
    if not _LEADING_DEREF_RE.match(body):
        return rewrite_body(line, space_operators)
    return indent + "*" + rewrite_code(body[1:], space_operators).lstrip(" \t")


def space_commas(chunk: str) -> str:
    return _COMMA_BEFORE_CLOSE_RE.sub(r",\1", _COMMA_RE.sub(", ", chunk))


def space_colons(chunk: str, mode: str) -> str:
    if mode == "none":
        return chunk
    return _COLON_RE.sub(_COLON_REPLACEMENTS[mode], chunk)


def rewrite_body(line: str, fn: Callable[[str], str]) -> str:
    """Run *fn* over the code segments after the indentation.

    The indentation is kept as is, and whitespace *fn* puts in front of the
    body (e.g. before a leading operator) is dropped.
    """
    indent, body = split_indent(line)
    if not body:
        return line
    return indent + rewrite_code(body, fn).lstrip(" \t")


def normalize_quotes_in_line(line: str, target: str) -> str:
    want = '"' if target == "double" else "'"

    def swap(content: str, quote: str) -> str:
        if quote != want and want not in content:
            return want + content + want
        return quote + content + quote

    return rewrite_strings(line, swap)


_BRACE_RE = re.compile(r"\)[ \t]*\{[ \t]*$")
_ELSE_RE = re.compile(r"\}[ \t]*(?=else\b)")
_STARTS_WITH_ELSE_RE = re.compile(r"^[ \t]*else\b")


def apply_brace_style(line: str, style: str) -> list[str]:
    """``attach``: ``) {`` on one line; ``break``: ``{`` alone on the next line."""
    m = search_code(_BRACE_RE, line)
    if m is None:
        return [line]
    head = line[: m.start()]
    if style == "attach":
        return [head + ") {"]
    return [head + ")", "{"]


def apply_newline_before_else(line: str) -> list[str]:
    """Split ``} else`` so that ``else`` starts its own line."""
    if _STARTS_WITH_ELSE_RE.match(line):
        return [line]
    cuts = list(finditer_code(_ELSE_RE, line))
    if not cuts:
        return [line]
    pieces = []
    pos = 0
    for m in cuts:
        pieces.append(line[pos : m.start() + 1])
        pos = m.end()
    pieces.append(line[pos:])
    return pieces


def pass_indent_and_spacing(src: list[str], options: FormatOptions, stats: dict | None = None) -> list[str]:
    """Pass 1. The bracket depth is the only state carried from line to line."""

    out: list[str] = []
    indent_unit = options.indent_unit
    indent_level = 0

    for raw in src:
        raw = normalize_indent(raw, options.tab_size, options.insert_spaces)
        pre_dec = 1 if starts_with_closing_bracket(raw) else 0
        line = apply_indent(raw, indent_level - pre_dec, indent_unit)

        if options.normalize_quotes != "preserve":
            line = normalize_quotes_in_line(line, options.normalize_quotes)
        if options.ensure_space_around_operators:
            line = space_operators_in_body(line)
        if options.space_after_comma:
            line = rewrite_body(line, space_commas)
        if options.space_around_colon != "none":
            mode = options.space_around_colon
            line = rewrite_body(line, lambda chunk: space_colons(chunk, mode))

        pieces = apply_brace_style(line, options.brace_style)
        if options.newline_before_else:
            pieces = [p for piece in pieces for p in apply_newline_before_else(piece)]
        if len(pieces) > 1:
            _inc(stats, "lines_split", len(pieces) - 1)

        # pieces after the first are indented from the depth the earlier pieces leave
        depth = indent_level
        for k, piece in enumerate(pieces):
            if k:
                pre = 1 if starts_with_closing_bracket(piece) else 0
                piece = apply_indent(piece, depth - pre, indent_unit)
            depth += net_bracket_delta(piece)
            out.append(rstrip_ws(piece) if options.trim_trailing_whitespace else piece)

        # affects the following lines only
        indent_level = depth

    return out


# =========================
# Pass 2: blank runs
# =========================


def limit_blank_runs(lines: list[str], max_blank: int, stats: dict | None = None) -> list[str]:
    out: list[str] = []
    run = 0
    for line in lines:
        if not line.strip():
            run += 1
            if run <= max_blank:
                out.append("")
            else:
                _inc(stats, "blank_lines_dropped")
        else:
            run = 0
            out.append(line)
    return out


# =========================
# Passes 3/4: alignment
# =========================


def align_end_of_line_comments(lines: list[str], tab_size: int, stats: dict | None = None) -> list[str]:
    """Put every trailing comment of the document in one column.

    The column is one past the widest code part among lines that carry a
    trailing comment. Whole-line comments and lines without comments are left
    alone.
    """

    info = []
    max_code = 0
    for idx, line in enumerate(lines):
        code, comment = split_code_and_comment(line)
        if not comment or not code.strip():
            continue
        code = rstrip_ws(code)
        max_code = max(max_code, vis_width(code, tab_size))
        info.append((idx, code, comment))

    out = list(lines)
    for idx, code, comment in info:
        pad = max(1, max_code - vis_width(code, tab_size) + 1)
        out[idx] = code + " " * pad + comment
    _inc(stats, "inline_comments_aligned", len(info))
    return out


# a plain assignment '=': not part of ==, !=, <=, >=, =>, +=, :=, ...
_ASSIGN_RE = re.compile(r"(?<![=!<>+\-*/%&|^~?:.])=(?![=>])")


def _assignment_pos(line: str) -> int | None:
    m = search_code(_ASSIGN_RE, line)
    if m is None or not line[: m.start()].strip():
        return None
    return m.start()


def _is_equals_candidate(line: str) -> bool:
    if not line.strip():
        return False
    if strip_strings(line).lstrip().startswith("//"):
        return False
    return _assignment_pos(line) is not None


def _align_equals_block(out: list[str], idxs: range, tab_size: int) -> None:
    parts = []
    for idx in idxs:
        line = out[idx]
        pos = _assignment_pos(line)
        parts.append((idx, rstrip_ws(line[:pos]), line[pos + 1 :].lstrip(" \t")))

    col = max(vis_width(left, tab_size) for _, left, _ in parts)
    for idx, left, right in parts:
        pad = " " * (col - vis_width(left, tab_size))
        new_line = f"{left}{pad} = {right}"
        out[idx] = new_line if right else rstrip_ws(new_line)


def align_equals_blocks(lines: list[str], tab_size: int, stats: dict | None = None) -> list[str]:
    """Align the first assignment '=' across runs of contiguous assignment lines.

    Runs are broken by blank lines and by any line without an assignment;
    runs shorter than two lines are left as they are.
    """

    out = list(lines)
    n = len(out)
    i = 0
    while i < n:
        if not _is_equals_candidate(out[i]):
            i += 1
            continue
        j = i
        while j < n and _is_equals_candidate(out[j]):
            j += 1
        if j - i >= 2:
            _align_equals_block(out, range(i, j), tab_size)
            _inc(stats, "equals_blocks_aligned")
        i = j
    return out


# =========================
# Pass 5: comment wrapping
# =========================

_LINE_COMMENT_RE = re.compile(r"^([ \t]*/{2,}[ \t]?)(.*)$")


def wrap_text(s: str, width: int, tab_size: int = TAB_SIZE_DEFAULT) -> list[str]:
    """Greedy word wrap; a word wider than *width* gets a line of its own."""
    if vis_width(s, tab_size) <= width:
        return [s]
    words = s.split()
    if not words:
        return [s]
    lines = []
    cur = ""
    for w in words:
        if not cur:
            cur = w
        elif vis_width(cur, tab_size) + 1 + vis_width(w, tab_size) <= width:
            cur += " " + w
        else:
            lines.append(cur)
            cur = w
    lines.append(cur)
    return lines


def wrap_comment_lines(
    lines: list[str], max_width: int, tab_size: int, *, trim: bool = True, stats: dict | None = None
) -> list[str]:
    """Re-prefix every ``//`` line around its trimmed body; bodies too wide are wrapped."""
    out: list[str] = []
    for line in lines:
        m = _LINE_COMMENT_RE.match(line)
        if not m:
            out.append(line)
            continue

        prefix, body = m.group(1), m.group(2).strip()
        wrapped = wrap_text(body, max_width - vis_width(prefix, tab_size), tab_size)
        if len(wrapped) > 1:
            _inc(stats, "comments_wrapped")
        for w in wrapped:
            out.append(rstrip_ws(prefix + w) if trim else prefix + w)
    return out


# =========================
# Pipeline
# =========================


def format_lines(src: list[str], options: FormatOptions, stats: dict | None = None) -> list[str]:
    lines = pass_indent_and_spacing(src, options, stats)
    lines = limit_blank_runs(lines, options.max_consecutive_blank_lines, stats)

    if options.align_inline_comments:
        lines = align_end_of_line_comments(lines, options.tab_size, stats)

    if options.align_equals:
        lines = align_equals_blocks(lines, options.tab_size, stats)
        if options.align_inline_comments:
            # '=' padding moved the ends of some code parts: settle the comment column again
            lines = align_end_of_line_comments(lines, options.tab_size)

    if options.wrap_enabled:
        lines = wrap_comment_lines(
            lines,
            options.wrap_comments_at,
            options.tab_size,
            trim=options.trim_trailing_whitespace,
            stats=stats,
        )

    return lines


def apply_final_newline_policy(text: str, options: FormatOptions) -> str:
    eol = options.eol
    if options.trim_final_newlines:
        text = re.sub(f"(?:{re.escape(eol)})+\\Z", eol, text)
    if options.insert_final_newline and not text.endswith(eol):
        text += eol
    return text


def format_text(raw_text: str, *, options: FormatOptions | None = None) -> FormatResult:
    """Format one document.

    ``changed`` is False when the result equals the original re-joined with
    the target EOL, so an EOL-only difference never counts as a change.
    """

    options = options or FormatOptions()
    src = split_lines(raw_text)
    stats: dict = {"total_lines": len(src)}

    out_lines = format_lines(src, options, stats)
    out_text = apply_final_newline_policy(join_with_eol(out_lines, options.normalize_eol), options)

    normalized_orig = join_with_eol(src, options.normalize_eol)
    changed = out_text != normalized_orig
    return FormatResult(out_text=out_text, changed=changed, stats=stats)
