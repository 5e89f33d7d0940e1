"""CLI entrypoint for stylefmt.

Subcommand: format
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

from . import __version__
from .fs import DiscoverOptions, collect_source_files, DEFAULT_EXCLUDES, DEFAULT_INCLUDES
from .io import IOOptions, read_text_strict, backup_file, atomic_write_text
from .formatter import (
    FormatOptions,
    format_text,
    TAB_SIZE_DEFAULT,
    EOL_DEFAULT,
    EOL_MODES,
    MAX_BLANK_LINES_DEFAULT,
    COLON_MODE_DEFAULT,
    COLON_MODES,
    QUOTE_STYLE_DEFAULT,
    QUOTE_STYLES,
    BRACE_STYLE_DEFAULT,
    BRACE_STYLES,
    WRAP_COMMENTS_AT_DEFAULT,
)

_STAT_LABELS = (
    ("lines_split", "split"),
    ("blank_lines_dropped", "blank-dropped"),
    ("inline_comments_aligned", "comments-aligned"),
    ("equals_blocks_aligned", "eq-blocks"),
    ("comments_wrapped", "wrapped"),
)


@dataclass
class FileResult:
    path: Path
    status: str  # OK / CHANGED / WOULD / FAILED
    message: str = ""
    stats: dict | None = None


class StyleFmtArgumentParser(argparse.ArgumentParser):
    """argparse with a pointer to the full help after every usage error."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(
            2,
            f"error: {message}\nhint: run `stylefmt format --help` for the full help.\n",
        )


def _split_globs(values: list[str] | None) -> list[str]:
    if not values:
        return []
    out: list[str] = []
    for v in values:
        parts = [p.strip() for p in v.split(",")]
        out.extend([p for p in parts if p])
    return out


def _format_stats(stats: dict | None) -> str:
    if not stats:
        return ""
    shown = [f"{label}={stats[key]}" for key, label in _STAT_LABELS if stats.get(key)]
    return f"  ({' '.join(shown)})" if shown else ""


def build_parser() -> argparse.ArgumentParser:
    p = StyleFmtArgumentParser(
        prog="stylefmt",
        description="Deterministic style normalizer for brace-language source text "
        "(indentation, spacing, quotes, braces, alignment, comment wrapping)",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        title="subcommands",
        metavar="CMD",
    )

    fmt = sub.add_parser(
        "format",
        help="format a file or the source files under a directory",
        description="Format source files in place; --check only reports files that would change.",
        epilog=(
            "Examples:\n"
            "  stylefmt format ./src\n"
            "  stylefmt format ./src --check\n"
            "  stylefmt format ./src --exclude \"**/vendor/**,**/*.min.js\"\n"
            "  stylefmt format main.c --tab-size 4 --brace-style break"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    fmt.add_argument("path", type=Path, help="file or root directory to format")

    control = fmt.add_argument_group("processing")
    control.add_argument("--no-recursive", action="store_true", help="do not descend into subdirectories")
    control.add_argument("--check", action="store_true", help="report only, write nothing; exit 1 if any file needs formatting")
    control.add_argument("--dry-run", dest="check", action="store_true", help="same as --check")
    control.add_argument("--fail-fast", action="store_true", help="stop at the first failure")
    control.add_argument(
        "--include",
        action="append",
        default=[],
        help="file name globs to format (comma separated or repeated; replaces the built-in list)",
    )
    control.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="path globs to skip (comma separated or repeated)",
    )

    io_group = fmt.add_argument_group("input/output")
    io_group.add_argument("--no-backup", action="store_true", help="do not back files up before writing (backups are on by default)")
    io_group.add_argument("--encoding", default="utf-8", help="read/write encoding (default utf-8)")

    output = fmt.add_argument_group("reporting")
    out_mode = output.add_mutually_exclusive_group()
    out_mode.add_argument("-q", "--quiet", action="store_true", help="only print failures and the summary")
    out_mode.add_argument("-v", "--verbose", action="store_true", help="print settings and per-file pass counters")

    style = fmt.add_argument_group("style")
    style.add_argument("--tab-size", type=int, default=TAB_SIZE_DEFAULT, help="indent width")
    style.add_argument("--use-tabs", action="store_true", help="indent with TABs instead of spaces")
    style.add_argument("--eol", choices=list(EOL_MODES), default=EOL_DEFAULT, help="line ending")
    style.add_argument("--max-blank-lines", type=int, default=MAX_BLANK_LINES_DEFAULT, help="maximum consecutive blank lines")
    style.add_argument("--colon", choices=COLON_MODES, default=COLON_MODE_DEFAULT, help="spacing around ':'")
    style.add_argument("--quotes", choices=QUOTE_STYLES, default=QUOTE_STYLE_DEFAULT, help="string delimiter style")
    style.add_argument("--brace-style", choices=BRACE_STYLES, default=BRACE_STYLE_DEFAULT, help="'{' after ')' on the same or the next line")
    style.add_argument("--newline-before-else", action="store_true", help="start 'else' on its own line")
    style.add_argument(
        "--wrap-comments-at",
        type=int,
        default=WRAP_COMMENTS_AT_DEFAULT,
        help="wrap '//' comment lines at this column (<= 10 disables)",
    )
    style.add_argument("--no-align-comments", action="store_true", help="do not align trailing comments")
    style.add_argument("--no-align-equals", action="store_true", help="do not align '=' in assignment blocks")
    style.add_argument("--no-operator-spacing", action="store_true", help="leave spacing around operators alone")
    style.add_argument("--no-comma-spacing", action="store_true", help="leave spacing around commas alone")
    style.add_argument("--keep-trailing-whitespace", action="store_true", help="do not trim trailing whitespace")
    style.add_argument("--no-final-newline", action="store_true", help="do not add a missing final newline")
    style.add_argument("--keep-final-newlines", action="store_true", help="do not collapse trailing blank lines")

    return p


def options_from_args(args: argparse.Namespace) -> FormatOptions:
    return FormatOptions(
        tab_size=args.tab_size,
        insert_spaces=not args.use_tabs,
        trim_trailing_whitespace=not args.keep_trailing_whitespace,
        insert_final_newline=not args.no_final_newline,
        trim_final_newlines=not args.keep_final_newlines,
        normalize_eol=args.eol,
        max_consecutive_blank_lines=args.max_blank_lines,
        ensure_space_around_operators=not args.no_operator_spacing,
        space_after_comma=not args.no_comma_spacing,
        space_around_colon=args.colon,
        normalize_quotes=args.quotes,
        align_inline_comments=not args.no_align_comments,
        align_equals=not args.no_align_equals,
        brace_style=args.brace_style,
        newline_before_else=args.newline_before_else,
        wrap_comments_at=args.wrap_comments_at,
    )


def run_format(args: argparse.Namespace) -> int:
    root = args.path.resolve()
    if not root.exists():
        print(f"FAILED    {args.path}  (no such file or directory)")
        return 2

    try:
        fmtopt = options_from_args(args)
    except ValueError as e:
        print(f"FAILED    {args.path}  (invalid options: {e})")
        return 2

    includes = _split_globs(args.include) or list(DEFAULT_INCLUDES)
    excludes = list(DEFAULT_EXCLUDES)
    excludes.extend(_split_globs(args.exclude))

    discover = DiscoverOptions(
        recursive=not args.no_recursive,
        includes=tuple(includes),
        excludes=tuple(excludes),
    )
    files = collect_source_files(root, discover)
    if args.verbose:
        print(
            f"INFO      root={root} recursive={discover.recursive} files={len(files)} "
            f"encoding={args.encoding} backup={not args.no_backup}"
        )
        print(f"INFO      {fmtopt}")

    ioopt = IOOptions(encoding=args.encoding, backup=not args.no_backup)

    results: list[FileResult] = []
    any_change_needed = False
    any_failed = False

    for path in files:
        try:
            raw = read_text_strict(path, encoding=ioopt.encoding)
            fr = format_text(raw, options=fmtopt)

            if not fr.changed:
                results.append(FileResult(path, "OK", stats=fr.stats))
                continue

            any_change_needed = True
            if args.check:
                results.append(FileResult(path, "WOULD", stats=fr.stats))
                continue

            if ioopt.backup:
                backup_file(path)

            atomic_write_text(path, text=fr.out_text, encoding=ioopt.encoding)
            results.append(FileResult(path, "CHANGED", stats=fr.stats))
        except (OSError, UnicodeError, ValueError) as e:
            any_failed = True
            results.append(FileResult(path, "FAILED", str(e)))
            if args.fail_fast:
                break

    # Print per-file lines
    for r in results:
        if args.quiet and r.status != "FAILED":
            continue
        extra = _format_stats(r.stats) if args.verbose else ""
        if r.status == "OK":
            print(f"OK        {r.path}{extra}")
        elif r.status == "CHANGED":
            print(f"CHANGED   {r.path}{extra}")
        elif r.status == "WOULD":
            print(f"WOULD     {r.path}{extra}")
        else:
            print(f"FAILED    {r.path}  ({r.message})")

    changed = sum(1 for r in results if r.status == "CHANGED")
    ok = sum(1 for r in results if r.status == "OK")
    would = sum(1 for r in results if r.status == "WOULD")
    failed = sum(1 for r in results if r.status == "FAILED")
    print(f"Summary: changed={changed} ok={ok} would-change={would} failed={failed}")

    if any_failed:
        return 2
    if args.check and any_change_needed:
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "format":
        code = run_format(args)
    else:
        code = 2

    raise SystemExit(code)


if __name__ == "__main__":
    main()
