"""File discovery (collect source files, apply include/exclude rules)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import fnmatch

DEFAULT_INCLUDES = [
    "*.c",
    "*.h",
    "*.cc",
    "*.cpp",
    "*.hpp",
    "*.cs",
    "*.java",
    "*.js",
    "*.jsx",
    "*.ts",
    "*.tsx",
    "*.go",
    "*.rs",
    "*.kt",
    "*.swift",
]

DEFAULT_EXCLUDES = [
    "**/.git/**",
    "**/node_modules/**",
    "**/*.bak.*",
    "**/*.tmp.*",
]

@dataclass(frozen=True)
class DiscoverOptions:
    recursive: bool = True
    includes: tuple[str, ...] = tuple(DEFAULT_INCLUDES)
    excludes: tuple[str, ...] = tuple(DEFAULT_EXCLUDES)

def _normalize_relpath(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()

def is_excluded(path: Path, root: Path, patterns: list[str]) -> bool:
    rel = _normalize_relpath(path, root)
    # also match with a leading '/' so '**/x/**' catches top-level 'x/'
    for pat in patterns:
        p = pat.strip()
        if not p:
            continue
        if fnmatch.fnmatch(rel, p) or fnmatch.fnmatch("/" + rel, p) or fnmatch.fnmatch(rel, p.lstrip("./")):
            return True
    return False

def is_included(path: Path, patterns: list[str]) -> bool:
    return any(fnmatch.fnmatch(path.name, p.strip()) for p in patterns if p.strip())

def collect_source_files(root: Path, options: DiscoverOptions) -> list[Path]:
    """Files under *root* matching an include glob and no exclude glob.

    A *root* that is itself a file is returned as is, without filtering.
    """
    root = root.resolve()
    if root.is_file():
        return [root]

    includes = list(options.includes)
    excludes = list(options.excludes)

    files: list[Path] = []
    it = root.rglob("*") if options.recursive else root.glob("*")

    for p in it:
        if p.is_dir():
            continue
        if not is_included(p, includes):
            continue
        if is_excluded(p, root, excludes):
            continue
        files.append(p)

    files.sort()
    return files
