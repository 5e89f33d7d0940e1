"""IO helpers (strict read, backup, atomic write).

Files are read and written with ``newline=""`` so line endings reach the
formatter, and the disk, exactly as they are.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class IOOptions:
    encoding: str = "utf-8"
    backup: bool = True


def read_text_strict(path: Path, *, encoding: str) -> str:
    """Read text with strict decoding (no guessing, no ignoring errors, no EOL translation)."""
    with path.open("r", encoding=encoding, errors="strict", newline="") as fh:
        return fh.read()


def atomic_write_text(path: Path, *, text: str, encoding: str) -> None:
    """Atomically replace file contents through a sibling ``<stem>.tmp.<pid><suffix>`` file."""
    pid = os.getpid()
    tmp_path = path.with_name(f"{path.stem}.tmp.{pid}{path.suffix}")
    try:
        with tmp_path.open("w", encoding=encoding, errors="strict", newline="") as fh:
            fh.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def backup_file(path: Path) -> Path:
    """Create a timestamped backup next to the file, keeping its suffix."""
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    bak_name = f"{path.stem}.bak.{ts}{path.suffix}"
    bak_path = path.with_name(bak_name)
    shutil.copy2(path, bak_path)
    return bak_path
