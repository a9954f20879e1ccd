from __future__ import annotations
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple, Union

import chardet  # type: ignore

from .config import AUTO_NEWLINE

PathLike = Union[str, Path]

_NON_IDENT_RE = re.compile(r"[^A-Za-z0-9]")
_NEWLINE_RE = re.compile(r"\r\n|\n|\r")
CHARDET_SAMPLE_SIZE = 64 * 1024


def clean_file_name(path: PathLike) -> str:
    """File stem with every non-alphanumeric character turned into ``_``."""

    stem = os.path.splitext(os.path.basename(os.fspath(path)))[0]
    return _NON_IDENT_RE.sub("_", stem)


def detect_newline(text: str, fallback: str) -> str:
    m = _NEWLINE_RE.search(text)
    return m.group(0) if m else fallback


def resolve_newline(text: str, configured: str, fallback: str) -> str:
    if configured == AUTO_NEWLINE:
        return detect_newline(text, fallback)
    return configured


def count_lines(text: str) -> int:
    """Line count by any line break (CRLF, LF or CR), whatever newline is configured."""

    return len(_NEWLINE_RE.split(text))


def split_lines(text: str, newline: str) -> List[str]:
    return text.split(newline)


def join_lines(lines: List[str], newline: str) -> str:
    return newline.join(lines)


def guess_encoding(data: bytes) -> Tuple[Optional[str], float]:
    """Best-effort chardet guess for bytes that are not valid UTF-8."""

    if not data:
        return None, 0.0
    result = chardet.detect(data[:CHARDET_SAMPLE_SIZE])
    return result.get("encoding"), float(result.get("confidence") or 0.0)


def is_within(path: PathLike, root: PathLike) -> bool:
    try:
        Path(os.path.abspath(path)).relative_to(os.path.abspath(root))
    except ValueError:
        return False
    return True


def recreate_file(path: PathLike, data: bytes = b"") -> None:
    """Replace ``path`` with a brand new file holding ``data``.

    The content goes to a temporary sibling first and is renamed over the
    original, so the path is never missing once this returns and never holds
    a half-written file.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"cannot recreate missing file: {path}")
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
