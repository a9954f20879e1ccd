"""Decide how a file with findings gets masked."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import ClassificationError
from .models import FileKind, Finding
from .utils import guess_encoding

# rules whose files are containers that must never be patched as text
OPAQUE_RULE_IDS = frozenset({"pkcs12-file"})
TEXTLIKE_GUESS_CONFIDENCE = 0.8


@dataclass(frozen=True)
class Classification:
    kind: FileKind
    text: Optional[str] = None
    reason: str = ""


def classify(path: Path, findings: List[Finding], logger: Optional[logging.Logger] = None) -> Classification:
    log = logger or logging.getLogger("credmask")

    if not findings:
        return Classification(FileKind.NONE, reason="no findings")

    for f in findings:
        if f.rule_id in OPAQUE_RULE_IDS:
            log.debug("%s matched the %s rule", path, f.rule_id)
            return Classification(FileKind.BINARY, reason=f"{f.rule_id} rule")

    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ClassificationError(f"error reading {path}: {exc}") from exc

    if not data:
        return Classification(FileKind.EMPTY, reason="file is empty")

    try:
        text = data.decode("utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        encoding, confidence = guess_encoding(data)
        if encoding and confidence >= TEXTLIKE_GUESS_CONFIDENCE:
            log.warning(
                "%s is not valid UTF-8 (looks like %s, confidence %.2f); treating it as binary",
                path,
                encoding,
                confidence,
            )
        else:
            log.debug("%s is not valid UTF-8 at byte %d", path, exc.start)
        return Classification(FileKind.BINARY, reason="binary content check")

    return Classification(FileKind.TEXT, text=text, reason="valid UTF-8")
