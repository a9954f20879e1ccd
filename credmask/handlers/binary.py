from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional

from ..core.errors import HandlerError
from ..core.utils import recreate_file

PLACEHOLDER_MESSAGE = "This file was deleted because it matched the {reason}. Original file: {path}"
PLACEHOLDER_SUFFIX = ".txt"
CONTAINER_SUFFIXES = (".p12", ".pfx")


def placeholder_path(path: Path) -> Path:
    """``cert.p12`` -> ``cert.txt``; any other file gets ``.txt`` appended."""

    path = Path(path)
    if path.suffix.lower() in CONTAINER_SUFFIXES:
        return path.with_suffix(PLACEHOLDER_SUFFIX)
    return path.with_name(path.name + PLACEHOLDER_SUFFIX)


class BinaryHandler:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        base_logger = logger or logging.getLogger("credmask")
        self.logger = base_logger.getChild("binary")

    def handle(self, path: Path, reason: str = "pkcs12-file rule") -> Path:
        path = Path(path)
        self.logger.debug("Emptying %s (%s)", path, reason)
        try:
            recreate_file(path)
        except OSError as exc:
            raise HandlerError(f"error recreating {path}: {exc}") from exc

        note = placeholder_path(path)
        message = PLACEHOLDER_MESSAGE.format(reason=reason, path=path)
        try:
            fd = os.open(note, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(message)
        except OSError as exc:
            raise HandlerError(f"error creating placeholder file {note}: {exc}") from exc
        return note
