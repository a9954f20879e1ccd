from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .errors import ConfigurationError


DEFAULT_MASK = '***MASKED["%s__%s__%s"]***'
DEFAULT_NEWLINE = "auto"  # files without any line break fall back to CRLF
DEFAULT_STRATEGY = "span"
DEFAULT_SHUTDOWN_TIMEOUT = 15.0
AUTO_NEWLINE = "auto"

# log level between INFO and WARNING for per-file outcomes
SUCCESS = 25

MAX_TEMPLATE_FIELDS = 3
_CONVERSION_RE = re.compile(r"%(%|s)?")
_NEWLINE_ESCAPES = {"\\r": "\r", "\\n": "\n"}


def template_arity(template: str) -> int:
    """Count the ``%s`` slots of a placeholder template.

    Only ``%s`` and the ``%%`` escape are allowed; anything else (``%d``, a
    lone trailing ``%``) is a configuration error.
    """

    slots = 0
    for m in _CONVERSION_RE.finditer(template):
        conv = m.group(1)
        if conv is None:
            raise ConfigurationError(
                f"invalid placeholder template {template!r}: only %s and %% are supported"
            )
        if conv == "s":
            slots += 1
    if slots > MAX_TEMPLATE_FIELDS:
        raise ConfigurationError(
            f"placeholder template {template!r} has {slots} fields, at most {MAX_TEMPLATE_FIELDS} are filled"
        )
    return slots


def decode_newline(raw: str) -> str:
    """Turn a command-line newline value (``\\r\\n``, ``\\n``, ``auto``) into the real sequence."""

    if raw == AUTO_NEWLINE:
        return AUTO_NEWLINE
    decoded = raw
    for escaped, real in _NEWLINE_ESCAPES.items():
        decoded = decoded.replace(escaped, real)
    if not decoded or decoded.strip("\r\n"):
        raise ConfigurationError(
            f"invalid newline sequence {raw!r}: use a combination of \\r and \\n, or 'auto'"
        )
    return decoded


@dataclass(frozen=True)
class MaskerConfig:
    source_dir: str
    target_dir: str
    placeholder_mask: str = DEFAULT_MASK
    newline: str = AUTO_NEWLINE
    fallback_newline: str = "\r\n"
    strategy: str = DEFAULT_STRATEGY
    workers: int = 0  # 0 -> one worker per CPU
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    findings_path: Optional[Path] = None
    output_path: Optional[Path] = None

    @classmethod
    def create(
        cls,
        source_dir: str,
        target_dir: str,
        *,
        placeholder_mask: str = DEFAULT_MASK,
        newline: str = DEFAULT_NEWLINE,
        strategy: str = DEFAULT_STRATEGY,
        workers: int = 0,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        findings_path: Optional[Path] = None,
        output_path: Optional[Path] = None,
    ) -> "MaskerConfig":
        """Build a validated config from raw (command-line style) values."""

        if not source_dir:
            raise ConfigurationError("missing required value: source directory")
        if not target_dir:
            raise ConfigurationError("missing required value: target directory")

        decoded = decode_newline(newline)
        config = cls(
            source_dir=os.path.normpath(source_dir),
            target_dir=os.path.normpath(target_dir),
            placeholder_mask=placeholder_mask,
            newline=decoded,
            fallback_newline="\r\n" if decoded == AUTO_NEWLINE else decoded,
            strategy=strategy.strip().lower(),
            workers=workers,
            shutdown_timeout=shutdown_timeout,
            findings_path=findings_path,
            output_path=output_path,
        )
        config.validate()
        return config

    def validate(self) -> None:
        template_arity(self.placeholder_mask)
        if self.newline != AUTO_NEWLINE and (not self.newline or self.newline.strip("\r\n")):
            raise ConfigurationError(f"invalid newline sequence {self.newline!r}")
        if self.workers < 0:
            raise ConfigurationError(f"worker count must be positive, got {self.workers}")
        if self.shutdown_timeout < 0:
            raise ConfigurationError(
                f"shutdown timeout must not be negative, got {self.shutdown_timeout}"
            )
        if os.path.normpath(self.source_dir) == os.path.normpath(self.target_dir):
            raise ConfigurationError("source and target directories must differ")

    @property
    def worker_count(self) -> int:
        return self.workers or os.cpu_count() or 1

    def render_placeholder(self, *values: str) -> str:
        arity = template_arity(self.placeholder_mask)
        args: Tuple[str, ...] = tuple(values[:arity])
        return self.placeholder_mask % args
