from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Optional

from ..core.config import MaskerConfig
from ..core.errors import HandlerError
from ..core.models import CancelToken, Finding
from ..core.utils import clean_file_name, recreate_file, resolve_newline
from ..strategies.base import ReplacementStrategy


class TextHandler:
    def __init__(
        self,
        config: MaskerConfig,
        strategy: ReplacementStrategy,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.strategy = strategy
        base_logger = logger or logging.getLogger("credmask")
        self.logger = base_logger.getChild("text")

    def mask(self, text: str, path: str, findings: List[Finding], cancel: Optional[CancelToken] = None) -> str:
        """Return the masked content without touching the disk."""

        newline = resolve_newline(text, self.config.newline, self.config.fallback_newline)
        prefix = clean_file_name(path)

        def render(f: Finding) -> str:
            return self.config.render_placeholder(prefix, f.rule_id, f.id)

        return self.strategy.apply(text, path, findings, newline, render, cancel)

    def handle(
        self,
        path: Path,
        text: str,
        findings: List[Finding],
        cancel: Optional[CancelToken] = None,
    ) -> int:
        masked = self.mask(text, str(path), findings, cancel)
        self.logger.debug("Recreating %s (%s strategy)", path, self.strategy.NAME)
        try:
            recreate_file(path, masked.encode("utf-8"))
        except OSError as exc:
            raise HandlerError(f"error recreating {path}: {exc}") from exc
        return len(findings)
